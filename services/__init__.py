# services/__init__.py
from .errors import NoteNotFound, StorageUnavailable, ChainConflict, HashingFailure
from .hashing import digest, ensure_digest_available
from .note_service import NoteService
from .ledger_service import (
     GENESIS_HASH,
     FailureKind,
     TransactionEvent,
     VerificationResult,
     serialize_link_input,
     compute_linkage_hash,
     get_tail,
     list_in_append_order,
     get_previous_hash,
     append_transaction,
     list_transactions,
     verify_chain,
     verify_full_chain,
     verify_transaction,
)

__all__ = [
     "NoteNotFound",
     "StorageUnavailable",
     "ChainConflict",
     "HashingFailure",
     "digest",
     "ensure_digest_available",
     "NoteService",
     "GENESIS_HASH",
     "FailureKind",
     "TransactionEvent",
     "VerificationResult",
     "serialize_link_input",
     "compute_linkage_hash",
     "get_tail",
     "list_in_append_order",
     "get_previous_hash",
     "append_transaction",
     "list_transactions",
     "verify_chain",
     "verify_full_chain",
     "verify_transaction",
]
