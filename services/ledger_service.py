# services/ledger_service.py
"""
Note Ledger Service - blockchain-like immutable record of note mutations.

When a note is created, updated, deleted or re-prioritised:
1. Read the chain tail (latest record by occurred_at, then id)
2. Compute SHA-256 linkage hash from the tail's hash + the event
3. Store the record with a reference to the tail's hash (chain)
4. Ledger records are append-only; no update/delete

Hash input, scheme version 1 (changing it invalidates every stored chain):

     previous_hash|note_id|action_type|occurred_at|content_after

- note_id is the decimal integer, action_type the enum value
- occurred_at is isoformat(timespec="microseconds") of the naive UTC timestamp
- a missing content_after contributes "" (content_before and metadata are not hashed)

Only the last field is free text, and none of the others can contain "|",
so field boundaries are unambiguous.

Verification: walk the chain in append order (id ascending), check each
previous_hash and recompute each linkage hash; stop at the first failure.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import asc, desc
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from models import NoteTransaction, ActionType
from .errors import ChainConflict, StorageUnavailable
from .hashing import digest

logger = logging.getLogger(__name__)


# Genesis block: previous_hash of the first record ever appended
GENESIS_HASH = "0" * 68

HASH_SCHEME_VERSION = 1
FIELD_SEPARATOR = "|"

# Serialises tail read + insert within this process; the unique constraint on
# previous_hash covers other processes.
_append_lock = threading.Lock()


class FailureKind(str, enum.Enum):
     """Why chain verification stopped."""
     BROKEN_LINK = "BROKEN_LINK"
     HASH_MISMATCH = "HASH_MISMATCH"


@dataclass(frozen=True)
class TransactionEvent:
     """A note mutation to be recorded in the ledger."""
     note_id: int
     action_type: ActionType
     content_before: Optional[str] = None
     content_after: Optional[str] = None
     metadata: Optional[str] = None
     wallet_address: Optional[str] = None


@dataclass(frozen=True)
class VerificationResult:
     """Outcome of a chain check. position is the 0-based index of the first bad record."""
     valid: bool
     checked: int
     message: str
     position: Optional[int] = None
     kind: Optional[FailureKind] = None
     transaction_id: Optional[int] = None
     hash_scheme: int = HASH_SCHEME_VERSION


def _utcnow() -> datetime:
     return datetime.now(timezone.utc).replace(tzinfo=None)


def _normalize_timestamp(ts: datetime) -> str:
     """Normalize timestamp to ISO format for deterministic hashing."""
     return ts.isoformat(timespec="microseconds")


def serialize_link_input(
     previous_hash: str,
     note_id: int,
     action_type: ActionType,
     occurred_at: datetime,
     content_after: Optional[str]
) -> str:
     """Build the scheme-1 hash input string (see module docstring)."""
     return FIELD_SEPARATOR.join([
          previous_hash,
          str(int(note_id)),
          ActionType(action_type).value,
          _normalize_timestamp(occurred_at),
          content_after if content_after is not None else "",
     ])


def compute_linkage_hash(
     previous_hash: str,
     note_id: int,
     action_type: ActionType,
     occurred_at: datetime,
     content_after: Optional[str]
) -> str:
     """
     Compute SHA-256 linkage hash for a ledger record.

     Returns 64-char hex string.
     """
     payload = serialize_link_input(previous_hash, note_id, action_type, occurred_at, content_after)
     return digest(payload)


def get_tail(db: Session) -> Optional[NoteTransaction]:
     """
     Get the most recently appended ledger record, or None for an empty ledger.

     Raises:
          StorageUnavailable: If the store cannot be queried.
     """
     try:
          return (
               db.query(NoteTransaction)
               .order_by(desc(NoteTransaction.occurred_at), desc(NoteTransaction.id))
               .limit(1)
               .first()
          )
     except DBAPIError as exc:
          logger.error("Ledger tail lookup failed: %s", exc)
          raise StorageUnavailable("Transaction store is unavailable") from exc


def get_previous_hash(db: Session) -> str:
     """Get the linkage_hash of the tail, or GENESIS_HASH if the ledger is empty."""
     tail = get_tail(db)
     if tail is None:
          return GENESIS_HASH
     return tail.linkage_hash


def append_transaction(db: Session, event: TransactionEvent) -> NoteTransaction:
     """
     Append an immutable record for a note mutation.

     - Links to the current tail (or GENESIS_HASH)
     - Stamps occurred_at with the current UTC time, never earlier than the tail's
     - Flushes but does NOT commit; the caller commits it together with the
       note mutation, or rolls both back

     Raises:
          StorageUnavailable: If the store cannot be read or written.
          ChainConflict: If another append already claimed the same tail.
     """
     with _append_lock:
          tail = get_tail(db)
          previous_hash = tail.linkage_hash if tail is not None else GENESIS_HASH

          occurred_at = _utcnow()
          if tail is not None and occurred_at < tail.occurred_at:
               occurred_at = tail.occurred_at

          linkage_hash = compute_linkage_hash(
               previous_hash,
               event.note_id,
               event.action_type,
               occurred_at,
               event.content_after
          )

          entry = NoteTransaction(
               note_id=event.note_id,
               action_type=ActionType(event.action_type),
               content_before=event.content_before,
               content_after=event.content_after,
               details=event.metadata,
               wallet_address=event.wallet_address,
               occurred_at=occurred_at,
               linkage_hash=linkage_hash,
               previous_hash=previous_hash
          )
          db.add(entry)
          try:
               db.flush()
          except IntegrityError as exc:
               logger.warning("Ledger append lost race on previous_hash=%s...", previous_hash[:16])
               raise ChainConflict(
                    f"Ledger tail {previous_hash[:16]}... was already extended; retry the operation"
               ) from exc
          except DBAPIError as exc:
               logger.error("Ledger append failed: %s", exc)
               raise StorageUnavailable("Transaction store is unavailable") from exc

     logger.info(
          "Ledger append %s note_id=%s hash=%s...",
          ActionType(event.action_type).value, event.note_id, linkage_hash[:16]
     )
     return entry


def list_transactions(
     db: Session,
     descending: bool,
     wallet_address: Optional[str] = None,
     note_id: Optional[int] = None
) -> list[NoteTransaction]:
     """
     Read ledger records ordered by occurrence (ties broken by append order).

     Args:
          descending: True for most-recent-first views, False for chain order.
          wallet_address: Optional filter on the acting wallet.
          note_id: Optional filter on the affected note.
     """
     direction = desc if descending else asc
     query = db.query(NoteTransaction)
     if wallet_address is not None:
          query = query.filter(NoteTransaction.wallet_address == wallet_address)
     if note_id is not None:
          query = query.filter(NoteTransaction.note_id == note_id)
     try:
          return query.order_by(
               direction(NoteTransaction.occurred_at), direction(NoteTransaction.id)
          ).all()
     except DBAPIError as exc:
          logger.error("Ledger read failed: %s", exc)
          raise StorageUnavailable("Transaction store is unavailable") from exc


def _recompute(entry: NoteTransaction, previous_hash: str) -> str:
     return compute_linkage_hash(
          previous_hash,
          entry.note_id,
          entry.action_type,
          entry.occurred_at,
          entry.content_after
     )


def verify_chain(entries: Iterable[NoteTransaction]) -> VerificationResult:
     """
     Verify records given in ascending chain order, starting from genesis.

     Stops at the first failure; nothing after a break is trusted.
     """
     expected_previous = GENESIS_HASH
     checked = 0

     for position, entry in enumerate(entries):
          if entry.previous_hash != expected_previous:
               logger.warning("Ledger chain broken at position %d (id=%s)", position, entry.id)
               return VerificationResult(
                    valid=False,
                    checked=checked,
                    message=f"Chain broken at id={entry.id}: previous_hash mismatch",
                    position=position,
                    kind=FailureKind.BROKEN_LINK,
                    transaction_id=entry.id,
               )
          if _recompute(entry, expected_previous) != entry.linkage_hash:
               logger.warning("Ledger hash mismatch at position %d (id=%s)", position, entry.id)
               return VerificationResult(
                    valid=False,
                    checked=checked,
                    message=f"Hash mismatch at id={entry.id}",
                    position=position,
                    kind=FailureKind.HASH_MISMATCH,
                    transaction_id=entry.id,
               )
          expected_previous = entry.linkage_hash
          checked += 1

     if checked == 0:
          return VerificationResult(valid=True, checked=0, message="Chain is empty (no entries)")
     return VerificationResult(valid=True, checked=checked, message="Full chain verification passed")


def list_in_append_order(db: Session) -> list[NoteTransaction]:
     """
     Read every ledger record in append order (id ascending).

     Same order as occurred_at for an untampered ledger, since appends never
     go back in time. Verification walks this order so an edited occurred_at
     fails hash recomputation at the edited record instead of reordering it.
     """
     try:
          return db.query(NoteTransaction).order_by(asc(NoteTransaction.id)).all()
     except DBAPIError as exc:
          logger.error("Ledger read failed: %s", exc)
          raise StorageUnavailable("Transaction store is unavailable") from exc


def verify_full_chain(db: Session) -> VerificationResult:
     """Verify the entire ledger chain from first to last entry."""
     return verify_chain(list_in_append_order(db))


def verify_transaction(db: Session, transaction_id: int) -> Optional[VerificationResult]:
     """
     Verify a single ledger record against its immediate predecessor.

     Returns None if the record does not exist. position is the record's
     index in append order.
     """
     try:
          entry = db.query(NoteTransaction).filter(NoteTransaction.id == transaction_id).first()
          if entry is None:
               return None
          earlier = db.query(NoteTransaction).filter(NoteTransaction.id < entry.id)
          position = earlier.count()
          predecessor = (
               earlier
               .order_by(desc(NoteTransaction.id))
               .limit(1)
               .first()
          )
     except DBAPIError as exc:
          logger.error("Ledger read failed: %s", exc)
          raise StorageUnavailable("Transaction store is unavailable") from exc

     expected_previous = predecessor.linkage_hash if predecessor is not None else GENESIS_HASH
     if entry.previous_hash != expected_previous:
          return VerificationResult(
               valid=False,
               checked=0,
               message=f"Chain broken at id={entry.id}: previous_hash does not match previous record",
               position=position,
               kind=FailureKind.BROKEN_LINK,
               transaction_id=entry.id,
          )
     if _recompute(entry, expected_previous) != entry.linkage_hash:
          return VerificationResult(
               valid=False,
               checked=0,
               message=f"Hash mismatch at id={entry.id}",
               position=position,
               kind=FailureKind.HASH_MISMATCH,
               transaction_id=entry.id,
          )
     return VerificationResult(
          valid=True,
          checked=1,
          message="Verification passed",
          position=position,
          transaction_id=entry.id,
     )
