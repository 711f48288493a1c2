from .note import (
     NoteCreate,
     NoteUpdate,
     NotePriorityUpdate,
     NoteResponse,
     NoteListResponse,
)
from .transaction import (
     TransactionResponse,
     TransactionListResponse,
     VerificationResponse,
)

__all__ = [
     "NoteCreate",
     "NoteUpdate",
     "NotePriorityUpdate",
     "NoteResponse",
     "NoteListResponse",
     "TransactionResponse",
     "TransactionListResponse",
     "VerificationResponse",
]
