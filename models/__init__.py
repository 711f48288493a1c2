from .base import Base
from .note import Note
from .note_transaction import NoteTransaction, ActionType

__all__ = [
     "Base",
     "Note",
     "NoteTransaction",
     "ActionType",
]
