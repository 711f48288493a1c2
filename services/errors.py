"""
Exceptions raised by the note and ledger services.

Routers translate these into HTTP responses. Chain verification findings are
not exceptions; see ledger_service.VerificationResult.
"""


class NoteNotFound(LookupError):
     """A referenced note does not exist."""

     def __init__(self, note_id: int):
          super().__init__(f"Note with ID {note_id} not found")
          self.note_id = note_id


class StorageUnavailable(RuntimeError):
     """The transaction store could not be read or written."""


class ChainConflict(RuntimeError):
     """Another append claimed the same tail first; the chain was not extended."""


class HashingFailure(RuntimeError):
     """The SHA-256 primitive is missing or broken. Fatal at startup."""
