# services/note_service.py
"""
Note Service - Business logic layer for note operations.

Every mutation records a ledger transaction in the same session. Nothing is
committed here: the caller commits the note change and its ledger record
together, or rolls both back.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from models import Note, ActionType, NoteTransaction
from models.note import PRIORITY_HIGH, PRIORITY_MEDIUM
from .errors import NoteNotFound, StorageUnavailable
from .ledger_service import TransactionEvent, append_transaction


TITLE_MAX_LENGTH = 255


def _utcnow() -> datetime:
     return datetime.now(timezone.utc).replace(tzinfo=None)


def title_from_content(content: str) -> str:
     """First line of the content, cut to the title column length."""
     return content.split("\n")[0][:TITLE_MAX_LENGTH]


class NoteService:
     """Service class for note-related business logic."""

     @staticmethod
     def get_note(db: Session, note_id: int) -> Note:
          """
          Fetch a note by ID, active or not.

          Raises:
               NoteNotFound: If no note has this ID.
          """
          try:
               note = db.query(Note).filter(Note.id == note_id).first()
          except DBAPIError as exc:
               raise StorageUnavailable("Note store is unavailable") from exc
          if not note:
               raise NoteNotFound(note_id)
          return note

     @staticmethod
     def list_active_notes(db: Session) -> list[Note]:
          """Return notes that have not been deleted, most recently updated first."""
          try:
               return (
                    db.query(Note)
                    .filter(Note.is_active.is_(True))
                    .order_by(Note.updated_at.desc(), Note.id.desc())
                    .all()
               )
          except DBAPIError as exc:
               raise StorageUnavailable("Note store is unavailable") from exc

     @staticmethod
     def create_note(
          db: Session,
          title: str,
          content: Optional[str],
          wallet_address: Optional[str]
     ) -> tuple[Note, NoteTransaction]:
          """
          Create a note and record a CREATE_NOTE transaction.

          Returns:
               The new note and its ledger record.
          """
          now = _utcnow()
          note = Note(
               title=title[:TITLE_MAX_LENGTH],
               content=content,
               priority=PRIORITY_MEDIUM,
               is_active=True,
               created_at=now,
               updated_at=now
          )
          db.add(note)
          try:
               db.flush()  # Flush to get the ID without committing
          except DBAPIError as exc:
               raise StorageUnavailable("Note store is unavailable") from exc

          entry = append_transaction(db, TransactionEvent(
               note_id=note.id,
               action_type=ActionType.CREATE_NOTE,
               content_before=None,
               content_after=content,
               metadata=f"Note created with title: '{title}'",
               wallet_address=wallet_address
          ))
          return note, entry

     @staticmethod
     def update_note(
          db: Session,
          note_id: int,
          new_content: str,
          wallet_address: Optional[str]
     ) -> tuple[Note, NoteTransaction]:
          """
          Replace a note's content; the title becomes the content's first line.

          Raises:
               NoteNotFound: If the note does not exist.
          """
          note = NoteService.get_note(db, note_id)

          content_before = note.content
          note.content = new_content
          note.title = title_from_content(new_content)
          note.updated_at = _utcnow()

          entry = append_transaction(db, TransactionEvent(
               note_id=note.id,
               action_type=ActionType.UPDATE_NOTE,
               content_before=content_before,
               content_after=new_content,
               metadata="Note content updated.",
               wallet_address=wallet_address
          ))
          return note, entry

     @staticmethod
     def delete_note(
          db: Session,
          note_id: int,
          wallet_address: Optional[str]
     ) -> tuple[Note, NoteTransaction]:
          """
          Soft-delete a note (is_active=False) and record DELETE_NOTE.

          Raises:
               NoteNotFound: If the note does not exist.
          """
          note = NoteService.get_note(db, note_id)

          note.soft_delete()
          note.updated_at = _utcnow()

          entry = append_transaction(db, TransactionEvent(
               note_id=note.id,
               action_type=ActionType.DELETE_NOTE,
               content_before=note.content,
               content_after=None,
               metadata="Note marked as deleted.",
               wallet_address=wallet_address
          ))
          return note, entry

     @staticmethod
     def update_note_priority(
          db: Session,
          note_id: int,
          is_pinned: bool,
          wallet_address: Optional[str]
     ) -> tuple[Note, NoteTransaction]:
          """
          Pin (High) or unpin (Medium) a note and record SET_PRIORITY.

          Raises:
               NoteNotFound: If the note does not exist.
          """
          note = NoteService.get_note(db, note_id)

          old_priority = note.priority
          new_priority = PRIORITY_HIGH if is_pinned else PRIORITY_MEDIUM
          note.priority = new_priority
          note.updated_at = _utcnow()

          entry = append_transaction(db, TransactionEvent(
               note_id=note.id,
               action_type=ActionType.SET_PRIORITY,
               content_before=None,
               content_after=None,
               metadata=f"Priority changed from '{old_priority}' to '{new_priority}'",
               wallet_address=wallet_address
          ))
          return note, entry
