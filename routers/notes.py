# routers/notes.py
"""
Note API routes.

Every mutation (create, update, delete, priority change) appends a ledger
record in the same database transaction as the note change and returns its
hash as transaction_hash. If the ledger append fails, the note change is
rolled back.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from database import get_session
from models import Note, NoteTransaction
from schemas.note import (
     NoteCreate,
     NoteUpdate,
     NotePriorityUpdate,
     NoteResponse,
     NoteListResponse,
)
from services.errors import ChainConflict, NoteNotFound, StorageUnavailable
from services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["notes"])


def _build_note_response(note: Note, entry: Optional[NoteTransaction] = None) -> NoteResponse:
     return NoteResponse(
          id=note.id,
          title=note.title,
          content=note.content,
          priority=note.priority,
          is_pinned=note.is_pinned,
          is_active=note.is_active,
          created_at=note.created_at,
          updated_at=note.updated_at,
          transaction_hash=entry.linkage_hash if entry is not None else None,
     )


def _commit_mutation(db: Session, mutate):
     """
     Run a note mutation and commit it with its ledger record.

     Rolls back and maps service errors to HTTP errors.
     """
     try:
          note, entry = mutate()
          db.commit()
     except NoteNotFound as exc:
          db.rollback()
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
     except ChainConflict as exc:
          db.rollback()
          raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
     except StorageUnavailable as exc:
          db.rollback()
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
     except IntegrityError:
          # Another writer committed against the same tail first
          db.rollback()
          raise HTTPException(
               status_code=status.HTTP_409_CONFLICT,
               detail="Ledger tail was extended concurrently; retry the operation",
          )
     except DBAPIError as exc:
          db.rollback()
          logger.error("Note mutation commit failed: %s", exc)
          raise HTTPException(
               status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
               detail="Note change could not be recorded; nothing was saved",
          )
     db.refresh(note)
     return _build_note_response(note, entry)


@router.post(
     "",
     response_model=NoteResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Create a new note"
)
def create_note(
     note_data: NoteCreate,
     db: Session = Depends(get_session),
):
     """
     Create a note and record a CREATE_NOTE ledger transaction.

     - **title**: Note title
     - **content**: Note body
     - **wallet_address**: Wallet performing the action
     """
     return _commit_mutation(db, lambda: NoteService.create_note(
          db,
          title=note_data.title,
          content=note_data.content,
          wallet_address=note_data.wallet_address,
     ))


@router.get(
     "",
     response_model=NoteListResponse,
     summary="List active notes"
)
def list_notes(db: Session = Depends(get_session)):
     """Retrieve all notes that have not been deleted."""
     try:
          notes = NoteService.list_active_notes(db)
     except StorageUnavailable as exc:
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
     return NoteListResponse(
          notes=[_build_note_response(note) for note in notes],
          total=len(notes),
     )


@router.get(
     "/{note_id}",
     response_model=NoteResponse,
     summary="Get a note by ID"
)
def get_note(note_id: int, db: Session = Depends(get_session)):
     try:
          note = NoteService.get_note(db, note_id)
     except NoteNotFound as exc:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
     except StorageUnavailable as exc:
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
     return _build_note_response(note)


@router.put(
     "/{note_id}",
     response_model=NoteResponse,
     summary="Update note content"
)
def update_note(
     note_id: int,
     note_data: NoteUpdate,
     db: Session = Depends(get_session),
):
     """
     Replace a note's content and record an UPDATE_NOTE ledger transaction.

     The first line of the new content becomes the title.
     """
     return _commit_mutation(db, lambda: NoteService.update_note(
          db,
          note_id=note_id,
          new_content=note_data.content,
          wallet_address=note_data.wallet_address,
     ))


@router.delete(
     "/{note_id}",
     response_model=NoteResponse,
     summary="Delete a note"
)
def delete_note(
     note_id: int,
     wallet_address: Optional[str] = Query(None, max_length=128, description="Wallet performing the action"),
     db: Session = Depends(get_session),
):
     """
     Soft-delete a note and record a DELETE_NOTE ledger transaction.

     The note row is kept (is_active=False) so ledger records keep their reference.
     """
     return _commit_mutation(db, lambda: NoteService.delete_note(
          db,
          note_id=note_id,
          wallet_address=wallet_address,
     ))


@router.patch(
     "/{note_id}/priority",
     response_model=NoteResponse,
     summary="Pin or unpin a note"
)
def update_note_priority(
     note_id: int,
     body: NotePriorityUpdate,
     db: Session = Depends(get_session),
):
     """
     Set priority to High (pinned) or Medium (unpinned) and record a
     SET_PRIORITY ledger transaction.
     """
     return _commit_mutation(db, lambda: NoteService.update_note_priority(
          db,
          note_id=note_id,
          is_pinned=body.is_pinned,
          wallet_address=body.wallet_address,
     ))
