# routers/wallet.py
"""
Ledger (wallet) API.

GET /api/wallet/transactions: ledger history, most recent first.
GET /api/wallet/transactions/verify: verify the whole hash chain.
GET /api/wallet/transactions/{id}/verify: verify one record against its predecessor.

Verification failures are reported in the response body (valid=false with
position and kind), not as HTTP errors.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from database import get_session
from models import NoteTransaction
from schemas.transaction import (
     TransactionResponse,
     TransactionListResponse,
     VerificationResponse,
)
from services.errors import StorageUnavailable
from services.ledger_service import list_transactions, verify_full_chain, verify_transaction

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


def _build_transaction_response(entry: NoteTransaction) -> TransactionResponse:
     return TransactionResponse(
          id=entry.id,
          note_id=entry.note_id,
          action_type=entry.action_type,
          content_before=entry.content_before,
          content_after=entry.content_after,
          metadata=entry.details,
          wallet_address=entry.wallet_address,
          occurred_at=entry.occurred_at,
          linkage_hash=entry.linkage_hash,
          previous_hash=entry.previous_hash,
     )


@router.get(
     "/transactions",
     response_model=TransactionListResponse,
     summary="List ledger transactions"
)
def get_all_transactions(
     wallet_address: Optional[str] = Query(None, description="Filter by acting wallet"),
     note_id: Optional[int] = Query(None, description="Filter by note ID"),
     db: Session = Depends(get_session),
):
     """Retrieve ledger transactions sorted by occurred_at descending."""
     try:
          entries = list_transactions(db, descending=True, wallet_address=wallet_address, note_id=note_id)
     except StorageUnavailable as exc:
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
     return TransactionListResponse(
          transactions=[_build_transaction_response(entry) for entry in entries],
          total=len(entries),
     )


@router.get(
     "/transactions/verify",
     response_model=VerificationResponse,
     summary="Verify the full ledger chain"
)
def verify_chain_endpoint(db: Session = Depends(get_session)):
     """
     Walk the ledger from genesis and report the first broken link or hash mismatch.
     """
     try:
          result = verify_full_chain(db)
     except StorageUnavailable as exc:
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
     return VerificationResponse.model_validate(result)


@router.get(
     "/transactions/{transaction_id}/verify",
     response_model=VerificationResponse,
     summary="Verify a single ledger record"
)
def verify_transaction_endpoint(transaction_id: int, db: Session = Depends(get_session)):
     try:
          result = verify_transaction(db, transaction_id)
     except StorageUnavailable as exc:
          raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
     if result is None:
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail=f"Transaction with ID {transaction_id} not found",
          )
     return VerificationResponse.model_validate(result)
