"""
Pydantic schemas for the ledger (wallet) API.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from models.note_transaction import ActionType
from services.ledger_service import FailureKind


class TransactionResponse(BaseModel):
     """Schema for a ledger record."""
     id: int
     note_id: int
     action_type: ActionType
     content_before: Optional[str] = None
     content_after: Optional[str] = None
     metadata: Optional[str] = None
     wallet_address: Optional[str] = None
     occurred_at: datetime
     linkage_hash: str = Field(..., description="SHA-256 hash binding this record to its predecessor")
     previous_hash: str = Field(..., description="linkage_hash of the previous record, or the genesis constant")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "id": 2,
                    "note_id": 1,
                    "action_type": "UPDATE_NOTE",
                    "content_before": "hello",
                    "content_after": "hello world",
                    "metadata": "Note content updated.",
                    "wallet_address": "addr_test1qz...",
                    "occurred_at": "2026-01-31T10:31:00.000000",
                    "linkage_hash": "9f86d081884c7d65...",
                    "previous_hash": "2cf24dba5fb0a30e...",
               }
          }
     )


class TransactionListResponse(BaseModel):
     """Schema for ledger history, most recent first."""
     transactions: List[TransactionResponse]
     total: int


class VerificationResponse(BaseModel):
     """Schema for chain verification results."""
     valid: bool
     checked: int = Field(..., description="Records that passed before verification stopped")
     message: str
     position: Optional[int] = Field(None, description="0-based chain position of the first failure")
     kind: Optional[FailureKind] = None
     transaction_id: Optional[int] = None
     hash_scheme: int = Field(..., description="Version of the hash input serialization")

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "valid": False,
                    "checked": 3,
                    "message": "Hash mismatch at id=4",
                    "position": 3,
                    "kind": "HASH_MISMATCH",
                    "transaction_id": 4,
                    "hash_scheme": 1,
               }
          }
     )
