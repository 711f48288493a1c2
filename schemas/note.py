"""
Pydantic schemas for Note API request/response validation.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import AliasChoices, BaseModel, Field, ConfigDict


class NoteCreate(BaseModel):
     """Schema for creating a new note."""
     title: str = Field(..., min_length=1, max_length=255, description="Note title")
     content: Optional[str] = Field(default="", description="Note body")
     wallet_address: Optional[str] = Field(
          None,
          max_length=128,
          validation_alias=AliasChoices("wallet_address", "walletAddress"),
          description="Wallet performing the action (recorded, not validated)",
     )

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "title": "Groceries",
                    "content": "Groceries\nmilk, eggs",
                    "wallet_address": "addr_test1qz...",
               }
          }
     )


class NoteUpdate(BaseModel):
     """Schema for replacing a note's content."""
     content: str = Field(..., description="New note body; first line becomes the title")
     wallet_address: Optional[str] = Field(
          None,
          max_length=128,
          validation_alias=AliasChoices("wallet_address", "walletAddress"),
     )

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "content": "Groceries\nmilk, eggs, bread",
                    "wallet_address": "addr_test1qz...",
               }
          }
     )


class NotePriorityUpdate(BaseModel):
     """Schema for pinning/unpinning a note. Accepts isPinned or pinned from older clients."""
     is_pinned: bool = Field(
          ...,
          validation_alias=AliasChoices("is_pinned", "isPinned", "pinned"),
          description="True sets priority High, False sets Medium",
     )
     wallet_address: Optional[str] = Field(
          None,
          max_length=128,
          validation_alias=AliasChoices("wallet_address", "walletAddress"),
     )

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "is_pinned": True,
                    "wallet_address": "addr_test1qz...",
               }
          }
     )


class NoteResponse(BaseModel):
     """Schema for note response."""
     id: int
     title: str
     content: Optional[str] = None
     priority: str
     is_pinned: bool
     is_active: bool
     created_at: datetime
     updated_at: datetime

     # Ledger record produced by the request, if any
     transaction_hash: Optional[str] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "id": 1,
                    "title": "Groceries",
                    "content": "Groceries\nmilk, eggs",
                    "priority": "Medium",
                    "is_pinned": False,
                    "is_active": True,
                    "created_at": "2026-01-31T10:30:00",
                    "updated_at": "2026-01-31T10:30:00",
                    "transaction_hash": "a1b2c3d4e5f6...",
               }
          }
     )


class NoteListResponse(BaseModel):
     """Schema for note list response."""
     notes: List[NoteResponse]
     total: int
