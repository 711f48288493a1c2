"""
NoteTransaction model - blockchain-like immutable record of note mutations.

Each record stores a SHA-256 linkage hash of
(previous_hash + note_id + action_type + occurred_at + content_after)
and the linkage hash of the record appended before it, forming a chain.
Records are append-only; modification is prevented at the application layer.
"""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, Index
from sqlalchemy.dialects.mssql import DATETIME2
from sqlalchemy.orm import relationship
from .base import Base


class ActionType(str, enum.Enum):
     """Enumeration of note mutations recorded in the ledger."""
     CREATE_NOTE = "CREATE_NOTE"
     UPDATE_NOTE = "UPDATE_NOTE"
     DELETE_NOTE = "DELETE_NOTE"
     SET_PRIORITY = "SET_PRIORITY"


# SQL Server DATETIME rounds to ~3ms, which would change the hashed timestamp
OccurredAt = DateTime().with_variant(DATETIME2(precision=6), "mssql")


class NoteTransaction(Base):
     """
     Immutable ledger entry. Created whenever a note is created, updated,
     deleted or re-prioritised.
     Chain is formed via linkage_hash -> next record's previous_hash.
     """
     __tablename__ = "note_transactions"
     __table_args__ = (
          Index("ix_note_transactions_occurred_at_id", "occurred_at", "id"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     note_id = Column(
          Integer,
          ForeignKey("notes.id", ondelete="RESTRICT"),  # Notes are soft-deleted only
          nullable=False,
          index=True
     )
     action_type = Column(
          Enum(ActionType, name="note_action_type", create_constraint=True),
          nullable=False,
     )
     content_before = Column(Text, nullable=True)
     content_after = Column(Text, nullable=True)
     # "metadata" is reserved on declarative classes
     details = Column("metadata", String(500), nullable=True)
     wallet_address = Column(String(128), nullable=True, index=True)
     occurred_at = Column(OccurredAt, nullable=False)
     linkage_hash = Column(String(64), nullable=False, unique=True, index=True)  # SHA-256 hex length
     # Unique: two appends against the same tail would fork the chain
     previous_hash = Column(String(68), nullable=False, unique=True)  # genesis is 68 zeros

     # Relationships
     note = relationship("Note", back_populates="transactions")

     def __repr__(self):
          return (
               f"<NoteTransaction(id={self.id}, note_id={self.note_id}, "
               f"action='{self.action_type.value}', hash={self.linkage_hash[:16]}...)>"
          )
