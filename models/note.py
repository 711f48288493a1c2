from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from .base import Base


PRIORITY_MEDIUM = "Medium"
PRIORITY_HIGH = "High"


class Note(Base):
     """
     Note model - user-authored text records.

     Notes are never removed from the table; deletion flips is_active to False.
     Every mutation is mirrored by a NoteTransaction in the ledger.
     """
     __tablename__ = "notes"

     id = Column(Integer, primary_key=True, autoincrement=True)
     title = Column(String(255), nullable=False)
     content = Column(Text, nullable=True)
     priority = Column(String(20), default=PRIORITY_MEDIUM, nullable=False)
     is_active = Column(Boolean, default=True, nullable=False, index=True)

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     transactions = relationship(
          "NoteTransaction",
          back_populates="note",
          order_by="NoteTransaction.occurred_at",
     )

     def __repr__(self):
          return f"<Note(id={self.id}, title='{self.title}', priority='{self.priority}', active={self.is_active})>"

     @property
     def is_pinned(self) -> bool:
          return self.priority == PRIORITY_HIGH

     def soft_delete(self) -> None:
          """Mark the note as deleted without removing the row."""
          self.is_active = False
