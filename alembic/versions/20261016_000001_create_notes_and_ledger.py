"""Create notes and note_transactions tables

Revision ID: 20261016_000001
Revises:
Create Date: 2026-10-16

Notes plus the append-only, hash-chained ledger of note mutations.
previous_hash is unique so two appends against the same tail cannot both commit.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mssql


revision: str = "20261016_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ACTION_TYPES = ("CREATE_NOTE", "UPDATE_NOTE", "DELETE_NOTE", "SET_PRIORITY")


def upgrade() -> None:
    op.create_table(
        "notes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_notes"),
    )
    op.create_index("ix_notes_is_active", "notes", ["is_active"])

    op.create_table(
        "note_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("note_id", sa.Integer(), nullable=False),
        sa.Column(
            "action_type",
            sa.Enum(*ACTION_TYPES, name="note_action_type", create_constraint=True),
            nullable=False,
        ),
        sa.Column("content_before", sa.Text(), nullable=True),
        sa.Column("content_after", sa.Text(), nullable=True),
        sa.Column("metadata", sa.String(500), nullable=True),
        sa.Column("wallet_address", sa.String(128), nullable=True),
        sa.Column(
            "occurred_at",
            sa.DateTime().with_variant(mssql.DATETIME2(precision=6), "mssql"),
            nullable=False,
        ),
        sa.Column("linkage_hash", sa.String(64), nullable=False),
        sa.Column("previous_hash", sa.String(68), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_note_transactions"),
        sa.ForeignKeyConstraint(
            ["note_id"],
            ["notes.id"],
            name="fk_note_transactions_note_id",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint("previous_hash", name="uq_note_transactions_previous_hash"),
    )
    op.create_index("ix_note_transactions_note_id", "note_transactions", ["note_id"])
    op.create_index("ix_note_transactions_wallet_address", "note_transactions", ["wallet_address"])
    op.create_index(
        "ix_note_transactions_linkage_hash", "note_transactions", ["linkage_hash"], unique=True
    )
    op.create_index(
        "ix_note_transactions_occurred_at_id", "note_transactions", ["occurred_at", "id"]
    )


def downgrade() -> None:
    op.drop_index("ix_note_transactions_occurred_at_id", table_name="note_transactions")
    op.drop_index("ix_note_transactions_linkage_hash", table_name="note_transactions")
    op.drop_index("ix_note_transactions_wallet_address", table_name="note_transactions")
    op.drop_index("ix_note_transactions_note_id", table_name="note_transactions")
    op.drop_table("note_transactions")
    op.drop_index("ix_notes_is_active", table_name="notes")
    op.drop_table("notes")
