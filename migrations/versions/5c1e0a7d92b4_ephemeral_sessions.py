"""ephemeral sessions

Revision ID: 5c1e0a7d92b4
Revises:
Create Date: 2026-10-18 09:12:44.310521

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e0a7d92b4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the user directory, chat session and message tables."""
    op.create_table(
        "user_account",
        sa.Column("phone_number", sa.String(length=32), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("gender", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("last_seen", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("phone_number"),
    )
    op.create_table(
        "chat_session",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("participant_one", sa.String(length=32), nullable=False),
        sa.Column("participant_two", sa.String(length=32), nullable=False),
        sa.Column("initiated_by", sa.String(length=32), nullable=False),
        sa.Column("accepted_by", sa.String(length=32), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("encryption_key", sa.Text(), nullable=True),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "participant_one <> participant_two", name="ck_chat_session_distinct"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_chat_session_pair", "chat_session", ["participant_one", "participant_two"]
    )
    op.create_index(
        "ix_chat_session_status_expires", "chat_session", ["status", "expires_at"]
    )
    op.create_table(
        "chat_message",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("session_id", sa.String(length=32), nullable=False),
        sa.Column("sender", sa.String(length=32), nullable=False),
        sa.Column("encrypted_content", sa.Text(), nullable=False),
        sa.Column("iv", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["chat_session.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_chat_message_session_created", "chat_message", ["session_id", "created_at"]
    )


def downgrade() -> None:
    """Drop all tables created by this revision."""
    op.drop_index("ix_chat_message_session_created", table_name="chat_message")
    op.drop_table("chat_message")
    op.drop_index("ix_chat_session_status_expires", table_name="chat_session")
    op.drop_index("ix_chat_session_pair", table_name="chat_session")
    op.drop_table("chat_session")
    op.drop_table("user_account")
