"""initial messaging schema

Revision ID: 3b1f0c2a9d47
Revises:
Create Date: 2026-10-17 09:12:41.518203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3b1f0c2a9d47"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, settings, chats and messages."""
    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("nickname", sa.String(length=100), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("avatar", sa.String(length=64), nullable=False),
        sa.Column("registered_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )
    op.create_table(
        "user_settings",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("theme", sa.String(length=16), nullable=False),
        sa.Column("text_size", sa.Integer(), nullable=False),
        sa.Column("compact_mode", sa.Boolean(), nullable=False),
        sa.Column("discoverability", sa.String(length=16), nullable=False),
        sa.Column("message_privacy", sa.String(length=16), nullable=False),
        sa.Column("read_receipts", sa.Boolean(), nullable=False),
        sa.Column("online_status", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_table(
        "chat",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_low_id", sa.Integer(), nullable=False),
        sa.Column("user_high_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_message", sa.Text(), nullable=True),
        sa.Column("last_message_time", sa.DateTime(), nullable=True),
        sa.CheckConstraint("user_low_id < user_high_id", name="ck_chat_pair_order"),
        sa.ForeignKeyConstraint(["user_low_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_high_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_low_id", "user_high_id", name="uq_chat_participants"),
    )
    op.create_table(
        "message",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chat_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["chat_id"], ["chat.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["user_account.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_message_chat_timestamp", "message", ["chat_id", "timestamp", "id"], unique=False
    )


def downgrade() -> None:
    """Drop the messaging schema."""
    op.drop_index("ix_message_chat_timestamp", table_name="message")
    op.drop_table("message")
    op.drop_table("chat")
    op.drop_table("user_settings")
    op.drop_table("user_account")
