"""Initial schema: accounts, profiles, items, trade requests, messages

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_accounts_email", "accounts", ["email"], unique=True)

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("avatar_url", sa.String(1024), nullable=True),
        sa.Column("reputation_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("trades_completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["id"], ["accounts.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("reputation_score >= 0", name="ck_profiles_reputation_non_negative"),
        sa.CheckConstraint("trades_completed >= 0", name="ck_profiles_trades_non_negative"),
    )
    op.create_index("ix_profiles_username", "profiles", ["username"], unique=True)

    op.create_table(
        "items",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("condition", sa.String(32), nullable=False),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("estimated_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="available"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("estimated_value >= 0", name="ck_items_value_non_negative"),
    )
    op.create_index("ix_items_user_id", "items", ["user_id"], unique=False)
    op.create_index("ix_items_title", "items", ["title"], unique=False)
    op.create_index("ix_items_category", "items", ["category"], unique=False)
    op.create_index("ix_items_status", "items", ["status"], unique=False)
    op.create_index("ix_items_created_at", "items", ["created_at"], unique=False)

    op.create_table(
        "trade_requests",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("requester_id", sa.String(36), nullable=False),
        sa.Column("receiver_id", sa.String(36), nullable=False),
        sa.Column("requester_items", sa.JSON(), nullable=False),
        sa.Column("receiver_items", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["requester_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["receiver_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_trade_requests_requester_id", "trade_requests", ["requester_id"], unique=False)
    op.create_index("ix_trade_requests_receiver_id", "trade_requests", ["receiver_id"], unique=False)
    op.create_index("ix_trade_requests_status", "trade_requests", ["status"], unique=False)

    op.create_table(
        "messages",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("trade_request_id", sa.String(36), nullable=False),
        sa.Column("sender_id", sa.String(36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["trade_request_id"], ["trade_requests.id"]),
        sa.ForeignKeyConstraint(["sender_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_trade_request_id", "messages", ["trade_request_id"], unique=False)
    op.create_index("ix_messages_created_at", "messages", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_messages_created_at", "messages")
    op.drop_index("ix_messages_trade_request_id", "messages")
    op.drop_table("messages")
    op.drop_index("ix_trade_requests_status", "trade_requests")
    op.drop_index("ix_trade_requests_receiver_id", "trade_requests")
    op.drop_index("ix_trade_requests_requester_id", "trade_requests")
    op.drop_table("trade_requests")
    op.drop_index("ix_items_created_at", "items")
    op.drop_index("ix_items_status", "items")
    op.drop_index("ix_items_category", "items")
    op.drop_index("ix_items_title", "items")
    op.drop_index("ix_items_user_id", "items")
    op.drop_table("items")
    op.drop_index("ix_profiles_username", "profiles")
    op.drop_table("profiles")
    op.drop_index("ix_accounts_email", "accounts")
    op.drop_table("accounts")
