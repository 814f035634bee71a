"""initial settlement schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, nullable: bool = True, server_default: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.func.now() if server_default else None,
    )


def _ticket_columns() -> list[sa.Column]:
    # attendees and ticket_history carry the same payload
    return [
        sa.Column("doc_id", sa.String(), primary_key=True),
        sa.Column("ticket_id", sa.String(), nullable=False, unique=True, index=True),
        sa.Column("payment_reference_id", sa.String(), nullable=False, unique=True),
        sa.Column("event_id", sa.String(), nullable=False, index=True),
        sa.Column("event_creator_id", sa.String(), nullable=False),
        sa.Column("owner_id", sa.String(), nullable=False, index=True),
        sa.Column("full_name", sa.String()),
        sa.Column("email", sa.String()),
        sa.Column("ticket_type", sa.String(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("original_price", sa.Integer(), nullable=False),
        sa.Column("transaction_fee", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=False),
        sa.Column("discount_code", sa.String(), nullable=True),
        sa.Column("referral_code", sa.String(), nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False),
        _timestamp("created_at", nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("username", sa.String(), nullable=True, unique=True, index=True),
        sa.Column("full_name", sa.String()),
        sa.Column("email", sa.String()),
        sa.Column("referral_code", sa.String(), nullable=True),
        _timestamp("created_at", server_default=True),
    )

    op.create_table(
        "wallets",
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String()),
        _timestamp("updated_at", server_default=True),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String()),
        sa.Column("description", sa.String()),
        sa.Column("reference", sa.String(), index=True),
        sa.Column("status", sa.String()),
        _timestamp("created_at", server_default=True),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("creator_id", sa.String(), nullable=False, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("venue", sa.String()),
        sa.Column("event_type", sa.String()),
        sa.Column("event_date", sa.String()),
        sa.Column("event_end_date", sa.String()),
        sa.Column("event_start", sa.String()),
        sa.Column("event_end", sa.String()),
        sa.Column("tickets_sold", sa.Integer(), nullable=False),
        sa.Column("total_revenue", sa.Integer(), nullable=False),
        _timestamp("created_at", server_default=True),
    )

    op.create_table(
        "ticket_pricing",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.String(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("ticket_type", sa.String(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("available_tickets", sa.Integer(), nullable=True),
        sa.UniqueConstraint("event_id", "ticket_type"),
    )

    op.create_table(
        "discounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_id", sa.String(), sa.ForeignKey("events.id"), nullable=False, index=True),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("discount_type", sa.String(), nullable=False),
        sa.Column("discount_value", sa.Integer(), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=False),
        sa.Column("used_count", sa.Integer(), nullable=False),
        _timestamp("expiry_date"),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("event_id", "code"),
    )

    op.create_table(
        "payment_references",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("payer_id", sa.String(), sa.ForeignKey("users.id"), nullable=True, index=True),
        sa.Column("guest_name", sa.String(), nullable=True),
        sa.Column("guest_email", sa.String(), nullable=True),
        sa.Column("amount_minor_units", sa.Integer(), nullable=False),
        sa.Column("purpose", sa.String(), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=True),
        sa.Column("event_creator_id", sa.String(), nullable=True),
        sa.Column("ticket_type", sa.String(), nullable=True),
        sa.Column("ticket_price", sa.Integer(), nullable=True),
        sa.Column("transaction_fee", sa.Integer(), nullable=False),
        sa.Column("discount_code", sa.String(), nullable=True),
        sa.Column("referral_code", sa.String(), nullable=True),
        sa.Column("poll_id", sa.String(), nullable=True),
        sa.Column("contestant_id", sa.String(), nullable=True),
        sa.Column("vote_count", sa.Integer(), nullable=True),
        sa.Column("settled", sa.Boolean(), nullable=False),
        _timestamp("settled_at"),
        sa.Column("ticket_id", sa.String(), nullable=True),
        _timestamp("created_at", server_default=True),
    )

    op.create_table("attendees", *_ticket_columns())
    op.create_table(
        "ticket_history",
        *_ticket_columns(),
        sa.Column("event_name", sa.String()),
    )

    op.create_table(
        "referrals",
        sa.Column("code", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("username", sa.String()),
        sa.Column("full_name", sa.String()),
        sa.Column("ref_gain", sa.Integer(), nullable=False),
        sa.Column("total_withdrawn", sa.Integer(), nullable=False),
        sa.Column("total_referrals", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        _timestamp("last_referral_at"),
        _timestamp("last_withdrawal_at"),
        _timestamp("created_at", server_default=True),
    )

    op.create_table(
        "referred_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("referral_code", sa.String(), sa.ForeignKey("referrals.code"), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False, unique=True),
        sa.Column("username", sa.String()),
        sa.Column("email", sa.String()),
        sa.Column("full_name", sa.String()),
        _timestamp("joined_at", server_default=True),
    )

    op.create_table(
        "polls",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("creator_id", sa.String(), nullable=False, index=True),
        sa.Column("name", sa.String()),
        sa.Column("price_per_vote", sa.Integer(), nullable=False),
        sa.Column("poll_count", sa.Integer(), nullable=False),
        sa.Column("poll_amount", sa.Integer(), nullable=False),
    )

    op.create_table(
        "contestants",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("poll_id", sa.String(), sa.ForeignKey("polls.id"), nullable=False, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("votes", sa.Integer(), nullable=False),
    )

    op.create_table(
        "poll_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("poll_id", sa.String(), sa.ForeignKey("polls.id"), nullable=False, index=True),
        sa.Column("contestant_id", sa.String(), nullable=False),
        sa.Column("payment_reference_id", sa.String(), nullable=False, unique=True),
        sa.Column("voter_id", sa.String(), nullable=True),
        sa.Column("guest_email", sa.String(), nullable=True),
        sa.Column("vote_count", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        _timestamp("created_at", server_default=True),
    )


def downgrade() -> None:
    for table in (
        "poll_entries",
        "contestants",
        "polls",
        "referred_users",
        "referrals",
        "ticket_history",
        "attendees",
        "payment_references",
        "discounts",
        "ticket_pricing",
        "events",
        "transactions",
        "wallets",
        "users",
    ):
        op.drop_table(table)
