"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2024-06-03

Creates all initial tables for Chargeback Desk:
- Users
- Transactions
- Conversations and messages
- Disputes and dispute documents
- Representments, evidence requests and customer evidence
- Append-only records (audit logs, chargeback actions, credit ledger)
- Idempotency records
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

UUID = postgresql.UUID(as_uuid=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all database tables."""

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("full_name", sa.String(200)),
        sa.Column("role", sa.String(20), nullable=False, server_default="customer"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== TRANSACTIONS ====================
    op.create_table(
        "transactions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("transaction_id", sa.Integer, nullable=False, index=True),
        sa.Column("customer_id", UUID, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("transaction_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("transaction_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("transaction_currency", sa.String(3), nullable=False),
        sa.Column("local_transaction_amount", sa.Numeric(12, 2)),
        sa.Column("local_transaction_currency", sa.String(3)),
        sa.Column("merchant_name", sa.String(255), nullable=False),
        sa.Column("merchant_id", sa.Integer),
        sa.Column("merchant_category_code", sa.Integer),
        sa.Column("acquirer_name", sa.String(100)),
        sa.Column("secured_indication", sa.Integer),
        sa.Column("pos_entry_mode", sa.Integer),
        sa.Column("is_wallet_transaction", sa.Boolean, server_default=sa.false()),
        sa.Column("wallet_type", sa.String(50)),
        sa.Column("settled", sa.Boolean, server_default=sa.false()),
        sa.Column("settlement_date", sa.DateTime(timezone=True)),
        sa.Column("refund_received", sa.Boolean, server_default=sa.false()),
        sa.Column("refund_amount", sa.Numeric(12, 2), server_default="0"),
        sa.Column("dispute_status", sa.String(40), index=True),
        sa.Column("dispute_sub_status", sa.String(40)),
        sa.Column("needs_attention", sa.Boolean, server_default=sa.false(), index=True),
        sa.Column("chargeback_case_id", sa.String(64)),
        sa.Column("temporary_credit_provided", sa.Boolean, server_default=sa.false()),
        sa.Column("temporary_credit_amount", sa.Numeric(12, 2)),
        sa.Column("temporary_credit_currency", sa.String(3)),
        sa.Column("temporary_credit_reversal_at", sa.DateTime(timezone=True)),
        sa.Column("notes", sa.Text),
        *_timestamps(),
    )

    # ==================== CONVERSATIONS ====================
    op.create_table(
        "conversations",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("title", sa.String(255)),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("last_message_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        "messages",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "conversation_id",
            UUID,
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== DISPUTES ====================
    op.create_table(
        "disputes",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("customer_id", UUID, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("transaction_id", UUID, sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column(
            "conversation_id",
            UUID,
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("reason_id", sa.String(50)),
        sa.Column("reason_label", sa.String(200)),
        sa.Column("custom_reason", sa.Text),
        sa.Column("category", sa.String(50)),
        sa.Column("eligibility_status", sa.String(20)),
        sa.Column("eligibility_reasons", postgresql.JSONB),
        sa.Column("documents", postgresql.JSONB),
        sa.Column("status", sa.String(40), nullable=False, server_default="started", index=True),
        *_timestamps(),
    )

    op.create_table(
        "dispute_documents",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "dispute_id",
            UUID,
            sa.ForeignKey("disputes.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("customer_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("requirement_name", sa.String(200), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.Integer, nullable=False),
        sa.Column("storage_path", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== REPRESENTMENTS ====================
    op.create_table(
        "representments",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("transaction_id", UUID, sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column("has_representment", sa.Boolean, server_default=sa.false()),
        sa.Column("reason_code", sa.String(20)),
        sa.Column("reason_text", sa.Text),
        sa.Column("document_url", sa.Text),
        sa.Column("source", sa.String(50)),
        sa.Column("status", sa.String(40), nullable=False, server_default="no_representment", index=True),
        sa.Column(
            "representment_created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            index=True,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "evidence_requests",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("transaction_id", UUID, sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column("customer_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("requested_by", UUID, sa.ForeignKey("users.id")),
        sa.Column("note", sa.Text),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending_upload"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "customer_evidence",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("transaction_id", UUID, sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column("customer_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("evidence_type", sa.String(10), nullable=False),
        sa.Column("customer_note", sa.Text),
        sa.Column("file_metadata", postgresql.JSONB),
        sa.Column("ai_sufficient", sa.Boolean, server_default=sa.false()),
        sa.Column("ai_summary", sa.Text),
        sa.Column("ai_reasons", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "customer_evidence_reviews",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("transaction_id", UUID, sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column(
            "customer_evidence_id", UUID, sa.ForeignKey("customer_evidence.id"), nullable=False
        ),
        sa.Column("reviewed_by", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("decision", sa.String(20), nullable=False),
        sa.Column("review_notes", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== APPEND-ONLY RECORDS ====================
    op.create_table(
        "audit_logs",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), index=True),
        sa.Column("transaction_id", UUID, sa.ForeignKey("transactions.id"), index=True),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("resource_type", sa.String(50), nullable=False, index=True),
        sa.Column("resource_id", UUID),
        sa.Column("note", sa.Text),
        sa.Column("network", sa.String(20)),
        sa.Column("old_values", postgresql.JSONB),
        sa.Column("new_values", postgresql.JSONB),
        sa.Column("compliance_snapshot", postgresql.JSONB),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("user_agent", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    op.create_table(
        "chargeback_actions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("transaction_id", UUID, sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column("dispute_id", UUID, sa.ForeignKey("disputes.id", ondelete="SET NULL")),
        sa.Column("performed_by", UUID, sa.ForeignKey("users.id")),
        sa.Column("action_type", sa.String(40), nullable=False, index=True),
        sa.Column("admin_action", sa.String(40)),
        sa.Column("chargeback_filed", sa.Boolean, server_default=sa.false()),
        sa.Column("temporary_credit_issued", sa.Boolean, server_default=sa.false()),
        sa.Column("requires_manual_review", sa.Boolean, server_default=sa.false()),
        sa.Column("internal_notes", sa.Text),
        sa.Column("customer_message", sa.Text),
        sa.Column("merchant_category_code", sa.Integer),
        sa.Column("days_since_transaction", sa.Integer),
        sa.Column("days_since_settlement", sa.Integer),
        sa.Column("compliance_snapshot", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "credit_ledger_entries",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("transaction_id", UUID, sa.ForeignKey("transactions.id"), nullable=False, index=True),
        sa.Column("customer_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("entry_type", sa.String(30), nullable=False, index=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("reference", sa.String(100)),
        sa.Column("description", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== IDEMPOTENCY ====================
    op.create_table(
        "idempotency_records",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("idempotency_key", sa.String(255), unique=True, nullable=False),
        sa.Column("operation", sa.String(50), nullable=False),
        sa.Column("user_id", UUID, nullable=False, index=True),
        sa.Column("resource_id", UUID),
        sa.Column("result", postgresql.JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("idempotency_records")
    op.drop_table("credit_ledger_entries")
    op.drop_table("chargeback_actions")
    op.drop_table("audit_logs")
    op.drop_table("customer_evidence_reviews")
    op.drop_table("customer_evidence")
    op.drop_table("evidence_requests")
    op.drop_table("representments")
    op.drop_table("dispute_documents")
    op.drop_table("disputes")
    op.drop_table("messages")
    op.drop_table("conversations")
    op.drop_table("transactions")
    op.drop_table("users")
