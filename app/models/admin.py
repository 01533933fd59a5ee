"""Audit and chargeback decision models (append-only)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONVariant

if TYPE_CHECKING:
    from app.models.user import User


class AuditLog(Base):
    """Audit log entry for every dispute state change."""

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), index=True)
    transaction_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("transactions.id"), index=True
    )

    # Action details
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    note: Mapped[str | None] = mapped_column(Text)
    network: Mapped[str | None] = mapped_column(String(20))  # visa, mastercard

    # Changes
    old_values: Mapped[dict | None] = mapped_column(JSONVariant)
    new_values: Mapped[dict | None] = mapped_column(JSONVariant)

    # Rule inputs at decision time
    compliance_snapshot: Mapped[dict | None] = mapped_column(JSONVariant)

    # Request info
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(Text)

    # Timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    # Relationships
    user: Mapped["User | None"] = relationship("User")


class ChargebackAction(Base):
    """Filing decision taken for a transaction, with its rule inputs."""

    __tablename__ = "chargeback_actions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=False, index=True
    )
    dispute_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("disputes.id", ondelete="SET NULL")
    )
    performed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"))

    # Decision
    action_type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    admin_action: Mapped[str | None] = mapped_column(String(40))
    chargeback_filed: Mapped[bool] = mapped_column(Boolean, default=False)
    temporary_credit_issued: Mapped[bool] = mapped_column(Boolean, default=False)
    requires_manual_review: Mapped[bool] = mapped_column(Boolean, default=False)
    internal_notes: Mapped[str | None] = mapped_column(Text)
    customer_message: Mapped[str | None] = mapped_column(Text)

    # Rule inputs
    merchant_category_code: Mapped[int | None] = mapped_column(Integer)
    days_since_transaction: Mapped[int | None] = mapped_column(Integer)
    days_since_settlement: Mapped[int | None] = mapped_column(Integer)
    compliance_snapshot: Mapped[dict | None] = mapped_column(JSONVariant)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
