"""Card transaction model."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base

if TYPE_CHECKING:
    from app.models.dispute import Dispute, Representment
    from app.models.user import User


class Transaction(Base):
    """A settled or pending card transaction.

    The commerce fields are written by the card processor feed. Only the
    dispute, refund-tracking and temporary-credit fields change here.
    """

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)  # network number
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )

    # Amounts
    transaction_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    transaction_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    transaction_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    local_transaction_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    local_transaction_currency: Mapped[str | None] = mapped_column(String(3))

    # Merchant
    merchant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    merchant_id: Mapped[int | None] = mapped_column(Integer)
    merchant_category_code: Mapped[int | None] = mapped_column(Integer)
    acquirer_name: Mapped[str | None] = mapped_column(String(100))

    # Card / wallet
    secured_indication: Mapped[int | None] = mapped_column(Integer)
    pos_entry_mode: Mapped[int | None] = mapped_column(Integer)
    is_wallet_transaction: Mapped[bool] = mapped_column(Boolean, default=False)
    wallet_type: Mapped[str | None] = mapped_column(String(50))

    # Settlement and refunds
    settled: Mapped[bool] = mapped_column(Boolean, default=False)
    settlement_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refund_received: Mapped[bool] = mapped_column(Boolean, default=False)
    refund_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    # Dispute state
    dispute_status: Mapped[str | None] = mapped_column(String(40), index=True)
    dispute_sub_status: Mapped[str | None] = mapped_column(String(40))
    needs_attention: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    chargeback_case_id: Mapped[str | None] = mapped_column(String(64))

    # Temporary credit
    temporary_credit_provided: Mapped[bool] = mapped_column(Boolean, default=False)
    temporary_credit_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    temporary_credit_currency: Mapped[str | None] = mapped_column(String(3))
    temporary_credit_reversal_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    notes: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    customer: Mapped["User"] = relationship("User", back_populates="transactions")
    disputes: Mapped[list["Dispute"]] = relationship("Dispute", back_populates="transaction")
    representments: Mapped[list["Representment"]] = relationship(
        "Representment", back_populates="transaction"
    )
