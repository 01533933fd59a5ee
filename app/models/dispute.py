"""Dispute, representment and customer evidence models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONVariant

if TYPE_CHECKING:
    from app.models.message import Conversation
    from app.models.transaction import Transaction


class Dispute(Base):
    """A customer's dispute case for one transaction."""

    __tablename__ = "disputes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=False, index=True
    )
    conversation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), index=True
    )

    # Reason
    reason_id: Mapped[str | None] = mapped_column(String(50))
    reason_label: Mapped[str | None] = mapped_column(String(200))
    custom_reason: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(50))

    # Eligibility snapshot
    eligibility_status: Mapped[str | None] = mapped_column(String(20))
    eligibility_reasons: Mapped[list | None] = mapped_column(JSONVariant)

    # Required evidence items [{name, uploadTypes}]
    documents: Mapped[list | None] = mapped_column(JSONVariant)

    # Status: started → eligibility_checked → documents_uploaded → chargeback_filed
    #         → closed_won | closed_lost | merchant_won | withdrawn
    status: Mapped[str] = mapped_column(String(40), nullable=False, default="started", index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    transaction: Mapped["Transaction"] = relationship("Transaction", back_populates="disputes")
    conversation: Mapped["Conversation | None"] = relationship(
        "Conversation", back_populates="disputes"
    )
    uploaded_documents: Mapped[list["DisputeDocument"]] = relationship(
        "DisputeDocument",
        back_populates="dispute",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class DisputeDocument(Base):
    """A verified evidence file attached to a dispute."""

    __tablename__ = "dispute_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    dispute_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("disputes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    requirement_name: Mapped[str] = mapped_column(String(200), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_path: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    dispute: Mapped["Dispute"] = relationship("Dispute", back_populates="uploaded_documents")


class Representment(Base):
    """Merchant counter-evidence received through the card network.

    The latest row (by ``representment_created_at``) is the active one.
    """

    __tablename__ = "representments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=False, index=True
    )

    # Merchant submission
    has_representment: Mapped[bool] = mapped_column(Boolean, default=False)
    reason_code: Mapped[str | None] = mapped_column(String(20))
    reason_text: Mapped[str | None] = mapped_column(Text)
    document_url: Mapped[str | None] = mapped_column(Text)
    source: Mapped[str | None] = mapped_column(String(50))

    # Status: see app.domain.dispute_state.REPRESENTMENT_TRANSITIONS
    status: Mapped[str] = mapped_column(
        String(40), nullable=False, default="no_representment", index=True
    )

    representment_created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    transaction: Mapped["Transaction"] = relationship("Transaction", back_populates="representments")


class EvidenceRequest(Base):
    """Bank request for additional customer evidence after a representment."""

    __tablename__ = "evidence_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=False, index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    requested_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"))

    note: Mapped[str | None] = mapped_column(Text)
    # Status: pending_upload → submitted
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending_upload")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class CustomerEvidence(Base):
    """Customer rebuttal evidence with the automated sufficiency verdict."""

    __tablename__ = "customer_evidence"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=False, index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    evidence_type: Mapped[str] = mapped_column(String(10), nullable=False)  # text, files
    customer_note: Mapped[str | None] = mapped_column(Text)
    file_metadata: Mapped[list | None] = mapped_column(JSONVariant)  # [{name, type, size, path}]

    # Automated verdict
    ai_sufficient: Mapped[bool] = mapped_column(Boolean, default=False)
    ai_summary: Mapped[str | None] = mapped_column(Text)
    ai_reasons: Mapped[list | None] = mapped_column(JSONVariant)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class CustomerEvidenceReview(Base):
    """A bank reviewer's decision on a piece of customer evidence."""

    __tablename__ = "customer_evidence_reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=False, index=True
    )
    customer_evidence_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customer_evidence.id"), nullable=False
    )
    reviewed_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    decision: Mapped[str] = mapped_column(String(20), nullable=False)  # approved, rejected
    review_notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
