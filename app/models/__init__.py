"""Database models."""

from app.models.admin import AuditLog, ChargebackAction
from app.models.dispute import (
    CustomerEvidence,
    CustomerEvidenceReview,
    Dispute,
    DisputeDocument,
    EvidenceRequest,
    Representment,
)
from app.models.financial import CreditLedgerEntry
from app.models.idempotency import IdempotencyRecord
from app.models.message import Conversation, Message
from app.models.transaction import Transaction
from app.models.user import User

__all__ = [
    # User
    "User",
    # Transaction
    "Transaction",
    # Dispute
    "Dispute",
    "DisputeDocument",
    "Representment",
    "EvidenceRequest",
    "CustomerEvidence",
    "CustomerEvidenceReview",
    # Messages
    "Conversation",
    "Message",
    # Audit
    "AuditLog",
    "ChargebackAction",
    # Financial
    "CreditLedgerEntry",
    # Idempotency
    "IdempotencyRecord",
]
