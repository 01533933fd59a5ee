"""Test doubles and row factories."""

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ClassificationResponseError
from app.core.security import create_token_for
from app.gateways.base import (
    ClassificationGateway,
    ClassificationRequest,
    CreditLedgerGateway,
    GatewayType,
    LedgerResult,
)
from app.models.dispute import Dispute, Representment
from app.models.message import Conversation
from app.models.transaction import Transaction
from app.models.user import User
from app.services.storage_service import StorageService


class FakeClassificationGateway(ClassificationGateway):
    """Scripted classifier: answers are looked up by tool name.

    A value may be a dict (returned as the tool output), an exception
    (raised), or a callable taking the request.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.requests: list[ClassificationRequest] = []

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.ANTHROPIC

    async def classify(self, request: ClassificationRequest) -> dict[str, Any]:
        self.requests.append(request)
        response = self.responses.get(request.tool_name)
        if response is None:
            raise ClassificationResponseError()
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response


class FakeLedger(CreditLedgerGateway):
    """In-memory ledger that can be told to refuse."""

    def __init__(self, fail_grant: bool = False, fail_reversal: bool = False) -> None:
        self.fail_grant = fail_grant
        self.fail_reversal = fail_reversal
        self.grants: list[tuple[str, Decimal, str]] = []
        self.reversals: list[tuple[str, Decimal, str]] = []

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def grant_credit(self, reference_id, amount, currency, description) -> LedgerResult:
        if self.fail_grant:
            return LedgerResult(success=False, error_message="ledger offline")
        self.grants.append((reference_id, amount, currency))
        return LedgerResult(success=True, reference=f"grant-{len(self.grants)}")

    async def reverse_credit(self, reference_id, amount, currency, reason) -> LedgerResult:
        if self.fail_reversal:
            return LedgerResult(success=False, error_message="ledger offline")
        self.reversals.append((reference_id, amount, currency))
        return LedgerResult(success=True, reference=f"reversal-{len(self.reversals)}")


class FakeStorage(StorageService):
    """Document store that keeps uploads in memory."""

    def __init__(self) -> None:
        super().__init__()
        self.objects: dict[str, tuple[bytes, str]] = {}

    async def upload_document(self, data: bytes, key: str, content_type: str) -> str:
        self.objects[key] = (data, content_type)
        return key

    def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        return f"https://storage.test/{key}?expires={expires_in}"


# ============ FACTORIES ============


def days_ago(days: int) -> datetime:
    """A timestamp that still counts as ``days`` old for the next hour."""
    return datetime.now(UTC) - timedelta(days=days) + timedelta(hours=1)


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def transaction_stub(age_days: int = 10, **overrides) -> SimpleNamespace:
    """Plain object with the transaction fields the rules read, aged against ``NOW``."""
    values: dict[str, Any] = {
        "transaction_id": 400100,
        "transaction_time": NOW - timedelta(days=age_days),
        "transaction_amount": Decimal("120.00"),
        "transaction_currency": "USD",
        "local_transaction_amount": Decimal("120.00"),
        "local_transaction_currency": "USD",
        "merchant_name": "TechStore Online",
        "merchant_category_code": 5732,
        "acquirer_name": "Visa Acquiring Bank",
        "secured_indication": 0,
        "pos_entry_mode": 5,
        "is_wallet_transaction": False,
        "wallet_type": None,
        "settled": True,
        "settlement_date": NOW - timedelta(days=max(age_days - 2, 0)),
        "refund_received": False,
        "refund_amount": Decimal("0"),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


async def create_user(db: AsyncSession, role: str = "customer", **overrides) -> User:
    user = User(
        email=overrides.pop("email", f"{role}-{uuid.uuid4().hex[:8]}@bank.test"),
        full_name=overrides.pop("full_name", role.replace("_", " ").title()),
        role=role,
        **overrides,
    )
    db.add(user)
    await db.commit()
    return user


async def create_transaction(db: AsyncSession, customer: User, **overrides) -> Transaction:
    """A settled, unsecured chip transaction, ten days old, for 120 USD."""
    values: dict[str, Any] = {
        "transaction_id": 400100,
        "customer_id": customer.id,
        "transaction_time": days_ago(10),
        "transaction_amount": Decimal("120.00"),
        "transaction_currency": "USD",
        "local_transaction_amount": Decimal("120.00"),
        "local_transaction_currency": "USD",
        "merchant_name": "TechStore Online",
        "merchant_id": 7001,
        "merchant_category_code": 5732,
        "acquirer_name": "Visa Acquiring Bank",
        "secured_indication": 0,
        "pos_entry_mode": 5,
        "is_wallet_transaction": False,
        "settled": True,
        "settlement_date": days_ago(8),
        "refund_received": False,
        "refund_amount": Decimal("0"),
        "needs_attention": False,
        "temporary_credit_provided": False,
    }
    values.update(overrides)
    tx = Transaction(**values)
    db.add(tx)
    await db.commit()
    return tx


async def create_dispute(
    db: AsyncSession,
    customer: User,
    tx: Transaction,
    status: str = "eligibility_checked",
    **overrides,
) -> Dispute:
    values: dict[str, Any] = {
        "customer_id": customer.id,
        "transaction_id": tx.id,
        "reason_label": "Item not as described",
        "custom_reason": "The jacket I received is a different colour from the listing",
        "category": "defective",
        "status": status,
    }
    values.update(overrides)
    dispute = Dispute(**values)
    db.add(dispute)
    await db.commit()
    return dispute


async def create_filed_case(
    db: AsyncSession,
    customer: User,
    dispute_status: str = "chargeback_filed",
    representment_status: str = "no_representment",
    has_representment: bool = True,
    credit: bool = True,
    **overrides,
) -> tuple[Transaction, Dispute, Representment]:
    """A filed chargeback with its conversation, dispute and representment."""
    tx = await create_transaction(
        db,
        customer,
        dispute_status=dispute_status,
        chargeback_case_id="CB-TEST0001",
        temporary_credit_provided=credit,
        temporary_credit_amount=Decimal("120.00") if credit else None,
        temporary_credit_currency="USD" if credit else None,
        **overrides,
    )
    conversation = Conversation(user_id=customer.id, title="Dispute - TechStore Online", status="active")
    db.add(conversation)
    await db.flush()

    dispute = Dispute(
        customer_id=customer.id,
        transaction_id=tx.id,
        conversation_id=conversation.id,
        reason_label="Product not received",
        category="not_received",
        status=dispute_status,
    )
    representment = Representment(
        transaction_id=tx.id,
        has_representment=has_representment,
        reason_code="13.1" if has_representment else None,
        reason_text="Merchant provided proof of delivery" if has_representment else None,
        source="visa",
        status=representment_status,
    )
    db.add_all([dispute, representment])
    await db.commit()
    return tx, dispute, representment


def auth_headers(user: User) -> dict[str, str]:
    token = create_token_for(str(user.id), user.email, user.role)
    return {"Authorization": f"Bearer {token}"}
