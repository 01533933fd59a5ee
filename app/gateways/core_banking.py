"""Core-banking credit ledger adapter.

Posts temporary credit movements to the bank's ledger API. Requests are
signed with HMAC-SHA256 over the JSON body.
"""

import hashlib
import hmac
import json
from decimal import Decimal

import httpx

from app.config import settings
from app.gateways.base import CreditLedgerGateway, GatewayType, LedgerResult


class CoreBankingLedgerGateway(CreditLedgerGateway):
    """Ledger adapter backed by the core-banking HTTP API."""

    def __init__(self):
        self.base_url = settings.core_banking_url
        self.api_key = settings.core_banking_api_key
        self.signing_secret = settings.core_banking_signing_secret
        self.timeout = settings.core_banking_timeout_seconds

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.CORE_BANKING

    def _sign(self, body: bytes) -> str:
        """Compute request signature."""
        secret = (self.signing_secret or "").encode("utf-8")
        return hmac.new(secret, body, hashlib.sha256).hexdigest()

    async def _post(self, path: str, payload: dict) -> LedgerResult:
        if not self.base_url or not self.api_key:
            return LedgerResult(success=False, error_message="Core banking ledger not configured")

        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Signature": self._sign(body),
            "Idempotency-Key": f"{path}:{payload['reference_id']}",
        }

        try:
            async with httpx.AsyncClient(base_url=self.base_url) as client:
                response = await client.post(path, content=body, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            return LedgerResult(success=False, error_message=str(e))

        if response.status_code in (200, 201):
            data = response.json()
            return LedgerResult(
                success=data.get("status") in ("posted", "accepted"),
                reference=data.get("ledger_reference"),
                error_message=data.get("error"),
                raw_response=data,
            )

        return LedgerResult(
            success=False,
            error_message=f"Ledger API returned {response.status_code}",
            raw_response={"status_code": response.status_code},
        )

    async def grant_credit(
        self,
        reference_id: str,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> LedgerResult:
        """Post a temporary credit via the ledger API."""
        return await self._post(
            "/temporary-credits",
            {
                "reference_id": reference_id,
                "amount": str(amount),
                "currency": currency,
                "description": description,
            },
        )

    async def reverse_credit(
        self,
        reference_id: str,
        amount: Decimal,
        currency: str,
        reason: str,
    ) -> LedgerResult:
        """Reverse a temporary credit via the ledger API."""
        return await self._post(
            "/temporary-credits/reversals",
            {
                "reference_id": reference_id,
                "amount": str(amount),
                "currency": currency,
                "reason": reason,
            },
        )
