"""Base gateway interfaces.

All gateway adapters must implement these interfaces.
Business logic should NOT live in adapters - only provider communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class GatewayType(str, Enum):
    """Supported gateway providers."""

    ANTHROPIC = "anthropic"
    CORE_BANKING = "core_banking"
    MANUAL = "manual"


@dataclass
class ImageInput:
    """An image attached to a classification request."""

    media_type: str
    data: str  # base64


@dataclass
class ClassificationRequest:
    """A single schema-constrained classification call.

    The provider must answer by filling ``output_schema`` under
    ``tool_name``; free-text answers are treated as malformed.
    """

    tool_name: str
    tool_description: str
    system_prompt: str
    user_prompt: str
    output_schema: dict[str, Any]
    images: list[ImageInput] = field(default_factory=list)
    max_tokens: int | None = None


@dataclass
class LedgerResult:
    """Result of a credit ledger operation."""

    success: bool
    reference: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class ClassificationGateway(ABC):
    """Abstract base class for structured classification providers."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def classify(self, request: ClassificationRequest) -> dict[str, Any]:
        """Run a classification and return the structured output.

        Args:
            request: Prompt, images and the output schema to fill

        Returns:
            The provider's structured output, not yet validated

        Raises:
            ClassificationRateLimited: Provider throttled the call
            ClassificationQuotaExceeded: Provider is out of credit or capacity
            ClassificationUnavailable: Provider unreachable, unconfigured or failing
            ClassificationResponseError: No structured output was returned
        """
        pass


class CreditLedgerGateway(ABC):
    """Abstract base class for the core-banking credit ledger."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def grant_credit(
        self,
        reference_id: str,
        amount: Decimal,
        currency: str,
        description: str,
    ) -> LedgerResult:
        """Post a temporary credit to the cardholder.

        Args:
            reference_id: Internal reference (transaction id)
            amount: Credit amount in major currency units
            currency: ISO currency code
            description: Ledger narrative

        Returns:
            LedgerResult with the ledger reference
        """
        pass

    @abstractmethod
    async def reverse_credit(
        self,
        reference_id: str,
        amount: Decimal,
        currency: str,
        reason: str,
    ) -> LedgerResult:
        """Take back a previously granted temporary credit.

        Args:
            reference_id: Internal reference (transaction id)
            amount: Amount originally credited
            currency: ISO currency code
            reason: Reversal reason

        Returns:
            LedgerResult; ``success`` is False when the ledger refused
        """
        pass
