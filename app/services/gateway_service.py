"""Gateway service.

Routes classification and ledger operations to the configured adapters.
No business logic here - only gateway coordination.
"""

from app.config import settings
from app.gateways.anthropic_gateway import AnthropicClassificationGateway
from app.gateways.base import ClassificationGateway, CreditLedgerGateway, GatewayType
from app.gateways.core_banking import CoreBankingLedgerGateway
from app.gateways.manual import ManualLedgerGateway


def _is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


def _resolve_ledger_type(gateway_type: str | GatewayType | None) -> GatewayType:
    """Pick the ledger adapter; only production talks to the real ledger."""
    if gateway_type is None:
        gateway_type = settings.ledger_gateway
    if isinstance(gateway_type, str):
        try:
            gateway_type = GatewayType(gateway_type)
        except ValueError:
            gateway_type = GatewayType.MANUAL
    if gateway_type == GatewayType.CORE_BANKING and not _is_production() and not settings.core_banking_url:
        return GatewayType.MANUAL
    return gateway_type


class GatewayService:
    """Registry of lazily created gateway adapters."""

    def __init__(self):
        self._ledgers: dict[GatewayType, CreditLedgerGateway] = {}
        self._classifier: ClassificationGateway | None = None

    def get_classifier(self) -> ClassificationGateway:
        """Get or create the classification gateway."""
        if self._classifier is None:
            self._classifier = AnthropicClassificationGateway()
        return self._classifier

    def get_ledger(self, gateway_type: str | GatewayType | None = None) -> CreditLedgerGateway:
        """Get or create a ledger gateway instance."""
        gateway_type = _resolve_ledger_type(gateway_type)
        if gateway_type not in self._ledgers:
            if gateway_type == GatewayType.CORE_BANKING:
                self._ledgers[gateway_type] = CoreBankingLedgerGateway()
            else:
                self._ledgers[gateway_type] = ManualLedgerGateway()
        return self._ledgers[gateway_type]


# Singleton instance
gateway_service = GatewayService()
