# app/services/payment/provider_factory.py
import logging
from typing import Dict, Optional

from app.core.config import settings
from .provider_interface import PaymentProviderInterface
from .providers.stripe_provider import StripeProvider, StripeConfig

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "stripe"


class PaymentProviderFactory:
    """Creates and holds the configured payment provider instances."""

    def __init__(self):
        self._providers: Dict[str, PaymentProviderInterface] = {}
        self._initialize_providers()

    def _initialize_providers(self) -> None:
        """Initialize all configured payment providers."""
        # The webhook secret alone is enough to verify confirmations; the
        # secret key is needed for checkout creation and reconciliation.
        if settings.STRIPE_SECRET_KEY or settings.STRIPE_WEBHOOK_SECRET:
            config = StripeConfig(
                secret_key=settings.STRIPE_SECRET_KEY,
                webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
                api_version=settings.STRIPE_API_VERSION,
                max_retries=settings.STRIPE_MAX_NETWORK_RETRIES,
            )
            self._providers["stripe"] = StripeProvider(config)
            logger.info("Stripe payment provider initialized")
        else:
            logger.warning(
                "Stripe provider not initialized: missing environment variables"
            )

    def get_provider(self, code: str) -> PaymentProviderInterface:
        """
        Get a payment provider by its code.

        Raises:
            ValueError: If provider is not available
        """
        provider = self._providers.get(code)
        if not provider:
            raise ValueError(f"Payment provider '{code}' is not available")
        return provider


# Global factory instance (singleton pattern)
_factory_instance: Optional[PaymentProviderFactory] = None


def get_payment_provider_factory() -> PaymentProviderFactory:
    """Get the global payment provider factory instance."""
    global _factory_instance
    if _factory_instance is None:
        _factory_instance = PaymentProviderFactory()
    return _factory_instance


def get_payment_provider(code: str = DEFAULT_PROVIDER) -> PaymentProviderInterface:
    """Convenience function to get a payment provider by code."""
    factory = get_payment_provider_factory()
    return factory.get_provider(code)
