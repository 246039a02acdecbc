# app/services/payment/provider_interface.py
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime


class WebhookEventType(str, Enum):
    """Standardized webhook event types."""
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    CHECKOUT_SESSION_EXPIRED = "checkout.session.expired"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.failed"
    CHARGE_REFUNDED = "charge.refunded"
    UNKNOWN = "unknown"


@dataclass
class CreateCheckoutSessionParams:
    """Parameters for creating a hosted checkout session for one donation."""
    organization_id: str
    campaign_id: str
    campaign_name: str
    amount: int  # In smallest currency unit (cents)
    currency: str  # ISO 4217
    success_url: str
    cancel_url: str
    athlete_id: Optional[str] = None
    donor_name: Optional[str] = None
    donor_email: Optional[str] = None
    donor_message: Optional[str] = None
    donor_anonymous: bool = False


@dataclass
class CheckoutSessionResult:
    """Result of creating a checkout session."""
    session_id: str
    url: str
    provider_metadata: Optional[Dict[str, Any]] = None


@dataclass
class CheckoutSessionSummary:
    """One checkout session as reported by the provider."""
    session_id: str
    amount_total: int
    currency: str
    payment_status: str
    created_at: datetime
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def organization_id(self) -> Optional[str]:
        return self.metadata.get("orgId") or None


@dataclass
class WebhookEvent:
    """Standardized webhook event."""
    event_id: str
    event_type: WebhookEventType
    raw_type: str
    data: Dict[str, Any]
    created_at: datetime
    livemode: bool = False


class PaymentProviderInterface(ABC):
    """
    Core interface that all payment providers must implement.
    This abstraction allows swapping providers without changing business logic.
    """

    @property
    @abstractmethod
    def code(self) -> str:
        """Provider code identifier (e.g., 'stripe')."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g., 'Stripe')."""
        pass

    @abstractmethod
    async def create_checkout_session(
        self, params: CreateCheckoutSessionParams
    ) -> CheckoutSessionResult:
        """Create a hosted checkout page for a donation."""
        pass

    @abstractmethod
    def list_checkout_sessions(
        self, start: datetime, end: datetime
    ) -> List[CheckoutSessionSummary]:
        """All checkout sessions created in [start, end), every page."""
        pass

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Check the signature header against the raw request body."""
        pass

    @abstractmethod
    def parse_webhook_event(self, payload: bytes) -> WebhookEvent:
        """Parse a verified webhook body into a standardized event."""
        pass
