# app/services/payment/providers/stripe_provider.py
import json
import logging
from typing import Dict, Any, List
from datetime import datetime, timezone
from dataclasses import dataclass

import stripe

from ..provider_interface import (
    PaymentProviderInterface,
    CreateCheckoutSessionParams,
    CheckoutSessionResult,
    CheckoutSessionSummary,
    WebhookEvent,
    WebhookEventType,
)

logger = logging.getLogger(__name__)


@dataclass
class StripeConfig:
    """Configuration for Stripe provider."""
    secret_key: str
    webhook_secret: str
    api_version: str = "2023-10-16"
    max_retries: int = 2


# Mapping from Stripe event types to our standardized event types
STRIPE_EVENT_MAP: Dict[str, WebhookEventType] = {
    "checkout.session.completed": WebhookEventType.CHECKOUT_SESSION_COMPLETED,
    "checkout.session.expired": WebhookEventType.CHECKOUT_SESSION_EXPIRED,
    "payment_intent.succeeded": WebhookEventType.PAYMENT_INTENT_SUCCEEDED,
    "payment_intent.payment_failed": WebhookEventType.PAYMENT_INTENT_FAILED,
    "charge.refunded": WebhookEventType.CHARGE_REFUNDED,
}


def _metadata_dict(metadata) -> Dict[str, str]:
    if not metadata:
        return {}
    if isinstance(metadata, dict):
        return {str(k): str(v) for k, v in metadata.items()}
    return {str(k): str(metadata[k]) for k in metadata.keys()}


class StripeProvider(PaymentProviderInterface):
    """
    Stripe implementation of PaymentProviderInterface.

    SECURITY NOTES:
    - Never log full card details
    - Always verify webhook signatures before parsing
    """

    def __init__(self, config: StripeConfig):
        """Initialize Stripe provider with configuration."""
        self._config = config

        # Initialize Stripe with locked API version
        stripe.api_key = config.secret_key
        stripe.api_version = config.api_version
        stripe.max_network_retries = config.max_retries

    @property
    def code(self) -> str:
        return "stripe"

    @property
    def name(self) -> str:
        return "Stripe"

    async def create_checkout_session(
        self, params: CreateCheckoutSessionParams
    ) -> CheckoutSessionResult:
        """
        Create a Stripe Checkout Session for a one-off donation.

        The session id becomes the ledger key once the payment completes, so
        everything the ledger needs later travels in the session metadata.
        """
        try:
            session_params: Dict[str, Any] = {
                "mode": "payment",
                "payment_method_types": ["card"],
                "line_items": [
                    {
                        "quantity": 1,
                        "price_data": {
                            "currency": params.currency.lower(),
                            "unit_amount": params.amount,
                            "product_data": {"name": f"Donation - {params.campaign_name}"},
                        },
                    }
                ],
                "success_url": params.success_url,
                "cancel_url": params.cancel_url,
                "metadata": {
                    "campaignId": params.campaign_id,
                    "athleteId": params.athlete_id or "",
                    "donorName": params.donor_name or "",
                    "donorAnonymous": "true" if params.donor_anonymous else "false",
                    "donorMessage": params.donor_message or "",
                    "orgId": params.organization_id,
                },
            }
            if params.donor_email:
                session_params["customer_email"] = params.donor_email

            session = stripe.checkout.Session.create(**session_params)
            logger.info(
                f"Created checkout session {session.id} for campaign {params.campaign_id}"
            )

            return CheckoutSessionResult(
                session_id=session.id,
                url=session.url,
                provider_metadata={"livemode": session.livemode},
            )

        except stripe.RateLimitError as e:
            logger.error(f"Rate limit error: {e}")
            raise PaymentError(
                code="RATE_LIMIT",
                message="Too many requests. Please try again.",
                retryable=True,
            )
        except stripe.InvalidRequestError as e:
            logger.error(f"Invalid request error: {e}")
            raise PaymentError(
                code="INVALID_REQUEST",
                message=str(e),
                retryable=False,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: {e}")
            raise PaymentError(
                code="PROVIDER_ERROR",
                message="Payment service temporarily unavailable",
                retryable=True,
            )

    def list_checkout_sessions(
        self, start: datetime, end: datetime
    ) -> List[CheckoutSessionSummary]:
        """List every checkout session created in [start, end), following pagination."""
        try:
            sessions = stripe.checkout.Session.list(
                created={"gte": int(start.timestamp()), "lt": int(end.timestamp())},
                limit=100,
            )
            summaries = []
            for session in sessions.auto_paging_iter():
                summaries.append(
                    CheckoutSessionSummary(
                        session_id=session.id,
                        amount_total=int(getattr(session, "amount_total", 0) or 0),
                        currency=str(getattr(session, "currency", "") or "").lower(),
                        payment_status=str(getattr(session, "payment_status", "") or ""),
                        created_at=datetime.fromtimestamp(session.created, tz=timezone.utc),
                        metadata=_metadata_dict(getattr(session, "metadata", None)),
                    )
                )
            return summaries
        except stripe.StripeError as e:
            logger.error(f"Error listing checkout sessions: {e}")
            raise PaymentError(
                code="PROVIDER_ERROR",
                message="Could not list checkout sessions",
                retryable=True,
            )

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify Stripe webhook signature."""
        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                self._config.webhook_secret,
            )
            return True
        except stripe.SignatureVerificationError:
            return False
        except Exception as e:
            logger.error(f"Error verifying webhook signature: {e}")
            return False

    def parse_webhook_event(self, payload: bytes) -> WebhookEvent:
        """Parse Stripe webhook event into standardized format."""
        try:
            event = json.loads(payload.decode("utf-8"))
            raw_type = event["type"]
            data_object = event.get("data", {}).get("object") or {}

            return WebhookEvent(
                event_id=event["id"],
                event_type=STRIPE_EVENT_MAP.get(raw_type, WebhookEventType.UNKNOWN),
                raw_type=raw_type,
                data=data_object,
                created_at=datetime.fromtimestamp(event.get("created", 0), tz=timezone.utc),
                livemode=bool(event.get("livemode", False)),
            )

        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Error parsing webhook event: {e}")
            raise PaymentError(
                code="PARSE_ERROR",
                message="Could not parse webhook event",
                retryable=False,
            )


class PaymentError(Exception):
    """Custom exception for payment errors."""

    def __init__(self, code: str, message: str, retryable: bool = False):
        self.code = code
        self.message = message
        self.retryable = retryable
        super().__init__(message)
