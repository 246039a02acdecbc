"""
Tests for the Stripe provider.

All Stripe API calls are mocked; nothing touches the network.
"""

import asyncio
import json
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import stripe

from app.services.payment.provider_interface import (
    CreateCheckoutSessionParams,
    WebhookEventType,
)
from app.services.payment.providers.stripe_provider import (
    PaymentError,
    StripeConfig,
    StripeProvider,
)


@pytest.fixture
def provider():
    return StripeProvider(
        StripeConfig(
            secret_key="sk_test_123",
            webhook_secret="whsec_test_secret",
        )
    )


def checkout_params(**overrides):
    values = dict(
        organization_id="org_1",
        campaign_id="cmp_1",
        campaign_name="Spring Season",
        amount=5000,
        currency="USD",
        success_url="https://fundraise.example.org/donate-success",
        cancel_url="https://fundraise.example.org/donate/cmp_1",
        athlete_id="ath_1",
        donor_name="Pat Donor",
        donor_email="pat@example.com",
        donor_message="Go!",
        donor_anonymous=True,
    )
    values.update(overrides)
    return CreateCheckoutSessionParams(**values)


class TestCreateCheckoutSession:

    @patch("stripe.checkout.Session.create")
    def test_session_carries_ledger_metadata(self, mock_create, provider):
        mock_create.return_value = MagicMock(id="cs_1", url="https://checkout.stripe.com/cs_1", livemode=False)

        result = asyncio.run(provider.create_checkout_session(checkout_params()))

        assert result.session_id == "cs_1"
        assert result.url == "https://checkout.stripe.com/cs_1"
        kwargs = mock_create.call_args.kwargs
        assert kwargs["mode"] == "payment"
        assert kwargs["customer_email"] == "pat@example.com"
        line_item = kwargs["line_items"][0]
        assert line_item["price_data"]["unit_amount"] == 5000
        assert line_item["price_data"]["currency"] == "usd"
        assert line_item["price_data"]["product_data"]["name"] == "Donation - Spring Season"
        assert kwargs["metadata"] == {
            "campaignId": "cmp_1",
            "athleteId": "ath_1",
            "donorName": "Pat Donor",
            "donorAnonymous": "true",
            "donorMessage": "Go!",
            "orgId": "org_1",
        }

    @patch("stripe.checkout.Session.create")
    def test_no_email_no_customer_email(self, mock_create, provider):
        mock_create.return_value = MagicMock(id="cs_1", url="u", livemode=False)

        asyncio.run(provider.create_checkout_session(checkout_params(donor_email=None)))

        assert "customer_email" not in mock_create.call_args.kwargs

    @patch("stripe.checkout.Session.create")
    def test_rate_limit_is_retryable(self, mock_create, provider):
        mock_create.side_effect = stripe.RateLimitError("slow down")

        with pytest.raises(PaymentError) as exc_info:
            asyncio.run(provider.create_checkout_session(checkout_params()))

        assert exc_info.value.code == "RATE_LIMIT"
        assert exc_info.value.retryable is True

    @patch("stripe.checkout.Session.create")
    def test_invalid_request_is_not_retryable(self, mock_create, provider):
        mock_create.side_effect = stripe.InvalidRequestError("bad amount", param="amount")

        with pytest.raises(PaymentError) as exc_info:
            asyncio.run(provider.create_checkout_session(checkout_params()))

        assert exc_info.value.code == "INVALID_REQUEST"
        assert exc_info.value.retryable is False


class TestListCheckoutSessions:

    @patch("stripe.checkout.Session.list")
    def test_follows_pagination(self, mock_list, provider):
        sessions = [
            SimpleNamespace(
                id=f"cs_{i}",
                amount_total=1000 * i,
                currency="USD",
                payment_status="paid",
                created=1704162667,
                metadata={"orgId": "org_1"},
            )
            for i in range(1, 4)
        ]
        mock_list.return_value.auto_paging_iter.return_value = iter(sessions)
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = datetime(2024, 2, 1, tzinfo=timezone.utc)

        summaries = provider.list_checkout_sessions(start, end)

        assert [s.session_id for s in summaries] == ["cs_1", "cs_2", "cs_3"]
        assert summaries[1].amount_total == 2000
        assert summaries[0].currency == "usd"
        assert summaries[0].organization_id == "org_1"
        assert mock_list.call_args.kwargs["created"] == {
            "gte": int(start.timestamp()),
            "lt": int(end.timestamp()),
        }

    @patch("stripe.checkout.Session.list")
    def test_stripe_error(self, mock_list, provider):
        mock_list.side_effect = stripe.APIConnectionError("offline")

        with pytest.raises(PaymentError):
            provider.list_checkout_sessions(
                datetime(2024, 1, 1, tzinfo=timezone.utc), datetime(2024, 2, 1, tzinfo=timezone.utc)
            )


class TestWebhookParsing:

    def test_parse_known_event(self, provider):
        payload = json.dumps(
            {
                "id": "evt_1",
                "type": "checkout.session.completed",
                "created": 1704162667,
                "livemode": True,
                "data": {"object": {"id": "cs_1", "payment_status": "paid"}},
            }
        ).encode("utf-8")

        event = provider.parse_webhook_event(payload)

        assert event.event_id == "evt_1"
        assert event.event_type == WebhookEventType.CHECKOUT_SESSION_COMPLETED
        assert event.data["id"] == "cs_1"
        assert event.livemode is True

    def test_parse_unknown_event(self, provider):
        payload = json.dumps({"id": "evt_2", "type": "customer.created", "data": {"object": {}}})

        event = provider.parse_webhook_event(payload.encode("utf-8"))

        assert event.event_type == WebhookEventType.UNKNOWN
        assert event.raw_type == "customer.created"

    def test_parse_garbage(self, provider):
        with pytest.raises(PaymentError):
            provider.parse_webhook_event(b"not json")

    def test_bad_signature(self, provider):
        assert provider.verify_webhook_signature(b"{}", "t=1,v1=deadbeef") is False
