"""
Tests for the public donation checkout endpoint.

The Stripe provider is replaced with a MagicMock whose
create_checkout_session is an AsyncMock.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.services.payment.provider_interface import CheckoutSessionResult
from app.services.payment.providers.stripe_provider import PaymentError
from tests.utils.fundraiser import create_athlete, create_fundraiser

MODULE = "app.api.v1.endpoints.public"


@pytest.fixture
def mock_provider():
    provider = MagicMock()
    provider.create_checkout_session = AsyncMock(
        return_value=CheckoutSessionResult(
            session_id="cs_test_123", url="https://checkout.stripe.com/c/pay/cs_test_123"
        )
    )
    with patch(f"{MODULE}.get_payment_provider", return_value=provider):
        yield provider


def checkout_url(campaign_id):
    return f"/api/v1/public/campaigns/{campaign_id}/checkout"


class TestCreateCheckout:

    def test_creates_session(self, client, db, mock_provider):
        org, campaign, athlete = create_fundraiser(db)

        response = client.post(
            checkout_url(campaign.id),
            json={
                "athlete_id": athlete.id,
                "amount_cents": 5000,
                "donor_name": "Pat Donor",
                "donor_email": "pat@example.com",
                "donor_message": "  Go Wolves!  ",
            },
        )

        assert response.status_code == 201
        assert response.json() == {
            "session_id": "cs_test_123",
            "url": "https://checkout.stripe.com/c/pay/cs_test_123",
        }

        params = mock_provider.create_checkout_session.await_args.args[0]
        assert params.organization_id == org.id
        assert params.campaign_id == campaign.id
        assert params.athlete_id == athlete.id
        assert params.amount == 5000
        assert params.currency == "usd"
        assert params.donor_message == "Go Wolves!"
        assert params.success_url == (
            f"https://fundraise.example.org/donate-success?campaignId={campaign.id}"
            "&session_id={CHECKOUT_SESSION_ID}"
        )
        assert params.cancel_url == f"https://fundraise.example.org/donate/{campaign.id}"

    def test_dollar_amount_is_converted(self, client, db, mock_provider):
        _, campaign, _ = create_fundraiser(db)

        response = client.post(checkout_url(campaign.id), json={"amount": 25.5})

        assert response.status_code == 201
        params = mock_provider.create_checkout_session.await_args.args[0]
        assert params.amount == 2550

    @pytest.mark.parametrize("amount_cents", [99, 250001])
    def test_amount_out_of_bounds(self, client, db, mock_provider, amount_cents):
        _, campaign, _ = create_fundraiser(db)

        response = client.post(checkout_url(campaign.id), json={"amount_cents": amount_cents})

        assert response.status_code == 422
        mock_provider.create_checkout_session.assert_not_called()

    def test_unknown_campaign(self, client, db, mock_provider):
        response = client.post(checkout_url("cmp_missing"), json={"amount_cents": 5000})

        assert response.status_code == 404

    def test_athlete_from_another_campaign(self, client, db, mock_provider):
        org, campaign, _ = create_fundraiser(db)
        stranger = create_athlete(db, org.id, None)

        response = client.post(
            checkout_url(campaign.id), json={"amount_cents": 5000, "athlete_id": stranger.id}
        )

        assert response.status_code == 404

    def test_retryable_provider_error(self, client, db, mock_provider):
        _, campaign, _ = create_fundraiser(db)
        mock_provider.create_checkout_session.side_effect = PaymentError(
            code="RATE_LIMIT", message="Too many requests. Please try again.", retryable=True
        )

        response = client.post(checkout_url(campaign.id), json={"amount_cents": 5000})

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "RATE_LIMIT"

    def test_rejected_request(self, client, db, mock_provider):
        _, campaign, _ = create_fundraiser(db)
        mock_provider.create_checkout_session.side_effect = PaymentError(
            code="INVALID_REQUEST", message="Bad currency", retryable=False
        )

        response = client.post(checkout_url(campaign.id), json={"amount_cents": 5000})

        assert response.status_code == 400
