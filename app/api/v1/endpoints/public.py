# app/api/v1/endpoints/public.py
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.core.config import settings
from app.schemas.payment import CheckoutSessionCreate, CheckoutSessionResponse
from app.services.payment.provider_factory import get_payment_provider
from app.services.payment.provider_interface import CreateCheckoutSessionParams
from app.services.payment.providers.stripe_provider import PaymentError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Public"])


@router.post(
    "/public/campaigns/{campaign_id}/checkout",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_checkout_session(
    campaign_id: str,
    checkout_in: CheckoutSessionCreate,
    db: Session = Depends(deps.get_db),
):
    """
    Start a hosted Stripe checkout for a donation. No login required.

    The donation is only recorded once Stripe confirms payment through the
    webhook.
    """
    base_url = (settings.FRONTEND_URL or "").strip().rstrip("/")
    if not base_url.startswith(("http://", "https://")):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="FRONTEND_URL must be set to an absolute URL",
        )

    campaign = crud.campaign.get(db, campaign_id)
    if not campaign:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Campaign not found")

    if checkout_in.athlete_id:
        athlete = crud.athlete.get(db, checkout_in.athlete_id)
        if not athlete or athlete.campaign_id != campaign.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Athlete not found for campaign"
            )

    try:
        provider = get_payment_provider("stripe")
        result = await provider.create_checkout_session(
            CreateCheckoutSessionParams(
                organization_id=campaign.organization_id,
                campaign_id=campaign.id,
                campaign_name=campaign.name or "Campaign",
                amount=checkout_in.amount_cents,
                currency="usd",
                success_url=(
                    f"{base_url}/donate-success?campaignId={campaign.id}"
                    "&session_id={CHECKOUT_SESSION_ID}"
                ),
                cancel_url=f"{base_url}/donate/{campaign.id}",
                athlete_id=checkout_in.athlete_id,
                donor_name=checkout_in.donor_name,
                donor_email=checkout_in.donor_email,
                donor_message=checkout_in.donor_message,
                donor_anonymous=checkout_in.donor_anonymous,
            )
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except PaymentError as e:
        status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE if e.retryable else status.HTTP_400_BAD_REQUEST
        )
        raise HTTPException(status_code=status_code, detail={"code": e.code, "message": e.message})

    return CheckoutSessionResponse(session_id=result.session_id, url=result.url)
