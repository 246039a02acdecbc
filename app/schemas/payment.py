# app/schemas/payment.py
from pydantic import BaseModel, Field, EmailStr, field_validator, model_validator
from typing import Optional

MIN_DONATION_CENTS = 100
MAX_DONATION_CENTS = 250000


class CheckoutSessionCreate(BaseModel):
    """
    Donation checkout request. ``amount_cents`` is preferred; ``amount`` (in
    dollars) is accepted from older clients and converted once.
    """
    athlete_id: Optional[str] = None
    amount_cents: Optional[int] = None
    amount: Optional[float] = None
    donor_name: Optional[str] = Field(None, max_length=200)
    donor_email: Optional[EmailStr] = None
    donor_message: Optional[str] = None
    donor_anonymous: bool = False

    @field_validator("donor_message")
    @classmethod
    def trim_message(cls, v: Optional[str]) -> str:
        return (v or "").strip()[:500]

    @model_validator(mode="after")
    def resolve_amount(self):
        if self.amount_cents is None:
            if self.amount is None:
                raise ValueError("amount_cents or amount is required")
            self.amount_cents = int(round(self.amount * 100))
        if not MIN_DONATION_CENTS <= self.amount_cents <= MAX_DONATION_CENTS:
            raise ValueError("Invalid donation amount")
        return self


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: str
