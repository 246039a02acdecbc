# app/schemas/contact.py
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ContactBase(BaseModel):
    name: Optional[str] = None
    email: str = Field(..., max_length=255)


class ContactCreate(ContactBase):
    organization_id: str
    athlete_id: str

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        return v.strip()
