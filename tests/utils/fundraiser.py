from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app import crud
from app.models.athlete import Athlete
from app.models.campaign import Campaign
from app.models.contact import Contact
from app.models.organization import Organization
from app.schemas.contact import ContactCreate


def create_organization(db: Session, **kwargs) -> Organization:
    """
    Creates an organization with drip enabled in Los Angeles time.
    """
    values = {
        "name": "Westview High Boosters",
        "time_zone": "America/Los_Angeles",
        "drip_global_enabled": True,
        "frontend_url": "https://fundraise.example.org",
    }
    values.update(kwargs)
    org = Organization(**values)
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


def create_campaign(
    db: Session, org_id: str, start_date: Optional[date] = date(2024, 1, 1), **kwargs
) -> Campaign:
    values = {
        "organization_id": org_id,
        "name": "Spring Season 2024",
        "team_name": "Westview Wolves",
        "start_date": start_date,
    }
    values.update(kwargs)
    campaign = Campaign(**values)
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign


def create_athlete(db: Session, org_id: str, campaign_id: Optional[str], **kwargs) -> Athlete:
    values = {
        "organization_id": org_id,
        "campaign_id": campaign_id,
        "name": "Jordan Lee",
        "drip_auto_send_enabled": True,
    }
    values.update(kwargs)
    athlete = Athlete(**values)
    db.add(athlete)
    db.commit()
    db.refresh(athlete)
    return athlete


def create_contact(
    db: Session,
    athlete: Athlete,
    email: str,
    status: str = "draft",
    name: Optional[str] = None,
) -> Contact:
    """
    Creates a contact through the CRUD layer, then forces its status.
    """
    contact = crud.contact.create(
        db,
        obj_in=ContactCreate(
            organization_id=athlete.organization_id,
            athlete_id=athlete.id,
            name=name,
            email=email,
        ),
    )
    if status != "draft":
        contact.status = status
        db.add(contact)
        db.commit()
        db.refresh(contact)
    return contact


def create_fundraiser(db: Session, **org_kwargs):
    """Organization, campaign starting 2024-01-01 and one auto-send athlete."""
    org = create_organization(db, **org_kwargs)
    campaign = create_campaign(db, org.id)
    athlete = create_athlete(db, org.id, campaign.id)
    return org, campaign, athlete


class FakeSender:
    """
    Stands in for app.core.email.send_email. Addresses in ``fail`` get an
    error result; every call is recorded.
    """

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls = []

    def __call__(self, to_email, subject, html, text=None, tags=None, from_email=None):
        self.calls.append(
            {"to_email": to_email, "subject": subject, "html": html, "text": text, "tags": tags}
        )
        if to_email in self.fail:
            return {"success": False, "error": "mailbox unavailable"}
        return {"success": True, "id": f"re_{len(self.calls)}"}

    @property
    def recipients(self):
        return sorted(call["to_email"] for call in self.calls)
