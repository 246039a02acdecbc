# app/crud/crud_contact.py
"""
CRUD operations for athlete contacts (prospective donors).

Status writes here are the only ones that can flip a contact into a
terminal state; none of them ever moves a contact back out of one.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy import and_, update
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.contact import Contact, TERMINAL_CONTACT_STATUSES
from app.schemas.contact import ContactCreate
from app.utils.time_utils import utcnow


class CRUDContact(CRUDBase[Contact, ContactCreate, BaseModel]):

    def create(self, db: Session, *, obj_in: ContactCreate) -> Contact:
        db_obj = Contact(
            organization_id=obj_in.organization_id,
            athlete_id=obj_in.athlete_id,
            name=obj_in.name,
            email=obj_in.email,
            email_lower=obj_in.email.lower(),
            status="draft",
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_by_athlete(self, db: Session, *, org_id: str, athlete_id: str) -> List[Contact]:
        """Fresh read of an athlete's contacts; the drip sweep calls this every run."""
        return (
            db.query(self.model)
            .filter(
                and_(
                    self.model.organization_id == org_id,
                    self.model.athlete_id == athlete_id,
                )
            )
            .order_by(self.model.created_at, self.model.id)
            .all()
        )

    def get_many(
        self, db: Session, *, ids: Iterable[str], org_id: str, athlete_id: str
    ) -> List[Contact]:
        """Load the given ids, dropping any that belong to another org or athlete."""
        ids = list(ids)
        if not ids:
            return []
        return (
            db.query(self.model)
            .filter(
                and_(
                    self.model.id.in_(ids),
                    self.model.organization_id == org_id,
                    self.model.athlete_id == athlete_id,
                )
            )
            .all()
        )

    def find_by_email(
        self, db: Session, *, org_id: str, athlete_id: str, email: str
    ) -> List[Contact]:
        return (
            db.query(self.model)
            .filter(
                and_(
                    self.model.organization_id == org_id,
                    self.model.athlete_id == athlete_id,
                    self.model.email_lower == email.strip().lower(),
                )
            )
            .all()
        )

    def mark_donated(
        self, db: Session, *, org_id: str, athlete_id: str, email: str
    ) -> int:
        """
        Flip every matching contact to donated. Returns the number of rows
        changed; a contact already marked donated is left as-is.
        """
        now = utcnow()
        result = db.execute(
            update(self.model)
            .where(
                and_(
                    self.model.organization_id == org_id,
                    self.model.athlete_id == athlete_id,
                    self.model.email_lower == email.strip().lower(),
                    self.model.status != "donated",
                )
            )
            .values(status="donated", donated_at=now, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        db.commit()
        return result.rowcount or 0

    def record_delivery_event(
        self,
        db: Session,
        *,
        contact: Contact,
        event_type: str,
        event_at: datetime,
        new_status: Optional[str] = None,
        error: Optional[str] = None,
        clear_error: bool = False,
    ) -> Contact:
        contact.last_delivery_event = event_type
        contact.last_delivery_at = event_at
        contact.delivery_status = event_type
        if new_status == "sent":
            # delivered never revives a suppressed or converted contact
            if not contact.is_terminal:
                contact.status = "sent"
        elif new_status in TERMINAL_CONTACT_STATUSES:
            if contact.status != "donated":
                contact.status = new_status
            contact.bounce_count = (contact.bounce_count or 0) + 1
        if error:
            contact.last_delivery_error = error
        elif clear_error:
            contact.last_delivery_error = None
        contact.updated_at = utcnow()
        db.add(contact)
        db.commit()
        db.refresh(contact)
        return contact


contact = CRUDContact(Contact)
