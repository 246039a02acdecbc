# app/crud/crud_donation.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import and_
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.donation import Donation


class CRUDDonation(CRUDBase[Donation, BaseModel, BaseModel]):
    """Read helpers for the ledger. Writes go through the payment ledger service."""

    def get_for_update(self, db: Session, *, id: str) -> Optional[Donation]:
        """Row-locked read (SELECT ... FOR UPDATE where the backend supports it)."""
        return (
            db.query(self.model)
            .filter(self.model.id == id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_created_in_range(
        self,
        db: Session,
        *,
        start: datetime,
        end: datetime,
        org_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Donation]:
        query = db.query(self.model).filter(
            and_(self.model.created_at >= start, self.model.created_at < end)
        )
        if org_id:
            query = query.filter(self.model.organization_id == org_id)
        if status:
            query = query.filter(self.model.status == status)
        return query.order_by(self.model.created_at).all()


donation = CRUDDonation(Donation)
