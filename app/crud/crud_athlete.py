# app/crud/crud_athlete.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.athlete import Athlete
from app.models.campaign import Campaign
from app.models.organization import Organization
from app.utils.time_utils import utcnow


class CRUDAthlete(CRUDBase[Athlete, BaseModel, BaseModel]):

    def get_auto_send_enabled(self, db: Session) -> List[Athlete]:
        """Athletes the drip sweep should look at, in a stable order."""
        return (
            db.query(self.model)
            .filter(self.model.drip_auto_send_enabled == True)  # noqa: E712
            .order_by(self.model.id)
            .all()
        )

    def set_drip_cursor(
        self,
        db: Session,
        *,
        athlete: Athlete,
        state: str,
        next_phase: Optional[str],
        next_send_at: Optional[datetime],
    ) -> Athlete:
        """
        Persist the observability half of the drip cursor.

        ``drip_last_phase_sent`` is deliberately not touched here: it only
        moves inside the send engine's batch commit.
        """
        athlete.drip_state = state
        athlete.drip_next_phase = next_phase
        athlete.drip_next_send_at = next_send_at
        athlete.updated_at = utcnow()
        db.add(athlete)
        db.commit()
        db.refresh(athlete)
        return athlete


class CRUDCampaign(CRUDBase[Campaign, BaseModel, BaseModel]):
    pass


class CRUDOrganization(CRUDBase[Organization, BaseModel, BaseModel]):
    pass


athlete = CRUDAthlete(Athlete)
campaign = CRUDCampaign(Campaign)
organization = CRUDOrganization(Organization)
