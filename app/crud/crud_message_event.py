# app/crud/crud_message_event.py
from typing import Any, Dict, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.message_event import MessageEvent


class CRUDMessageEvent(CRUDBase[MessageEvent, BaseModel, BaseModel]):

    def log_event(
        self,
        db: Session,
        *,
        source: str,
        event_type: str,
        recipient: Optional[str],
        contact_id: Optional[str] = None,
        athlete_id: Optional[str] = None,
        campaign_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> MessageEvent:
        db_obj = MessageEvent(
            source=source,
            event_type=event_type,
            recipient=recipient,
            contact_id=contact_id,
            athlete_id=athlete_id,
            campaign_id=campaign_id,
            organization_id=organization_id,
            payload=payload,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj


message_event = CRUDMessageEvent(MessageEvent)
