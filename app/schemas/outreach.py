# app/schemas/outreach.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ManualSendRequest(BaseModel):
    campaign_id: str
    contact_ids: List[str] = Field(..., min_length=1, max_length=200)
    template: Optional[str] = Field(None, max_length=10000)
    subject: Optional[str] = Field(None, max_length=300)
    phase: Optional[str] = Field(None, max_length=20)


class FailedRecipientResponse(BaseModel):
    contact_id: str
    email: str
    error: str


class SendResultResponse(BaseModel):
    ok: bool = True
    requested: int
    attempted: int
    sent: int
    failed: int
    partial: bool
    failures: List[FailedRecipientResponse] = []


class DripPhaseResponse(BaseModel):
    key: str
    offset_days: int
    send_at: datetime
    sent: bool


class DripStatusResponse(BaseModel):
    athlete_id: str
    auto_send_enabled: bool
    time_zone: Optional[str] = None
    state: str
    last_phase_sent: Optional[str] = None
    last_sent_at: Optional[datetime] = None
    next_phase: Optional[str] = None
    next_send_at: Optional[datetime] = None
    schedule: List[DripPhaseResponse] = []


class SweepSummaryResponse(BaseModel):
    athletes_checked: int
    sent: int
    waiting: int
    exhausted: int
    no_schedule: int
    failed: int
    errors: int
