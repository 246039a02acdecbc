# app/schemas/reporting.py
from pydantic import BaseModel, model_validator
from typing import Any, Optional, List
from datetime import date, datetime


class ReconcileRequest(BaseModel):
    start: datetime
    end: datetime
    organization_id: Optional[str] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class MismatchResponse(BaseModel):
    id: str
    field: str
    stripe: Any
    ledger: Any


class ReconciliationResponse(BaseModel):
    start: datetime
    end: datetime
    organization_id: Optional[str] = None
    stripe_paid_sessions: int
    ledger_rows_in_range: int
    missing_in_ledger: List[str]
    extra_in_ledger: List[str]
    mismatches: List[MismatchResponse]


class RollupRunRequest(BaseModel):
    day: Optional[date] = None  # defaults to yesterday in the rollup zone


class RollupSummaryResponse(BaseModel):
    date_key: str
    donations_seen: int
    created: List[str]
    already_present: List[str]
