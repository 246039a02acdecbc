# app/services/reporting/reconciliation.py
"""
Read-only comparison of paid Stripe checkout sessions against the ledger.

Nothing is repaired here; the report is for an admin to act on.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app import crud
from app.core.exceptions import ValidationError
from app.services.payment.provider_interface import PaymentProviderInterface
from app.utils.time_utils import ensure_utc

logger = logging.getLogger(__name__)


@dataclass
class Mismatch:
    id: str
    field: str
    stripe: Any
    ledger: Any


@dataclass
class ReconciliationReport:
    start: datetime
    end: datetime
    organization_id: Optional[str]
    stripe_paid_sessions: int
    ledger_rows_in_range: int
    missing_in_ledger: List[str] = field(default_factory=list)
    extra_in_ledger: List[str] = field(default_factory=list)
    mismatches: List[Mismatch] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.missing_in_ledger or self.extra_in_ledger or self.mismatches)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def reconcile(
    db: Session,
    provider: PaymentProviderInterface,
    *,
    start: datetime,
    end: datetime,
    organization_id: Optional[str] = None,
) -> ReconciliationReport:
    start = ensure_utc(start)
    end = ensure_utc(end)
    if start >= end:
        raise ValidationError("Invalid date range")

    stripe_paid = [
        session
        for session in provider.list_checkout_sessions(start, end)
        if session.payment_status == "paid"
        and (not organization_id or session.organization_id == organization_id)
    ]
    ledger_rows = {
        row.id: row
        for row in crud.donation.get_created_in_range(
            db, start=start, end=end, org_id=organization_id
        )
    }

    report = ReconciliationReport(
        start=start,
        end=end,
        organization_id=organization_id,
        stripe_paid_sessions=len(stripe_paid),
        ledger_rows_in_range=len(ledger_rows),
    )

    for session in stripe_paid:
        row = ledger_rows.get(session.session_id)
        if row is None:
            report.missing_in_ledger.append(session.session_id)
            continue

        if session.amount_total != int(row.amount or 0):
            report.mismatches.append(
                Mismatch(session.session_id, "amount", session.amount_total, int(row.amount or 0))
            )
        stripe_currency = (session.currency or "usd").lower()
        ledger_currency = (row.currency or "usd").lower()
        if stripe_currency != ledger_currency:
            report.mismatches.append(
                Mismatch(session.session_id, "currency", stripe_currency, ledger_currency)
            )
        ledger_status = (row.status or "").lower()
        if ledger_status and ledger_status != "paid":
            report.mismatches.append(
                Mismatch(session.session_id, "status", "paid", ledger_status)
            )

    stripe_ids = {session.session_id for session in stripe_paid}
    report.extra_in_ledger = [
        row_id
        for row_id, row in ledger_rows.items()
        if (row.status or "").lower() == "paid" and row_id not in stripe_ids
    ]

    logger.info(
        f"Reconciliation {start.isoformat()}..{end.isoformat()} org={organization_id}: "
        f"{len(report.missing_in_ledger)} missing, {len(report.extra_in_ledger)} extra, "
        f"{len(report.mismatches)} mismatches"
    )
    return report
