# app/services/outreach/send_engine.py
"""
Batch send engine for donor outreach.

Given an athlete's contacts and a rendered message, sends one email per
eligible contact concurrently and records the outcome in a single commit.

Delivery is at-least-once: emails are dispatched before the audit records
and cursor are committed, so a crash in between re-sends the same phase on
the next attempt.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import case, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.email import send_email
from app.core.exceptions import AllSendsFailed, NoValidRecipients, TransientDependencyError
from app.models.athlete import Athlete
from app.models.contact import Contact, TERMINAL_CONTACT_STATUSES
from app.models.outreach_message import OutreachMessage
from app.services.outreach.recipients import RecipientScope, filter_recipients
from app.services.outreach.templates import render_html_body
from app.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedMessage:
    """What to send and on whose behalf."""

    organization_id: str
    athlete_id: str
    campaign_id: Optional[str]
    phase: str
    subject: str
    text: str
    is_automated: bool
    donate_url: Optional[str] = None
    athlete_name: Optional[str] = None


@dataclass(frozen=True)
class CursorUpdate:
    """Athlete drip cursor written in the same commit as the audit records."""

    last_phase_sent: str
    next_phase: Optional[str]
    next_send_at: Optional[datetime]
    state: str


@dataclass(frozen=True)
class _Recipient:
    contact_id: str
    email: str
    name: Optional[str]


@dataclass
class FailedRecipient:
    contact_id: str
    email: str
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"contact_id": self.contact_id, "email": self.email, "error": self.error}


@dataclass
class SendResult:
    attempted: int
    sent: int
    failed: List[FailedRecipient] = field(default_factory=list)
    message_ids: List[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return self.sent > 0 and len(self.failed) > 0


class BatchSendEngine:
    def __init__(
        self,
        send_func: Optional[Callable[..., dict]] = None,
        max_workers: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.send_func = send_func or send_email
        self.max_workers = max_workers or settings.DRIP_SEND_MAX_WORKERS
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.DRIP_SEND_TIMEOUT_SECONDS
        )

    def _send_one(self, recipient: _Recipient, message: RenderedMessage, html: str) -> dict:
        return self.send_func(
            to_email=recipient.email,
            subject=message.subject,
            html=html,
            text=message.text,
            tags={
                "contact_id": recipient.contact_id,
                "athlete_id": message.athlete_id,
                "campaign_id": message.campaign_id,
                "org_id": message.organization_id,
            },
        )

    def _dispatch(
        self, recipients: List[_Recipient], message: RenderedMessage
    ) -> Dict[str, dict]:
        """Send to every recipient; returns contact id -> {"success", "id"/"error"}."""
        html = render_html_body(
            message.text,
            subject=message.subject,
            donate_url=message.donate_url,
            athlete_name=message.athlete_name,
        )
        outcomes: Dict[str, dict] = {}
        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(recipients)),
            thread_name_prefix="outreach-send",
        )
        try:
            futures = {
                executor.submit(self._send_one, recipient, message, html): recipient
                for recipient in recipients
            }
            done, not_done = wait(futures, timeout=self.timeout_seconds)

            for future in done:
                recipient = futures[future]
                try:
                    outcomes[recipient.contact_id] = future.result()
                except Exception as e:
                    logger.error(f"Send to {recipient.email} raised: {e}")
                    outcomes[recipient.contact_id] = {"success": False, "error": str(e)}

            for future in not_done:
                recipient = futures[future]
                outcomes[recipient.contact_id] = {"success": False, "error": "timed out"}
            if not_done:
                logger.warning(
                    f"{len(not_done)} sends for athlete {message.athlete_id} did not finish "
                    f"within {self.timeout_seconds}s"
                )
        finally:
            # Unstarted sends are dropped, in-flight ones run to completion
            executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

    def send(
        self,
        db: Session,
        *,
        contacts: List[Contact],
        message: RenderedMessage,
        scope: RecipientScope,
        athlete: Optional[Athlete] = None,
        cursor_update: Optional[CursorUpdate] = None,
    ) -> SendResult:
        """
        Send ``message`` to the eligible subset of ``contacts``.

        Raises NoValidRecipients when nobody is eligible and AllSendsFailed
        when every send failed; nothing is written in either case. Otherwise
        contact updates, audit records and the optional athlete cursor update
        are committed together.
        """
        eligible = filter_recipients(contacts, scope)
        if not eligible:
            raise NoValidRecipients()

        recipients = [
            _Recipient(contact_id=c.id, email=c.email.strip(), name=c.name) for c in eligible
        ]
        outcomes = self._dispatch(recipients, message)

        succeeded = []
        failed = []
        for recipient in recipients:
            outcome = outcomes.get(recipient.contact_id) or {}
            if outcome.get("success"):
                succeeded.append((recipient, outcome.get("id")))
            else:
                failed.append(
                    FailedRecipient(
                        contact_id=recipient.contact_id,
                        email=recipient.email,
                        error=str(outcome.get("error") or "unknown error"),
                    )
                )

        if not succeeded:
            raise AllSendsFailed([f.to_dict() for f in failed])

        now = utcnow()
        audits = []
        try:
            for recipient, provider_message_id in succeeded:
                # A terminal status written since the contacts were read wins
                db.execute(
                    update(Contact)
                    .where(Contact.id == recipient.contact_id)
                    .values(
                        status=case(
                            (Contact.status.in_(TERMINAL_CONTACT_STATUSES), Contact.status),
                            else_="sent",
                        ),
                        last_sent_at=now,
                        last_phase_sent=message.phase,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                audit = OutreachMessage(
                    organization_id=message.organization_id,
                    athlete_id=message.athlete_id,
                    campaign_id=message.campaign_id,
                    contact_id=recipient.contact_id,
                    to_email=recipient.email,
                    to_name=recipient.name,
                    subject=message.subject,
                    body=message.text,
                    channel="email",
                    phase=message.phase,
                    is_automated=message.is_automated,
                    status="sent",
                    provider_message_id=provider_message_id,
                    created_at=now,
                )
                db.add(audit)
                audits.append(audit)

            if athlete is not None and cursor_update is not None:
                athlete.drip_last_phase_sent = cursor_update.last_phase_sent
                athlete.drip_last_sent_at = now
                athlete.drip_next_phase = cursor_update.next_phase
                athlete.drip_next_send_at = cursor_update.next_send_at
                athlete.drip_state = cursor_update.state
                athlete.updated_at = now
                db.add(athlete)

            db.commit()
        except OperationalError as e:
            db.rollback()
            raise TransientDependencyError(
                f"Could not record sends for athlete {message.athlete_id}: {e}"
            ) from e
        except Exception:
            db.rollback()
            raise

        result = SendResult(
            attempted=len(recipients),
            sent=len(succeeded),
            failed=failed,
            message_ids=[audit.id for audit in audits],
        )
        if result.partial:
            logger.warning(
                f"Partial send for athlete {message.athlete_id} phase {message.phase}: "
                f"{result.sent} sent, {len(failed)} failed"
            )
        else:
            logger.info(
                f"Sent phase {message.phase} for athlete {message.athlete_id} "
                f"to {result.sent} contacts"
            )
        return result
