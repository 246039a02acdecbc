# app/scheduler.py
"""
APScheduler wiring for the outreach service.

Three jobs run in-process:
- the drip sweep, on a fixed interval finer than any phase offset
- the mail outbox, which sends queued donation receipts
- the daily donation rollup, once a night in the rollup time zone

Every job is single-instance and coalesced, so a slow sweep delays the next
one instead of running alongside it.
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED

from app.core.config import settings
from app.background_tasks.drip_tasks import run_athlete_drip
from app.background_tasks.mail_tasks import send_queued_mail
from app.background_tasks.rollup_tasks import run_daily_donation_rollups

logger = logging.getLogger(__name__)

scheduler = None


def _job_table():
    """(func, trigger, id, name) for every periodic job."""
    return [
        (
            run_athlete_drip,
            IntervalTrigger(minutes=settings.DRIP_SWEEP_INTERVAL_MINUTES),
            "run_athlete_drip",
            "Run Athlete Drip Outreach",
        ),
        (
            send_queued_mail,
            IntervalTrigger(seconds=settings.MAIL_OUTBOX_INTERVAL_SECONDS),
            "send_queued_mail",
            "Send Queued Transactional Mail",
        ),
        (
            run_daily_donation_rollups,
            CronTrigger(hour=settings.ROLLUP_HOUR, minute=0, timezone=settings.ROLLUP_TIME_ZONE),
            "daily_donation_rollups",
            "Daily Donation Rollups",
        ),
    ]


def _on_job_error(event):
    exc = event.exception
    logger.error(
        "Scheduled job FAILED: job_id=%s error=%s",
        event.job_id, exc,
        exc_info=(type(exc), exc, None) if exc else None,
    )
    if event.traceback:
        logger.error("Traceback for job %s:\n%s", event.job_id, event.traceback)


def _on_job_missed(event):
    logger.warning(
        "Scheduled job MISSED: job_id=%s scheduled_run_time=%s",
        event.job_id,
        event.scheduled_run_time,
    )


def init_scheduler():
    """Create, populate and start the scheduler. Safe to call more than once."""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return scheduler

    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={
            'coalesce': True,
            'max_instances': 1,
            'misfire_grace_time': 60
        }
    )

    for func, trigger, job_id, name in _job_table():
        scheduler.add_job(func=func, trigger=trigger, id=job_id, name=name, replace_existing=True)
        logger.info(f"Scheduled job: {job_id} ({trigger})")

    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.add_listener(_on_job_missed, EVENT_JOB_MISSED)

    scheduler.start()
    logger.info("Outreach scheduler started")
    return scheduler


def shutdown_scheduler():
    """Stop the scheduler, letting a running sweep finish first."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=True)
        logger.info("Outreach scheduler stopped")
        scheduler = None


def get_scheduler_status():
    """Scheduler state and the next run of each job, for the internal status endpoint."""
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in scheduler.get_jobs()
        ],
    }
