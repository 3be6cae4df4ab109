import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..config import settings
from ..engine.lifecycle import system_clock
from ..services.booking import run_sweep_all, send_due_reminders
from ..services.notifications import send_expiry_notice

logger = logging.getLogger(__name__)


def expiry_sweep_job():
    db: Session = SessionLocal()
    try:
        result = run_sweep_all(
            db,
            clock=system_clock,
            config=settings.expiry_config(),
            transport=send_expiry_notice,
        )
        if result.touched:
            logger.info(
                "expiry_sweep_job: expired=%s warnings=%s final_warnings=%s",
                result.expired_count, result.warnings_sent, result.final_warnings_sent,
            )
    finally:
        db.close()


def reminder_job():
    db: Session = SessionLocal()
    try:
        sent = send_due_reminders(db, clock=system_clock)
        if sent:
            logger.info("reminder_job: %s recordatorios enviados", sent)
    finally:
        db.close()


def build_scheduler() -> BackgroundScheduler:
    """Scheduler con los dos jobs registrados, sin arrancar."""
    scheduler = BackgroundScheduler(timezone=settings.TIMEZONE)
    # max_instances=1: dos barridos encimados podrían duplicar avisos
    scheduler.add_job(
        expiry_sweep_job,
        IntervalTrigger(minutes=settings.SWEEP_INTERVAL_MINUTES),
        id="expiry_sweep",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(reminder_job, CronTrigger(minute=0), id="reminders", max_instances=1, replace_existing=True)  # cada hora
    return scheduler


def start_scheduler() -> BackgroundScheduler:
    scheduler = build_scheduler()
    scheduler.start()
    return scheduler
