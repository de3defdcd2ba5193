from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from meetcmu.db import SessionLocal
from meetcmu.services.reminder_service import run_event_reminder_sweep
from meetcmu.worker.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="meetcmu.sweep_event_reminders")
def sweep_event_reminders() -> dict:
    db: Session = SessionLocal()
    try:
        result = run_event_reminder_sweep(db)
        logger.info(
            "sweep_event_reminders soon_events=%s now_events=%s soon_sent=%s now_sent=%s",
            result.soon_events,
            result.now_events,
            result.soon_notifications_sent,
            result.now_notifications_sent,
        )
        return {
            "soon_events": result.soon_events,
            "now_events": result.now_events,
            "soon_notifications_sent": result.soon_notifications_sent,
            "now_notifications_sent": result.now_notifications_sent,
        }
    except Exception:
        db.rollback()
        logger.exception("sweep_event_reminders failed")
        raise
    finally:
        db.close()
