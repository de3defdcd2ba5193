from celery import Celery

from meetcmu.core.config import settings

celery_app = Celery(
    "meetcmu",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["meetcmu.worker.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "sweep-event-reminders": {
            "task": "meetcmu.sweep_event_reminders",
            "schedule": float(settings.reminder_sweep_seconds),
        },
    },
)
