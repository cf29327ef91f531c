"""
Celery app for the daily action engine.

Every task here is idempotent (get-or-create, insert-if-absent decay,
conditional catalog writes), so late acknowledgement is safe: a task lost
with its worker is simply run again.
"""
from celery import Celery

from celerybeat_schedule import beat_schedule
from core.config import settings

celery_app = Celery(
    "daily_action_engine",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Calendar dates are server-local; keep beat on the same clock.
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_time_limit=30 * 60,
    task_soft_time_limit=25 * 60,
    result_expires=7 * 24 * 3600,
    task_routes={
        "tasks.assign_daily_actions": {"queue": "assignments"},
        "tasks.sweep_missed_days": {"queue": "assignments"},
        "tasks.refresh_seasonal_windows": {"queue": "maintenance"},
        "tasks.backfill_household_tags": {"queue": "maintenance"},
    },
    beat_schedule=beat_schedule,
)

# Register tasks
from . import assignment_tasks  # noqa: E402,F401
from . import catalog_tasks  # noqa: E402,F401

__all__ = ["celery_app"]
