"""
Scheduled Assignment Tasks

Nightly batch selection of tomorrow's action and the missed-day decay
sweep. Runs via Celery Beat scheduler.
"""

import asyncio
from datetime import date, timedelta
from typing import Dict, Optional
from celery import Task
from core.config import settings
from core.database import create_worker_session_factory
from core.logging import bind_log_context
from tasks import celery_app
from services.assignment_batch import run_assignment_batch
from services.assignment_ledger import AssignmentLedger
from services.catalog_store import SqlCatalogStore
from services.health_score import HealthScoreEngine
from services.history_store import SqlHistoryStore
from services.weighted_selector import default_random_source
import logging

logger = logging.getLogger(__name__)


async def assign_daily_actions(
    catalog: SqlCatalogStore,
    history: SqlHistoryStore,
    target_date: date,
    concurrency: int = settings.ASSIGNMENT_BATCH_CONCURRENCY,
    seed: Optional[int] = settings.SELECTION_RANDOM_SEED,
) -> Dict:
    ledger = AssignmentLedger(
        catalog,
        history,
        rng=default_random_source(seed),
        recency_window_days=settings.RECENCY_WINDOW_DAYS,
    )
    user_ids = await history.list_user_ids()
    report = await run_assignment_batch(ledger, user_ids, target_date, concurrency)
    return {**report.summary(), "payloads": report.payloads}


def _parse_date(value: Optional[str], default: date) -> date:
    return date.fromisoformat(value) if value else default


@celery_app.task(name="tasks.assign_daily_actions", bind=True)
def assign_daily_actions_task(self: Task, target_date: Optional[str] = None) -> Dict:
    """
    Get-or-create every user's action for `target_date` (default tomorrow).

    Returns the batch summary plus the {action, date} payloads for the
    email collaborator.
    """
    day = _parse_date(target_date, date.today() + timedelta(days=1))
    session_factory = create_worker_session_factory()

    try:
        with bind_log_context(task=self.name, task_id=self.request.id):
            result = asyncio.run(
                assign_daily_actions(SqlCatalogStore(session_factory), SqlHistoryStore(session_factory), day)
            )
        return {"status": "success", **result}
    except Exception as e:
        logger.error(f"Error in assign_daily_actions_task: {str(e)}", exc_info=True)
        return {"status": "error", "message": str(e), "target_date": day.isoformat()}


@celery_app.task(name="tasks.sweep_missed_days", bind=True)
def sweep_missed_days_task(self: Task, missed_date: Optional[str] = None) -> Dict:
    """Record decay for yesterday's (or `missed_date`'s) outstanding actions."""
    day = _parse_date(missed_date, date.today() - timedelta(days=1))
    session_factory = create_worker_session_factory()

    try:
        engine = HealthScoreEngine(SqlHistoryStore(session_factory))
        with bind_log_context(task=self.name, task_id=self.request.id):
            summary = asyncio.run(engine.sweep_missed_day(day))
        return {"status": "success", "missed_date": day.isoformat(), **summary}
    except Exception as e:
        logger.error(f"Error in sweep_missed_days_task: {str(e)}", exc_info=True)
        return {"status": "error", "message": str(e), "missed_date": day.isoformat()}
