"""
FastAPI dependencies that wire the engine to storage.

Routers never build adapters themselves: tests swap the session factory
(or the clock) through app.dependency_overrides.
"""
from datetime import date

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.config import settings
from core.database import get_session_factory
from services.assignment_ledger import AssignmentLedger
from services.badge_progress import BadgeProgressEngine
from services.catalog_store import SqlCatalogStore
from services.health_score import HealthScoreEngine
from services.history_store import SqlHistoryStore


def get_today() -> date:
    """Server-local calendar date used for 'today' semantics."""
    return date.today()


def get_catalog(session_factory: async_sessionmaker = Depends(get_session_factory)) -> SqlCatalogStore:
    return SqlCatalogStore(session_factory)


def get_history(session_factory: async_sessionmaker = Depends(get_session_factory)) -> SqlHistoryStore:
    return SqlHistoryStore(session_factory)


def get_ledger(
    catalog: SqlCatalogStore = Depends(get_catalog),
    history: SqlHistoryStore = Depends(get_history),
) -> AssignmentLedger:
    return AssignmentLedger(catalog, history, recency_window_days=settings.RECENCY_WINDOW_DAYS)


def get_health_engine(history: SqlHistoryStore = Depends(get_history)) -> HealthScoreEngine:
    return HealthScoreEngine(history)


def get_badge_engine(
    catalog: SqlCatalogStore = Depends(get_catalog),
    history: SqlHistoryStore = Depends(get_history),
) -> BadgeProgressEngine:
    return BadgeProgressEngine(catalog, history)
