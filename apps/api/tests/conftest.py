"""
Pytest configuration and fixtures

Every test that touches storage gets its own SQLite file database, so
nothing leaks between tests. Rows are seeded through a synchronous ORM
session on the same file; the engine under test reads and writes through
the async adapters.
"""
import os
import sys
from datetime import date
from uuid import uuid4

# Must be set before core.config / core.database are imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from core.database import Base, create_engine_for, create_session_factory
import models
from services.catalog_store import SqlCatalogStore
from services.history_store import SqlHistoryStore


class Seeder:
    """Small helpers for inserting rows with sensible defaults."""

    def __init__(self, session: Session):
        self.session = session

    def _add(self, row):
        self.session.add(row)
        self.session.commit()
        return row

    def user(self, **overrides) -> models.UserProfile:
        fields = {"id": uuid4(), "has_kids": False, "kids_live_with_you": False, "country": "US"}
        fields.update(overrides)
        return self._add(models.UserProfile(**fields))

    def action(self, action_id: str, category: str = "Communication", **overrides) -> models.Action:
        fields = {"id": action_id, "name": f"Action {action_id}", "category": category}
        fields.update(overrides)
        return self._add(models.Action(**fields))

    def survey(self, user_id, category: str, **overrides) -> models.CategorySurvey:
        return self._add(models.CategorySurvey(user_id=user_id, category=category, **overrides))

    def assignment(self, user_id, day: date, action_id: str, **overrides) -> models.DailyAssignment:
        return self._add(
            models.DailyAssignment(user_id=user_id, assignment_date=day, action_id=action_id, **overrides)
        )

    def decay(self, user_id, missed_date: date, amount: float = 0.5) -> models.HealthDecayEntry:
        return self._add(models.HealthDecayEntry(user_id=user_id, missed_date=missed_date, decay_applied=amount))

    def badge(self, badge_id: str, requirement_type: str, requirement_value: int, **overrides) -> models.Badge:
        fields = {"id": badge_id, "name": f"Badge {badge_id}", "requirement_type": requirement_type,
                  "requirement_value": requirement_value}
        fields.update(overrides)
        return self._add(models.Badge(**fields))

    def program(self, program_id: str, action_ids, **overrides) -> models.Program:
        program = self._add(
            models.Program(id=program_id, name=f"Program {program_id}", duration_days=len(action_ids), **overrides)
        )
        for day_number, action_id in enumerate(action_ids, start=1):
            self._add(models.ProgramAction(program_id=program_id, day_number=day_number, action_id=action_id))
        return program


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "engine.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def seed(db_path):
    sync_engine = create_engine(f"sqlite:///{db_path}")
    session = Session(bind=sync_engine, expire_on_commit=False)
    yield Seeder(session)
    session.close()
    sync_engine.dispose()


@pytest.fixture
def session_factory(db_path):
    return create_session_factory(create_engine_for(f"sqlite+aiosqlite:///{db_path}"))


@pytest.fixture
def catalog(session_factory):
    return SqlCatalogStore(session_factory)


@pytest.fixture
def history(session_factory):
    return SqlHistoryStore(session_factory)
