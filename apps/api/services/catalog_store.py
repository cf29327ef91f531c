"""
SQL adapter for CatalogPort.

Maps catalog rows into the frozen value types the engines consume. Also
carries the maintenance writes used by the catalog Celery tasks (household
tag backfill, seasonal window refresh).
"""

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from models import Action as ActionRow, Badge as BadgeRow, Program as ProgramRow, ProgramAction
from services.personalization_types import Action, Badge, Program
from services.ports import CatalogPort


def to_action(row: ActionRow) -> Action:
    tags = row.household_tags
    return Action(
        id=row.id,
        name=row.name,
        category=row.category,
        description=row.description,
        benefit=row.benefit,
        theme=row.theme,
        country=row.country,
        seasonal_start=row.seasonal_start_date,
        seasonal_end=row.seasonal_end_date,
        household_tags=frozenset(tags) if tags is not None else None,
        planning_required=bool(row.planning_required),
        activity_type=row.activity_type,
    )


def to_badge(row: BadgeRow) -> Badge:
    return Badge(
        id=row.id,
        name=row.name,
        requirement_type=row.requirement_type,
        requirement_value=row.requirement_value,
        category=row.category,
        description=row.description,
    )


class SqlCatalogStore(CatalogPort):
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def list_actions(self) -> List[Action]:
        async with self.session_factory() as session:
            result = await session.execute(select(ActionRow).order_by(ActionRow.id))
            return [to_action(row) for row in result.scalars().all()]

    async def get_action(self, action_id: str) -> Optional[Action]:
        async with self.session_factory() as session:
            row = await session.get(ActionRow, action_id)
            return to_action(row) if row else None

    async def list_badges(self) -> List[Badge]:
        async with self.session_factory() as session:
            result = await session.execute(select(BadgeRow).order_by(BadgeRow.id))
            return [to_badge(row) for row in result.scalars().all()]

    async def get_program(self, program_id: str) -> Optional[Program]:
        async with self.session_factory() as session:
            program = await session.get(ProgramRow, program_id)
            if program is None:
                return None
            result = await session.execute(
                select(ProgramAction.action_id)
                .where(ProgramAction.program_id == program_id)
                .order_by(ProgramAction.day_number)
            )
            return Program(
                id=program.id,
                name=program.name,
                duration_days=program.duration_days,
                action_ids=list(result.scalars().all()),
            )

    # --- maintenance writes (worker only) ---

    async def list_untagged_actions(self) -> List[Action]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ActionRow).where(ActionRow.household_tags.is_(None)).order_by(ActionRow.id)
            )
            return [to_action(row) for row in result.scalars().all()]

    async def set_household_tags(self, action_id: str, tags: Iterable[str]) -> bool:
        """Only fills actions that are still untagged; explicit tags are never overwritten."""
        async with self.session_factory() as session:
            result = await session.execute(
                update(ActionRow)
                .where(ActionRow.id == action_id, ActionRow.household_tags.is_(None))
                .values(household_tags=sorted(set(tags)))
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount == 1

    async def set_seasonal_window(
        self, action_id: str, start: Optional[date], end: Optional[date]
    ) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(ActionRow)
                .where(ActionRow.id == action_id)
                .values(seasonal_start_date=start, seasonal_end_date=end)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount == 1
