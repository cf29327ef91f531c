"""
SQL adapter for HistoryPort.

Every method opens its own session so independent reads can run
concurrently. Writes that must happen at most once rely on unique
constraints (ON CONFLICT DO NOTHING) or on conditional UPDATEs whose
rowcount tells the caller whether it won.
"""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Set
from uuid import UUID
import uuid

from sqlalchemy import case, delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models import (
    Action as ActionRow,
    CategorySurvey as CategorySurveyRow,
    DailyAssignment,
    HealthDecayEntry,
    Program as ProgramRow,
    ProgramEnrollment as ProgramEnrollmentRow,
    UserBadge,
    UserCategoryPreference,
    UserHiddenAction,
    UserProfile as UserProfileRow,
)
from services.catalog_store import to_action
from services.personalization_types import (
    Assignment,
    AssignmentSource,
    CategoryProfile,
    CategorySurvey,
    CompletedAssignment,
    DecayEntry,
    ProgramEnrollment,
    UserProfile,
)
from services.ports import HistoryPort


async def insert_ignore(session: AsyncSession, table, values: Dict, conflict_columns: List) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING for PostgreSQL and SQLite.

    Returns True when a row was inserted by this statement.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table)
    elif dialect == "sqlite":
        stmt = sqlite.insert(table)
    else:
        raise RuntimeError(f"Unsupported dialect for insert-if-absent: {dialect}")
    stmt = stmt.values(**values).on_conflict_do_nothing(index_elements=conflict_columns)
    result = await session.execute(stmt)
    return result.rowcount == 1


def _to_assignment(row: DailyAssignment, action_row: Optional[ActionRow] = None) -> Assignment:
    return Assignment(
        user_id=row.user_id,
        assignment_date=row.assignment_date,
        action_id=row.action_id,
        completed=bool(row.completed),
        favorited=bool(row.favorited),
        dnc=bool(row.dnc),
        source=row.source,
        completed_at=row.completed_at,
        program_enrollment_id=row.program_enrollment_id,
        action=to_action(action_row) if action_row is not None else None,
    )


class SqlHistoryStore(HistoryPort):
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # --- profile & signals ---

    async def get_user_profile(self, user_id: UUID) -> Optional[UserProfile]:
        async with self.session_factory() as session:
            row = await session.get(UserProfileRow, user_id)
            if row is None:
                return None
            return UserProfile(
                id=row.id,
                has_kids=row.has_kids,
                kids_live_with_you=row.kids_live_with_you,
                country=row.country,
                subscription_tier=row.subscription_tier or "free",
                baseline_health=row.baseline_health,
            )

    async def list_user_ids(self) -> List[UUID]:
        async with self.session_factory() as session:
            result = await session.execute(select(UserProfileRow.id).order_by(UserProfileRow.created_at))
            return list(result.scalars().all())

    async def get_category_profile(self, user_id: UUID) -> CategoryProfile:
        async with self.session_factory() as session:
            result = await session.execute(
                select(CategorySurveyRow).where(CategorySurveyRow.user_id == user_id)
            )
            return {
                row.category: CategorySurvey(
                    self_rating=row.self_rating,
                    wants_improvement=row.wants_improvement,
                    legacy_score=row.legacy_score,
                )
                for row in result.scalars().all()
            }

    async def get_preference_weights(self, user_id: UUID) -> Dict[str, float]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UserCategoryPreference.category, UserCategoryPreference.preference_weight)
                .where(UserCategoryPreference.user_id == user_id)
            )
            return {category: float(weight or 0.0) for category, weight in result.all()}

    async def increment_preference_weight(
        self, user_id: UUID, category: str, increment: float, maximum: float
    ) -> float:
        table = UserCategoryPreference.__table__
        async with self.session_factory() as session:
            await insert_ignore(
                session,
                table,
                {"user_id": user_id, "category": category, "preference_weight": 0.0},
                [table.c.user_id, table.c.category],
            )
            bumped = UserCategoryPreference.preference_weight + increment
            await session.execute(
                update(UserCategoryPreference)
                .where(
                    UserCategoryPreference.user_id == user_id,
                    UserCategoryPreference.category == category,
                )
                .values(preference_weight=case((bumped > maximum, maximum), else_=bumped))
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            result = await session.execute(
                select(UserCategoryPreference.preference_weight).where(
                    UserCategoryPreference.user_id == user_id,
                    UserCategoryPreference.category == category,
                )
            )
            return float(result.scalar_one())

    async def get_hidden_action_ids(self, user_id: UUID) -> Set[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UserHiddenAction.action_id).where(UserHiddenAction.user_id == user_id)
            )
            return set(result.scalars().all())

    async def hide_action(self, user_id: UUID, action_id: str) -> bool:
        table = UserHiddenAction.__table__
        async with self.session_factory() as session:
            inserted = await insert_ignore(
                session,
                table,
                {"user_id": user_id, "action_id": action_id},
                [table.c.user_id, table.c.action_id],
            )
            await session.commit()
            return inserted

    # --- assignments ---

    async def get_assignment(self, user_id: UUID, assignment_date: date) -> Optional[Assignment]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DailyAssignment, ActionRow)
                .join(ActionRow, ActionRow.id == DailyAssignment.action_id, isouter=True)
                .where(
                    DailyAssignment.user_id == user_id,
                    DailyAssignment.assignment_date == assignment_date,
                )
            )
            found = result.first()
            if found is None:
                return None
            return _to_assignment(found[0], found[1])

    async def get_recent_assignments(self, user_id: UUID, since: date) -> List[Assignment]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DailyAssignment)
                .where(
                    DailyAssignment.user_id == user_id,
                    DailyAssignment.assignment_date >= since,
                )
                .order_by(DailyAssignment.assignment_date)
            )
            return [_to_assignment(row) for row in result.scalars().all()]

    async def upsert_assignment(
        self,
        user_id: UUID,
        assignment_date: date,
        action_id: str,
        source: str,
        program_enrollment_id: Optional[UUID] = None,
    ) -> bool:
        table = DailyAssignment.__table__
        async with self.session_factory() as session:
            inserted = await insert_ignore(
                session,
                table,
                {
                    "user_id": user_id,
                    "date": assignment_date,
                    "action_id": action_id,
                    "source": source,
                    "program_enrollment_id": program_enrollment_id,
                },
                [table.c.user_id, table.c.date],
            )
            await session.commit()
            return inserted

    async def replace_assignment_action(
        self, user_id: UUID, assignment_date: date, action_id: str, source: str
    ) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(DailyAssignment)
                .where(
                    DailyAssignment.user_id == user_id,
                    DailyAssignment.assignment_date == assignment_date,
                    DailyAssignment.completed.is_(False),
                    DailyAssignment.source != AssignmentSource.PROGRAM.value,
                )
                .values(action_id=action_id, source=source, favorited=False, dnc=False)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount == 1

    async def set_completed(self, user_id: UUID, assignment_date: date) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(DailyAssignment)
                .where(
                    DailyAssignment.user_id == user_id,
                    DailyAssignment.assignment_date == assignment_date,
                    DailyAssignment.completed.is_(False),
                )
                .values(completed=True, completed_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount == 1

    async def set_favorited(self, user_id: UUID, assignment_date: date, favorited: bool) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(DailyAssignment)
                .where(
                    DailyAssignment.user_id == user_id,
                    DailyAssignment.assignment_date == assignment_date,
                    DailyAssignment.favorited != favorited,
                )
                .values(favorited=favorited)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount == 1

    async def set_do_not_complete(self, user_id: UUID, assignment_date: date) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                update(DailyAssignment)
                .where(
                    DailyAssignment.user_id == user_id,
                    DailyAssignment.assignment_date == assignment_date,
                    DailyAssignment.completed.is_(False),
                    DailyAssignment.dnc.is_(False),
                )
                .values(dnc=True)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount == 1

    async def get_completed_assignments(self, user_id: UUID) -> List[CompletedAssignment]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DailyAssignment.assignment_date, ActionRow)
                .join(ActionRow, ActionRow.id == DailyAssignment.action_id)
                .where(
                    DailyAssignment.user_id == user_id,
                    DailyAssignment.completed.is_(True),
                )
                .order_by(DailyAssignment.assignment_date)
            )
            return [
                CompletedAssignment(assignment_date=assignment_date, action=to_action(action_row))
                for assignment_date, action_row in result.all()
            ]

    async def list_outstanding_user_ids(self, missed_date: date) -> List[UUID]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DailyAssignment.user_id).where(
                    DailyAssignment.assignment_date == missed_date,
                    DailyAssignment.completed.is_(False),
                    DailyAssignment.dnc.is_(False),
                )
            )
            return list(result.scalars().all())

    # --- health decay ---

    async def get_decay_entries(self, user_id: UUID) -> List[DecayEntry]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(HealthDecayEntry.missed_date, HealthDecayEntry.decay_applied)
                .where(HealthDecayEntry.user_id == user_id)
                .order_by(HealthDecayEntry.missed_date)
            )
            return [
                DecayEntry(missed_date=missed_date, decay_applied=float(amount))
                for missed_date, amount in result.all()
            ]

    async def insert_decay_entry(self, user_id: UUID, missed_date: date, amount: float) -> bool:
        table = HealthDecayEntry.__table__
        async with self.session_factory() as session:
            inserted = await insert_ignore(
                session,
                table,
                {"user_id": user_id, "missed_date": missed_date, "decay_applied": amount},
                [table.c.user_id, table.c.missed_date],
            )
            await session.commit()
            return inserted

    async def delete_decay_entry(self, user_id: UUID, missed_date: date) -> Optional[float]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(HealthDecayEntry.id, HealthDecayEntry.decay_applied).where(
                    HealthDecayEntry.user_id == user_id,
                    HealthDecayEntry.missed_date == missed_date,
                )
            )
            found = result.first()
            if found is None:
                return None
            entry_id, amount = found
            # Delete by id: only the caller whose DELETE hits the row gets the amount.
            deleted = await session.execute(
                delete(HealthDecayEntry)
                .where(HealthDecayEntry.id == entry_id)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            if deleted.rowcount != 1:
                return None
            return float(amount)

    # --- badges ---

    async def get_earned_badges(self, user_id: UUID) -> Dict[str, object]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UserBadge.badge_id, UserBadge.earned_at).where(UserBadge.user_id == user_id)
            )
            return {badge_id: earned_at for badge_id, earned_at in result.all()}

    async def award_badge(self, user_id: UUID, badge_id: str) -> bool:
        table = UserBadge.__table__
        async with self.session_factory() as session:
            inserted = await insert_ignore(
                session,
                table,
                {"user_id": user_id, "badge_id": badge_id},
                [table.c.user_id, table.c.badge_id],
            )
            await session.commit()
            return inserted

    # --- programs ---

    async def _load_enrollments(self, session: AsyncSession, *criteria) -> List[ProgramEnrollment]:
        result = await session.execute(
            select(ProgramEnrollmentRow, ProgramRow.duration_days)
            .join(ProgramRow, ProgramRow.id == ProgramEnrollmentRow.program_id)
            .where(*criteria)
            .order_by(ProgramEnrollmentRow.joined_date)
        )
        return [
            ProgramEnrollment(
                id=row.id,
                program_id=row.program_id,
                joined_date=row.joined_date,
                completed_days=row.completed_days,
                completed=bool(row.completed),
                duration_days=duration_days,
            )
            for row, duration_days in result.all()
        ]

    async def get_program_enrollments(self, user_id: UUID) -> List[ProgramEnrollment]:
        async with self.session_factory() as session:
            return await self._load_enrollments(session, ProgramEnrollmentRow.user_id == user_id)

    async def enroll_in_program(self, user_id: UUID, program_id: str, joined_date: date) -> Optional[UUID]:
        enrollment_id = uuid.uuid4()
        table = ProgramEnrollmentRow.__table__
        async with self.session_factory() as session:
            inserted = await insert_ignore(
                session,
                table,
                {
                    "id": enrollment_id,
                    "user_id": user_id,
                    "program_id": program_id,
                    "joined_date": joined_date,
                    "completed_days": 0,
                    "completed": False,
                },
                [table.c.user_id, table.c.program_id],
            )
            await session.commit()
        return enrollment_id if inserted else None

    async def advance_program_progress(self, enrollment_id: UUID) -> Optional[ProgramEnrollment]:
        async with self.session_factory() as session:
            duration = (
                select(ProgramRow.duration_days)
                .where(ProgramRow.id == ProgramEnrollmentRow.program_id)
                .scalar_subquery()
            )
            await session.execute(
                update(ProgramEnrollmentRow)
                .where(
                    ProgramEnrollmentRow.id == enrollment_id,
                    ProgramEnrollmentRow.completed.is_(False),
                    ProgramEnrollmentRow.completed_days < duration,
                )
                .values(completed_days=ProgramEnrollmentRow.completed_days + 1)
                .execution_options(synchronize_session=False)
            )
            await session.execute(
                update(ProgramEnrollmentRow)
                .where(
                    ProgramEnrollmentRow.id == enrollment_id,
                    ProgramEnrollmentRow.completed.is_(False),
                    ProgramEnrollmentRow.completed_days >= duration,
                )
                .values(completed=True)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            enrollments = await self._load_enrollments(session, ProgramEnrollmentRow.id == enrollment_id)
            return enrollments[0] if enrollments else None
