"""
Relationship Health Score

Conservative and steady: slow accrual that rewards consistency over volume.

    score = baseline
          + daily routine points   (+0.5 per completion, max 1.0 per day)
          + weekly planning points (+2.0 per completion, max 2.0 per Monday week)
          + program bonus          (+3.0 per fully completed program)
          - active decay entries   (0.5 per missed day, max 3.5 per Monday week)

clamped to [0, 100] once, after decay. Badges never affect health.

The score is always derived from history (completed assignments, decay
entries, enrollments), never stored, so reversing a decay entry is
immediately reflected and cannot be double counted.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, Optional
from uuid import UUID
import logging

from core.config import settings
from services.personalization_types import (
    Assignment,
    CompletedAssignment,
    DecayEntry,
    EngineOutcome,
    OutcomeKind,
    ProgramEnrollment,
)
from services.ports import HistoryPort

logger = logging.getLogger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def week_start(d: date) -> date:
    """Monday of the week containing `d`."""
    return d - timedelta(days=d.weekday())


@dataclass(frozen=True)
class HealthParameters:
    baseline_default: float = 50.0
    daily_action_points: float = 0.5
    daily_points_cap: float = 1.0
    weekly_action_points: float = 2.0
    weekly_points_cap: float = 2.0
    event_bonus: float = 3.0
    decay_per_missed_day: float = 0.5
    weekly_decay_cap: float = 3.5

    @classmethod
    def from_settings(cls) -> "HealthParameters":
        return cls(
            baseline_default=settings.HEALTH_BASELINE_DEFAULT,
            daily_action_points=settings.HEALTH_DAILY_ACTION_POINTS,
            daily_points_cap=settings.HEALTH_DAILY_POINTS_CAP,
            weekly_action_points=settings.HEALTH_WEEKLY_ACTION_POINTS,
            weekly_points_cap=settings.HEALTH_WEEKLY_POINTS_CAP,
            event_bonus=settings.HEALTH_EVENT_BONUS,
            decay_per_missed_day=settings.HEALTH_DECAY_PER_MISSED_DAY,
            weekly_decay_cap=settings.HEALTH_WEEKLY_DECAY_CAP,
        )


@dataclass
class HealthBreakdown:
    score: float
    baseline: float
    daily_points: float = 0.0
    weekly_points: float = 0.0
    event_bonus: float = 0.0
    decay: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "score": self.score,
            "baseline": self.baseline,
            "daily_points": self.daily_points,
            "weekly_points": self.weekly_points,
            "event_bonus": self.event_bonus,
            "decay": self.decay,
        }


def clamp_score(value: float) -> float:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def calculate_health_score(
    baseline: Optional[float],
    completions: Iterable[CompletedAssignment],
    decay_entries: Iterable[DecayEntry],
    enrollments: Iterable[ProgramEnrollment] = (),
    params: HealthParameters = HealthParameters(),
) -> HealthBreakdown:
    """Pure score computation. Completions are credited to their assignment date."""
    start = clamp_score(params.baseline_default if baseline is None else float(baseline))

    daily: Dict[date, float] = defaultdict(float)
    weekly: Dict[date, float] = defaultdict(float)
    for completion in completions:
        day = completion.assignment_date
        if completion.action.planning_required:
            monday = week_start(day)
            weekly[monday] = min(weekly[monday] + params.weekly_action_points, params.weekly_points_cap)
        else:
            daily[day] = min(daily[day] + params.daily_action_points, params.daily_points_cap)

    daily_points = sum(daily.values())
    weekly_points = sum(weekly.values())
    event_bonus = params.event_bonus * sum(1 for e in enrollments if e.fully_completed)
    decay = sum(entry.decay_applied for entry in decay_entries)

    score = clamp_score(start + daily_points + weekly_points + event_bonus - decay)
    return HealthBreakdown(
        score=round(score, 2),
        baseline=start,
        daily_points=daily_points,
        weekly_points=weekly_points,
        event_bonus=event_bonus,
        decay=decay,
    )


def decay_amount_for(missed_date: date, existing: Iterable[DecayEntry], params: HealthParameters) -> float:
    """Decay for one missed day, limited by what its week has already absorbed."""
    monday = week_start(missed_date)
    used = sum(
        entry.decay_applied
        for entry in existing
        if week_start(entry.missed_date) == monday
    )
    return max(0.0, min(params.decay_per_missed_day, params.weekly_decay_cap - used))


class HealthScoreEngine:
    def __init__(self, history: HistoryPort, params: Optional[HealthParameters] = None):
        self.history = history
        self.params = params or HealthParameters.from_settings()

    async def get_score(self, user_id: UUID) -> Optional[HealthBreakdown]:
        profile, completions, decay_entries, enrollments = await asyncio.gather(
            self.history.get_user_profile(user_id),
            self.history.get_completed_assignments(user_id),
            self.history.get_decay_entries(user_id),
            self.history.get_program_enrollments(user_id),
        )
        if profile is None:
            return None
        return calculate_health_score(
            profile.baseline_health, completions, decay_entries, enrollments, self.params
        )

    async def reverse_decay(self, user_id: UUID, missed_date: date) -> EngineOutcome:
        """
        Remove the decay entry for a caught-up day.

        Safe to repeat: the storage delete is conditional, so only one caller
        ever gets the amount back. A missing entry is a no-op.
        """
        amount = await self.history.delete_decay_entry(user_id, missed_date)
        if amount is None:
            return EngineOutcome(
                OutcomeKind.ALREADY_APPLIED,
                {"missed_date": missed_date.isoformat(), "reversed": 0.0},
            )
        logger.info(
            f"Reversed decay of {amount} for caught-up day",
            extra={"extra_fields": {"user_id": str(user_id), "missed_date": missed_date.isoformat()}},
        )
        return EngineOutcome(
            OutcomeKind.UPDATED,
            {"missed_date": missed_date.isoformat(), "reversed": amount},
        )

    async def on_assignment_completed(self, assignment: Assignment) -> EngineOutcome:
        if assignment.dnc:
            return EngineOutcome(
                OutcomeKind.ALREADY_APPLIED,
                {"missed_date": assignment.assignment_date.isoformat(), "reason": "did not complete"},
            )
        return await self.reverse_decay(assignment.user_id, assignment.assignment_date)

    async def sweep_missed_day(self, missed_date: date) -> Dict[str, int]:
        """
        Record decay for every assignment on `missed_date` that is still
        outstanding and not flagged did-not-complete. Idempotent.
        """
        user_ids = await self.history.list_outstanding_user_ids(missed_date)
        summary = {"users": len(user_ids), "inserted": 0, "skipped": 0, "errors": 0}

        for user_id in user_ids:
            try:
                existing = await self.history.get_decay_entries(user_id)
                amount = decay_amount_for(missed_date, existing, self.params)
                if amount <= 0:
                    summary["skipped"] += 1
                    continue
                if await self.history.insert_decay_entry(user_id, missed_date, amount):
                    summary["inserted"] += 1
                else:
                    summary["skipped"] += 1
            except Exception as e:
                summary["errors"] += 1
                logger.exception(
                    f"Decay sweep failed for user: {e}",
                    extra={"extra_fields": {"user_id": str(user_id), "missed_date": missed_date.isoformat()}},
                )

        logger.info(
            "Decay sweep complete",
            extra={"extra_fields": {"missed_date": missed_date.isoformat(), **summary}},
        )
        return summary
