"""
Badge Progress Engine

Evaluates each badge's requirement rule against a user's completion
history, awards newly satisfied badges and reports progress on the rest.

Awards are insert-if-absent and permanent: evaluation never revokes a
badge, and re-running it for an already-earned badge is a no-op.

Keyword inference (badge name -> category, action text -> activity type)
only applies where the catalog row lacks the explicit field.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID
import logging

from services.personalization_types import (
    Action,
    Badge,
    CompletedAssignment,
    ProgramEnrollment,
)
from services.ports import CatalogPort, HistoryPort

logger = logging.getLogger(__name__)


class BadgeRequirementType(str, Enum):
    TOTAL_ACTIONS = "total_actions"
    STREAK_DAYS = "streak_days"
    WEEKLY_STREAK = "weekly_streak"
    CATEGORY_COUNT = "category_count"
    EVENT_COMPLETION = "event_completion"
    PROGRAM_JOINED = "program_joined"


# Activity requirement types and the words that identify them in action text.
ACTIVITY_KEYWORDS: Dict[str, Sequence[str]] = {
    "gratitude_actions": ("gratitude", "grateful", "thank", "appreciat"),
    "surprise_actions": ("surprise",),
    "apology_actions": ("apolog", "sorry"),
    "support_actions": ("support", "encourag"),
    "date_nights": ("date night",),
    "conflict_resolutions": ("conflict", "disagreement", "argument"),
    "love_languages": ("love language",),
    "milestone_actions": ("milestone", "anniversary"),
    "outdoor_actions": ("outdoor", "outside", "nature", "park", "garden"),
    "walk_actions": ("walk", "stroll"),
    "hiking_actions": ("hike", "hiking", "trail"),
    "adventure_actions": ("adventure", "explore"),
    "camping_actions": ("camp",),
    "water_activities": ("swim", "beach", "lake", "kayak", "canoe"),
    "run_actions": ("run ", "running", "jog"),
    "sports_actions": ("sport", "tennis", "golf", "bike", "cycling"),
}

# Badge-name fragments -> category, checked in order when a badge has no category.
CATEGORY_NAME_HINTS: Sequence = (
    (("communication",), "Communication"),
    (("romance",), "Romance"),
    (("gratitude",), "Gratitude"),
    (("partnership",), "Partnership"),
    (("intimacy",), "Intimacy"),
    (("conflict", "resolution"), "Conflict Resolution"),
    (("reconnection",), "Reconnection"),
    (("quality", "time"), "Quality Time"),
)


@dataclass(frozen=True)
class BadgeProgress:
    current: int
    target: int
    percentage: int


@dataclass
class BadgeStatus:
    badge: Badge
    earned: bool
    earned_at: Optional[object] = None
    progress: Optional[BadgeProgress] = None


@dataclass
class BadgeInputs:
    completions: List[CompletedAssignment]
    enrollments: List[ProgramEnrollment]
    today: date


def current_day_streak(completion_dates: Iterable[date], today: date) -> int:
    """Consecutive days ending today with at least one completion."""
    days = set(completion_dates)
    streak = 0
    cursor = today
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def weekly_streak(completion_dates: Iterable[date]) -> int:
    """
    Consecutive Monday-Friday work weeks with at least one weekday completion.

    Weeks are keyed by their Monday and walked backward from the most recent
    active week; any week without activity ends the count.
    """
    weeks = sorted(
        {d - timedelta(days=d.weekday()) for d in completion_dates if d.weekday() < 5},
        reverse=True,
    )
    if not weeks:
        return 0
    streak = 1
    for newer, older in zip(weeks, weeks[1:]):
        if (newer - older).days != 7:
            break
        streak += 1
    return streak


def infer_badge_category(badge: Badge) -> Optional[str]:
    if badge.category:
        return badge.category
    name = (badge.name or "").lower()
    for fragments, category in CATEGORY_NAME_HINTS:
        if all(fragment in name for fragment in fragments):
            return category
    return None


def matches_activity(action: Action, requirement_type: str) -> bool:
    if action.activity_type:
        return action.activity_type == requirement_type
    text = f"{action.name or ''} {action.description or ''}".lower()
    return any(keyword in text for keyword in ACTIVITY_KEYWORDS.get(requirement_type, ()))


def measure_requirement(badge: Badge, inputs: BadgeInputs) -> int:
    """Current value of the badge's requirement metric."""
    requirement = badge.requirement_type
    dates = [c.assignment_date for c in inputs.completions]

    if requirement == BadgeRequirementType.TOTAL_ACTIONS:
        return len(inputs.completions)
    if requirement == BadgeRequirementType.STREAK_DAYS:
        return current_day_streak(dates, inputs.today)
    if requirement == BadgeRequirementType.WEEKLY_STREAK:
        return weekly_streak(dates)
    if requirement == BadgeRequirementType.CATEGORY_COUNT:
        category = infer_badge_category(badge)
        if category is None:
            return 0
        return sum(1 for c in inputs.completions if c.action.category == category)
    if requirement == BadgeRequirementType.EVENT_COMPLETION:
        return sum(1 for e in inputs.enrollments if e.fully_completed)
    if requirement == BadgeRequirementType.PROGRAM_JOINED:
        return len(inputs.enrollments)
    if requirement in ACTIVITY_KEYWORDS:
        return sum(1 for c in inputs.completions if matches_activity(c.action, requirement))

    logger.warning(
        f"Unknown badge requirement type: {requirement}",
        extra={"extra_fields": {"badge_id": badge.id}},
    )
    return 0


def calculate_badge_progress(badge: Badge, inputs: BadgeInputs) -> BadgeProgress:
    target = badge.requirement_value or 0
    current = measure_requirement(badge, inputs)
    if target <= 0:
        percentage = 0
    else:
        percentage = min(100, int(current / target * 100 + 0.5))
    return BadgeProgress(current=current, target=target, percentage=percentage)


def is_satisfied(progress: BadgeProgress) -> bool:
    return progress.current >= progress.target


class BadgeProgressEngine:
    def __init__(self, catalog: CatalogPort, history: HistoryPort):
        self.catalog = catalog
        self.history = history

    async def _load(self, user_id: UUID):
        return await asyncio.gather(
            self.catalog.list_badges(),
            self.history.get_earned_badges(user_id),
            self.history.get_completed_assignments(user_id),
            self.history.get_program_enrollments(user_id),
        )

    async def evaluate_and_award(self, user_id: UUID, today: date) -> List[Badge]:
        """Award every unearned badge whose requirement is met. Returns the new ones."""
        badges, earned, completions, enrollments = await self._load(user_id)
        inputs = BadgeInputs(completions=completions, enrollments=enrollments, today=today)

        newly_earned = []
        for badge in badges:
            if badge.id in earned:
                continue
            if not is_satisfied(calculate_badge_progress(badge, inputs)):
                continue
            if await self.history.award_badge(user_id, badge.id):
                newly_earned.append(badge)

        if newly_earned:
            logger.info(
                f"Awarded {len(newly_earned)} badges",
                extra={"extra_fields": {"user_id": str(user_id), "badge_ids": [b.id for b in newly_earned]}},
            )
        return newly_earned

    async def list_progress(self, user_id: UUID, today: date) -> List[BadgeStatus]:
        badges, earned, completions, enrollments = await self._load(user_id)
        inputs = BadgeInputs(completions=completions, enrollments=enrollments, today=today)

        statuses = []
        for badge in badges:
            if badge.id in earned:
                statuses.append(BadgeStatus(badge=badge, earned=True, earned_at=earned[badge.id]))
            else:
                statuses.append(
                    BadgeStatus(badge=badge, earned=False, progress=calculate_badge_progress(badge, inputs))
                )
        return statuses
