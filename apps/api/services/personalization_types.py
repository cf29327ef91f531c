"""
Value types shared by the personalization and progression engine.

These are the inputs and outputs of the pure algorithms. Port adapters
translate ORM rows into them so the algorithms never touch a session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
from uuid import UUID


# Survey-backed categories, in the canonical order used for tie-breaking.
SURVEY_CATEGORIES: List[str] = [
    "Communication",
    "Intimacy",
    "Partnership",
    "Romance",
    "Gratitude",
    "Conflict Resolution",
    "Reconnection",
    "Quality Time",
]

PAID_TIERS = {"premium", "lifetime", "trial"}


class SelectionContext(str, Enum):
    """Who asked for a selection. Recorded on the assignment row as its source."""
    BATCH = "batch"
    ON_DEMAND = "on_demand"
    REPLACEMENT = "replacement"


class AssignmentSource(str, Enum):
    AUTO = "auto"
    FALLBACK = "fallback"
    REPLACEMENT = "replacement"
    PROGRAM = "program"


class OutcomeKind(str, Enum):
    CREATED = "created"
    EXISTING = "existing"
    UPDATED = "updated"
    ALREADY_APPLIED = "already_applied"
    NO_ACTION_AVAILABLE = "no_action_available"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class Action:
    id: str
    name: str
    category: str
    description: Optional[str] = None
    benefit: Optional[str] = None
    theme: Optional[str] = None
    country: Optional[str] = None
    seasonal_start: Optional[date] = None
    seasonal_end: Optional[date] = None
    household_tags: Optional[FrozenSet[str]] = None
    planning_required: bool = False
    activity_type: Optional[str] = None

    @property
    def text(self) -> str:
        """Free text used by keyword heuristics."""
        return f"{self.name or ''} {self.description or ''} {self.benefit or ''}".lower()


@dataclass(frozen=True)
class UserProfile:
    id: UUID
    has_kids: Optional[bool] = None
    kids_live_with_you: Optional[bool] = None
    country: Optional[str] = None
    subscription_tier: str = "free"
    baseline_health: Optional[float] = None

    @property
    def is_premium(self) -> bool:
        return (self.subscription_tier or "free").lower() in PAID_TIERS


@dataclass(frozen=True)
class CategorySurvey:
    self_rating: Optional[int] = None
    wants_improvement: Optional[bool] = None
    legacy_score: Optional[float] = None


# category name -> survey answers
CategoryProfile = Dict[str, CategorySurvey]


@dataclass
class Assignment:
    user_id: UUID
    assignment_date: date
    action_id: str
    completed: bool = False
    favorited: bool = False
    dnc: bool = False
    source: str = AssignmentSource.AUTO.value
    completed_at: Optional[datetime] = None
    program_enrollment_id: Optional[UUID] = None
    action: Optional[Action] = None


@dataclass(frozen=True)
class CompletedAssignment:
    """A qualifying completion: a completed assignment and its action."""
    assignment_date: date
    action: Action


@dataclass(frozen=True)
class DecayEntry:
    missed_date: date
    decay_applied: float


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    requirement_type: str
    requirement_value: Optional[int] = None
    category: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class Program:
    id: str
    name: str
    duration_days: int
    action_ids: List[str] = field(default_factory=list)  # ordered by day


@dataclass(frozen=True)
class ProgramEnrollment:
    id: UUID
    program_id: str
    joined_date: date
    completed_days: int
    completed: bool
    duration_days: int

    @property
    def fully_completed(self) -> bool:
        return self.completed and self.completed_days == self.duration_days


@dataclass
class EngineOutcome:
    """
    Structured result of an engine operation.

    Non-fatal conditions (no action available, nothing to reverse) are
    reported here instead of raised, so batch callers can keep going.
    """
    kind: OutcomeKind
    context: Dict[str, Any] = field(default_factory=dict)
    assignment: Optional[Assignment] = None

    @property
    def ok(self) -> bool:
        return self.kind in (
            OutcomeKind.CREATED,
            OutcomeKind.EXISTING,
            OutcomeKind.UPDATED,
            OutcomeKind.ALREADY_APPLIED,
        )
