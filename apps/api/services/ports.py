"""
Storage ports for the personalization engine.

The selection, health and badge engines talk to storage only through these
interfaces. The SQL adapters live in catalog_store.py and history_store.py.

Implementation requirements:
- Every method is a coroutine; independent reads may be awaited concurrently
- Inserts that must happen at most once are insert-if-absent and report
  whether this call won
- State transitions are conditional writes, never read-then-write
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional, Set
from uuid import UUID

from services.personalization_types import (
    Action,
    Assignment,
    Badge,
    CategoryProfile,
    CompletedAssignment,
    DecayEntry,
    Program,
    ProgramEnrollment,
    UserProfile,
)


class CatalogPort(ABC):
    """Read-only access to catalog content."""

    @abstractmethod
    async def list_actions(self) -> List[Action]:
        pass

    @abstractmethod
    async def get_action(self, action_id: str) -> Optional[Action]:
        pass

    @abstractmethod
    async def list_badges(self) -> List[Badge]:
        pass

    @abstractmethod
    async def get_program(self, program_id: str) -> Optional[Program]:
        pass


class HistoryPort(ABC):
    """Per-user assignment history, preferences and progression records."""

    # --- profile & signals ---

    @abstractmethod
    async def get_user_profile(self, user_id: UUID) -> Optional[UserProfile]:
        pass

    @abstractmethod
    async def list_user_ids(self) -> List[UUID]:
        pass

    @abstractmethod
    async def get_category_profile(self, user_id: UUID) -> CategoryProfile:
        pass

    @abstractmethod
    async def get_preference_weights(self, user_id: UUID) -> Dict[str, float]:
        pass

    @abstractmethod
    async def increment_preference_weight(
        self, user_id: UUID, category: str, increment: float, maximum: float
    ) -> float:
        """Add to a category weight (capped) and return the new weight."""

    @abstractmethod
    async def get_hidden_action_ids(self, user_id: UUID) -> Set[str]:
        pass

    @abstractmethod
    async def hide_action(self, user_id: UUID, action_id: str) -> bool:
        pass

    # --- assignments ---

    @abstractmethod
    async def get_assignment(self, user_id: UUID, assignment_date: date) -> Optional[Assignment]:
        pass

    @abstractmethod
    async def get_recent_assignments(self, user_id: UUID, since: date) -> List[Assignment]:
        """Assignments dated on or after `since` (future-dated pins included)."""

    @abstractmethod
    async def upsert_assignment(
        self,
        user_id: UUID,
        assignment_date: date,
        action_id: str,
        source: str,
        program_enrollment_id: Optional[UUID] = None,
    ) -> bool:
        """Insert if no row exists for (user, date). True when this call inserted."""

    @abstractmethod
    async def replace_assignment_action(
        self, user_id: UUID, assignment_date: date, action_id: str, source: str
    ) -> bool:
        """Swap the action of a not-yet-completed assignment that no program pinned."""

    @abstractmethod
    async def set_completed(self, user_id: UUID, assignment_date: date) -> bool:
        """Flip completed false -> true. True only for the call that flipped it."""

    @abstractmethod
    async def set_favorited(self, user_id: UUID, assignment_date: date, favorited: bool) -> bool:
        pass

    @abstractmethod
    async def set_do_not_complete(self, user_id: UUID, assignment_date: date) -> bool:
        pass

    @abstractmethod
    async def get_completed_assignments(self, user_id: UUID) -> List[CompletedAssignment]:
        pass

    @abstractmethod
    async def list_outstanding_user_ids(self, missed_date: date) -> List[UUID]:
        """Users whose assignment on `missed_date` is neither completed nor DNC."""

    # --- health decay ---

    @abstractmethod
    async def get_decay_entries(self, user_id: UUID) -> List[DecayEntry]:
        pass

    @abstractmethod
    async def insert_decay_entry(self, user_id: UUID, missed_date: date, amount: float) -> bool:
        pass

    @abstractmethod
    async def delete_decay_entry(self, user_id: UUID, missed_date: date) -> Optional[float]:
        """Remove the entry; returns its amount, or None when nothing was removed."""

    # --- badges ---

    @abstractmethod
    async def get_earned_badges(self, user_id: UUID) -> Dict[str, object]:
        """badge_id -> earned_at"""

    @abstractmethod
    async def award_badge(self, user_id: UUID, badge_id: str) -> bool:
        pass

    # --- programs ---

    @abstractmethod
    async def get_program_enrollments(self, user_id: UUID) -> List[ProgramEnrollment]:
        pass

    @abstractmethod
    async def enroll_in_program(self, user_id: UUID, program_id: str, joined_date: date) -> Optional[UUID]:
        """New enrollment id, or None when the user already joined this program."""
        pass

    @abstractmethod
    async def advance_program_progress(self, enrollment_id: UUID) -> Optional[ProgramEnrollment]:
        pass
