"""
Assignment Ledger

At most one action per (user, date). An existing row always wins: pins
from multi-day programs, earlier selections and concurrent writers are
returned as-is, never overwritten by automatic selection.

Concurrency contract:
- Creation is insert-if-absent against the (user_id, date) unique
  constraint; the loser of a race re-reads and returns the winner's row.
- Completion is a conditional false -> true flip; only one caller wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID
import logging

from services.action_selection import choose_action, load_selection_inputs
from services.personalization_types import (
    AssignmentSource,
    EngineOutcome,
    OutcomeKind,
    SelectionContext,
)
from services.ports import CatalogPort, HistoryPort
from services.weighted_selector import RandomSource, default_random_source

logger = logging.getLogger(__name__)

DEFAULT_RECENCY_WINDOW_DAYS = 30


@dataclass
class MarkResult:
    """Outcome of a simple assignment mutation."""
    outcome: EngineOutcome
    transitioned: bool = False


class AssignmentLedger:
    def __init__(
        self,
        catalog: CatalogPort,
        history: HistoryPort,
        rng: Optional[RandomSource] = None,
        recency_window_days: int = DEFAULT_RECENCY_WINDOW_DAYS,
    ):
        self.catalog = catalog
        self.history = history
        self.rng = rng or default_random_source()
        self.recency_window_days = recency_window_days

    async def get_or_create(
        self,
        user_id: UUID,
        target_date: date,
        context: SelectionContext = SelectionContext.ON_DEMAND,
    ) -> EngineOutcome:
        """
        Return the user's assignment for `target_date`, selecting and
        persisting one if none exists yet.
        """
        existing = await self.history.get_assignment(user_id, target_date)
        if existing is not None:
            return EngineOutcome(OutcomeKind.EXISTING, {"source": existing.source}, existing)

        inputs = await load_selection_inputs(
            self.catalog, self.history, user_id, target_date, self.recency_window_days
        )
        if inputs.profile is None:
            return EngineOutcome(OutcomeKind.NOT_FOUND, {"user_id": str(user_id), "resource": "user"})

        selection = choose_action(inputs, target_date, self.rng, context=context)
        if selection.action is None:
            logger.warning(
                "No action available",
                extra={"extra_fields": {"user_id": str(user_id), "target_date": target_date.isoformat()}},
            )
            return EngineOutcome(
                OutcomeKind.NO_ACTION_AVAILABLE,
                {"user_id": str(user_id), "target_date": target_date.isoformat()},
            )

        source = AssignmentSource.FALLBACK if selection.fallback_used else AssignmentSource.AUTO
        inserted = await self.history.upsert_assignment(
            user_id, target_date, selection.action.id, source.value
        )
        assignment = await self.history.get_assignment(user_id, target_date)

        if not inserted:
            logger.info(
                "Concurrent assignment detected; returning existing row",
                extra={"extra_fields": {"user_id": str(user_id), "target_date": target_date.isoformat()}},
            )
            return EngineOutcome(OutcomeKind.EXISTING, {"conflict": True}, assignment)

        return EngineOutcome(OutcomeKind.CREATED, selection.audit(), assignment)

    async def assign_days(
        self,
        user_id: UUID,
        start_date: date,
        days: int,
        context: SelectionContext = SelectionContext.ON_DEMAND,
    ) -> List[EngineOutcome]:
        """
        Get-or-create for `days` consecutive dates.

        Sequential on purpose: each new row joins the recency window of the
        next date, so a run of days never repeats an action.
        """
        outcomes = []
        for offset in range(max(0, days)):
            outcomes.append(
                await self.get_or_create(user_id, start_date + timedelta(days=offset), context)
            )
        return outcomes

    async def replace(
        self,
        user_id: UUID,
        target_date: date,
        excluded_action_id: Optional[str] = None,
    ) -> EngineOutcome:
        """
        Manual replacement: re-run selection for a date, excluding the
        current action. Completed assignments and pinned program days are
        left alone.
        """
        current = await self.history.get_assignment(user_id, target_date)
        if current is not None and current.completed:
            return EngineOutcome(
                OutcomeKind.ALREADY_APPLIED,
                {"reason": "assignment already completed"},
                current,
            )
        # A program only counts when its own actions are done.
        if current is not None and current.source == AssignmentSource.PROGRAM.value:
            return EngineOutcome(OutcomeKind.ALREADY_APPLIED, {"reason": "pinned"}, current)

        excluded = {excluded_action_id} if excluded_action_id else set()
        if current is not None:
            excluded.add(current.action_id)

        inputs = await load_selection_inputs(
            self.catalog, self.history, user_id, target_date, self.recency_window_days
        )
        if inputs.profile is None:
            return EngineOutcome(OutcomeKind.NOT_FOUND, {"user_id": str(user_id), "resource": "user"})

        selection = choose_action(
            inputs,
            target_date,
            self.rng,
            excluded_action_ids=excluded,
            context=SelectionContext.REPLACEMENT,
        )
        if selection.action is None:
            return EngineOutcome(
                OutcomeKind.NO_ACTION_AVAILABLE,
                {"user_id": str(user_id), "target_date": target_date.isoformat()},
                current,
            )

        if current is None:
            inserted = await self.history.upsert_assignment(
                user_id, target_date, selection.action.id, AssignmentSource.REPLACEMENT.value
            )
            kind = OutcomeKind.CREATED if inserted else OutcomeKind.EXISTING
        else:
            swapped = await self.history.replace_assignment_action(
                user_id, target_date, selection.action.id, AssignmentSource.REPLACEMENT.value
            )
            kind = OutcomeKind.UPDATED if swapped else OutcomeKind.ALREADY_APPLIED

        assignment = await self.history.get_assignment(user_id, target_date)
        return EngineOutcome(kind, selection.audit(), assignment)

    async def pin_program(
        self,
        user_id: UUID,
        program_id: str,
        start_date: date,
    ) -> EngineOutcome:
        """
        Enroll the user and pin one program action per day from `start_date`.

        Days that already have an assignment keep it. Joining the same
        program twice is reported as EXISTING and pins nothing.
        """
        program = await self.catalog.get_program(program_id)
        if program is None:
            return EngineOutcome(OutcomeKind.NOT_FOUND, {"program_id": program_id, "resource": "program"})

        enrollment_id = await self.history.enroll_in_program(user_id, program_id, start_date)
        if enrollment_id is None:
            return EngineOutcome(OutcomeKind.EXISTING, {"program_id": program_id, "reason": "already joined"})

        pinned, skipped = [], []
        for offset, action_id in enumerate(program.action_ids):
            day = start_date + timedelta(days=offset)
            inserted = await self.history.upsert_assignment(
                user_id,
                day,
                action_id,
                AssignmentSource.PROGRAM.value,
                program_enrollment_id=enrollment_id,
            )
            (pinned if inserted else skipped).append(day.isoformat())

        logger.info(
            f"Pinned {len(pinned)} program days",
            extra={"extra_fields": {"user_id": str(user_id), "program_id": program_id, "skipped": skipped}},
        )
        return EngineOutcome(
            OutcomeKind.CREATED,
            {
                "program_id": program_id,
                "enrollment_id": str(enrollment_id),
                "pinned_dates": pinned,
                "skipped_dates": skipped,
            },
        )

    async def mark_completed(self, user_id: UUID, target_date: date) -> MarkResult:
        """Past dates are allowed (catch-up). Repeats are a no-op."""
        assignment = await self.history.get_assignment(user_id, target_date)
        if assignment is None:
            return MarkResult(self._missing(user_id, target_date))

        flipped = await self.history.set_completed(user_id, target_date)
        refreshed = await self.history.get_assignment(user_id, target_date)
        kind = OutcomeKind.UPDATED if flipped else OutcomeKind.ALREADY_APPLIED
        return MarkResult(EngineOutcome(kind, {}, refreshed), transitioned=flipped)

    async def mark_favorited(self, user_id: UUID, target_date: date, favorited: bool = True) -> MarkResult:
        changed = await self.history.set_favorited(user_id, target_date, favorited)
        return await self._after_mutation(user_id, target_date, changed)

    async def mark_do_not_complete(self, user_id: UUID, target_date: date) -> MarkResult:
        changed = await self.history.set_do_not_complete(user_id, target_date)
        return await self._after_mutation(user_id, target_date, changed)

    async def _after_mutation(self, user_id: UUID, target_date: date, changed: bool) -> MarkResult:
        assignment = await self.history.get_assignment(user_id, target_date)
        if assignment is None:
            return MarkResult(self._missing(user_id, target_date))
        kind = OutcomeKind.UPDATED if changed else OutcomeKind.ALREADY_APPLIED
        return MarkResult(EngineOutcome(kind, {}, assignment), transitioned=changed)

    @staticmethod
    def _missing(user_id: UUID, target_date: date) -> EngineOutcome:
        return EngineOutcome(
            OutcomeKind.NOT_FOUND,
            {"user_id": str(user_id), "target_date": target_date.isoformat(), "resource": "assignment"},
        )
