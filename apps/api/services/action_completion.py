"""
Completion flow.

The completed flag is the primary record. Once it is persisted, the
auxiliary steps run in order and independently:

  1. health    - reverse the decay entry for a caught-up day
  2. programs  - advance the enrollment the assignment was pinned from
  3. badges    - evaluate and award (after programs, so event badges see it)

A failing step is logged and reported; it never reverts the completion
or stops the steps after it. Repeating a completion is a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from services.assignment_ledger import AssignmentLedger
from services.badge_progress import BadgeProgressEngine
from services.health_score import HealthScoreEngine
from services.personalization_types import Badge, EngineOutcome, OutcomeKind, ProgramEnrollment
from services.ports import HistoryPort

logger = logging.getLogger(__name__)


@dataclass
class SubsystemFailure:
    subsystem: str
    error: str


@dataclass
class CompletionOutcome:
    outcome: EngineOutcome
    decay_reversed: float = 0.0
    new_badges: List[Badge] = field(default_factory=list)
    program: Optional[ProgramEnrollment] = None
    failures: List[SubsystemFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.outcome.kind.value,
            "decay_reversed": self.decay_reversed,
            "new_badges": [b.id for b in self.new_badges],
            "program_completed": bool(self.program and self.program.completed),
            "failures": [f.__dict__ for f in self.failures],
        }


async def complete_assignment(
    ledger: AssignmentLedger,
    health: HealthScoreEngine,
    badges: BadgeProgressEngine,
    history: HistoryPort,
    user_id: UUID,
    assignment_date: date,
    today: date,
) -> CompletionOutcome:
    marked = await ledger.mark_completed(user_id, assignment_date)
    result = CompletionOutcome(outcome=marked.outcome)
    if not marked.transitioned:
        return result

    assignment = marked.outcome.assignment
    log_context = {"user_id": str(user_id), "assignment_date": assignment_date.isoformat()}

    try:
        reversal = await health.on_assignment_completed(assignment)
        if reversal.kind == OutcomeKind.UPDATED:
            result.decay_reversed = reversal.context.get("reversed", 0.0)
    except Exception as e:
        logger.exception(f"Health update failed after completion: {e}", extra={"extra_fields": log_context})
        result.failures.append(SubsystemFailure("health", str(e)))

    if assignment.program_enrollment_id is not None:
        try:
            result.program = await history.advance_program_progress(assignment.program_enrollment_id)
        except Exception as e:
            logger.exception(f"Program progress failed after completion: {e}", extra={"extra_fields": log_context})
            result.failures.append(SubsystemFailure("programs", str(e)))

    try:
        result.new_badges = await badges.evaluate_and_award(user_id, today)
    except Exception as e:
        logger.exception(f"Badge evaluation failed after completion: {e}", extra={"extra_fields": log_context})
        result.failures.append(SubsystemFailure("badges", str(e)))

    return result
