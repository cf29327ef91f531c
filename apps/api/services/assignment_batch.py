"""
Batch assignment run.

Get-or-create every user's action for one date with bounded parallelism.
A failing user is recorded as an error outcome and the run continues.

The run produces one {action, date} payload per user with an assignment,
which the notification collaborator renders and delivers.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID
import logging

from core.logging import bind_log_context
from services.assignment_ledger import AssignmentLedger
from services.personalization_types import Assignment, EngineOutcome, OutcomeKind, SelectionContext

logger = logging.getLogger(__name__)


def daily_action_payload(assignment: Assignment) -> Optional[Dict[str, Any]]:
    """The {action, date} shape consumed by email templating."""
    if assignment is None or assignment.action is None:
        return None
    action = assignment.action
    return {
        "user_id": str(assignment.user_id),
        "date": assignment.assignment_date.isoformat(),
        "action": {
            "id": action.id,
            "name": action.name,
            "description": action.description,
            "benefit": action.benefit,
            "category": action.category,
        },
    }


@dataclass
class BatchReport:
    target_date: date
    outcomes: Dict[str, EngineOutcome] = field(default_factory=dict)
    payloads: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def counts(self) -> Dict[str, int]:
        return dict(Counter(outcome.kind.value for outcome in self.outcomes.values()))

    def summary(self) -> Dict[str, Any]:
        return {
            "target_date": self.target_date.isoformat(),
            "users": len(self.outcomes),
            "counts": self.counts,
            "errors": {
                user_id: outcome.context.get("error")
                for user_id, outcome in self.outcomes.items()
                if outcome.kind == OutcomeKind.ERROR
            },
        }


async def run_assignment_batch(
    ledger: AssignmentLedger,
    user_ids: Iterable[UUID],
    target_date: date,
    concurrency: int = 8,
) -> BatchReport:
    report = BatchReport(target_date=target_date)
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def assign_one(user_id: UUID) -> None:
        async with semaphore:
            with bind_log_context(user_id=str(user_id)):
                try:
                    outcome = await ledger.get_or_create(user_id, target_date, SelectionContext.BATCH)
                except Exception as e:
                    logger.exception(f"Assignment failed for user: {e}")
                    outcome = EngineOutcome(OutcomeKind.ERROR, {"error": str(e)})
        report.outcomes[str(user_id)] = outcome
        if outcome.ok:
            payload = daily_action_payload(outcome.assignment)
            if payload is not None:
                report.payloads.append(payload)

    with bind_log_context(target_date=target_date.isoformat()):
        await asyncio.gather(*(assign_one(user_id) for user_id in user_ids))

    logger.info(
        "Assignment batch complete",
        extra={"extra_fields": report.summary()},
    )
    return report
