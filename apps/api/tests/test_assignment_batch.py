"""
Tests for the batch assignment run
"""

from datetime import date
from uuid import uuid4

import pytest

from services.assignment_batch import daily_action_payload, run_assignment_batch
from services.assignment_ledger import AssignmentLedger
from services.personalization_types import Action, Assignment, EngineOutcome, OutcomeKind
from tasks.assignment_tasks import assign_daily_actions

TARGET = date(2026, 3, 11)


class FlakyLedger:
    """Assigns the same action to everyone except one user, whose lookup raises."""

    def __init__(self, broken_user):
        self.broken_user = broken_user
        self.calls = []

    async def get_or_create(self, user_id, target_date, context):
        self.calls.append(user_id)
        if user_id == self.broken_user:
            raise RuntimeError("connection reset")
        action = Action(id="a", name="Write a note", category="Gratitude", benefit="Feel seen")
        assignment = Assignment(user_id=user_id, assignment_date=target_date, action_id="a", action=action)
        return EngineOutcome(OutcomeKind.CREATED, {}, assignment)


class TestRunAssignmentBatch:
    @pytest.mark.asyncio
    async def test_failing_user_does_not_stop_the_run(self):
        users = [uuid4() for _ in range(5)]
        ledger = FlakyLedger(broken_user=users[2])

        report = await run_assignment_batch(ledger, users, TARGET, concurrency=2)

        assert len(ledger.calls) == 5
        assert report.counts == {"created": 4, "error": 1}
        assert report.summary()["errors"] == {str(users[2]): "connection reset"}
        assert len(report.payloads) == 4

    @pytest.mark.asyncio
    async def test_batch_against_storage(self, catalog, history, seed):
        users = [seed.user(), seed.user()]
        seed.action("a")
        seed.action("b", category="Romance")
        ledger = AssignmentLedger(catalog, history)

        first = await ledger_batch(ledger, users)
        second = await ledger_batch(ledger, users)

        assert first.counts == {"created": 2}
        assert second.counts == {"existing": 2}
        assert {p["user_id"] for p in second.payloads} == {str(u.id) for u in users}


async def ledger_batch(ledger, users):
    return await run_assignment_batch(ledger, [u.id for u in users], TARGET)


class TestDailyActionPayload:
    def test_payload_shape(self):
        user_id = uuid4()
        action = Action(id="a", name="Write a note", category="Gratitude", description="Short", benefit="Warmth")
        payload = daily_action_payload(Assignment(user_id, TARGET, "a", action=action))

        assert payload == {
            "user_id": str(user_id),
            "date": "2026-03-11",
            "action": {
                "id": "a",
                "name": "Write a note",
                "description": "Short",
                "benefit": "Warmth",
                "category": "Gratitude",
            },
        }

    def test_missing_action(self):
        assert daily_action_payload(None) is None
        assert daily_action_payload(Assignment(uuid4(), TARGET, "a")) is None


class TestScheduledAssignment:
    @pytest.mark.asyncio
    async def test_nightly_task_assigns_every_user(self, catalog, history, seed):
        users = [seed.user(), seed.user(), seed.user()]
        seed.action("a")
        seed.action("b", category="Gratitude")

        result = await assign_daily_actions(catalog, history, TARGET, concurrency=2, seed=7)

        assert result["users"] == 3
        assert result["counts"] == {"created": 3}
        assert {p["user_id"] for p in result["payloads"]} == {str(u.id) for u in users}
        assert all(p["date"] == TARGET.isoformat() for p in result["payloads"])
