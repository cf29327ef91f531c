"""
Tests for the completion flow

Completion persists first; health, program and badge updates follow and a
failure in one of them never reverts the completion or skips the others.
"""

from datetime import date, timedelta

import pytest

from services.action_completion import complete_assignment
from services.assignment_ledger import AssignmentLedger
from services.badge_progress import BadgeProgressEngine
from services.health_score import HealthParameters, HealthScoreEngine
from services.personalization_types import OutcomeKind

TODAY = date(2026, 3, 10)


class ExplodingHealthEngine:
    async def on_assignment_completed(self, assignment):
        raise RuntimeError("health store unavailable")


class ExplodingBadgeEngine:
    async def evaluate_and_award(self, user_id, today):
        raise RuntimeError("badge store unavailable")


@pytest.fixture
def engines(catalog, history):
    return {
        "ledger": AssignmentLedger(catalog, history),
        "health": HealthScoreEngine(history, HealthParameters()),
        "badges": BadgeProgressEngine(catalog, history),
        "history": history,
    }


class TestCompleteAssignment:
    @pytest.mark.asyncio
    async def test_completion_reverses_decay_and_awards(self, engines, seed, history):
        user = seed.user()
        seed.action("a")
        seed.badge("first", "total_actions", 1)
        missed = TODAY - timedelta(days=2)
        seed.assignment(user.id, missed, "a")
        seed.decay(user.id, missed, 0.5)

        result = await complete_assignment(user_id=user.id, assignment_date=missed, today=TODAY, **engines)

        assert result.outcome.kind == OutcomeKind.UPDATED
        assert result.decay_reversed == 0.5
        assert [b.id for b in result.new_badges] == ["first"]
        assert result.failures == []
        assert await history.get_decay_entries(user.id) == []

    @pytest.mark.asyncio
    async def test_repeat_completion_is_a_noop(self, engines, seed):
        user = seed.user()
        seed.action("a")
        seed.assignment(user.id, TODAY, "a")

        await complete_assignment(user_id=user.id, assignment_date=TODAY, today=TODAY, **engines)
        again = await complete_assignment(user_id=user.id, assignment_date=TODAY, today=TODAY, **engines)

        assert again.outcome.kind == OutcomeKind.ALREADY_APPLIED
        assert again.new_badges == []
        assert again.to_dict()["kind"] == "already_applied"

    @pytest.mark.asyncio
    async def test_health_failure_does_not_block_badges(self, engines, seed, history):
        user = seed.user()
        seed.action("a")
        seed.badge("first", "total_actions", 1)
        seed.assignment(user.id, TODAY, "a")
        engines["health"] = ExplodingHealthEngine()

        result = await complete_assignment(user_id=user.id, assignment_date=TODAY, today=TODAY, **engines)

        assert result.outcome.kind == OutcomeKind.UPDATED
        assert [f.subsystem for f in result.failures] == ["health"]
        assert [b.id for b in result.new_badges] == ["first"]
        assert (await history.get_assignment(user.id, TODAY)).completed is True

    @pytest.mark.asyncio
    async def test_badge_failure_keeps_completion(self, engines, seed, history):
        user = seed.user()
        seed.action("a")
        seed.assignment(user.id, TODAY, "a")
        engines["badges"] = ExplodingBadgeEngine()

        result = await complete_assignment(user_id=user.id, assignment_date=TODAY, today=TODAY, **engines)

        assert result.to_dict()["failures"] == [{"subsystem": "badges", "error": "badge store unavailable"}]
        assert (await history.get_assignment(user.id, TODAY)).completed is True

    @pytest.mark.asyncio
    async def test_finishing_a_program_counts_for_event_badges(self, engines, seed):
        user = seed.user()
        seed.action("p1")
        seed.action("p2")
        seed.program("duo", ["p1", "p2"])
        seed.badge("finisher", "event_completion", 1)
        await engines["ledger"].pin_program(user.id, "duo", TODAY)

        first = await complete_assignment(user_id=user.id, assignment_date=TODAY, today=TODAY, **engines)
        second = await complete_assignment(
            user_id=user.id, assignment_date=TODAY + timedelta(days=1), today=TODAY + timedelta(days=1), **engines
        )

        assert first.program.completed_days == 1
        assert first.program.completed is False
        assert first.new_badges == []
        assert second.program.completed is True
        assert second.to_dict()["program_completed"] is True
        assert [b.id for b in second.new_badges] == ["finisher"]

    @pytest.mark.asyncio
    async def test_rejoining_a_program_does_not_count_twice(self, engines, seed):
        user = seed.user()
        seed.action("p1")
        seed.action("p2")
        seed.program("duo", ["p1", "p2"])
        seed.badge("joined2", "program_joined", 2)

        await engines["ledger"].pin_program(user.id, "duo", TODAY)
        await engines["ledger"].pin_program(user.id, "duo", TODAY)

        assert await engines["badges"].evaluate_and_award(user.id, TODAY) == []

    @pytest.mark.asyncio
    async def test_program_days_keep_their_actions_through_replace(self, engines, seed, history):
        user = seed.user()
        for action_id in ("p1", "p2", "other"):
            seed.action(action_id)
        seed.program("duo", ["p1", "p2"])
        seed.badge("finisher", "event_completion", 1)
        ledger = engines["ledger"]
        await ledger.pin_program(user.id, "duo", TODAY)

        for offset in (0, 1):
            day = TODAY + timedelta(days=offset)
            assert (await ledger.replace(user.id, day)).kind == OutcomeKind.ALREADY_APPLIED
            await complete_assignment(user_id=user.id, assignment_date=day, today=day, **engines)

        days = [await history.get_assignment(user.id, TODAY + timedelta(days=d)) for d in (0, 1)]
        assert [a.action_id for a in days] == ["p1", "p2"]
        assert (await engines["health"].get_score(user.id)).event_bonus == 3.0


class TestCatchUpCompletion:
    @pytest.mark.asyncio
    async def test_catch_up_restores_decay_plus_accrual_once(self, engines, seed):
        user = seed.user(baseline_health=50)
        seed.action("a")
        missed = TODAY - timedelta(days=1)
        seed.assignment(user.id, missed, "a")
        seed.decay(user.id, missed, 0.5)
        health = engines["health"]

        before = await health.get_score(user.id)
        first = await complete_assignment(user_id=user.id, assignment_date=missed, today=TODAY, **engines)
        after = await health.get_score(user.id)
        again = await complete_assignment(user_id=user.id, assignment_date=missed, today=TODAY, **engines)

        assert before.score == 49.5
        assert first.decay_reversed == 0.5
        # decay returned plus the daily point credited to the missed date
        assert after.score == before.score + 0.5 + 0.5
        assert after.decay == 0.0
        assert after.daily_points == 0.5
        assert again.outcome.kind == OutcomeKind.ALREADY_APPLIED
        assert again.decay_reversed == 0.0
        assert (await health.get_score(user.id)).score == after.score
