"""
Tests for the relationship health score

Pure accrual and decay rules, plus decay reversal and the missed-day
sweep against storage.
"""

import asyncio
from datetime import date, timedelta
from uuid import uuid4

import pytest

from services.health_score import (
    HealthParameters,
    HealthScoreEngine,
    calculate_health_score,
    decay_amount_for,
    week_start,
)
from services.personalization_types import (
    Action,
    CompletedAssignment,
    DecayEntry,
    OutcomeKind,
    ProgramEnrollment,
)

MONDAY = date(2026, 3, 9)
PARAMS = HealthParameters()

daily_action = Action(id="d", name="Daily", category="Communication")
planning_action = Action(id="p", name="Plan a weekend", category="Quality Time", planning_required=True)


def completed(day, action=daily_action):
    return CompletedAssignment(assignment_date=day, action=action)


class TestCalculateHealthScore:
    def test_baseline_defaults_to_fifty(self):
        assert calculate_health_score(None, [], []).score == 50.0

    def test_daily_points_capped_per_day(self):
        completions = [completed(MONDAY)] * 3 + [completed(MONDAY + timedelta(days=1))]
        breakdown = calculate_health_score(60, completions, [])
        assert breakdown.daily_points == 1.5
        assert breakdown.score == 61.5

    def test_planning_points_capped_per_week(self):
        completions = [
            completed(MONDAY, planning_action),
            completed(MONDAY + timedelta(days=4), planning_action),
            completed(MONDAY + timedelta(days=7), planning_action),
        ]
        breakdown = calculate_health_score(50, completions, [])
        assert breakdown.weekly_points == 4.0

    def test_event_bonus_only_for_fully_completed_programs(self):
        full = ProgramEnrollment(uuid4(), "week", MONDAY, 7, True, 7)
        partial = ProgramEnrollment(uuid4(), "week", MONDAY, 5, False, 7)
        breakdown = calculate_health_score(50, [], [], [full, partial])
        assert breakdown.event_bonus == 3.0

    def test_decay_subtracts_and_score_is_clamped(self):
        decay = [DecayEntry(MONDAY, 0.5), DecayEntry(MONDAY + timedelta(days=1), 0.5)]
        assert calculate_health_score(50, [], decay).score == 49.0
        assert calculate_health_score(0.5, [], decay).score == 0.0
        assert calculate_health_score(100, [completed(MONDAY)], []).score == 100.0


class TestDecayAmount:
    def test_week_start_is_monday(self):
        assert week_start(date(2026, 3, 15)) == MONDAY
        assert week_start(MONDAY) == MONDAY

    def test_weekly_decay_cap(self):
        existing = [DecayEntry(MONDAY + timedelta(days=i), 0.5) for i in range(6)]
        assert decay_amount_for(MONDAY + timedelta(days=6), existing, PARAMS) == 0.5
        existing.append(DecayEntry(MONDAY + timedelta(days=6), 0.5))
        # Next Monday starts a fresh week.
        assert decay_amount_for(MONDAY + timedelta(days=7), existing, PARAMS) == 0.5

    def test_cap_reached(self):
        existing = [DecayEntry(MONDAY, 3.5)]
        assert decay_amount_for(MONDAY + timedelta(days=2), existing, PARAMS) == 0.0


class TestDecayReversal:
    @pytest.fixture
    def engine(self, history):
        return HealthScoreEngine(history, PARAMS)

    @pytest.mark.asyncio
    async def test_reversal_restores_score_once(self, engine, seed):
        user = seed.user(baseline_health=50)
        seed.action("a")
        missed = MONDAY + timedelta(days=1)
        seed.assignment(user.id, missed, "a", completed=True)
        seed.decay(user.id, missed, 0.5)

        before = (await engine.get_score(user.id)).score
        first = await engine.reverse_decay(user.id, missed)
        after = (await engine.get_score(user.id)).score
        second = await engine.reverse_decay(user.id, missed)

        assert first.kind == OutcomeKind.UPDATED
        assert first.context["reversed"] == 0.5
        assert after == before + 0.5
        assert second.kind == OutcomeKind.ALREADY_APPLIED
        assert (await engine.get_score(user.id)).score == after

    @pytest.mark.asyncio
    async def test_concurrent_reversals_delete_once(self, engine, seed, history):
        user = seed.user()
        seed.decay(user.id, MONDAY, 0.5)

        outcomes = await asyncio.gather(*(engine.reverse_decay(user.id, MONDAY) for _ in range(3)))

        assert sum(1 for o in outcomes if o.kind == OutcomeKind.UPDATED) == 1
        assert await history.get_decay_entries(user.id) == []

    @pytest.mark.asyncio
    async def test_missing_entry_is_a_noop(self, engine, seed):
        user = seed.user()
        outcome = await engine.reverse_decay(user.id, MONDAY)
        assert outcome.kind == OutcomeKind.ALREADY_APPLIED
        assert outcome.ok

    @pytest.mark.asyncio
    async def test_unknown_user_has_no_score(self, engine, seed):
        assert await engine.get_score(uuid4()) is None


class TestMissedDaySweep:
    @pytest.mark.asyncio
    async def test_sweep_skips_completed_and_dnc(self, history, seed):
        engine = HealthScoreEngine(history, PARAMS)
        outstanding, done, skipped = seed.user(), seed.user(), seed.user()
        seed.action("a")
        seed.assignment(outstanding.id, MONDAY, "a")
        seed.assignment(done.id, MONDAY, "a", completed=True)
        seed.assignment(skipped.id, MONDAY, "a", dnc=True)

        summary = await engine.sweep_missed_day(MONDAY)
        again = await engine.sweep_missed_day(MONDAY)

        assert summary["inserted"] == 1
        assert again["inserted"] == 0
        assert await history.get_decay_entries(outstanding.id) == [DecayEntry(MONDAY, 0.5)]
        assert await history.get_decay_entries(done.id) == []
        assert await history.get_decay_entries(skipped.id) == []
