"""
API tests for the daily action and progress routers

The app's session factory and clock are swapped through
dependency_overrides; everything below them is the real engine.
"""
from datetime import date, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from core.database import get_session_factory
from core.dependencies import get_today
from main import app

TODAY = date(2026, 3, 10)
YESTERDAY = TODAY - timedelta(days=1)


@pytest.fixture
def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def url(user, path):
    return f"/v1/users/{user.id}{path}"


class TestTodayAction:
    def test_first_view_creates_assignment(self, client, seed):
        user = seed.user()
        seed.action("a", benefit="Feel heard")

        first = client.get(url(user, "/actions/today"))
        second = client.get(url(user, "/actions/today"))

        assert first.status_code == 200
        body = first.json()
        assert body["kind"] == "created"
        assert body["assignment"]["action"]["id"] == "a"
        assert body["assignment"]["date"] == TODAY.isoformat()
        assert second.json()["kind"] == "existing"

    def test_unknown_user_is_404(self, client, seed):
        seed.action("a")
        response = client.get(f"/v1/users/{uuid4()}/actions/today")
        assert response.status_code == 404

    def test_no_action_available_is_reported_not_raised(self, client, seed):
        user = seed.user()
        response = client.get(url(user, "/actions/today"))
        assert response.status_code == 200
        assert response.json()["kind"] == "no_action_available"
        assert response.json()["assignment"] is None


class TestCompletion:
    def test_complete_today(self, client, seed):
        user = seed.user()
        seed.action("a")
        seed.assignment(user.id, TODAY, "a")

        response = client.post(url(user, f"/actions/{TODAY.isoformat()}/complete"))

        assert response.status_code == 200
        assert response.json()["kind"] == "updated"
        assert response.json()["assignment"]["completed"] is True
        assert response.json()["failures"] == []

    def test_free_tier_cannot_catch_up(self, client, seed):
        user = seed.user(subscription_tier="free")
        seed.action("a")
        seed.assignment(user.id, YESTERDAY, "a")

        response = client.post(url(user, f"/actions/{YESTERDAY.isoformat()}/complete"))

        assert response.status_code == 403
        assert response.json()["error_code"] == "PLAN_RESTRICTED"
        assert response.json()["context"] == {"subscription_tier": "free"}

    def test_paid_tier_catch_up_reverses_decay(self, client, seed):
        user = seed.user(subscription_tier="premium")
        seed.action("a")
        seed.assignment(user.id, YESTERDAY, "a")
        seed.decay(user.id, YESTERDAY, 0.5)

        response = client.post(url(user, f"/actions/{YESTERDAY.isoformat()}/complete"))

        assert response.status_code == 200
        assert response.json()["decay_reversed"] == 0.5
        assert client.get(url(user, "/health-score")).json()["score"] == 50.5

    def test_complete_without_assignment_is_404(self, client, seed):
        user = seed.user()
        response = client.post(url(user, f"/actions/{TODAY.isoformat()}/complete"))
        assert response.status_code == 404

    def test_completed_action_cannot_be_replaced(self, client, seed):
        user = seed.user()
        seed.action("a")
        seed.action("b")
        seed.assignment(user.id, TODAY, "a", completed=True)

        response = client.post(url(user, "/actions/replace"), json={})

        assert response.status_code == 409
        assert response.json()["error_code"] == "ASSIGNMENT_CONFLICT"

    def test_program_day_cannot_be_replaced(self, client, seed):
        user = seed.user()
        seed.action("p1")
        seed.action("other")
        seed.program("solo", ["p1"])

        pinned = client.post(url(user, "/programs/pin"), json={"program_id": "solo"})
        again = client.post(url(user, "/programs/pin"), json={"program_id": "solo"})
        response = client.post(url(user, "/actions/replace"), json={})

        assert pinned.json()["kind"] == "created"
        assert again.json()["kind"] == "existing"
        assert response.status_code == 409
        assert response.json()["detail"] == "Program days cannot be replaced"


class TestPreferences:
    def test_hide_unknown_action_is_404(self, client, seed):
        user = seed.user()
        response = client.post(url(user, "/actions/hide"), json={"action_id": "missing"})
        assert response.status_code == 404

    def test_hidden_action_is_not_served(self, client, seed):
        user = seed.user()
        seed.action("a")

        hidden = client.post(url(user, "/actions/hide"), json={"action_id": "a"})
        today = client.get(url(user, "/actions/today"))

        assert hidden.status_code == 204
        assert today.json()["kind"] == "no_action_available"

    def test_show_more_accumulates_weight(self, client, seed):
        user = seed.user()
        seed.action("a", category="Romance")

        first = client.post(url(user, "/actions/show-more"), json={"action_id": "a"})
        second = client.post(url(user, "/actions/show-more"), json={"action_id": "a"})

        assert first.json() == {"category": "Romance", "preference_weight": 0.5}
        assert second.json()["preference_weight"] == 1.0

    def test_assign_days_validates_range(self, client, seed):
        user = seed.user()
        response = client.post(url(user, "/actions/assign-days"), json={"days": 0})
        assert response.status_code == 422

    def test_assign_days_starts_tomorrow(self, client, seed):
        user = seed.user()
        for i in range(5):
            seed.action(f"a{i}")

        response = client.post(url(user, "/actions/assign-days"), json={"days": 3})

        dates = [o["assignment"]["date"] for o in response.json()]
        assert dates == [(TODAY + timedelta(days=i)).isoformat() for i in (1, 2, 3)]


class TestProgress:
    def test_health_score_for_unknown_user(self, client):
        assert client.get(f"/v1/users/{uuid4()}/health-score").status_code == 404

    def test_health_score_breakdown(self, client, seed):
        user = seed.user(baseline_health=70)
        body = client.get(url(user, "/health-score")).json()
        assert body["score"] == 70.0
        assert body["baseline"] == 70.0

    def test_badges_list_progress(self, client, seed):
        user = seed.user()
        seed.action("a")
        seed.assignment(user.id, TODAY, "a", completed=True)
        seed.badge("five", "total_actions", 5, description="Five actions")

        badges = client.get(url(user, "/badges")).json()

        assert badges == [
            {
                "badge_id": "five",
                "name": "Badge five",
                "description": "Five actions",
                "requirement_type": "total_actions",
                "earned": False,
                "earned_at": None,
                "progress": {"current": 1, "target": 5, "percentage": 20},
            }
        ]

    def test_recalculate_awards_once(self, client, seed):
        user = seed.user()
        seed.action("a")
        seed.assignment(user.id, TODAY, "a", completed=True)
        seed.badge("first", "total_actions", 1)

        assert client.post(url(user, "/badges/recalculate")).json() == ["first"]
        assert client.post(url(user, "/badges/recalculate")).json() == []


class TestServiceEndpoints:
    def test_ping(self, client):
        assert client.get("/ping").json() == {"pong": True}

    def test_request_id_is_echoed(self, client):
        response = client.get("/ping", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    def test_health_reports_database(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
