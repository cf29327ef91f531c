"""
Tests for catalog maintenance: seasonal windows and household tags
"""

from datetime import date

import pytest

from services.seasonal_windows import calculate_easter, is_available_on, seasonal_window_for_name
from services.household_relevance import infer_household_tags, is_household_relevant
from services.personalization_types import Action, UserProfile
from tasks.catalog_tasks import backfill_household_tags, refresh_seasonal_windows


class TestSeasonalWindows:
    def test_easter_dates(self):
        assert calculate_easter(2024) == date(2024, 3, 31)
        assert calculate_easter(2026) == date(2026, 4, 5)

    def test_windows_by_name(self):
        assert seasonal_window_for_name("Decorate the Christmas tree", 2026) == (
            date(2026, 11, 25), date(2026, 12, 14)
        )
        assert seasonal_window_for_name("Easter egg hunt for two", 2026) == (
            date(2026, 3, 29), date(2026, 4, 5)
        )
        assert seasonal_window_for_name("Set relationship goals", 2026) == (
            date(2026, 12, 26), date(2027, 1, 5)
        )
        assert seasonal_window_for_name("Cook together", 2026) is None

    def test_explicit_window_is_inclusive(self):
        action = Action(id="v", name="Valentine card", category="Romance",
                        seasonal_start=date(2026, 2, 1), seasonal_end=date(2026, 2, 14))
        assert is_available_on(action, date(2026, 2, 1))
        assert is_available_on(action, date(2026, 2, 14))
        assert not is_available_on(action, date(2026, 2, 15))


class TestHouseholdRelevance:
    def test_tags_from_text(self):
        assert infer_household_tags("Read a bedtime story together") == {"kids", "kids_daily_presence"}
        assert infer_household_tags("Plan a family outing") == {"kids"}
        assert infer_household_tags("Write a love note") == frozenset()

    def test_explicit_tags_win(self):
        tagged = Action(id="t", name="Bedtime routine", category="Partnership", household_tags=frozenset())
        no_kids = UserProfile(id=None, has_kids=False)
        assert is_household_relevant(tagged, no_kids)

    def test_kids_elsewhere_drop_only_daily_presence(self):
        parent_apart = UserProfile(id=None, has_kids=True, kids_live_with_you=False)
        outing = Action(id="o", name="Plan a family outing", category="Quality Time")
        bedtime = Action(id="b", name="Share bedtime duty", category="Partnership")
        assert is_household_relevant(outing, parent_apart)
        assert not is_household_relevant(bedtime, parent_apart)


class TestMaintenanceTasks:
    @pytest.mark.asyncio
    async def test_refresh_rewrites_only_changed_windows(self, catalog, seed):
        seed.action("xmas", name="Decorate the Christmas tree")
        seed.action("plain", name="Cook together")

        first = await refresh_seasonal_windows(catalog, 2026)
        second = await refresh_seasonal_windows(catalog, 2026)

        assert first == {"year": 2026, "updated": ["xmas"]}
        assert second["updated"] == []
        xmas = await catalog.get_action("xmas")
        assert (xmas.seasonal_start, xmas.seasonal_end) == (date(2026, 11, 25), date(2026, 12, 14))

    @pytest.mark.asyncio
    async def test_backfill_tags_untagged_only(self, catalog, seed):
        seed.action("story", name="Read a bedtime story")
        seed.action("note", name="Write a love note")
        seed.action("manual", name="Family game night", household_tags=[])

        summary = await backfill_household_tags(catalog)

        assert summary == {"candidates": 2, "tagged": 2}
        assert (await catalog.get_action("story")).household_tags == {"kids", "kids_daily_presence"}
        assert (await catalog.get_action("note")).household_tags == frozenset()
        assert (await catalog.get_action("manual")).household_tags == frozenset()
        assert await catalog.list_untagged_actions() == []
