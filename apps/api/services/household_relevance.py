"""
Household relevance of catalog actions.

Actions carry explicit household tags. Keyword inference is kept for rows
that have not been tagged yet and for the backfill task that tags them.
"""

from typing import FrozenSet, Optional

from services.personalization_types import Action, UserProfile

TAG_KIDS = "kids"
TAG_KIDS_DAILY_PRESENCE = "kids_daily_presence"

KID_KEYWORDS = (
    "kid", "child", "children", "family", "parent",
    "bedtime", "school", "homework", "playground",
)
# Subset implying the kids live in the same home day to day.
DAILY_PRESENCE_KEYWORDS = ("bedtime", "school", "homework", "playground")


def infer_household_tags(text: str) -> FrozenSet[str]:
    """Substring match against the keyword lists (lower-cased text)."""
    lowered = (text or "").lower()
    tags = set()
    if any(keyword in lowered for keyword in KID_KEYWORDS):
        tags.add(TAG_KIDS)
    if any(keyword in lowered for keyword in DAILY_PRESENCE_KEYWORDS):
        tags.add(TAG_KIDS_DAILY_PRESENCE)
    return frozenset(tags)


def household_tags_for(action: Action) -> FrozenSet[str]:
    if action.household_tags is not None:
        return action.household_tags
    return infer_household_tags(action.text)


def is_household_relevant(action: Action, profile: Optional[UserProfile]) -> bool:
    """
    No kids: drop everything kid/family related.
    Kids who live elsewhere: drop only actions that need them at home daily.
    """
    has_kids = bool(profile and profile.has_kids is True)
    kids_at_home = bool(profile and profile.kids_live_with_you is True)
    tags = household_tags_for(action)

    if not has_kids:
        return not (tags & {TAG_KIDS, TAG_KIDS_DAILY_PRESENCE})
    if not kids_at_home:
        return TAG_KIDS_DAILY_PRESENCE not in tags
    return True
