"""
Eligibility filter: narrows the catalog to the candidates a user may be
served on a given date.

Stages run in a fixed order, each on the survivors of the previous one:
  1. de-duplicate by action id
  2. recency (seen in the trailing window)
  3. hidden by the user
  4. country restriction and seasonal window
  5. household relevance

If any stage leaves nothing, the result falls back to the whole catalog
minus hidden actions, ignoring recency, country, seasonal and household
constraints. Availability wins over precision here; the fallback is
reported on the result and logged so it never happens silently.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Set
import logging

from services.household_relevance import is_household_relevant
from services.personalization_types import Action, UserProfile
from services.seasonal_windows import is_available_on

logger = logging.getLogger(__name__)

STAGES = ("dedupe", "recency", "hidden", "locale", "household")


@dataclass
class EligibilityResult:
    candidates: List[Action]
    fallback_used: bool = False
    exhausted_at: Optional[str] = None
    # stage -> number of actions removed by it
    filters_applied: Dict[str, int] = field(default_factory=dict)


def dedupe_actions(actions: Iterable[Action]) -> List[Action]:
    seen: Set[str] = set()
    unique: List[Action] = []
    for action in actions:
        if action.id in seen:
            continue
        seen.add(action.id)
        unique.append(action)
    return unique


def matches_locale(action: Action, profile: Optional[UserProfile], target_date: date) -> bool:
    user_country = profile.country if profile else None
    if action.country:
        # Country-restricted actions need a matching, known user country.
        if not user_country or action.country.upper() != user_country.upper():
            return False
    return is_available_on(action, target_date)


def filter_candidates(
    catalog: Iterable[Action],
    target_date: date,
    profile: Optional[UserProfile],
    recent_action_ids: Iterable[str],
    hidden_action_ids: Iterable[str],
) -> EligibilityResult:
    recent = set(recent_action_ids or ())
    hidden = set(hidden_action_ids or ())
    catalog_list = list(catalog or ())

    stages = {
        "dedupe": None,
        "recency": lambda a: a.id not in recent,
        "hidden": lambda a: a.id not in hidden,
        "locale": lambda a: matches_locale(a, profile, target_date),
        "household": lambda a: is_household_relevant(a, profile),
    }

    filters_applied: Dict[str, int] = {}
    survivors = dedupe_actions(catalog_list)
    filters_applied["dedupe"] = len(catalog_list) - len(survivors)

    exhausted_at = "dedupe" if not survivors else None
    if exhausted_at is None:
        for stage in STAGES[1:]:
            keep = stages[stage]
            before = len(survivors)
            survivors = [a for a in survivors if keep(a)]
            filters_applied[stage] = before - len(survivors)
            if not survivors:
                exhausted_at = stage
                break

    if exhausted_at is None:
        return EligibilityResult(candidates=survivors, filters_applied=filters_applied)

    fallback = [a for a in dedupe_actions(catalog_list) if a.id not in hidden]
    logger.warning(
        "Eligibility exhausted; falling back to full catalog minus hidden",
        extra={
            "extra_fields": {
                "exhausted_at": exhausted_at,
                "target_date": target_date.isoformat(),
                "user_id": str(profile.id) if profile else None,
                "fallback_candidates": len(fallback),
                "filters_applied": filters_applied,
            }
        },
    )
    return EligibilityResult(
        candidates=fallback,
        fallback_used=True,
        exhausted_at=exhausted_at,
        filters_applied=filters_applied,
    )
