"""
Action Selection Pipeline

The single place where a user's action for a date is chosen. Every caller
(daily batch, dashboard, manual replacement, multi-day assignment) goes
through choose_action so the paths cannot drift apart.

    load inputs (concurrent, read-only)
         ↓
    EligibilityFilter → PreferenceWeighting → WeightedSelector
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID

from services.eligibility_filter import EligibilityResult, filter_candidates
from services.personalization_types import (
    Action,
    CategoryProfile,
    SelectionContext,
    UserProfile,
)
from services.ports import CatalogPort, HistoryPort
from services.preference_weighting import compute_category_weights
from services.weighted_selector import RandomSource, select_action


@dataclass
class SelectionInputs:
    catalog: List[Action]
    profile: Optional[UserProfile]
    recent_action_ids: Set[str]
    hidden_action_ids: Set[str]
    category_profile: CategoryProfile
    preference_weights: Dict[str, float]


@dataclass
class SelectionResult:
    action: Optional[Action]
    category: Optional[str] = None
    weights: Dict[str, float] = field(default_factory=dict)
    eligibility: Optional[EligibilityResult] = None
    context: SelectionContext = SelectionContext.ON_DEMAND

    @property
    def fallback_used(self) -> bool:
        return bool(self.eligibility and self.eligibility.fallback_used)

    def audit(self) -> Dict:
        return {
            "context": self.context.value,
            "selected_action_id": self.action.id if self.action else None,
            "selected_category": self.category,
            "weights": self.weights,
            "fallback_used": self.fallback_used,
            "exhausted_at": self.eligibility.exhausted_at if self.eligibility else None,
            "filters_applied": self.eligibility.filters_applied if self.eligibility else {},
            "candidates": len(self.eligibility.candidates) if self.eligibility else 0,
        }


async def load_selection_inputs(
    catalog: CatalogPort,
    history: HistoryPort,
    user_id: UUID,
    target_date: date,
    recency_window_days: int,
) -> SelectionInputs:
    since = target_date - timedelta(days=recency_window_days)
    actions, profile, recent, hidden, survey, preferences = await asyncio.gather(
        catalog.list_actions(),
        history.get_user_profile(user_id),
        history.get_recent_assignments(user_id, since),
        history.get_hidden_action_ids(user_id),
        history.get_category_profile(user_id),
        history.get_preference_weights(user_id),
    )
    return SelectionInputs(
        catalog=list(actions),
        profile=profile,
        recent_action_ids={a.action_id for a in recent},
        hidden_action_ids=set(hidden),
        category_profile=survey or {},
        preference_weights=preferences or {},
    )


def choose_action(
    inputs: SelectionInputs,
    target_date: date,
    rng: RandomSource,
    *,
    excluded_action_ids: Iterable[str] = (),
    context: SelectionContext = SelectionContext.ON_DEMAND,
) -> SelectionResult:
    """
    Pure selection once inputs are fetched.

    `excluded_action_ids` are treated like hidden actions for this call only
    (the action being replaced must not come back, even on fallback).
    """
    hidden = set(inputs.hidden_action_ids) | set(excluded_action_ids or ())
    eligibility = filter_candidates(
        inputs.catalog,
        target_date,
        inputs.profile,
        inputs.recent_action_ids,
        hidden,
    )
    weights = compute_category_weights(
        (a.category for a in eligibility.candidates),
        inputs.category_profile,
        inputs.preference_weights,
    )
    action, category = select_action(eligibility.candidates, weights, rng)
    return SelectionResult(
        action=action,
        category=category,
        weights=weights,
        eligibility=eligibility,
        context=context,
    )
