"""
Category weighting from survey signals and explicit feedback.

Final weight per category = 1.0 base + survey boost (0 or 2.0) + explicit
"show me more like this" weight.

Survey boost priorities:
  1. Goal-driven: every category rated 3 or lower that the user wants to
     improve gets the boost (several may qualify).
  2. Fallback: only when nothing qualifies under (1), the single category
     with the lowest legacy score (missing scores count as 50) gets it.
"""

from typing import Dict, Iterable, Mapping, Optional

from services.personalization_types import CategoryProfile, SURVEY_CATEGORIES

BASE_WEIGHT = 1.0
SURVEY_BOOST = 2.0
GOAL_MAX_SELF_RATING = 3
DEFAULT_LEGACY_SCORE = 50.0


def goal_driven_categories(profile: CategoryProfile) -> list:
    goals = []
    for category in SURVEY_CATEGORIES:
        answers = profile.get(category)
        if answers is None:
            continue
        if (
            answers.self_rating is not None
            and answers.wants_improvement is True
            and answers.self_rating <= GOAL_MAX_SELF_RATING
        ):
            goals.append(category)
    return goals


def lowest_scoring_category(profile: CategoryProfile) -> Optional[str]:
    """Lowest legacy score; ties go to the earlier canonical category."""
    if not profile:
        return None
    scored = []
    for index, category in enumerate(SURVEY_CATEGORIES):
        answers = profile.get(category)
        score = answers.legacy_score if answers and answers.legacy_score is not None else DEFAULT_LEGACY_SCORE
        scored.append((score, index, category))
    scored.sort()
    return scored[0][2]


def compute_survey_weights(profile: Optional[CategoryProfile]) -> Dict[str, float]:
    """Survey boost per category. Users without any survey answers get none."""
    if not profile:
        return {}
    goals = goal_driven_categories(profile)
    if goals:
        return {category: SURVEY_BOOST for category in goals}
    fallback = lowest_scoring_category(profile)
    return {fallback: SURVEY_BOOST} if fallback else {}


def compute_category_weights(
    categories: Iterable[str],
    profile: Optional[CategoryProfile],
    preference_weights: Optional[Mapping[str, float]] = None,
) -> Dict[str, float]:
    """Weight for every category present in the candidate set."""
    survey = compute_survey_weights(profile)
    explicit = preference_weights or {}
    weights: Dict[str, float] = {}
    for category in set(categories):
        weights[category] = (
            BASE_WEIGHT
            + survey.get(category, 0.0)
            + float(explicit.get(category, 0.0) or 0.0)
        )
    return weights
