"""
Weighted category selection followed by a uniform pick within the category.

Category iteration order is explicit (sorted by name) so the same draw
always selects the same category. The random source is injected; pass a
seeded random.Random for reproducible selection.
"""

from __future__ import annotations

import random
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from services.personalization_types import Action


class RandomSource(Protocol):
    def random(self) -> float: ...

    def randrange(self, stop: int) -> int: ...


def default_random_source(seed: Optional[int] = None) -> random.Random:
    return random.Random(seed)


def category_order(categories) -> List[str]:
    return sorted(set(categories))


def pick_weighted_category(
    weights: Mapping[str, float],
    order: Sequence[str],
    draw: float,
) -> Optional[str]:
    """
    Pure selection over (weights, order, draw).

    `draw` is uniform in [0, 1). It is scaled to [0, total); each category's
    weight is subtracted in `order` until the remainder drops to zero or
    below. If floating-point error leaves nothing selected, the last
    category in `order` wins.
    """
    ordered = [c for c in order if c in weights]
    if not ordered:
        return None
    total = sum(max(0.0, weights[c]) for c in ordered)
    if total <= 0:
        return ordered[-1]

    remaining = draw * total
    for category in ordered:
        remaining -= max(0.0, weights[category])
        if remaining <= 0:
            return category
    return ordered[-1]


def group_by_category(actions: Sequence[Action]) -> Dict[str, List[Action]]:
    grouped: Dict[str, List[Action]] = {}
    for action in actions:
        grouped.setdefault(action.category, []).append(action)
    return grouped


def select_action(
    candidates: Sequence[Action],
    weights: Mapping[str, float],
    rng: RandomSource,
) -> Tuple[Optional[Action], Optional[str]]:
    """Returns (action, category); (None, None) for an empty candidate set."""
    if not candidates:
        return None, None

    grouped = group_by_category(candidates)
    order = category_order(grouped.keys())
    # Categories without an explicit weight still compete at the base weight.
    effective = {c: weights.get(c, 1.0) for c in order}

    category = pick_weighted_category(effective, order, rng.random())
    pool = grouped[category]
    return pool[rng.randrange(len(pool))], category
