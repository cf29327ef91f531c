"""
Seasonal availability windows for catalog actions.

Runtime eligibility only reads the explicit seasonal_start/seasonal_end
stored on each action. The name-based windows below are a catalog
maintenance heuristic: the yearly refresh task uses them to rewrite the
explicit dates for holidays that move (Easter) or roll into a new year.
"""

from datetime import date, timedelta
from typing import Optional, Tuple

from services.personalization_types import Action


def calculate_easter(year: int) -> date:
    """Easter Sunday for a Gregorian year (anonymous Gregorian computus)."""
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


def seasonal_window_for_name(name: str, year: int) -> Optional[Tuple[date, date]]:
    """
    Holiday window implied by an action's name, or None if not seasonal.

    Windows are inclusive on both ends.
    """
    lowered = (name or "").lower()

    if "christmas tree" in lowered:
        return date(year, 11, 25), date(year, 12, 14)

    if "easter egg" in lowered:
        easter = calculate_easter(year)
        return easter - timedelta(days=7), easter

    if "valentine" in lowered:
        return date(year, 2, 1), date(year, 2, 14)

    if "gratitude" in lowered and "thanksgiving" in lowered:
        return date(year, 11, 1), date(year, 11, 25)

    # Rolls into January of the following year.
    if "new year" in lowered or "relationship goals" in lowered:
        return date(year, 12, 26), date(year + 1, 1, 5)

    return None


def is_available_on(action: Action, target_date: date) -> bool:
    """Explicit window check; open-ended bounds are unrestricted."""
    if action.seasonal_start and target_date < action.seasonal_start:
        return False
    if action.seasonal_end and target_date > action.seasonal_end:
        return False
    return True
