"""
multipliers.py — Complexity and project-size multiplier tables

Three coefficient tables:
  - dwelling complexity 1..5        -> fee multiplier (fee engine)
  - task complexity low/normal/high -> fee multiplier (fee engine)
  - project-size scaling tiers      -> hours multiplier (allocation engine only)

Lookups never fail: unknown keys give the neutral multiplier 1.0.
"""

import logging
from typing import Optional

from studio_fees.models import MultiplierSettings, ScalingTier, TaskComplexity, as_number

logger = logging.getLogger(__name__)

NEUTRAL_MULTIPLIER = 1.0

DEFAULT_DWELLING_MULTIPLIERS: dict[int, float] = {
    1: 0.75,    # Simple
    2: 0.9,     # Below average
    3: 1.0,     # Standard
    4: 1.2,     # Above average
    5: 1.4,     # Complex
}

DEFAULT_TASK_MULTIPLIERS: dict[str, float] = {
    TaskComplexity.LOW.value:    0.8,
    TaskComplexity.NORMAL.value: 1.0,
    TaskComplexity.HIGH.value:   1.2,
}

DEFAULT_SCALING_TIERS: list[ScalingTier] = [
    ScalingTier(limit=100,  multiplier=1.0),
    ScalingTier(limit=200,  multiplier=1.2),
    ScalingTier(limit=300,  multiplier=1.5),
    ScalingTier(limit=500,  multiplier=2.0),
    ScalingTier(limit=800,  multiplier=2.8),
    ScalingTier(limit=1000, multiplier=3.5),
    ScalingTier(limit=5000, multiplier=8.0),
]


# ---------------------------------------------------------------------------
# Complexity Lookups
# ---------------------------------------------------------------------------

def _level_key(level) -> Optional[int]:
    number = as_number(level, default=float("nan"))
    if number != number or number != int(number):
        return None
    return int(number)


def dwelling_multiplier(level, override_map: Optional[dict[int, float]] = None) -> float:
    """Multiplier for dwelling complexity ``level`` (1..5); 1.0 when unknown."""
    table = override_map or DEFAULT_DWELLING_MULTIPLIERS
    key = _level_key(level)
    if key is None or key not in table:
        return NEUTRAL_MULTIPLIER
    return as_number(table[key], default=NEUTRAL_MULTIPLIER)


def task_multiplier(complexity, override_map: Optional[dict[str, float]] = None) -> float:
    """Multiplier for a task complexity (low/normal/high); 1.0 when unknown."""
    table = override_map or DEFAULT_TASK_MULTIPLIERS
    key = complexity.value if isinstance(complexity, TaskComplexity) else str(complexity)
    if key not in table:
        return NEUTRAL_MULTIPLIER
    return as_number(table[key], default=NEUTRAL_MULTIPLIER)


def dwelling_table(settings: Optional[MultiplierSettings]) -> Optional[dict[int, float]]:
    return settings.dwelling_complexity if settings else None


def task_table(settings: Optional[MultiplierSettings]) -> Optional[dict[str, float]]:
    return settings.task_complexity if settings else None


# ---------------------------------------------------------------------------
# Project-Size Scaling
# ---------------------------------------------------------------------------

def sorted_tiers(tiers: Optional[list[ScalingTier]] = None) -> list[ScalingTier]:
    """Tiers ordered by limit ascending; an empty or missing list means the defaults."""
    source = tiers if tiers else DEFAULT_SCALING_TIERS
    return sorted(source, key=lambda t: as_number(t.limit))


def scaling_multiplier(area, tiers: Optional[list[ScalingTier]] = None) -> float:
    """
    Hours multiplier for a project of ``area`` sqm.

    Clamped to the first/last tier outside the tier range, linear
    interpolation between the two bounding tiers inside it.

    Args:
        area: Total project area in square meters
        tiers: Scaling tiers (defaults to DEFAULT_SCALING_TIERS when empty)

    Returns:
        Interpolated multiplier
    """
    ordered = sorted_tiers(tiers)
    value = as_number(area)

    first, last = ordered[0], ordered[-1]
    if value <= as_number(first.limit):
        return as_number(first.multiplier, NEUTRAL_MULTIPLIER)
    if value >= as_number(last.limit):
        return as_number(last.multiplier, NEUTRAL_MULTIPLIER)

    for lower, upper in zip(ordered, ordered[1:]):
        lower_limit = as_number(lower.limit)
        upper_limit = as_number(upper.limit)
        if value <= upper_limit:
            lower_mult = as_number(lower.multiplier, NEUTRAL_MULTIPLIER)
            span = upper_limit - lower_limit
            if span == 0:
                return lower_mult
            progress = (value - lower_limit) / span
            return lower_mult + progress * (as_number(upper.multiplier, NEUTRAL_MULTIPLIER) - lower_mult)

    return NEUTRAL_MULTIPLIER
