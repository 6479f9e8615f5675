"""
rate_table.py — Per-area fee rates by project size

Tiered lookup: total project area (sqm) -> per-sqm rates for the three
service categories. Rates never increase as area grows. No interpolation.

Usage:
    from studio_fees.rate_table import rates_for
    rates = rates_for(150)      # CategoryRates(baseline=186, interiors=100, masterplan=17.5)
"""

import logging
from dataclasses import dataclass

from studio_fees.models import TaskCategory, as_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryRates:
    baseline: float
    interiors: float
    masterplan: float

    def for_category(self, category: TaskCategory) -> float:
        if category == TaskCategory.INTERIORS:
            return self.interiors
        if category == TaskCategory.MASTERPLAN:
            return self.masterplan
        return self.baseline


# (upper area bound inclusive, rates), ordered ascending
RATE_TIERS: list[tuple[float, CategoryRates]] = [
    (100, CategoryRates(baseline=260.0, interiors=120.0, masterplan=25.0)),
    (200, CategoryRates(baseline=186.0, interiors=100.0, masterplan=17.5)),
    (400, CategoryRates(baseline=135.5, interiors=80.0,  masterplan=12.5)),
    (600, CategoryRates(baseline=109.0, interiors=65.0,  masterplan=12.5)),
    (815, CategoryRates(baseline=93.0,  interiors=60.0,  masterplan=12.0)),
]

# Catch-all for anything above the last breakpoint
LARGEST_TIER_RATES = CategoryRates(baseline=84.0, interiors=55.0, masterplan=12.0)

# Default total task weight per category; denominator for weight-scaled fees
CATEGORY_DEFAULT_WEIGHTS: dict[TaskCategory, float] = {
    TaskCategory.BASELINE:   173.0,   # task-8 9 + task-1 37 + task-2 6 + task-3 25 + task-5 45 + task-6 51
    TaskCategory.INTERIORS:  65.0,    # task-7
    TaskCategory.MASTERPLAN: 69.0,    # task-4
}


def rates_for(total_area) -> CategoryRates:
    """
    Per-sqm rates for a project of ``total_area`` sqm.

    Zero and negative areas fall in the smallest tier; callers guard
    zero-area fees themselves. Unusable input (None, NaN) lands in the
    catch-all tier.
    """
    area = as_number(total_area, default=float("inf"))
    for upper_bound, rates in RATE_TIERS:
        if area <= upper_bound:
            return rates
    return LARGEST_TIER_RATES


def category_default_weight(category: TaskCategory) -> float:
    return CATEGORY_DEFAULT_WEIGHTS.get(category, 100.0)
