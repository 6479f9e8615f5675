"""
fee_calculator.py — Studio fee engine

Turns project area, the selected service tasks and the multiplier settings
into a fee quote and an hour estimate.

Two fee aggregations coexist:
  - category_weighted_fee(): category-level summary. Sum of included task
    weights over the category default weight, times the AVERAGE task
    complexity multiplier of the category.
  - per_task_fee(): each included task priced on its own weight and
    complexity, times the dwelling complexity multiplier. The sum of these is
    the Total Project Fee.
They disagree whenever task complexities differ inside a category.

Usage:
    from studio_fees.fee_calculator import FeeCalculator
    summary = FeeCalculator(project.multiplier_settings).calculate(project)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from studio_fees import config
from studio_fees.models import (
    Dwelling,
    MultiplierSettings,
    ProjectData,
    Stage2Estimate,
    Task,
    TaskCategory,
    TaskComplexity,
    as_number,
    total_project_area,
)
from studio_fees.multipliers import (
    dwelling_multiplier,
    dwelling_table,
    task_multiplier,
    task_table,
)
from studio_fees.rate_table import CategoryRates, category_default_weight, rates_for

logger = logging.getLogger(__name__)

DEFAULT_DWELLING_COMPLEXITY = 3


# ---------------------------------------------------------------------------
# Result Models
# ---------------------------------------------------------------------------

@dataclass
class TaskFee:
    task_id: str
    task_name: str
    category: TaskCategory
    weight: float
    complexity: TaskComplexity
    fee: float


@dataclass
class FeeSummary:
    total_area: float
    rates: CategoryRates
    dwelling_complexity: int
    dwelling_multiplier: float
    task_fees: list[TaskFee] = field(default_factory=list)
    total_fee: float = 0.0                  # sum of per-task fees (authoritative)
    category_fees: dict[TaskCategory, float] = field(default_factory=dict)
    base_fee: float = 0.0                   # sum of category_fees
    dwellings: list[Dwelling] = field(default_factory=list)
    dwellings_total_fee: float = 0.0        # legacy dwelling-level display
    service_factor: float = 0.0


@dataclass
class TaskHours:
    task_id: str
    task_name: str
    weight: float
    complexity: TaskComplexity
    estimated_hours: float
    estimated_cost: float


@dataclass
class TimeEstimate:
    total_estimated_hours: float
    hourly_rate: float
    task_breakdown: list[TaskHours] = field(default_factory=list)
    dwellings: list[Dwelling] = field(default_factory=list)


@dataclass
class Stage2Result:
    total_construction_cost: float
    stage2_fee: float
    fee_percentage: float


# ---------------------------------------------------------------------------
# Fee Formulas
# ---------------------------------------------------------------------------

def _safe_tasks(tasks) -> list[Task]:
    return tasks if isinstance(tasks, list) else []


def _weight(task: Task) -> float:
    # negative weights count as zero
    return max(as_number(task.weight), 0.0)


def category_weighted_fee(
    tasks: list[Task],
    category: TaskCategory,
    total_area,
    rates: Optional[CategoryRates] = None,
    task_multipliers: Optional[dict[str, float]] = None,
) -> float:
    """
    Time-weighted fee for one category.

    area x rate x (sum of included weights / category default weight)
         x average complexity multiplier of the included tasks
    """
    area = as_number(total_area)
    included = [t for t in _safe_tasks(tasks) if t.category == category and t.included]
    if not included or area <= 0:
        return 0.0

    rate = (rates or rates_for(area)).for_category(category)
    included_weight = sum(_weight(t) for t in included)
    time_multiplier = included_weight / category_default_weight(category)
    avg_complexity = sum(task_multiplier(t.complexity, task_multipliers) for t in included) / len(included)

    return area * rate * time_multiplier * avg_complexity


def base_fee(
    total_area,
    tasks: list[Task],
    task_multipliers: Optional[dict[str, float]] = None,
) -> float:
    """Sum of the time-weighted category fees."""
    area = as_number(total_area)
    if area <= 0:
        return 0.0
    rates = rates_for(area)
    return sum(
        category_weighted_fee(tasks, category, area, rates, task_multipliers)
        for category in TaskCategory
    )


def per_task_fee(
    task: Task,
    total_area,
    dwelling_complexity=DEFAULT_DWELLING_COMPLEXITY,
    multiplier_settings: Optional[MultiplierSettings] = None,
    rates: Optional[CategoryRates] = None,
) -> float:
    """
    Fee for a single task. Excluded tasks and non-positive areas cost nothing.

    (weight / category default weight) x area x rate
        x task complexity multiplier x dwelling complexity multiplier
    """
    area = as_number(total_area)
    if not task.included or area <= 0:
        return 0.0

    weight = _weight(task)
    rate = (rates or rates_for(area)).for_category(task.category)
    task_mult = task_multiplier(task.complexity, task_table(multiplier_settings))
    dwelling_mult = dwelling_multiplier(dwelling_complexity, dwelling_table(multiplier_settings))

    return (weight / category_default_weight(task.category)) * area * rate * task_mult * dwelling_mult


def service_factor(tasks: list[Task], task_multipliers: Optional[dict[str, float]] = None) -> float:
    """Sum of weight x complexity multiplier over the included tasks."""
    return sum(
        _weight(t) * task_multiplier(t.complexity, task_multipliers)
        for t in _safe_tasks(tasks)
        if t.included
    )


def dwelling_fee(
    dwelling: Dwelling,
    tasks: list[Task],
    total_area,
    multiplier_settings: Optional[MultiplierSettings] = None,
) -> float:
    """
    Legacy dwelling-level fee: the base fee shared out by floor area.

    Only the single-dwelling case (proportion 1.0) is exercised today.
    """
    area = as_number(total_area)
    if area <= 0:
        return 0.0
    fee = base_fee(area, tasks, task_table(multiplier_settings))
    proportion = as_number(dwelling.size) / area
    return fee * proportion * dwelling_multiplier(dwelling.complexity, dwelling_table(multiplier_settings))


def calculate_dwelling_fees(
    dwellings: list[Dwelling],
    tasks: list[Task],
    multiplier_settings: Optional[MultiplierSettings] = None,
) -> tuple[list[Dwelling], float, float]:
    """
    Returns:
        (dwellings with fee filled in, total of dwelling fees, total project area)
    """
    safe_dwellings = dwellings if isinstance(dwellings, list) else []
    area = total_project_area(safe_dwellings)
    priced = [
        replace(d, fee=dwelling_fee(d, tasks, area, multiplier_settings))
        for d in safe_dwellings
    ]
    return priced, sum(d.fee for d in priced), area


# ---------------------------------------------------------------------------
# Time & Stage 2 Estimates
# ---------------------------------------------------------------------------

def resolve_hourly_rate(hourly_rate=None) -> float:
    """Studio hourly rate; unset or non-positive values fall back to STUDIO_HOURLY_RATE."""
    rate = as_number(hourly_rate)
    return rate if rate > 0 else config.STUDIO_HOURLY_RATE


def estimate_time(
    tasks: list[Task],
    total_fee,
    hourly_rate=None,
    dwellings: Optional[list[Dwelling]] = None,
) -> TimeEstimate:
    """
    Hours implied by a fee: total_fee / hourly_rate, split across the
    included tasks by weight share. Only the grand total ties back to the
    fee formula; per-task hours are a plain proportional split.
    """
    rate = resolve_hourly_rate(hourly_rate)
    fee = max(as_number(total_fee), 0.0)
    total_hours = fee / rate

    included = [t for t in _safe_tasks(tasks) if t.included]
    total_weight = sum(_weight(t) for t in included)

    breakdown: list[TaskHours] = []
    for task in included:
        share = _weight(task) / total_weight if total_weight > 0 else 0.0
        hours = total_hours * share
        breakdown.append(TaskHours(
            task_id=task.id,
            task_name=task.name,
            weight=as_number(task.weight),
            complexity=task.complexity,
            estimated_hours=hours,
            estimated_cost=hours * rate,
        ))

    timed_dwellings = [
        replace(d, time_estimate=total_hours, capped_hours=total_hours, hourly_rate=rate)
        for d in (dwellings if isinstance(dwellings, list) else [])
    ]

    logger.debug("Time estimate: %.2f hours at %.2f/hr across %d tasks", total_hours, rate, len(breakdown))
    return TimeEstimate(
        total_estimated_hours=total_hours,
        hourly_rate=rate,
        task_breakdown=breakdown,
        dwellings=timed_dwellings,
    )


def stage2_fee(total_area, estimate: Optional[Stage2Estimate]) -> Stage2Result:
    """Construction-phase fee: construction cost x fee percentage."""
    if estimate is None:
        return Stage2Result(total_construction_cost=0.0, stage2_fee=0.0, fee_percentage=0.0)

    if estimate.manual_construction_cost is not None:
        construction_cost = as_number(estimate.manual_construction_cost)
    else:
        construction_cost = as_number(total_area) * as_number(estimate.construction_cost_per_sqm)

    pct = as_number(estimate.fee_percentage)
    return Stage2Result(
        total_construction_cost=construction_cost,
        stage2_fee=construction_cost * pct / 100,
        fee_percentage=pct,
    )


# ---------------------------------------------------------------------------
# Fee Calculator
# ---------------------------------------------------------------------------

class FeeCalculator:
    """
    Fee quote for a project.

    Rules:
    - Per-area rates come from the tiered rate table (no interpolation)
    - Per-task fees are authoritative for the Total Project Fee
    - Category-weighted fees feed summary panels only
    - Dwelling complexity is read from the first dwelling (standard when absent)
    """

    def __init__(self, multiplier_settings: Optional[MultiplierSettings] = None):
        self.multiplier_settings = multiplier_settings
        logger.debug("FeeCalculator initialized: custom multipliers=%s", multiplier_settings is not None)

    def calculate(self, project: ProjectData) -> FeeSummary:
        """
        Calculate the full fee breakdown for a project.

        Args:
            project: Normalized project data

        Returns:
            FeeSummary with per-task fees, category fees and dwelling fees
        """
        settings = self.multiplier_settings
        tasks = _safe_tasks(project.tasks)
        dwellings = project.dwellings if isinstance(project.dwellings, list) else []

        area = total_project_area(dwellings)
        rates = rates_for(area)
        complexity = dwellings[0].complexity if dwellings and dwellings[0].complexity else DEFAULT_DWELLING_COMPLEXITY

        task_fees = [
            TaskFee(
                task_id=task.id,
                task_name=task.name,
                category=task.category,
                weight=as_number(task.weight),
                complexity=task.complexity,
                fee=per_task_fee(task, area, complexity, settings, rates),
            )
            for task in tasks
            if task.included
        ]
        total_fee = sum(tf.fee for tf in task_fees)

        task_mults = task_table(settings)
        category_fees = {
            category: category_weighted_fee(tasks, category, area, rates, task_mults)
            for category in TaskCategory
        }

        priced_dwellings, dwellings_total, _ = calculate_dwelling_fees(dwellings, tasks, settings)

        summary = FeeSummary(
            total_area=area,
            rates=rates,
            dwelling_complexity=complexity,
            dwelling_multiplier=dwelling_multiplier(complexity, dwelling_table(settings)),
            task_fees=task_fees,
            total_fee=total_fee,
            category_fees=category_fees,
            base_fee=sum(category_fees.values()),
            dwellings=priced_dwellings,
            dwellings_total_fee=dwellings_total,
            service_factor=service_factor(tasks, task_mults),
        )

        logger.info(
            "Fee calculated: area=%.1f sqm, tasks=%d, total=%s, category total=%s",
            area, len(task_fees), f"${total_fee:,.2f}", f"${summary.base_fee:,.2f}",
        )
        return summary
