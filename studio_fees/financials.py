"""
financials.py — Whole-project financial summary

Runs the fee engine and the team allocation engine side by side over one
project and combines their outputs with the consultant adders:

    combined fee = per-task fee total + consultation fee + included consultants
    net profit   = combined fee - team cost - all consultants
    total hours  = combined fee / studio hourly rate

Usage:
    from studio_fees.financials import summarize_project
    financials = summarize_project(project)
    print(financials.net_profit)
"""

import logging
from dataclasses import dataclass
from typing import Optional

from studio_fees import consultants as consultant_math
from studio_fees.fee_calculator import (
    FeeCalculator,
    FeeSummary,
    Stage2Result,
    TimeEstimate,
    estimate_time,
    stage2_fee,
)
from studio_fees.models import ProjectData
from studio_fees.team_allocation import TeamAllocator

logger = logging.getLogger(__name__)


@dataclass
class ProjectFinancials:
    fee_summary: FeeSummary
    time_estimate: TimeEstimate
    stage2: Stage2Result
    total_fee: float                        # sum of per-task fees
    consultation_fee: float
    included_consultants_cost: float
    total_consultants_cost: float
    team_cost: float
    combined_fee: float
    net_profit: float

    @property
    def profit_margin(self) -> Optional[float]:
        """Net profit as a fraction of the combined fee; None when nothing is billed."""
        if self.combined_fee <= 0:
            return None
        return self.net_profit / self.combined_fee


def summarize_project(project: ProjectData, allocator: Optional[TeamAllocator] = None) -> ProjectFinancials:
    """
    Args:
        project: Normalized project data
        allocator: Allocator to take the team cost from (built from the project when omitted)

    Returns:
        ProjectFinancials
    """
    summary = FeeCalculator(project.multiplier_settings).calculate(project)

    consultation = consultant_math.consultation_fee(project.consultation_estimate)
    included = consultant_math.included_consultants_cost(project.consultants)
    all_consultants = consultant_math.total_consultants_cost(project.consultants)
    combined = summary.total_fee + consultation + included

    # hours come from the billed total
    studio_rate = project.consultation_estimate.hourly_rate if project.consultation_estimate else None
    time_estimate = estimate_time(project.tasks, combined, studio_rate, summary.dwellings)

    allocator = allocator or TeamAllocator.for_project(project)
    team_cost = allocator.total_project_cost()

    profit = consultant_math.net_profit(combined, team_cost, project.consultants)

    logger.info(
        "Project financials for %r: combined=%s, team=%s, consultants=%s, profit=%s",
        project.project_name or "Unnamed Project",
        f"${combined:,.2f}", f"${team_cost:,.2f}", f"${all_consultants:,.2f}", f"${profit:,.2f}",
    )
    return ProjectFinancials(
        fee_summary=summary,
        time_estimate=time_estimate,
        stage2=stage2_fee(summary.total_area, project.stage2_estimate),
        total_fee=summary.total_fee,
        consultation_fee=consultation,
        included_consultants_cost=included,
        total_consultants_cost=all_consultants,
        team_cost=team_cost,
        combined_fee=combined,
        net_profit=profit,
    )
