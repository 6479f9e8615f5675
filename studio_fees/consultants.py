"""
consultants.py — Consultation fee and outside consultant costs

Billed side:  combined fee = per-task fee total + consultation fee
                             + consultants marked include-in-project-fee
Expense side: every consultant is a cost, billed to the client or not.
"""

import logging
from typing import Optional

from studio_fees.models import ConsultantFeeType, Consultant, ConsultationEstimate, as_number

logger = logging.getLogger(__name__)


def consultation_fee(estimate: Optional[ConsultationEstimate]) -> float:
    if estimate is None:
        return 0.0
    return as_number(estimate.hourly_rate) * as_number(estimate.hours)


def consultant_cost(consultant: Consultant) -> float:
    """Fixed fee for fixed-fee consultants, rate x hours for hourly ones."""
    if consultant.fee_type == ConsultantFeeType.FIXED:
        return as_number(consultant.fixed_fee)
    return as_number(consultant.hourly_rate) * as_number(consultant.hours)


def _safe(consultants) -> list[Consultant]:
    return consultants if isinstance(consultants, list) else []


def total_consultants_cost(consultants: list[Consultant]) -> float:
    return sum(consultant_cost(c) for c in _safe(consultants))


def included_consultants_cost(consultants: list[Consultant]) -> float:
    return sum(consultant_cost(c) for c in _safe(consultants) if c.include_in_project_fee)


def combined_fee(
    total_fee,
    estimate: Optional[ConsultationEstimate],
    consultants: list[Consultant],
) -> float:
    return as_number(total_fee) + consultation_fee(estimate) + included_consultants_cost(consultants)


def net_profit(combined, team_cost, consultants: list[Consultant]) -> float:
    """Combined fee less team cost and the cost of every consultant."""
    profit = as_number(combined) - (as_number(team_cost) + total_consultants_cost(consultants))
    logger.debug("Net profit: %.2f (fee %.2f, team %.2f)", profit, as_number(combined), as_number(team_cost))
    return profit
