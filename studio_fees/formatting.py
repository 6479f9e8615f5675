"""
formatting.py — Currency, hour and summary text formatting

Display strings for the quote and team panels and for export collaborators.
Currency is rounded to whole dollars (half away from zero), hours render
as "{H}h {M}m".
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from studio_fees.financials import ProjectFinancials
from studio_fees.models import ProjectData, as_number
from studio_fees.team_allocation import MemberSummary


def format_currency(amount) -> str:
    """USD rounded to whole dollars: 27900 -> "$27,900", -512.5 -> "-$513"."""
    value = Decimal(str(as_number(amount))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(int(value)):,}"


def format_hours(hours) -> str:
    """186.5 -> "186h 30m". Minutes are the rounded fractional hour and are not carried."""
    value = as_number(hours)
    whole = math.floor(value)
    minutes = math.floor((value % 1) * 60 + 0.5)
    return f"{whole}h {minutes}m"


def format_percentage(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value * 100:.1f}%"


def format_summary_text(project: ProjectData, financials: ProjectFinancials, include_tasks: bool = True) -> str:
    """
    Human-readable fee summary for export.

    Args:
        project: Project the financials were computed for
        financials: ProjectFinancials from summarize_project()
        include_tasks: Whether to list per-task fees and hours

    Returns:
        Formatted text block
    """
    summary = financials.fee_summary
    lines = []

    def money(val) -> str:
        return f"{format_currency(val):>14}"

    lines.append("FEE SUMMARY")
    lines.append("=" * 56)
    lines.append(f"  Project: {project.project_name or 'Unnamed Project'}")
    lines.append(f"  Client:  {project.client_name or 'No Client'}")
    if project.location:
        lines.append(f"  Location: {project.location}")
    lines.append(f"  Total area: {summary.total_area:,.1f} sqm  (dwelling complexity {summary.dwelling_complexity})")

    if include_tasks:
        hours_by_task = {th.task_id: th.estimated_hours for th in financials.time_estimate.task_breakdown}
        lines.append("\nTasks:")
        for tf in summary.task_fees:
            hours = format_hours(hours_by_task.get(tf.task_id, 0.0))
            lines.append(f"  {tf.task_name:<38} {tf.complexity.value:<7} {hours:>10} {money(tf.fee)}")

    lines.append("")
    lines.append(f"  Total Project Fee:            {money(financials.total_fee)}")
    if financials.consultation_fee:
        lines.append(f"  Consultation:                 {money(financials.consultation_fee)}")
    if financials.included_consultants_cost:
        lines.append(f"  Consultants (billed):         {money(financials.included_consultants_cost)}")
    lines.append("-" * 56)
    lines.append(f"  COMBINED FEE:                 {money(financials.combined_fee)}")
    lines.append(f"  Estimated hours:              {format_hours(financials.time_estimate.total_estimated_hours):>14}")

    if financials.stage2.stage2_fee:
        lines.append(f"  Stage 2 ({financials.stage2.fee_percentage:g}% of "
                     f"{format_currency(financials.stage2.total_construction_cost)}): {money(financials.stage2.stage2_fee)}")

    lines.append("")
    lines.append(f"  Team cost:                    {money(financials.team_cost)}")
    lines.append(f"  Consultants (all):            {money(financials.total_consultants_cost)}")
    lines.append(f"  NET PROFIT:                   {money(financials.net_profit)}")
    lines.append(f"  Margin:                       {format_percentage(financials.profit_margin):>14}")

    return "\n".join(lines)


def format_team_summary(members: list[MemberSummary], total_cost: float) -> str:
    lines = ["TEAM ALLOCATION", "=" * 56]
    if not members:
        lines.append("  No team members")
    for entry in members:
        lines.append(
            f"  {entry.member.name:<24} lead {format_hours(entry.hours.lead_hours):>9}"
            f"  impl {format_hours(entry.hours.implementer_hours):>9}  {format_currency(entry.cost):>10}"
        )
        for line in entry.breakdown:
            lines.append(f"      {line.task_name:<40} {line.role.value:<11} "
                         f"{format_hours(line.hours):>9} {format_currency(line.cost):>10}")
    lines.append("-" * 56)
    lines.append(f"  TOTAL TEAM COST: {format_currency(total_cost)}")
    return "\n".join(lines)
