from studio_fees.financials import summarize_project
from studio_fees.formatting import format_currency, format_hours, format_summary_text, format_team_summary
from studio_fees.models import Role
from studio_fees.team_allocation import TeamAllocator


def test_format_currency_rounds_to_whole_dollars():
    assert format_currency(27_900) == "$27,900"
    assert format_currency(1_234.5) == "$1,235"
    assert format_currency(-512.5) == "-$513"
    assert format_currency(0.4) == "$0"
    assert format_currency(None) == "$0"


def test_format_hours():
    assert format_hours(186.5) == "186h 30m"
    assert format_hours(2.25) == "2h 15m"
    assert format_hours(0) == "0h 0m"


def test_summary_text(baseline_project):
    text = format_summary_text(baseline_project, summarize_project(baseline_project))
    assert "Hill House" in text
    assert "Land Evaluation and Site Analysis" in text
    assert "$27,900" in text
    assert "186h 0m" in text


def test_team_summary(baseline_project):
    allocator = TeamAllocator.for_project(baseline_project)
    member = allocator.add_team_member("Ana", 100)
    allocator.toggle_assignment("st-1-1", member.id, Role.LEAD)

    text = format_team_summary(allocator.member_summaries(), allocator.total_project_cost())
    assert "Ana" in text
    assert "Drone Scan & Digital Topology Generation" in text
    assert "TOTAL TEAM COST" in text
    assert "No team members" in format_team_summary([], 0)
