import pytest

from studio_fees.consultants import (
    combined_fee,
    consultant_cost,
    consultation_fee,
    included_consultants_cost,
    net_profit,
    total_consultants_cost,
)
from studio_fees.models import Consultant, ConsultantFeeType, ConsultationEstimate


def test_unbilled_hourly_consultant_is_still_an_expense():
    surveyor = Consultant(id="c1", name="Surveyor", fee_type=ConsultantFeeType.HOURLY,
                          hourly_rate=100, hours=5, include_in_project_fee=False)

    assert consultant_cost(surveyor) == 500
    assert total_consultants_cost([surveyor]) == 500
    assert included_consultants_cost([surveyor]) == 0
    assert combined_fee(10_000, None, [surveyor]) == 10_000
    assert net_profit(10_000, 2_000, [surveyor]) == 7_500


def test_missing_fields_cost_nothing():
    assert consultant_cost(Consultant(id="c1", fee_type=ConsultantFeeType.FIXED)) == 0
    assert consultant_cost(Consultant(id="c2", fee_type=ConsultantFeeType.HOURLY, hourly_rate=80)) == 0


def test_combined_fee_adds_consultation_and_billed_consultants():
    structural = Consultant(id="c1", name="Structural", fixed_fee=1_200)
    estimate = ConsultationEstimate(hourly_rate=150, hours=2)

    assert consultation_fee(estimate) == 300
    assert consultation_fee(None) == 0
    assert combined_fee(27_900, estimate, [structural]) == pytest.approx(29_400)


def test_non_list_consultants_are_empty():
    assert total_consultants_cost(None) == 0
    assert included_consultants_cost("x") == 0
