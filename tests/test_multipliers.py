import pytest

from studio_fees.models import ScalingTier, TaskComplexity
from studio_fees.multipliers import (
    DEFAULT_SCALING_TIERS,
    dwelling_multiplier,
    scaling_multiplier,
    task_multiplier,
)


def test_dwelling_multiplier_defaults():
    assert dwelling_multiplier(1) == 0.75
    assert dwelling_multiplier(3) == 1.0
    assert dwelling_multiplier(5) == 1.4
    assert dwelling_multiplier("4") == 1.2


def test_unknown_dwelling_level_is_neutral():
    assert dwelling_multiplier(9) == 1.0
    assert dwelling_multiplier(2.5) == 1.0
    assert dwelling_multiplier(None) == 1.0


def test_dwelling_override_map():
    overrides = {1: 0.5, 3: 0.0}
    assert dwelling_multiplier(1, overrides) == 0.5
    assert dwelling_multiplier(3, overrides) == 0.0
    assert dwelling_multiplier(2, overrides) == 1.0


def test_task_multiplier():
    assert task_multiplier(TaskComplexity.LOW) == 0.8
    assert task_multiplier(TaskComplexity.HIGH) == 1.2
    assert task_multiplier("normal") == 1.0
    assert task_multiplier("extreme") == 1.0
    assert task_multiplier(TaskComplexity.HIGH, {"high": 1.5}) == 1.5


def test_scaling_boundaries_clamp():
    first, last = DEFAULT_SCALING_TIERS[0], DEFAULT_SCALING_TIERS[-1]
    assert scaling_multiplier(first.limit) == first.multiplier
    assert scaling_multiplier(last.limit) == last.multiplier
    assert scaling_multiplier(10) == first.multiplier
    assert scaling_multiplier(50_000) == last.multiplier


def test_scaling_interpolates_between_tiers():
    assert scaling_multiplier(250) == pytest.approx(1.35)
    tiers = [ScalingTier(limit=100, multiplier=1.0), ScalingTier(limit=200, multiplier=1.2)]
    assert scaling_multiplier(150, tiers) == pytest.approx(1.1)


def test_scaling_sorts_tiers():
    tiers = [ScalingTier(limit=200, multiplier=1.2), ScalingTier(limit=100, multiplier=1.0)]
    assert scaling_multiplier(150, tiers) == pytest.approx(1.1)


def test_empty_tiers_mean_defaults():
    assert scaling_multiplier(250, []) == pytest.approx(1.35)
    assert scaling_multiplier(250, None) == pytest.approx(1.35)


def test_duplicate_tier_limits_do_not_divide_by_zero():
    tiers = [
        ScalingTier(limit=100, multiplier=1.0),
        ScalingTier(limit=200, multiplier=2.0),
        ScalingTier(limit=200, multiplier=5.0),
        ScalingTier(limit=300, multiplier=6.0),
    ]
    assert scaling_multiplier(200, tiers) == pytest.approx(2.0)
    assert scaling_multiplier(250, tiers) == pytest.approx(5.5)
