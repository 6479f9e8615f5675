import pytest

from studio_fees import config
from studio_fees.fee_calculator import (
    FeeCalculator,
    base_fee,
    category_weighted_fee,
    estimate_time,
    per_task_fee,
    service_factor,
    stage2_fee,
)
from studio_fees.models import (
    Dwelling,
    MultiplierSettings,
    ProjectData,
    Stage2Estimate,
    Task,
    TaskCategory,
    TaskComplexity,
)


def _task(tasks, task_id):
    return next(t for t in tasks if t.id == task_id)


def test_baseline_scenario_totals_27900(baseline_project):
    summary = FeeCalculator().calculate(baseline_project)

    assert summary.total_area == 150
    assert summary.rates.baseline == 186.0
    assert len(summary.task_fees) == 6
    assert summary.total_fee == pytest.approx(27_900)
    assert summary.category_fees[TaskCategory.BASELINE] == pytest.approx(27_900)
    assert summary.category_fees[TaskCategory.INTERIORS] == 0.0
    assert summary.dwellings_total_fee == pytest.approx(27_900)


def test_per_task_fee_follows_weight_share(baseline_project):
    land = _task(baseline_project.tasks, "task-1")
    assert per_task_fee(land, 150) == pytest.approx(27_900 * 37 / 173)


def test_zero_area_prices_nothing(make_project):
    project = make_project(area=0)
    summary = FeeCalculator().calculate(project)

    assert summary.total_fee == 0.0
    assert all(tf.fee == 0.0 for tf in summary.task_fees)
    assert base_fee(0, project.tasks) == 0.0
    assert per_task_fee(project.tasks[0], -20) == 0.0


def test_excluded_and_negative_weight_tasks_cost_nothing():
    excluded = Task(id="task-1", name="Land", weight=37, included=False)
    negative = Task(id="task-2", name="Research", weight=-10)
    assert per_task_fee(excluded, 150) == 0.0
    assert per_task_fee(negative, 150) == 0.0


def test_addon_categories_use_their_own_rates():
    interiors = Task(id="task-7", name="Interior Design", weight=65, category=TaskCategory.INTERIORS)
    masterplan = Task(id="task-4", name="Masterplan", weight=69, category=TaskCategory.MASTERPLAN)
    assert per_task_fee(interiors, 150) == pytest.approx(150 * 100)
    assert per_task_fee(masterplan, 150) == pytest.approx(150 * 17.5)


def test_dwelling_complexity_scales_total(make_project):
    project = make_project()
    project.dwellings[0].complexity = 5
    summary = FeeCalculator().calculate(project)
    assert summary.dwelling_multiplier == 1.4
    assert summary.total_fee == pytest.approx(27_900 * 1.4)


def test_fee_paths_diverge_for_mixed_complexity(make_project):
    project = make_project()
    _task(project.tasks, "task-6").complexity = TaskComplexity.HIGH   # weight 51
    _task(project.tasks, "task-1").complexity = TaskComplexity.LOW    # weight 37

    summary = FeeCalculator().calculate(project)

    # category path averages the multipliers: (1.2 + 0.8 + 4 x 1.0) / 6 = 1.0
    assert summary.category_fees[TaskCategory.BASELINE] == pytest.approx(27_900)
    # per-task path weights them: 173 + 51 x 0.2 - 37 x 0.2 = 175.8
    assert summary.total_fee == pytest.approx(27_900 * 175.8 / 173)
    assert summary.total_fee != pytest.approx(summary.base_fee)


def test_custom_task_multipliers_apply_to_both_paths(make_project):
    project = make_project()
    settings = MultiplierSettings(task_complexity={"low": 0.8, "normal": 2.0, "high": 1.2})
    summary = FeeCalculator(settings).calculate(project)
    assert summary.total_fee == pytest.approx(55_800)
    assert summary.base_fee == pytest.approx(55_800)


def test_category_weighted_fee_ignores_other_categories(tasks):
    assert category_weighted_fee(tasks, TaskCategory.INTERIORS, 150) == pytest.approx(15_000)
    assert category_weighted_fee(tasks, TaskCategory.BASELINE, 0) == 0.0


def test_malformed_collections_do_not_raise():
    project = ProjectData(dwellings="nope", tasks=None)
    summary = FeeCalculator().calculate(project)
    assert summary.total_fee == 0.0
    assert summary.total_area == 0.0


def test_service_factor(baseline_project):
    assert service_factor(baseline_project.tasks) == pytest.approx(173)


def test_estimate_time_splits_hours_by_weight(baseline_project):
    estimate = estimate_time(baseline_project.tasks, 27_900, 150, baseline_project.dwellings)

    assert estimate.total_estimated_hours == pytest.approx(186)
    land = next(th for th in estimate.task_breakdown if th.task_id == "task-1")
    assert land.estimated_hours == pytest.approx(186 * 37 / 173)
    assert land.estimated_cost == pytest.approx(land.estimated_hours * 150)
    assert estimate.dwellings[0].time_estimate == pytest.approx(186)
    assert estimate.dwellings[0].hourly_rate == 150


def test_estimate_time_falls_back_to_studio_rate(tasks):
    estimate = estimate_time(tasks, 3_000, hourly_rate=0)
    assert estimate.hourly_rate == config.STUDIO_HOURLY_RATE
    assert estimate.total_estimated_hours == pytest.approx(3_000 / config.STUDIO_HOURLY_RATE)


def test_stage2_fee():
    result = stage2_fee(150, Stage2Estimate(construction_cost_per_sqm=2_000, fee_percentage=5))
    assert result.total_construction_cost == 300_000
    assert result.stage2_fee == pytest.approx(15_000)

    manual = stage2_fee(150, Stage2Estimate(construction_cost_per_sqm=2_000, fee_percentage=5,
                                            manual_construction_cost=500_000))
    assert manual.stage2_fee == pytest.approx(25_000)

    assert stage2_fee(150, None).stage2_fee == 0.0


def test_first_dwelling_sets_complexity():
    project = ProjectData(
        dwellings=[Dwelling(id="a", size=100, complexity=1), Dwelling(id="b", size=50, complexity=5)],
        tasks=[Task(id="task-1", name="Land", weight=173)],
    )
    summary = FeeCalculator().calculate(project)
    assert summary.dwelling_complexity == 1
    assert summary.total_fee == pytest.approx(150 * 186 * 0.75)
