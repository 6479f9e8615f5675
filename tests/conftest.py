import pytest

from studio_fees.models import Dwelling, ProjectData, default_tasks, new_project


def baseline_only_project(area: float = 150.0) -> ProjectData:
    """One standard dwelling with only the six baseline tasks included."""
    project = new_project(client_name="Asha Rao", project_name="Hill House")
    project.dwellings = [Dwelling(id="dwelling-1", size=area, complexity=3)]
    for task in project.tasks:
        if task.id in ("task-4", "task-7"):
            task.included = False
    return project


@pytest.fixture
def baseline_project() -> ProjectData:
    return baseline_only_project()


@pytest.fixture
def tasks():
    return default_tasks()


@pytest.fixture
def make_project():
    return baseline_only_project
