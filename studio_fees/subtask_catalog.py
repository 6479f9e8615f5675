"""
subtask_catalog.py — Fixed sub-task breakdown of the billable tasks

Each parent group is bound to one app task id and lists its sub-tasks with
static base hours. The catalog is reference data; nothing edits it at
runtime. The sum of a group's base hours is the denominator of the
allocation scale factor.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SubTask:
    id: str
    name: str
    base_hours: float
    parent_task_id: str                     # app task id, e.g. "task-1"


@dataclass(frozen=True)
class ParentTaskGroup:
    id: str
    name: str
    app_task_id: str
    sub_tasks: tuple[SubTask, ...]

    @property
    def base_hours(self) -> float:
        return sum(st.base_hours for st in self.sub_tasks)


def _group(group_id: str, name: str, app_task_id: str, rows: list[tuple[str, str, float]]) -> ParentTaskGroup:
    return ParentTaskGroup(
        id=group_id,
        name=name,
        app_task_id=app_task_id,
        sub_tasks=tuple(SubTask(id=st_id, name=st_name, base_hours=hours, parent_task_id=app_task_id)
                        for st_id, st_name, hours in rows),
    )


PARENT_TASK_GROUPS: tuple[ParentTaskGroup, ...] = (
    _group("group-1", "Market and Trend Analysis", "task-8", [
        ("st-8-1", "Trends",                 1),
        ("st-8-2", "Materials",              1),
        ("st-8-3", "Building Technologies",  2),
        ("st-8-4", "Competitors",            2),
        ("st-8-5", "SWOT",                   2),
        ("st-8-6", "Resonance Solutions",    1),
    ]),
    _group("group-2", "Land Evaluation and Site Analysis", "task-1", [
        ("st-1-1", "Drone Scan & Digital Topology Generation", 3),
        ("st-1-2", "Sun Analysis",                             1),
        ("st-1-3", "Wind Analysis",                            1),
        ("st-1-4", "Rainfall Analysis",                        1),
        ("st-1-5", "Land Evaluation Report",                   1),
    ]),
    _group("group-3", "Consultant & Contractors Research", "task-2", [
        ("st-2-1", "Consultant & Contractors Research", 5),
    ]),
    _group("group-4", "Design Ideation", "task-3", [
        ("st-3-1", "Preliminary Spatial Function Mapping",  3),
        ("st-3-2", "Preliminary Layout Sketches",           10),
        ("st-3-3", "Mood Board Development",                2),
        ("st-3-4", "Conceptual Design Ideas / AI Renders",  8),
        ("st-3-5", "Project DNA Presentation",              5),
    ]),
    _group("group-5", "Masterplan Main Task", "task-4", [
        ("st-4-1", "Zoning Strategy & Diagrams",            5),
        ("st-4-2", "Conceptual Rendered Views of Zones",    5),
        ("st-4-3", "Concept Site Plan (1:1000 scale)",      30),
        ("st-4-4", "Vaastu Shastra Consultancy",            6),
        ("st-4-5", "MP Resonance & Bioplanning Ideation",   5),
        ("st-4-6", "MP Spatial Planning and User Flow",     12),
    ]),
    _group("group-6", "Design Testing & Refinement", "task-5", [
        ("st-5-1", "Stage 2 - Meeting Notes",                          6),
        ("st-5-2", "Resonance Tuning",                                 10),
        ("st-5-3", "Alternative Design Solutions & Exact Placements",  10),
        ("st-5-4", "2D Schematic Design",                              5),
        ("st-5-5", "Consultant Feedback",                              2),
        ("st-5-6", "3D Model Refinement",                              20),
    ]),
    _group("group-7", "Visualization", "task-6", [
        ("st-6-1", "Video Clips",                                  10),
        ("st-6-2", "3D Exterior Renders",                          30),
        ("st-6-3", "Virtual Reality & Interactive Presentations",  2),
        ("st-6-4", "Final Presentation and Handover",              2),
    ]),
    _group("group-8", "Interior Design Main Task", "task-7", [
        ("st-7-1", "Interior Mood Boards",             3),
        ("st-7-2", "Interior Concept Renders",         30),
        ("st-7-3", "FF&E Selections",                  10),
        ("st-7-4", "Interior Sections & Elevations",   10),
        ("st-7-5", "Materials & Finishes Schedule",    6),
    ]),
)

_SUB_TASKS_BY_ID: dict[str, SubTask] = {
    st.id: st for group in PARENT_TASK_GROUPS for st in group.sub_tasks
}
_GROUPS_BY_TASK_ID: dict[str, ParentTaskGroup] = {
    group.app_task_id: group for group in PARENT_TASK_GROUPS
}


def all_sub_tasks() -> list[SubTask]:
    return list(_SUB_TASKS_BY_ID.values())


def get_sub_task(sub_task_id: str) -> Optional[SubTask]:
    return _SUB_TASKS_BY_ID.get(sub_task_id)


def group_for_task(app_task_id: str) -> Optional[ParentTaskGroup]:
    return _GROUPS_BY_TASK_ID.get(app_task_id)


def group_base_hours(group: ParentTaskGroup) -> float:
    """Default weight of a group: the sum of its sub-task base hours."""
    return group.base_hours
