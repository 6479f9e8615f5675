"""
models.py — Studio Fee Calculator data model

Enums and dataclasses shared by the fee engine, the team allocation engine
and the persistence layer. Attributes are snake_case in memory; the wire
format (camelCase JSON) is handled by project_store.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from studio_fees import config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskComplexity(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class TaskCategory(str, Enum):
    BASELINE = "baseline"
    INTERIORS = "addon-interiors"
    MASTERPLAN = "addon-masterplan"


class Role(str, Enum):
    LEAD = "lead"
    IMPLEMENTER = "implementer"

    @classmethod
    def parse(cls, value) -> "Role":
        """Accept a Role or its wire name; the legacy name 'doer' maps to IMPLEMENTER."""
        if isinstance(value, Role):
            return value
        if value == "doer":
            return cls.IMPLEMENTER
        return cls(value)


class ConsultantFeeType(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"


# ---------------------------------------------------------------------------
# Numeric coercion
# ---------------------------------------------------------------------------

def as_number(value, default: float = 0.0) -> float:
    """
    Coerce a loosely-typed numeric input to float.

    None, booleans, NaN, infinities and anything float() rejects fall back to
    ``default``. The engine never raises on bad numbers.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


# ---------------------------------------------------------------------------
# Project Data Models
# ---------------------------------------------------------------------------

@dataclass
class Dwelling:
    id: str
    size: float = 0.0                       # square meters
    complexity: int = 3                     # 1 (simple) .. 5 (complex)
    description: str = ""
    fee: float = 0.0                        # computed
    time_estimate: Optional[float] = None
    capped_hours: Optional[float] = None
    hourly_rate: Optional[float] = None


@dataclass
class Task:
    id: str
    name: str
    weight: float                           # relative base hours, not a percentage
    included: bool = True
    complexity: TaskComplexity = TaskComplexity.NORMAL
    category: TaskCategory = TaskCategory.BASELINE


@dataclass
class ScalingTier:
    limit: float                            # square meters
    multiplier: float


@dataclass
class MultiplierSettings:
    # None means "use the default table"
    dwelling_complexity: Optional[dict[int, float]] = None
    task_complexity: Optional[dict[str, float]] = None
    project_size_scaling: Optional[list[ScalingTier]] = None


@dataclass
class ConsultationEstimate:
    hourly_rate: float = 0.0
    hours: float = 0.0


@dataclass
class Stage2Estimate:
    construction_cost_per_sqm: float = 0.0
    fee_percentage: float = 0.0
    manual_construction_cost: Optional[float] = None


@dataclass
class Consultant:
    id: str
    name: str = ""
    fee_type: ConsultantFeeType = ConsultantFeeType.FIXED
    fixed_fee: Optional[float] = None
    hourly_rate: Optional[float] = None
    hours: Optional[float] = None
    include_in_project_fee: bool = True


# ---------------------------------------------------------------------------
# Team Distribution Models
# ---------------------------------------------------------------------------

@dataclass
class TeamMember:
    id: str
    name: str
    hourly_rate: float = 0.0                # USD per hour
    role: Optional[str] = None              # job title, e.g. "Senior Designer"
    photo_url: Optional[str] = None


@dataclass(frozen=True)
class TaskAssignment:
    sub_task_id: str
    team_member_id: str
    role: Role


@dataclass
class RoleSplitSettings:
    lead_percentage: float = config.LEAD_PERCENTAGE
    implementer_percentage: float = config.IMPLEMENTER_PERCENTAGE

    def percentage_for(self, role: Role) -> float:
        if role == Role.LEAD:
            return as_number(self.lead_percentage)
        return as_number(self.implementer_percentage)


@dataclass
class RoleDistributionWeight:
    sub_task_id: str
    role: Role
    team_member_id: str
    weight: float                           # relative, shares need not sum to anything


@dataclass
class SubTaskHoursOverride:
    sub_task_id: str
    custom_hours: float


@dataclass
class TeamDistributionState:
    team_members: list[TeamMember] = field(default_factory=list)
    assignments: list[TaskAssignment] = field(default_factory=list)
    settings: RoleSplitSettings = field(default_factory=RoleSplitSettings)
    custom_distributions: list[RoleDistributionWeight] = field(default_factory=list)
    custom_hours: list[SubTaskHoursOverride] = field(default_factory=list)


@dataclass
class ProjectData:
    client_name: str = ""
    project_name: str = ""
    location: Optional[str] = None
    date: Optional[datetime] = None
    dwellings: list[Dwelling] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    consultation_estimate: Optional[ConsultationEstimate] = None
    time_estimates_locked: bool = False
    team_distribution: Optional[TeamDistributionState] = None
    consultants: list[Consultant] = field(default_factory=list)
    multiplier_settings: Optional[MultiplierSettings] = None
    stage2_estimate: Optional[Stage2Estimate] = None

    @property
    def total_area(self) -> float:
        return total_project_area(self.dwellings)


def total_project_area(dwellings: list[Dwelling]) -> float:
    """Sum of dwelling sizes; a non-list input counts as no dwellings."""
    if not isinstance(dwellings, list):
        return 0.0
    return sum(as_number(d.size) for d in dwellings)


# ---------------------------------------------------------------------------
# Default Seeds
# ---------------------------------------------------------------------------

# (id, name, weight, category); baseline weights sum to the baseline default of 173
DEFAULT_TASK_SEED: list[tuple[str, str, float, TaskCategory]] = [
    ("task-8", "Market and Trend Analysis",         9,  TaskCategory.BASELINE),
    ("task-1", "Land Evaluation and Site Analysis", 37, TaskCategory.BASELINE),
    ("task-2", "Consultant & Contractors Research", 6,  TaskCategory.BASELINE),
    ("task-3", "Design Ideation",                   25, TaskCategory.BASELINE),
    ("task-5", "Design Testing & Refinement",       45, TaskCategory.BASELINE),
    ("task-6", "Visualization",                     51, TaskCategory.BASELINE),
    ("task-4", "Masterplan",                        69, TaskCategory.MASTERPLAN),
    ("task-7", "Interior Design",                   65, TaskCategory.INTERIORS),
]


def default_tasks() -> list[Task]:
    return [
        Task(id=task_id, name=name, weight=weight, included=True,
             complexity=TaskComplexity.NORMAL, category=category)
        for task_id, name, weight, category in DEFAULT_TASK_SEED
    ]


def default_dwelling() -> Dwelling:
    return Dwelling(id="dwelling-1", size=0.0, complexity=3, description="")


def new_project(client_name: str = "", project_name: str = "") -> ProjectData:
    """Fresh project: a single empty dwelling and the seeded task catalog."""
    logger.debug("Creating new project %r for %r", project_name, client_name)
    return ProjectData(
        client_name=client_name,
        project_name=project_name,
        dwellings=[default_dwelling()],
        tasks=default_tasks(),
        consultants=[],
        team_distribution=TeamDistributionState(),
    )
