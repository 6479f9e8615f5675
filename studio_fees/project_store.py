"""
project_store.py — Project persistence and the load-time migration pass

Projects are stored as camelCase JSON documents in a single projects.json
under STUDIO_DATA_DIR, plus a pointer file naming the current project.
Everything read from disk or from an imported file goes through
normalize(), so the engines never see legacy role names, stale default
weights or malformed collections.

Usage:
    from studio_fees.project_store import ProjectStore
    store = ProjectStore()
    saved = store.save(project)
    project = store.load(saved.id)
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from studio_fees import config
from studio_fees.models import (
    ConsultantFeeType,
    Consultant,
    ConsultationEstimate,
    Dwelling,
    MultiplierSettings,
    ProjectData,
    Role,
    RoleDistributionWeight,
    RoleSplitSettings,
    ScalingTier,
    Stage2Estimate,
    SubTaskHoursOverride,
    Task,
    TaskAssignment,
    TaskCategory,
    TaskComplexity,
    TeamDistributionState,
    TeamMember,
    as_number,
    default_dwelling,
    default_tasks,
)

logger = logging.getLogger(__name__)

UNNAMED_PROJECT = "Unnamed Project"
NO_CLIENT = "No Client"
IMPORTED_TEAM_NAME = "Imported Team"

# Old default weight -> current default weight, applied only on an exact match
TASK_WEIGHT_MIGRATIONS: dict[str, tuple[float, float]] = {
    "task-1": (30, 37),
    "task-2": (5, 6),
    "task-3": (28, 34),
    "task-4": (63, 69),
    "task-5": (37, 45),
    "task-6": (42, 51),
    "task-7": (60, 65),
}

TASK_CATEGORY_BY_ID: dict[str, TaskCategory] = {
    "task-4": TaskCategory.MASTERPLAN,
    "task-7": TaskCategory.INTERIORS,
}

_ROLE_NAMES = ("lead", "implementer", "doer")


class ProjectValidationError(ValueError):
    """A project document or team configuration file failed validation."""


# ---------------------------------------------------------------------------
# Wire helpers
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _optional_number(value) -> Optional[float]:
    return float(value) if _is_number(value) else None


def _parse_date(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable project date %r", value)
        return None


def _format_date(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat() + "Z"
    return value.isoformat()


def _enum_or(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _drop_none(payload: dict) -> dict:
    return {k: v for k, v in payload.items() if v is not None}


# ---------------------------------------------------------------------------
# Normalize (wire -> model)
# ---------------------------------------------------------------------------

def _normalize_task(raw: dict) -> Task:
    task_id = str(raw.get("id", ""))
    weight = raw.get("weight")

    migration = TASK_WEIGHT_MIGRATIONS.get(task_id)
    if migration and _is_number(weight) and weight == migration[0]:
        logger.info("Migrating task %s weight from %s to %s", task_id, migration[0], migration[1])
        weight = migration[1]

    category = raw.get("category")
    if category:
        category = _enum_or(TaskCategory, category, TASK_CATEGORY_BY_ID.get(task_id, TaskCategory.BASELINE))
    else:
        category = TASK_CATEGORY_BY_ID.get(task_id, TaskCategory.BASELINE)
        logger.info("Migrating task %s to category: %s", task_id, category.value)

    return Task(
        id=task_id,
        name=str(raw.get("name", "")),
        weight=as_number(weight),
        included=bool(raw.get("included", True)),
        complexity=_enum_or(TaskComplexity, raw.get("complexity"), TaskComplexity.NORMAL),
        category=category,
    )


def _normalize_dwelling(raw: dict, index: int) -> Dwelling:
    return Dwelling(
        id=str(raw.get("id") or f"dwelling-{index + 1}"),
        size=as_number(raw.get("size")),
        complexity=int(as_number(raw.get("complexity"), 3)),
        description=str(raw.get("description") or ""),
        fee=as_number(raw.get("fee")),
        time_estimate=_optional_number(raw.get("timeEstimate")),
        capped_hours=_optional_number(raw.get("cappedHours")),
        hourly_rate=_optional_number(raw.get("hourlyRate")),
    )


def _normalize_consultant(raw: dict, index: int) -> Consultant:
    return Consultant(
        id=str(raw.get("id") or f"consultant-{index + 1}"),
        name=str(raw.get("name") or ""),
        fee_type=_enum_or(ConsultantFeeType, raw.get("feeType"), ConsultantFeeType.FIXED),
        fixed_fee=_optional_number(raw.get("fixedFee")),
        hourly_rate=_optional_number(raw.get("hourlyRate")),
        hours=_optional_number(raw.get("hours")),
        include_in_project_fee=raw.get("includeInProjectFee") is not False,
    )


def _parse_role(value) -> Optional[Role]:
    try:
        return Role.parse(value)
    except ValueError:
        return None


def _normalize_settings(raw: dict) -> RoleSplitSettings:
    settings = RoleSplitSettings()
    if _is_number(raw.get("leadPercentage")):
        settings.lead_percentage = float(raw["leadPercentage"])
    if _is_number(raw.get("implementerPercentage")):
        settings.implementer_percentage = float(raw["implementerPercentage"])
    elif _is_number(raw.get("doerPercentage")):
        logger.info("Migrating doerPercentage to implementerPercentage")
        settings.implementer_percentage = float(raw["doerPercentage"])
    return settings


def normalize_team_distribution(raw) -> TeamDistributionState:
    """Team distribution state from its wire form; legacy 'doer' roles become implementer."""
    raw = _as_dict(raw)

    members = [
        TeamMember(
            id=str(m["id"]),
            name=str(m.get("name") or ""),
            hourly_rate=as_number(m.get("hourlyRate")),
            role=m.get("role"),
            photo_url=m.get("photoUrl"),
        )
        for m in _as_list(raw.get("teamMembers"))
        if isinstance(m, dict) and m.get("id")
    ]

    assignments: list[TaskAssignment] = []
    for a in _as_list(raw.get("assignments")):
        if not isinstance(a, dict):
            continue
        role = _parse_role(a.get("role"))
        if role is None or not a.get("subTaskId") or not a.get("teamMemberId"):
            logger.warning("Dropping malformed assignment %r", a)
            continue
        triple = TaskAssignment(sub_task_id=str(a["subTaskId"]), team_member_id=str(a["teamMemberId"]), role=role)
        if triple not in assignments:
            assignments.append(triple)

    distributions = []
    for d in _as_list(raw.get("customDistributions")):
        role = _parse_role(d.get("role")) if isinstance(d, dict) else None
        if role is None:
            continue
        distributions.append(RoleDistributionWeight(
            sub_task_id=str(d.get("subTaskId", "")),
            role=role,
            team_member_id=str(d.get("teamMemberId", "")),
            weight=as_number(d.get("weight")),
        ))

    custom_hours = [
        SubTaskHoursOverride(sub_task_id=str(h["subTaskId"]), custom_hours=as_number(h.get("customHours")))
        for h in _as_list(raw.get("customHours"))
        if isinstance(h, dict) and h.get("subTaskId")
    ]

    return TeamDistributionState(
        team_members=members,
        assignments=assignments,
        settings=_normalize_settings(_as_dict(raw.get("settings"))),
        custom_distributions=distributions,
        custom_hours=custom_hours,
    )


def _normalize_multipliers(raw) -> Optional[MultiplierSettings]:
    if not isinstance(raw, dict):
        return None

    dwelling = None
    if isinstance(raw.get("dwellingComplexity"), dict):
        dwelling = {}
        for key, value in raw["dwellingComplexity"].items():
            try:
                dwelling[int(key)] = as_number(value, 1.0)
            except (TypeError, ValueError):
                logger.warning("Ignoring dwelling multiplier key %r", key)

    task = None
    if isinstance(raw.get("taskComplexity"), dict):
        task = {str(k): as_number(v, 1.0) for k, v in raw["taskComplexity"].items()}

    tiers = None
    if isinstance(raw.get("projectSizeScaling"), list):
        tiers = [
            ScalingTier(limit=as_number(t.get("limit")), multiplier=as_number(t.get("multiplier"), 1.0))
            for t in raw["projectSizeScaling"]
            if isinstance(t, dict)
        ]

    return MultiplierSettings(dwelling_complexity=dwelling, task_complexity=task, project_size_scaling=tiers)


def normalize(raw: Any) -> ProjectData:
    """
    Build a ProjectData from a stored or imported project document.

    Non-list collections become empty lists, stale default task weights and
    legacy role names are migrated, consultant fields get their defaults.
    A project without dwellings gets one empty dwelling and a project
    without tasks gets the default task catalog.

    Raises:
        ProjectValidationError: raw is not a JSON object
    """
    if not isinstance(raw, dict):
        raise ProjectValidationError(f"Project data must be an object, got {type(raw).__name__}")

    consultation = raw.get("consultationEstimate")
    stage2 = raw.get("stage2Estimate")

    dwellings = [_normalize_dwelling(d, i) for i, d in enumerate(_as_list(raw.get("dwellings")))
                 if isinstance(d, dict)]
    if not dwellings:
        dwellings = [default_dwelling()]

    tasks = [_normalize_task(t) for t in _as_list(raw.get("tasks")) if isinstance(t, dict)]
    if not tasks:
        logger.info("Project has no tasks, seeding the default task catalog")
        tasks = default_tasks()

    return ProjectData(
        client_name=str(raw.get("clientName") or ""),
        project_name=str(raw.get("projectName") or ""),
        location=raw.get("location"),
        date=_parse_date(raw.get("date")),
        dwellings=dwellings,
        tasks=tasks,
        consultation_estimate=ConsultationEstimate(
            hourly_rate=as_number(consultation.get("hourlyRate")),
            hours=as_number(consultation.get("hours")),
        ) if isinstance(consultation, dict) else None,
        time_estimates_locked=bool(raw.get("timeEstimatesLocked", False)),
        team_distribution=normalize_team_distribution(raw["teamDistribution"])
        if isinstance(raw.get("teamDistribution"), dict) else None,
        consultants=[_normalize_consultant(c, i) for i, c in enumerate(_as_list(raw.get("consultants")))
                     if isinstance(c, dict)],
        multiplier_settings=_normalize_multipliers(raw.get("multiplierSettings")),
        stage2_estimate=Stage2Estimate(
            construction_cost_per_sqm=as_number(stage2.get("constructionCostPerSqm")),
            fee_percentage=as_number(stage2.get("feePercentage")),
            manual_construction_cost=_optional_number(stage2.get("manualConstructionCost")),
        ) if isinstance(stage2, dict) else None,
    )


# ---------------------------------------------------------------------------
# Serialize (model -> wire)
# ---------------------------------------------------------------------------

def team_distribution_to_dict(state: TeamDistributionState) -> dict:
    return {
        "teamMembers": [
            _drop_none({"id": m.id, "name": m.name, "hourlyRate": m.hourly_rate,
                        "role": m.role, "photoUrl": m.photo_url})
            for m in state.team_members
        ],
        "assignments": [
            {"subTaskId": a.sub_task_id, "teamMemberId": a.team_member_id, "role": Role.parse(a.role).value}
            for a in state.assignments
        ],
        "settings": {
            "leadPercentage": state.settings.lead_percentage,
            "implementerPercentage": state.settings.implementer_percentage,
        },
        "customDistributions": [
            {"subTaskId": d.sub_task_id, "role": Role.parse(d.role).value,
             "teamMemberId": d.team_member_id, "weight": d.weight}
            for d in state.custom_distributions
        ],
        "customHours": [
            {"subTaskId": h.sub_task_id, "customHours": h.custom_hours}
            for h in state.custom_hours
        ],
    }


def to_dict(project: ProjectData) -> dict:
    """Wire form of a project: camelCase keys, ISO dates, current role names only."""
    settings = project.multiplier_settings
    payload = {
        "clientName": project.client_name,
        "projectName": project.project_name,
        "location": project.location,
        "date": _format_date(project.date),
        "dwellings": [
            _drop_none({
                "id": d.id, "size": d.size, "complexity": d.complexity, "description": d.description,
                "fee": d.fee, "timeEstimate": d.time_estimate, "cappedHours": d.capped_hours,
                "hourlyRate": d.hourly_rate,
            })
            for d in project.dwellings
        ],
        "tasks": [
            {"id": t.id, "name": t.name, "weight": t.weight, "included": t.included,
             "complexity": t.complexity.value, "category": t.category.value}
            for t in project.tasks
        ],
        "consultationEstimate": {
            "hourlyRate": project.consultation_estimate.hourly_rate,
            "hours": project.consultation_estimate.hours,
        } if project.consultation_estimate else None,
        "timeEstimatesLocked": project.time_estimates_locked,
        "teamDistribution": team_distribution_to_dict(project.team_distribution)
        if project.team_distribution else None,
        "consultants": [
            _drop_none({
                "id": c.id, "name": c.name, "feeType": c.fee_type.value, "fixedFee": c.fixed_fee,
                "hourlyRate": c.hourly_rate, "hours": c.hours, "includeInProjectFee": c.include_in_project_fee,
            })
            for c in project.consultants
        ],
        "multiplierSettings": _drop_none({
            "dwellingComplexity": {str(k): v for k, v in settings.dwelling_complexity.items()}
            if settings.dwelling_complexity is not None else None,
            "taskComplexity": dict(settings.task_complexity) if settings.task_complexity is not None else None,
            "projectSizeScaling": [{"limit": t.limit, "multiplier": t.multiplier}
                                   for t in settings.project_size_scaling]
            if settings.project_size_scaling is not None else None,
        }) if settings else None,
        "stage2Estimate": _drop_none({
            "constructionCostPerSqm": project.stage2_estimate.construction_cost_per_sqm,
            "feePercentage": project.stage2_estimate.fee_percentage,
            "manualConstructionCost": project.stage2_estimate.manual_construction_cost,
        }) if project.stage2_estimate else None,
    }
    return _drop_none(payload)


# ---------------------------------------------------------------------------
# Project Store
# ---------------------------------------------------------------------------

@dataclass
class SavedProject:
    id: str
    name: str
    client_name: str
    last_modified: str                      # ISO-8601 UTC
    data: ProjectData

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "clientName": self.client_name,
            "lastModified": self.last_modified,
            "data": to_dict(self.data),
        }

    @classmethod
    def from_record(cls, record: dict) -> "SavedProject":
        return cls(
            id=str(record["id"]),
            name=str(record.get("name") or UNNAMED_PROJECT),
            client_name=str(record.get("clientName") or NO_CLIENT),
            last_modified=str(record.get("lastModified") or ""),
            data=normalize(record.get("data")),
        )


def prepare_for_save(project: ProjectData, existing_id: Optional[str] = None) -> SavedProject:
    return SavedProject(
        id=existing_id or str(uuid.uuid4()),
        name=project.project_name or UNNAMED_PROJECT,
        client_name=project.client_name or NO_CLIENT,
        last_modified=_now_iso(),
        data=project,
    )


class ProjectStore:
    """
    JSON file store of saved projects.

    Files under data_dir:
        projects.json        {"projects": [SavedProject records]}
        current_project      id of the project last saved or opened
    """

    PROJECTS_FILE = "projects.json"
    CURRENT_FILE = "current_project"

    def __init__(self, data_dir: Optional[Union[str, Path]] = None):
        self.data_dir = Path(data_dir or config.DATA_DIR).expanduser()
        self.projects_path = self.data_dir / self.PROJECTS_FILE
        self.current_path = self.data_dir / self.CURRENT_FILE
        logger.debug("ProjectStore initialized at %s", self.data_dir)

    def _read_records(self) -> list[dict]:
        if not self.projects_path.exists():
            return []
        try:
            payload = json.loads(self.projects_path.read_text())
        except json.JSONDecodeError as e:
            raise ProjectValidationError(f"Corrupt project store {self.projects_path}: {e}") from e
        return [r for r in _as_list(_as_dict(payload).get("projects")) if isinstance(r, dict) and r.get("id")]

    def _write_records(self, records: list[dict]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.projects_path.write_text(json.dumps({"projects": records}, indent=2))

    def save(self, project: ProjectData, project_id: Optional[str] = None) -> SavedProject:
        """Insert or replace a project and make it the current project."""
        saved = prepare_for_save(project, project_id)
        records = self._read_records()
        record = saved.to_record()

        for i, existing in enumerate(records):
            if existing["id"] == saved.id:
                records[i] = record
                break
        else:
            records.append(record)

        self._write_records(records)
        self.set_current_project_id(saved.id)
        logger.info("Saved project %r (%s)", saved.name, saved.id)
        return saved

    def get(self, project_id: str) -> SavedProject:
        for record in self._read_records():
            if record["id"] == project_id:
                return SavedProject.from_record(record)
        raise KeyError(f"No saved project with id {project_id!r}")

    def load(self, project_id: str) -> ProjectData:
        return self.get(project_id).data

    def list_projects(self) -> list[SavedProject]:
        """Every readable saved project; records whose data cannot be loaded are skipped."""
        projects = []
        for record in self._read_records():
            try:
                projects.append(SavedProject.from_record(record))
            except ProjectValidationError as e:
                logger.warning("Skipping saved project %s: %s", record["id"], e)
        return projects

    def delete(self, project_id: str) -> None:
        records = self._read_records()
        self._write_records([r for r in records if r["id"] != project_id])
        if self.current_project_id() == project_id:
            self.current_path.unlink()
        logger.info("Deleted project %s", project_id)

    def current_project_id(self) -> Optional[str]:
        if not self.current_path.exists():
            return None
        return self.current_path.read_text().strip() or None

    def set_current_project_id(self, project_id: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.current_path.write_text(project_id)

    def export_json(self, project_id: str) -> str:
        return json.dumps(self.get(project_id).to_record(), indent=2)

    def import_json(self, text: str) -> SavedProject:
        """
        Import an exported project file under a fresh id.

        Raises:
            ProjectValidationError: malformed JSON or no project data
        """
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise ProjectValidationError(f"Invalid project file: {e}") from e
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise ProjectValidationError("Invalid project file: missing project data")

        project = normalize(payload["data"])
        logger.info("Importing project %r", payload.get("name") or project.project_name)
        return self.save(project)


# ---------------------------------------------------------------------------
# Team Configuration Files
# ---------------------------------------------------------------------------

@dataclass
class SavedTeamConfiguration:
    id: str
    name: str
    export_date: str
    state: TeamDistributionState = field(default_factory=TeamDistributionState)


def team_config_filename(team_name: str, when: Optional[datetime] = None) -> str:
    slug = "-".join(team_name.lower().split())
    return f"team-{slug}-{(when or datetime.now(timezone.utc)).date().isoformat()}.json"


def export_team_configuration(state: TeamDistributionState, team_name: str) -> dict:
    payload = {"id": str(uuid.uuid4()), "name": team_name, "exportDate": _now_iso()}
    payload.update(team_distribution_to_dict(state))
    return payload


def _validate_team_payload(parsed) -> None:
    if not isinstance(parsed, dict):
        raise ProjectValidationError("Invalid file: expected a JSON object")
    if not isinstance(parsed.get("teamMembers"), list):
        raise ProjectValidationError("Invalid file: missing teamMembers array")
    if not isinstance(parsed.get("assignments"), list):
        raise ProjectValidationError("Invalid file: missing assignments array")
    if not isinstance(parsed.get("settings"), dict):
        raise ProjectValidationError("Invalid file: missing settings object")

    for member in parsed["teamMembers"]:
        if not isinstance(member, dict) or not member.get("id") or not member.get("name") \
                or not _is_number(member.get("hourlyRate")):
            raise ProjectValidationError("Invalid team member structure")

    for assignment in parsed["assignments"]:
        if not isinstance(assignment, dict) or not assignment.get("subTaskId") \
                or not assignment.get("teamMemberId") or not assignment.get("role"):
            raise ProjectValidationError("Invalid assignment structure")
        if assignment["role"] not in _ROLE_NAMES:
            raise ProjectValidationError(f"Invalid assignment role: {assignment['role']!r}")

    settings = parsed["settings"]
    has_lead = _is_number(settings.get("leadPercentage"))
    has_impl = _is_number(settings.get("implementerPercentage")) or _is_number(settings.get("doerPercentage"))
    if not has_lead or not has_impl:
        raise ProjectValidationError("Invalid settings structure")


def parse_team_configuration(source: Union[str, dict]) -> SavedTeamConfiguration:
    """
    Validate an exported team configuration (JSON text or parsed object).

    Raises:
        ProjectValidationError: malformed JSON or missing/invalid fields
    """
    if isinstance(source, str):
        try:
            parsed = json.loads(source)
        except json.JSONDecodeError as e:
            raise ProjectValidationError(f"Failed to parse team configuration: {e}") from e
    else:
        parsed = source

    _validate_team_payload(parsed)
    return SavedTeamConfiguration(
        id=str(parsed.get("id") or uuid.uuid4()),
        name=str(parsed.get("name") or IMPORTED_TEAM_NAME),
        export_date=str(parsed.get("exportDate") or _now_iso()),
        state=normalize_team_distribution(parsed),
    )


def merge_team_configuration(imported: SavedTeamConfiguration) -> TeamDistributionState:
    """Team state from an imported configuration with fresh member ids."""
    id_map: dict[str, str] = {}
    members = []
    for member in imported.state.team_members:
        new_id = f"member-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
        id_map[member.id] = new_id
        members.append(TeamMember(id=new_id, name=member.name, hourly_rate=member.hourly_rate,
                                  role=member.role, photo_url=member.photo_url))

    assignments = [
        TaskAssignment(sub_task_id=a.sub_task_id, team_member_id=id_map.get(a.team_member_id, a.team_member_id),
                       role=a.role)
        for a in imported.state.assignments
    ]
    distributions = [
        RoleDistributionWeight(sub_task_id=d.sub_task_id, role=d.role,
                               team_member_id=id_map.get(d.team_member_id, d.team_member_id), weight=d.weight)
        for d in imported.state.custom_distributions
    ]

    logger.info("Merged team configuration %r: %d members", imported.name, len(members))
    return TeamDistributionState(
        team_members=members,
        assignments=assignments,
        settings=RoleSplitSettings(
            lead_percentage=imported.state.settings.lead_percentage,
            implementer_percentage=imported.state.settings.implementer_percentage,
        ),
        custom_distributions=distributions,
        custom_hours=[SubTaskHoursOverride(h.sub_task_id, h.custom_hours) for h in imported.state.custom_hours],
    )
