import json
import logging
from datetime import datetime, timezone

import pytest

from studio_fees.models import ConsultantFeeType, Role, TaskCategory, default_dwelling, default_tasks
from studio_fees.project_store import (
    ProjectStore,
    ProjectValidationError,
    export_team_configuration,
    merge_team_configuration,
    normalize,
    parse_team_configuration,
    team_config_filename,
    to_dict,
)


def _team_payload(**overrides):
    payload = {
        "name": "Core Team",
        "teamMembers": [{"id": "m1", "name": "Ana", "hourlyRate": 90}, {"id": "m2", "name": "Ben", "hourlyRate": 60}],
        "assignments": [
            {"subTaskId": "st-1-1", "teamMemberId": "m1", "role": "lead"},
            {"subTaskId": "st-1-1", "teamMemberId": "m2", "role": "doer"},
        ],
        "settings": {"leadPercentage": 30, "doerPercentage": 70},
        "customDistributions": [{"subTaskId": "st-1-1", "role": "doer", "teamMemberId": "m2", "weight": 2}],
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# normalize / to_dict
# ---------------------------------------------------------------------------

def test_weight_migration_only_on_exact_old_default():
    project = normalize({"tasks": [
        {"id": "task-1", "name": "Land", "weight": 30, "category": "baseline"},
        {"id": "task-3", "name": "Ideation", "weight": 28, "category": "baseline"},
        {"id": "task-5", "name": "Testing", "weight": 38, "category": "baseline"},
    ]})
    assert [t.weight for t in project.tasks] == [37, 34, 38]


def test_missing_categories_assigned_from_task_id():
    project = normalize({"tasks": [
        {"id": "task-4", "name": "Masterplan", "weight": 69},
        {"id": "task-7", "name": "Interiors", "weight": 65},
        {"id": "task-9", "name": "Extra", "weight": 5},
    ]})
    assert [t.category for t in project.tasks] == [
        TaskCategory.MASTERPLAN, TaskCategory.INTERIORS, TaskCategory.BASELINE,
    ]


def test_malformed_collections_are_reseeded():
    project = normalize({"tasks": "oops", "dwellings": {"size": 10}, "consultants": None})
    assert project.tasks == default_tasks()
    assert project.dwellings == [default_dwelling()]
    assert project.consultants == []


def test_empty_project_gets_a_dwelling_and_the_task_catalog():
    project = normalize({"projectName": "Lake Cabin", "tasks": [], "dwellings": []})
    assert project.project_name == "Lake Cabin"
    assert len(project.dwellings) == 1
    assert project.dwellings[0].complexity == 3
    assert len(project.tasks) == 8
    assert sum(t.weight for t in project.tasks if t.category == TaskCategory.BASELINE) == 173


def test_stored_tasks_are_not_reseeded():
    project = normalize({"tasks": [{"id": "task-2", "name": "Research", "weight": 6}]})
    assert [t.id for t in project.tasks] == ["task-2"]


def test_non_object_project_is_rejected():
    with pytest.raises(ProjectValidationError):
        normalize(["not", "a", "project"])
    assert issubclass(ProjectValidationError, ValueError)


def test_legacy_doer_role_migrated_and_never_written_back():
    project = normalize({"teamDistribution": _team_payload()})
    state = project.team_distribution

    assert [a.role for a in state.assignments] == [Role.LEAD, Role.IMPLEMENTER]
    assert state.settings.implementer_percentage == 70
    assert state.custom_distributions[0].role == Role.IMPLEMENTER

    wire = json.dumps(to_dict(project))
    assert "doer" not in wire
    assert to_dict(project)["teamDistribution"]["settings"]["implementerPercentage"] == 70


def test_consultant_defaults():
    project = normalize({"consultants": [
        {"id": "c1", "name": "Structural"},
        {"id": "c2", "feeType": "hourly", "hourlyRate": 100, "hours": 5, "includeInProjectFee": False},
    ]})
    first, second = project.consultants
    assert first.fee_type == ConsultantFeeType.FIXED
    assert first.include_in_project_fee is True
    assert second.fee_type == ConsultantFeeType.HOURLY
    assert second.include_in_project_fee is False


def test_dates_parse_and_serialize():
    project = normalize({"date": "2024-03-01T09:30:00.000Z"})
    assert project.date == datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
    assert to_dict(project)["date"] == "2024-03-01T09:30:00Z"
    assert normalize({"date": "someday"}).date is None


def test_round_trip_keeps_engine_inputs(baseline_project):
    restored = normalize(to_dict(baseline_project))
    assert restored.tasks == baseline_project.tasks
    assert restored.dwellings == baseline_project.dwellings
    assert restored.project_name == "Hill House"


# ---------------------------------------------------------------------------
# ProjectStore
# ---------------------------------------------------------------------------

def test_save_load_and_list(tmp_path, baseline_project):
    store = ProjectStore(tmp_path)
    saved = store.save(baseline_project)

    assert store.current_project_id() == saved.id
    assert saved.name == "Hill House"
    assert store.load(saved.id).tasks == baseline_project.tasks
    assert [p.id for p in store.list_projects()] == [saved.id]

    baseline_project.project_name = "Hill House II"
    store.save(baseline_project, saved.id)
    projects = store.list_projects()
    assert len(projects) == 1
    assert projects[0].name == "Hill House II"


def test_save_defaults_names(tmp_path, make_project):
    project = make_project()
    project.project_name = ""
    project.client_name = ""
    saved = ProjectStore(tmp_path).save(project)
    assert saved.name == "Unnamed Project"
    assert saved.client_name == "No Client"


def test_delete_clears_current_pointer(tmp_path, baseline_project):
    store = ProjectStore(tmp_path)
    saved = store.save(baseline_project)
    store.delete(saved.id)
    assert store.list_projects() == []
    assert store.current_project_id() is None


def test_load_unknown_id_raises_key_error(tmp_path):
    with pytest.raises(KeyError):
        ProjectStore(tmp_path).load("missing")


def test_list_skips_unloadable_records(tmp_path, baseline_project, caplog):
    store = ProjectStore(tmp_path)
    saved = store.save(baseline_project)
    records = json.loads((tmp_path / "projects.json").read_text())
    records["projects"].append({"id": "broken", "name": "Broken", "data": "not an object"})
    (tmp_path / "projects.json").write_text(json.dumps(records))

    with caplog.at_level(logging.WARNING):
        projects = store.list_projects()

    assert [p.id for p in projects] == [saved.id]
    assert "broken" in caplog.text
    with pytest.raises(ProjectValidationError):
        store.load("broken")


def test_corrupt_store_is_reported(tmp_path):
    (tmp_path / "projects.json").write_text("{not json")
    with pytest.raises(ProjectValidationError):
        ProjectStore(tmp_path).list_projects()


def test_export_import_assigns_new_id(tmp_path, baseline_project):
    store = ProjectStore(tmp_path)
    saved = store.save(baseline_project)
    imported = store.import_json(store.export_json(saved.id))

    assert imported.id != saved.id
    assert len(store.list_projects()) == 2
    assert store.load(imported.id).tasks == baseline_project.tasks


def test_import_rejects_bad_files(tmp_path):
    store = ProjectStore(tmp_path)
    with pytest.raises(ProjectValidationError):
        store.import_json("{oops")
    with pytest.raises(ProjectValidationError, match="missing project data"):
        store.import_json(json.dumps({"name": "No data"}))


def test_import_migrates_old_weights(tmp_path):
    store = ProjectStore(tmp_path)
    record = {"id": "old", "name": "Legacy", "data": {"tasks": [{"id": "task-6", "name": "Vis", "weight": 42}]}}
    imported = store.import_json(json.dumps(record))
    assert store.load(imported.id).tasks[0].weight == 51


# ---------------------------------------------------------------------------
# Team configuration files
# ---------------------------------------------------------------------------

def test_parse_team_configuration_migrates_roles():
    config = parse_team_configuration(json.dumps(_team_payload(name=None)))
    assert config.name == "Imported Team"
    assert config.state.settings.lead_percentage == 30
    assert config.state.settings.implementer_percentage == 70
    assert config.state.assignments[1].role == Role.IMPLEMENTER
    assert config.state.custom_hours == []


@pytest.mark.parametrize("overrides, message", [
    ({"teamMembers": None}, "teamMembers"),
    ({"assignments": {}}, "assignments"),
    ({"settings": []}, "settings"),
    ({"teamMembers": [{"id": "m1", "name": "Ana", "hourlyRate": "90"}]}, "team member"),
    ({"assignments": [{"subTaskId": "st-1-1", "teamMemberId": "m1", "role": "boss"}]}, "role"),
    ({"assignments": [{"subTaskId": "st-1-1", "role": "lead"}]}, "assignment structure"),
    ({"settings": {"leadPercentage": 20}}, "settings structure"),
])
def test_parse_team_configuration_rejects_invalid_files(overrides, message):
    with pytest.raises(ProjectValidationError, match=message):
        parse_team_configuration(_team_payload(**overrides))


def test_parse_team_configuration_rejects_bad_json():
    with pytest.raises(ProjectValidationError):
        parse_team_configuration("{")


def test_merge_assigns_fresh_member_ids():
    config = parse_team_configuration(_team_payload())
    merged = merge_team_configuration(config)

    new_ids = [m.id for m in merged.team_members]
    assert "m1" not in new_ids and "m2" not in new_ids
    assert len(set(new_ids)) == 2
    assert [a.team_member_id for a in merged.assignments] == new_ids
    assert merged.custom_distributions[0].team_member_id == new_ids[1]


def test_export_team_configuration():
    state = normalize({"teamDistribution": _team_payload()}).team_distribution
    exported = export_team_configuration(state, "Core Team")

    assert exported["name"] == "Core Team"
    assert exported["exportDate"]
    assert [m["id"] for m in exported["teamMembers"]] == ["m1", "m2"]
    assert parse_team_configuration(exported).state.assignments == state.assignments


def test_team_config_filename():
    assert team_config_filename("My Studio Team", datetime(2024, 5, 1)) == "team-my-studio-team-2024-05-01.json"
