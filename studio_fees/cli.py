#!/usr/bin/env python3
"""
cli.py — studio-fees command line

Usage:
    studio-fees quote project.json
    studio-fees team project.json
    studio-fees scaling 250 --tiers '[{"limit": 100, "multiplier": 1.0}, {"limit": 200, "multiplier": 1.2}]'
    studio-fees import exported-project.json
    studio-fees list
    studio-fees show <project-id>
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from studio_fees import config
from studio_fees.financials import summarize_project
from studio_fees.formatting import format_summary_text, format_team_summary
from studio_fees.models import ProjectData, ScalingTier, as_number
from studio_fees.multipliers import scaling_multiplier
from studio_fees.project_store import ProjectStore, ProjectValidationError, normalize
from studio_fees.team_allocation import TeamAllocator

logger = logging.getLogger("studio_fees.cli")


def _read_project_file(path: str) -> ProjectData:
    """A project file is either a saved/exported record ({"data": ...}) or bare project data."""
    try:
        payload = json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        raise ProjectValidationError(f"{path}: invalid JSON ({e})") from e
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    return normalize(payload)


def _parse_tiers(text: Optional[str]) -> Optional[list[ScalingTier]]:
    if not text:
        return None
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProjectValidationError(f"--tiers: invalid JSON ({e})") from e
    if not isinstance(raw, list) or not all(isinstance(t, dict) for t in raw):
        raise ProjectValidationError("--tiers must be a JSON list of {limit, multiplier} objects")
    return [ScalingTier(limit=as_number(t.get("limit")), multiplier=as_number(t.get("multiplier"), 1.0)) for t in raw]


def cmd_quote(args) -> None:
    project = _read_project_file(args.project)
    financials = summarize_project(project)
    print(format_summary_text(project, financials, include_tasks=not args.no_tasks))


def cmd_team(args) -> None:
    project = _read_project_file(args.project)
    allocator = TeamAllocator.for_project(project)
    financials = summarize_project(project, allocator)
    print(format_team_summary(allocator.member_summaries(), financials.team_cost))
    print("")
    print(format_summary_text(project, financials, include_tasks=False))


def cmd_scaling(args) -> None:
    multiplier = scaling_multiplier(args.area, _parse_tiers(args.tiers))
    print(f"{multiplier:.4f}")


def cmd_import(args) -> None:
    saved = ProjectStore(args.data_dir).import_json(Path(args.file).read_text())
    print(f"Imported {saved.name} ({saved.client_name}) as {saved.id}")


def cmd_list(args) -> None:
    store = ProjectStore(args.data_dir)
    current = store.current_project_id()
    projects = store.list_projects()
    if not projects:
        print("No saved projects")
        return
    for p in sorted(projects, key=lambda p: p.last_modified, reverse=True):
        marker = "*" if p.id == current else " "
        print(f"{marker} {p.id}  {p.name:<30} {p.client_name:<24} {p.last_modified}")


def cmd_show(args) -> None:
    store = ProjectStore(args.data_dir)
    if args.json:
        print(store.export_json(args.project_id))
        return
    project = store.load(args.project_id)
    print(format_summary_text(project, summarize_project(project)))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="studio-fees", description="Architecture studio fee calculator")
    parser.add_argument("--data-dir", default=None, help=f"project store directory (default {config.DATA_DIR})")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("quote", help="fee summary for a project file")
    p.add_argument("project")
    p.add_argument("--no-tasks", action="store_true", help="omit the per-task lines")
    p.set_defaults(func=cmd_quote)

    p = sub.add_parser("team", help="team hours, cost and net profit for a project file")
    p.add_argument("project")
    p.set_defaults(func=cmd_team)

    p = sub.add_parser("scaling", help="project-size hours multiplier for an area")
    p.add_argument("area", type=float)
    p.add_argument("--tiers", default=None, help="JSON list of {limit, multiplier}")
    p.set_defaults(func=cmd_scaling)

    p = sub.add_parser("import", help="import an exported project file into the store")
    p.add_argument("file")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("list", help="list stored projects")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="fee summary of a stored project")
    p.add_argument("project_id")
    p.add_argument("--json", action="store_true", help="print the stored record instead")
    p.set_defaults(func=cmd_show)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format=config.LOG_FORMAT)

    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    try:
        args.func(args)
    except (ProjectValidationError, KeyError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
