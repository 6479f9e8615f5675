"""
team_allocation.py — Team hour and cost allocation engine

Spreads each sub-task's scaled hours over the team members assigned to it
in the lead and implementer roles, then prices those hours at each member's
hourly rate.

    sub-task hours = base hours x (task weight x size multiplier) / group base hours
    member hours   = sub-task hours x role percentage / 100 x distribution share
    member cost    = member hours x member hourly rate

A custom hours override on a sub-task replaces the computed hours outright
and rewrites the owning task's weight so the fee side stays consistent.

Usage:
    from studio_fees.team_allocation import TeamAllocator
    allocator = TeamAllocator.for_project(project)
    allocator.toggle_assignment("st-1-1", member.id, Role.LEAD)
    print(allocator.total_project_cost())
"""

import copy
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Union

from studio_fees.models import (
    ProjectData,
    Role,
    RoleDistributionWeight,
    RoleSplitSettings,
    ScalingTier,
    SubTaskHoursOverride,
    Task,
    TaskAssignment,
    TeamDistributionState,
    TeamMember,
    as_number,
)
from studio_fees.multipliers import NEUTRAL_MULTIPLIER, scaling_multiplier
from studio_fees.subtask_catalog import SubTask, get_sub_task, group_for_task

logger = logging.getLogger(__name__)

# Area used for the size multiplier while the project has no floor area yet
FALLBACK_SCALING_AREA = 100.0

TaskWeightCallback = Callable[[str, float], None]


# ---------------------------------------------------------------------------
# Result Models
# ---------------------------------------------------------------------------

@dataclass
class MemberHours:
    lead_hours: float = 0.0
    implementer_hours: float = 0.0

    @property
    def total_hours(self) -> float:
        return self.lead_hours + self.implementer_hours


@dataclass
class MemberTaskLine:
    task_name: str                          # sub-task name
    role: Role
    hours: float
    cost: float


@dataclass
class MemberSummary:
    member: TeamMember
    hours: MemberHours
    cost: float
    breakdown: list[MemberTaskLine] = field(default_factory=list)


def size_multiplier_for(total_area, tiers: Optional[list[ScalingTier]] = None) -> float:
    """Project-size hours multiplier; an empty project is scaled as 100 sqm."""
    area = as_number(total_area)
    return scaling_multiplier(area if area > 0 else FALLBACK_SCALING_AREA, tiers)


# ---------------------------------------------------------------------------
# Team Allocator
# ---------------------------------------------------------------------------

class TeamAllocator:
    """
    Team distribution state plus every query the cost panels need.

    Rules:
    - Role percentages are applied as configured; they are not forced to sum to 100
    - A sole assignee in a role always takes the full share
    - Any change to who is assigned in a role drops that role's custom weights
    - Removing a member removes their assignments and custom weights
    """

    def __init__(
        self,
        tasks: list[Task],
        state: Optional[TeamDistributionState] = None,
        scale_multiplier: float = NEUTRAL_MULTIPLIER,
        on_update_task_weight: Optional[TaskWeightCallback] = None,
    ):
        self.tasks = tasks if isinstance(tasks, list) else []
        self._state = copy.deepcopy(state) if state is not None else TeamDistributionState()
        self.scale_multiplier = as_number(scale_multiplier, NEUTRAL_MULTIPLIER)
        self.on_update_task_weight = on_update_task_weight
        logger.info(
            "TeamAllocator initialized: %d members, %d assignments, size multiplier %.3f",
            len(self._state.team_members), len(self._state.assignments), self.scale_multiplier,
        )

    @classmethod
    def for_project(
        cls,
        project: ProjectData,
        on_update_task_weight: Optional[TaskWeightCallback] = None,
    ) -> "TeamAllocator":
        """Allocator over a project's tasks and stored team state, scaled by its floor area."""
        tiers = project.multiplier_settings.project_size_scaling if project.multiplier_settings else None
        return cls(
            tasks=project.tasks,
            state=project.team_distribution,
            scale_multiplier=size_multiplier_for(project.total_area, tiers),
            on_update_task_weight=on_update_task_weight,
        )

    def state(self) -> TeamDistributionState:
        """Snapshot of the current team distribution state."""
        return copy.deepcopy(self._state)

    @property
    def team_members(self) -> list[TeamMember]:
        return list(self._state.team_members)

    @property
    def assignments(self) -> list[TaskAssignment]:
        return list(self._state.assignments)

    @property
    def settings(self) -> RoleSplitSettings:
        return self._state.settings

    # -----------------------------------------------------------------------
    # Scaled hours
    # -----------------------------------------------------------------------

    def _task_weight_map(self) -> dict[str, float]:
        return {t.id: max(as_number(t.weight), 0.0) for t in self.tasks if t.included}

    def _find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def _resolve_sub_task(self, sub_task: Union[SubTask, str]) -> Optional[SubTask]:
        return get_sub_task(sub_task) if isinstance(sub_task, str) else sub_task

    def custom_hours_for(self, sub_task_id: str) -> Optional[float]:
        override = next((o for o in self._state.custom_hours if o.sub_task_id == sub_task_id), None)
        return as_number(override.custom_hours) if override else None

    def scaled_hours(self, sub_task: Union[SubTask, str]) -> float:
        """
        Hours allocated to a sub-task.

        Args:
            sub_task: SubTask or sub-task id

        Returns:
            The custom override when one is set, 0 when the parent task is not
            included, otherwise base hours scaled by task weight and project size
        """
        st = self._resolve_sub_task(sub_task)
        if st is None:
            return 0.0

        custom = self.custom_hours_for(st.id)
        if custom is not None:
            return custom

        group = group_for_task(st.parent_task_id)
        if group is None:
            return st.base_hours

        weight = self._task_weight_map().get(group.app_task_id)
        if not weight:
            return 0.0

        group_hours = group.base_hours
        if group_hours <= 0:
            return 0.0

        return st.base_hours * (weight * self.scale_multiplier / group_hours)

    # -----------------------------------------------------------------------
    # Team members
    # -----------------------------------------------------------------------

    def _new_member_id(self) -> str:
        member_id = f"member-{int(time.time() * 1000)}"
        existing = {m.id for m in self._state.team_members}
        suffix = 1
        candidate = member_id
        while candidate in existing:
            candidate = f"{member_id}-{suffix}"
            suffix += 1
        return candidate

    def add_team_member(
        self,
        name: str,
        hourly_rate: float,
        role: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> TeamMember:
        member = TeamMember(
            id=self._new_member_id(),
            name=name,
            hourly_rate=as_number(hourly_rate),
            role=role,
            photo_url=photo_url,
        )
        self._state.team_members.append(member)
        logger.info("Added team member %s (%s) at $%.2f/hr", member.name, member.id, member.hourly_rate)
        return member

    def update_team_member(self, member_id: str, **changes) -> Optional[TeamMember]:
        """Apply field changes to a member; returns None for an unknown id."""
        for i, member in enumerate(self._state.team_members):
            if member.id == member_id:
                updated = replace(member, **changes)
                self._state.team_members[i] = updated
                logger.debug("Updated team member %s: %s", member_id, sorted(changes))
                return updated
        logger.warning("update_team_member: unknown member id %s", member_id)
        return None

    def remove_team_member(self, member_id: str) -> None:
        """Remove a member together with their assignments and custom weights."""
        state = self._state
        state.team_members = [m for m in state.team_members if m.id != member_id]
        state.assignments = [a for a in state.assignments if a.team_member_id != member_id]
        state.custom_distributions = [d for d in state.custom_distributions if d.team_member_id != member_id]
        logger.info("Removed team member %s", member_id)

    def get_member(self, member_id: str) -> Optional[TeamMember]:
        return next((m for m in self._state.team_members if m.id == member_id), None)

    # -----------------------------------------------------------------------
    # Assignments
    # -----------------------------------------------------------------------

    def _clear_distribution(self, sub_task_id: str, role: Role) -> None:
        self._state.custom_distributions = [
            d for d in self._state.custom_distributions
            if not (d.sub_task_id == sub_task_id and d.role == role)
        ]

    def toggle_assignment(self, sub_task_id: str, member_id: str, role) -> bool:
        """
        Assign the member if absent, unassign if present.

        Returns:
            True when the member is assigned after the call
        """
        role = Role.parse(role)
        triple = TaskAssignment(sub_task_id=sub_task_id, team_member_id=member_id, role=role)
        if triple in self._state.assignments:
            self._state.assignments = [a for a in self._state.assignments if a != triple]
            assigned = False
        else:
            self._state.assignments.append(triple)
            assigned = True
        self._clear_distribution(sub_task_id, role)
        logger.debug("%s %s as %s on %s", "Assigned" if assigned else "Unassigned", member_id, role.value, sub_task_id)
        return assigned

    def remove_assignment(self, sub_task_id: str, member_id: str, role) -> None:
        # custom weights are left in place
        role = Role.parse(role)
        self._state.assignments = [
            a for a in self._state.assignments
            if not (a.sub_task_id == sub_task_id and a.team_member_id == member_id and a.role == role)
        ]

    def role_assignees(self, sub_task_id: str, role) -> list[str]:
        role = Role.parse(role)
        return [
            a.team_member_id for a in self._state.assignments
            if a.sub_task_id == sub_task_id and a.role == role
        ]

    def sub_task_assignments(self, sub_task_id: str) -> list[TaskAssignment]:
        return [a for a in self._state.assignments if a.sub_task_id == sub_task_id]

    def update_settings(self, lead_percentage=None, implementer_percentage=None) -> RoleSplitSettings:
        settings = self._state.settings
        if lead_percentage is not None:
            settings.lead_percentage = as_number(lead_percentage)
        if implementer_percentage is not None:
            settings.implementer_percentage = as_number(implementer_percentage)
        if settings.lead_percentage + settings.implementer_percentage != 100:
            logger.info(
                "Role split is %.1f/%.1f; percentages do not sum to 100",
                settings.lead_percentage, settings.implementer_percentage,
            )
        return settings

    # -----------------------------------------------------------------------
    # Distribution weights
    # -----------------------------------------------------------------------

    def _distribution_weights(self, sub_task_id: str, role: Role) -> dict[str, float]:
        return {
            d.team_member_id: max(as_number(d.weight), 0.0)
            for d in self._state.custom_distributions
            if d.sub_task_id == sub_task_id and d.role == role
        }

    def has_custom_distribution(self, sub_task_id: str, role) -> bool:
        return bool(self._distribution_weights(sub_task_id, Role.parse(role)))

    def update_distribution(self, sub_task_id: str, role, weights: dict[str, float]) -> None:
        """Replace the custom weights of one sub-task and role."""
        role = Role.parse(role)
        self._clear_distribution(sub_task_id, role)
        self._state.custom_distributions.extend(
            RoleDistributionWeight(sub_task_id=sub_task_id, role=role, team_member_id=member_id,
                                   weight=as_number(weight))
            for member_id, weight in weights.items()
        )
        logger.debug("Custom distribution for %s/%s: %s", sub_task_id, role.value, weights)

    def member_distribution_share(self, sub_task_id: str, role, member_id: str) -> float:
        """
        Fraction of a sub-task's role hours that fall to one member.

        Equal split unless custom weights are stored; a member missing from
        the stored weights counts as weight 1. Shares of all assignees sum to 1.
        """
        role = Role.parse(role)
        assignees = self.role_assignees(sub_task_id, role)
        count = len(assignees)
        if count == 0 or member_id not in assignees:
            return 0.0
        if count == 1:
            return 1.0

        weights = self._distribution_weights(sub_task_id, role)
        if not weights:
            return 1.0 / count

        total = sum(weights.get(a, 1.0) for a in assignees)
        if total <= 0:
            return 1.0 / count
        return weights.get(member_id, 1.0) / total

    # -----------------------------------------------------------------------
    # Member hours & cost
    # -----------------------------------------------------------------------

    def _member_assignment_hours(self, assignment: TaskAssignment) -> float:
        st = get_sub_task(assignment.sub_task_id)
        if st is None:
            return 0.0
        pct = self._state.settings.percentage_for(assignment.role)
        share = self.member_distribution_share(assignment.sub_task_id, assignment.role, assignment.team_member_id)
        return self.scaled_hours(st) * pct / 100 * share

    def _member_assignments(self, member_id: str) -> list[TaskAssignment]:
        return [a for a in self._state.assignments if a.team_member_id == member_id]

    def member_hours(self, member_id: str) -> MemberHours:
        result = MemberHours()
        for assignment in self._member_assignments(member_id):
            hours = self._member_assignment_hours(assignment)
            if assignment.role == Role.LEAD:
                result.lead_hours += hours
            else:
                result.implementer_hours += hours
        return result

    def member_cost(self, member_id: str) -> float:
        member = self.get_member(member_id)
        if member is None:
            return 0.0
        rate = as_number(member.hourly_rate)
        return sum(self._member_assignment_hours(a) * rate for a in self._member_assignments(member_id))

    def total_project_cost(self) -> float:
        total = sum(self.member_cost(m.id) for m in self._state.team_members)
        logger.debug("Team cost: $%.2f across %d members", total, len(self._state.team_members))
        return total

    def member_task_breakdown(self, member_id: str) -> list[MemberTaskLine]:
        """Per-assignment hours and cost for one member, most expensive first."""
        member = self.get_member(member_id)
        if member is None:
            return []
        rate = as_number(member.hourly_rate)
        lines = []
        for assignment in self._member_assignments(member_id):
            st = get_sub_task(assignment.sub_task_id)
            if st is None:
                continue
            hours = self._member_assignment_hours(assignment)
            lines.append(MemberTaskLine(task_name=st.name, role=assignment.role, hours=hours, cost=hours * rate))
        return sorted(lines, key=lambda line: line.cost, reverse=True)

    def member_summaries(self) -> list[MemberSummary]:
        return [
            MemberSummary(
                member=m,
                hours=self.member_hours(m.id),
                cost=self.member_cost(m.id),
                breakdown=self.member_task_breakdown(m.id),
            )
            for m in self._state.team_members
        ]

    # -----------------------------------------------------------------------
    # Custom hours
    # -----------------------------------------------------------------------

    def has_custom_hours(self, sub_task_id: str) -> bool:
        return self.custom_hours_for(sub_task_id) is not None

    def parent_task_weight(self, parent_task_id: str, custom_hours: dict[str, float]) -> float:
        """
        Task weight consistent with a set of sub-task hour overrides.

        Overridden sub-tasks contribute their custom hours; the rest keep the
        task's current scale over their base hours. Rounded to 1 decimal.
        """
        group = group_for_task(parent_task_id)
        if group is None or group.base_hours <= 0:
            return 0.0

        task = self._find_task(parent_task_id)
        current_weight = max(as_number(task.weight), 0.0) if task else 0.0

        if not any(st.id in custom_hours for st in group.sub_tasks):
            return current_weight

        scale = (current_weight or group.base_hours) / group.base_hours
        total = sum(
            as_number(custom_hours[st.id]) if st.id in custom_hours else st.base_hours * scale
            for st in group.sub_tasks
        )
        return round(total, 1)

    def _apply_task_weight(self, task_id: str, weight: float) -> None:
        task = self._find_task(task_id)
        if task is not None:
            logger.info("Task %s weight %s -> %s after custom hours change", task_id, task.weight, weight)
            task.weight = weight
        if self.on_update_task_weight is not None:
            self.on_update_task_weight(task_id, weight)

    def _custom_hours_map(self) -> dict[str, float]:
        return {o.sub_task_id: as_number(o.custom_hours) for o in self._state.custom_hours}

    def set_custom_hours(self, sub_task_id: str, hours) -> None:
        st = get_sub_task(sub_task_id)
        if st is None:
            logger.warning("set_custom_hours: unknown sub-task %s ignored", sub_task_id)
            return

        updated = self._custom_hours_map()
        updated[sub_task_id] = as_number(hours)
        new_weight = self.parent_task_weight(st.parent_task_id, updated)

        self._state.custom_hours = [o for o in self._state.custom_hours if o.sub_task_id != sub_task_id]
        self._state.custom_hours.append(SubTaskHoursOverride(sub_task_id=sub_task_id, custom_hours=as_number(hours)))
        self._apply_task_weight(st.parent_task_id, new_weight)

    def clear_custom_hours(self, sub_task_id: str) -> None:
        st = get_sub_task(sub_task_id)
        if st is None:
            logger.warning("clear_custom_hours: unknown sub-task %s ignored", sub_task_id)
            return

        updated = self._custom_hours_map()
        updated.pop(sub_task_id, None)
        new_weight = self.parent_task_weight(st.parent_task_id, updated)

        self._state.custom_hours = [o for o in self._state.custom_hours if o.sub_task_id != sub_task_id]
        self._apply_task_weight(st.parent_task_id, new_weight)
