"""
Sprint Allocator

Packs a work breakdown into time-boxed sprints, respecting per-skill and
per-person capacity.

Algorithm: greedy first-fit
1. Estimate the sprint count: for each skill pool, ceil(demand / capacity);
   take the maximum and add a fixed buffer
2. Create that many empty sprints, each with its own capacity snapshot
3. Walk epics -> stories -> tasks in input order; place each task in the
   first sprint whose pool can absorb it, with the first matching teammate
   that has room (and is the task's fixed owner, when one is set)
4. Tasks that fit nowhere are dropped and reported, never retried
5. Trim sprints that received no work

Usage:
    allocator = SprintAllocator()
    result = allocator.allocate(epics, team_members, 14, date(2024, 1, 1))
    if not result.is_complete:
        print(result.dropped_task_keys)
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Set, Tuple

from devplan.platform.config import Settings
from devplan.schemas import (
    Epic,
    PlannedStory,
    PlannedTask,
    SchedulingParameters,
    Sprint,
    Story,
    Task,
    TeamMember,
    assign_work_item_keys,
    iter_tasks,
)

from .base import SchedulerBase
from .capacity_model import CapacityModel, SkillCapacity, TeammateCapacity

SPRINT_KEY_PATTERN = re.compile(r"^sprint:(\d+)$")


@dataclass
class AllocationResult:
    """Sprints that received work, plus the keys of tasks that could not be placed."""
    sprints: List[Sprint]
    dropped_task_keys: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.dropped_task_keys


@dataclass
class Scheduled(AllocationResult):
    """Every task was placed."""


@dataclass
class PartiallyScheduled(AllocationResult):
    """Some tasks were dropped; see ``dropped_task_keys``."""


class SprintAllocator(SchedulerBase):
    """
    First-fit sprint allocation.

    Scan order is part of the contract: sprints are tried in chronological
    order and teammates in roster order, so ties always go to the earliest
    sprint and the first listed person.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        sprint_buffer: Optional[int] = None,
        preserve_pre_assigned: Optional[bool] = None,
    ):
        super().__init__(config)
        self.sprint_buffer = self.settings.SPRINT_BUFFER if sprint_buffer is None else sprint_buffer
        self.preserve_pre_assigned = (
            self.settings.PRESERVE_PRE_ASSIGNED_SPRINTS
            if preserve_pre_assigned is None
            else preserve_pre_assigned
        )
        self.capacity_model = CapacityModel(self.settings)

    def run(self, epics: List[Epic], parameters: SchedulingParameters) -> AllocationResult:
        return self.allocate(
            epics,
            parameters.team_members,
            parameters.sprint_length_days,
            parameters.sprint_start_date,
        )

    def allocate(
        self,
        epics: List[Epic],
        team_members: List[TeamMember],
        sprint_length_days: int,
        sprint_start_date: date,
    ) -> AllocationResult:
        """
        Assign every task of the tree to a sprint and a teammate.

        Task keys are filled in where missing. Incoming ``sprint_key`` hints are
        reset unless pre-assigned re-flow is enabled.

        Args:
            epics: Work breakdown, in priority order
            team_members: Roster
            sprint_length_days: Length of one sprint
            sprint_start_date: Start of the first sprint

        Returns:
            Scheduled, or PartiallyScheduled when tasks were dropped
        """
        assign_work_item_keys(epics)
        template = self.capacity_model.build_template(team_members)
        total_sprints = self.estimate_sprint_count(template, epics)

        # Snapshots are immutable, so every slot can start from the same template
        capacities: List[SkillCapacity] = [template] * total_sprints
        sprints = self.create_sprints(total_sprints, sprint_length_days, sprint_start_date)

        dropped: List[str] = []
        handled: Set[int] = set()

        if self.preserve_pre_assigned:
            for epic, story, task in iter_tasks(epics):
                if not task.sprint_key:
                    continue
                hinted_index = self._sprint_index(task.sprint_key)
                if hinted_index is None or hinted_index >= total_sprints:
                    self.logger.warning(
                        "pre_assigned_sprint_unknown",
                        task_key=task.key,
                        sprint_key=task.sprint_key,
                    )
                    continue
                handled.add(id(task))
                placement = self._place(task, story, epic, sprints, capacities, sprint_length_days, hinted_index)
                if placement is None:
                    dropped.append(task.key)
                else:
                    task.sprint_key = sprints[placement].key

        for epic, story, task in iter_tasks(epics):
            if id(task) in handled:
                continue
            if task.sprint_key:
                self.logger.info("pre_assigned_sprint_reset", task_key=task.key, sprint_key=task.sprint_key)
                task.sprint_key = None
            if self._place(task, story, epic, sprints, capacities, sprint_length_days) is None:
                dropped.append(task.key)

        used = [sprint for sprint in sprints if sprint.children]
        self.logger.info(
            "sprint_plan_created",
            sprints_created=total_sprints,
            sprints_used=len(used),
            dropped_tasks=len(dropped),
        )

        result_type = PartiallyScheduled if dropped else Scheduled
        return result_type(sprints=used, dropped_task_keys=dropped)

    def estimate_sprint_count(self, template: SkillCapacity, epics: List[Epic]) -> int:
        """
        Minimum sprints needed by the busiest skill pool, plus the buffer.

        Tasks without a skill add no demand; pools without capacity are ignored.
        """
        demand: Dict[str, int] = {}
        for _, _, task in iter_tasks(epics):
            if task.required_skill:
                demand[task.required_skill] = demand.get(task.required_skill, 0) + task.story_point

        minimum = 0
        for pool, capacity in template.pools.items():
            if capacity <= 0:
                continue
            needed = math.ceil(demand.get(pool, 0) / capacity)
            minimum = max(minimum, needed)
            self.logger.debug(
                "pool_sprint_estimate",
                pool=pool,
                capacity=capacity,
                workload=demand.get(pool, 0),
                sprints=needed,
            )

        total = minimum + self.sprint_buffer
        self.logger.info("sprint_count_estimated", minimum=minimum, buffer=self.sprint_buffer, total=total)
        return total

    def create_sprints(self, count: int, sprint_length_days: int, start: date) -> List[Sprint]:
        """Empty sprints laid end to end; each one after the first starts the day after the previous ends."""
        sprints = []
        for index in range(count):
            sprints.append(Sprint(
                key=f"sprint:{index + 1}",
                name=f"Sprint {index + 1}",
                story_point=0,
                start_date=self.add_days(start, index * sprint_length_days + (0 if index == 0 else 1)),
                end_date=self.add_days(start, (index + 1) * sprint_length_days),
            ))
        return sprints

    def find_sprint_and_teammate(
        self,
        task: Task,
        capacities: List[SkillCapacity],
        start_index: int = 0,
    ) -> Optional[Tuple[int, TeammateCapacity]]:
        """
        First sprint (from ``start_index``) and teammate able to take the task.

        The chosen slot's snapshot is replaced by one with the task charged to it.
        """
        for index in range(start_index, len(capacities)):
            capacity = capacities[index]
            teammate_index = capacity.find_teammate(task.required_skill, task.story_point, task.owner_user_id)
            if teammate_index is None:
                continue
            capacities[index] = capacity.allocate(teammate_index, task.required_skill, task.story_point)
            return index, capacity.teammates[teammate_index]
        return None

    def _place(
        self,
        task: Task,
        story: Story,
        epic: Epic,
        sprints: List[Sprint],
        capacities: List[SkillCapacity],
        sprint_length_days: int,
        start_index: int = 0,
    ) -> Optional[int]:
        placement = self.find_sprint_and_teammate(task, capacities, start_index)
        if placement is None:
            self.logger.error(
                "task_dropped",
                task_key=task.key,
                skill=task.required_skill,
                story_point=task.story_point,
                owner_user_id=task.owner_user_id,
            )
            return None

        sprint_index, teammate = placement
        self.assign_task_to_sprint(sprints[sprint_index], task, story, epic, teammate, sprint_length_days)
        self.logger.debug(
            "task_assigned",
            task_key=task.key,
            sprint_key=sprints[sprint_index].key,
            user_id=teammate.user_id,
        )
        return sprint_index

    def assign_task_to_sprint(
        self,
        sprint: Sprint,
        task: Task,
        story: Story,
        epic: Epic,
        teammate: TeammateCapacity,
        sprint_length_days: int,
    ) -> PlannedTask:
        """
        Add the task to the sprint, under its story's in-sprint entry.

        A person's tasks run back to back inside a sprint; duration scales with
        the share of their sprint capacity the task uses.
        """
        start = self.task_start_date(sprint, teammate.user_id)
        duration = 0
        if teammate.total_capacity > 0:
            duration = math.ceil(sprint_length_days * task.story_point / teammate.total_capacity)

        planned = PlannedTask(
            key=task.key,
            name=task.name,
            description=task.description,
            story_point=task.story_point,
            start_date=start,
            end_date=self.add_days(start, duration),
            owner_user_id=teammate.user_id,
            required_skill=task.required_skill,
        )

        existing = next((entry for entry in sprint.children if entry.key == story.key), None)
        if existing is None:
            sprint.children.append(PlannedStory(
                key=story.key,
                name=story.name,
                description=story.description,
                story_point=task.story_point,
                total_story_point=story.story_point,
                start_date=sprint.start_date,
                end_date=sprint.end_date,
                epic=epic.name,
                children=[planned],
            ))
        else:
            existing.children.append(planned)
            existing.story_point += task.story_point
        sprint.story_point += task.story_point
        return planned

    def task_start_date(self, sprint: Sprint, user_id: str) -> date:
        """Sprint start, or the day after the person's latest task in this sprint ends."""
        start = sprint.start_date
        for entry in sprint.children:
            for planned in entry.children:
                if planned.owner_user_id == user_id and planned.end_date > start:
                    start = planned.end_date
        if start == sprint.start_date:
            return start
        return self.add_days(start, 1)

    @staticmethod
    def _sprint_index(sprint_key: str) -> Optional[int]:
        match = SPRINT_KEY_PATTERN.match(sprint_key.strip())
        if not match or int(match.group(1)) < 1:
            return None
        return int(match.group(1)) - 1
