"""
Development plan service.

Entry points used by the surrounding product: parse a stored plan document,
re-plan it end to end, and serialize the result back.

Pipeline:
    rollup -> allocate sprints -> group milestones -> rollup
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from devplan.platform.config import Settings, get_settings
from devplan.platform.logging import get_logger
from devplan.schedulers import (
    AllocationResult,
    CapacityModel,
    MilestoneGrouper,
    RollupCalculator,
    SkillGap,
    SprintAllocator,
    identify_skill_gaps,
)
from devplan.schemas import (
    DevPlan,
    Epic,
    IssueType,
    PlannedTask,
    SchedulingParameters,
    assign_work_item_keys,
)

logger = get_logger(__name__)


class PlanDocumentError(ValueError):
    """A stored plan document or its metadata could not be read."""


@dataclass
class SchedulingOutcome:
    plan: DevPlan
    allocation: AllocationResult
    skill_gaps: List[SkillGap] = field(default_factory=list)

    @property
    def dropped_task_keys(self) -> List[str]:
        return self.allocation.dropped_task_keys

    @property
    def is_complete(self) -> bool:
        return self.allocation.is_complete


def parse_dev_plan_contents(
    raw_contents: Union[bytes, str, None],
    raw_meta: Optional[Mapping[str, Any]],
) -> Tuple[DevPlan, SchedulingParameters]:
    """
    Parse a stored plan blob and its metadata record.

    An absent or empty blob is an empty plan; absent metadata gives default
    parameters (2-week sprints starting today, no team).
    """
    try:
        if isinstance(raw_contents, bytes):
            raw_contents = raw_contents.decode("utf-8")
        contents = json.loads(raw_contents) if raw_contents else {}
        dev_plan = DevPlan.model_validate(contents)
        parameters = SchedulingParameters.from_meta(raw_meta)
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError, ValueError) as e:
        raise PlanDocumentError(f"Invalid development plan document: {e}") from e
    return dev_plan, parameters


def serialize_dev_plan(plan: DevPlan) -> bytes:
    return plan.model_dump_json(by_alias=True).encode("utf-8")


def set_epic_keys(epics: List[Epic]) -> List[Epic]:
    """Normalise node types and fill in missing keys on a freshly generated breakdown."""
    assign_work_item_keys(epics)
    for epic in epics:
        epic.type = IssueType.EPIC.value
        for story in epic.children:
            story.type = IssueType.STORY.value
            for task in story.children:
                task.type = IssueType.TASK.value
                task.sprint_key = task.sprint_key or None
    return epics


def recreate_dev_plan(
    epics: List[Epic],
    parameters: SchedulingParameters,
    config: Optional[Settings] = None,
) -> SchedulingOutcome:
    """
    Re-plan a work breakdown from scratch.

    The epics are updated in place (keys, totals) and returned inside the new plan.
    """
    config = config or get_settings()
    rollup = RollupCalculator(config)

    rollup.run(epics)
    logger.info("recreating_dev_plan", epics=len(epics), team_members=len(parameters.team_members))

    allocation = SprintAllocator(config).run(epics, parameters)
    milestones = MilestoneGrouper(config).run(allocation.sprints, epics)
    rollup.run(epics)

    template = CapacityModel(config).build_template(parameters.team_members)
    skill_gaps = identify_skill_gaps(epics, template.pools)
    for gap in skill_gaps:
        logger.warning("skill_gap", skill=gap.skill, story_points=gap.story_points, tasks=len(gap.task_keys))
    if not allocation.is_complete:
        logger.warning("plan_partially_scheduled", dropped_task_keys=allocation.dropped_task_keys)

    plan = DevPlan(epics=epics, sprints=allocation.sprints, milestones=milestones)
    return SchedulingOutcome(plan=plan, allocation=allocation, skill_gaps=skill_gaps)


def carry_over_owners(new_plan: DevPlan, old_plan: DevPlan) -> DevPlan:
    """
    Keep owners stable across re-plans.

    A task in the new plan whose name and description match a task in the old
    plan takes the old task's owner. Both the sprint list and the sprints held by
    milestones are updated, since a parsed plan holds separate copies of each.
    """
    old_tasks: Dict[Tuple[str, Optional[str]], PlannedTask] = {}
    for planned in _planned_tasks(old_plan):
        old_tasks.setdefault((planned.name, planned.description), planned)

    carried = 0
    for planned in _planned_tasks(new_plan):
        previous = old_tasks.get((planned.name, planned.description))
        if previous is not None and previous.owner_user_id != planned.owner_user_id:
            planned.owner_user_id = previous.owner_user_id
            carried += 1
    logger.info("owners_carried_over", planned_tasks=carried)
    return new_plan


def _planned_tasks(plan: DevPlan):
    sprints = [sprint for milestone in plan.milestones for sprint in milestone.children] + plan.sprints
    seen = set()
    for sprint in sprints:
        for story in sprint.children:
            for planned in story.children:
                if id(planned) not in seen:
                    seen.add(id(planned))
                    yield planned
