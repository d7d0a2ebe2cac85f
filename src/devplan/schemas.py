"""
Plan document schemas.

The plan document is the unit the scheduler reads and writes: a work
breakdown (epics -> stories -> tasks) plus the sprints and milestones
derived from it. Field names are snake_case in Python and camelCase on
the wire (``storyPoint``, ``sprintKey``, ``ownerUserId``...), dates are
``MM/DD/YYYY`` strings on the wire.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from devplan.platform.config import settings

SKILL_TAG_PATTERN = re.compile(r"\[(.*?)\]")


class IssueType(str, Enum):
    """Work item levels."""
    EPIC = "EPIC"
    STORY = "STORY"
    TASK = "TASK"


class WorkPlanType(str, Enum):
    """Scheduling containers."""
    SPRINT = "SPRINT"
    MILESTONE = "MILESTONE"


def parse_plan_date(value: Any) -> Any:
    """Accept MM/DD/YYYY or ISO dates (with or without a time part)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date) or value is None:
        return value
    text = str(value).strip().split("T")[0].split(" ")[0]
    for fmt in (settings.DATE_FORMAT, "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def format_plan_date(value: date) -> str:
    return value.strftime(settings.DATE_FORMAT)


PlanDate = Annotated[
    date,
    BeforeValidator(parse_plan_date),
    PlainSerializer(format_plan_date, return_type=str),
]


def extract_skill_tag(name: str) -> Optional[str]:
    """Return the text of the first ``[Tag]`` in a task name, if any."""
    match = SKILL_TAG_PATTERN.search(name or "")
    if not match:
        return None
    return match.group(1).strip() or None


class PlanModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Work breakdown
# =============================================================================

class WorkItem(PlanModel):
    node_type: ClassVar[Enum] = IssueType.TASK

    key: Optional[str] = None
    name: str
    description: Optional[str] = None
    type: str = Field(default="", validate_default=True)
    story_point: int = Field(0, ge=0)

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> str:
        return cls.node_type.value


class Task(WorkItem):
    node_type: ClassVar[Enum] = IssueType.TASK

    sprint_key: Optional[str] = None
    owner_user_id: Optional[str] = None
    required_skill: Optional[str] = None

    @model_validator(mode="after")
    def _derive_required_skill(self) -> "Task":
        # The name tag is authoritative; a stored skill only stands in for untagged names
        self.required_skill = extract_skill_tag(self.name) or self.required_skill
        return self


class Story(WorkItem):
    node_type: ClassVar[Enum] = IssueType.STORY

    children: List[Task] = Field(default_factory=list)


class Epic(WorkItem):
    node_type: ClassVar[Enum] = IssueType.EPIC

    children: List[Story] = Field(default_factory=list)


# =============================================================================
# Scheduled plan
# =============================================================================

class PlannedTask(WorkItem):
    """A task placed in a sprint for one teammate."""
    node_type: ClassVar[Enum] = IssueType.TASK

    start_date: PlanDate
    end_date: PlanDate
    owner_user_id: str
    required_skill: Optional[str] = None


class PlannedStory(WorkItem):
    """The part of a story scheduled in one sprint."""
    node_type: ClassVar[Enum] = IssueType.STORY

    total_story_point: int = 0
    start_date: PlanDate
    end_date: PlanDate
    epic: str
    children: List[PlannedTask] = Field(default_factory=list)


class Sprint(WorkItem):
    node_type: ClassVar[Enum] = WorkPlanType.SPRINT

    key: str
    start_date: PlanDate
    end_date: PlanDate
    children: List[PlannedStory] = Field(default_factory=list)


class MilestoneEpic(WorkItem):
    """Progress of one epic within one milestone."""
    node_type: ClassVar[Enum] = IssueType.EPIC

    prev_story_point: Optional[int] = 0
    total_story_point: Optional[int] = None
    start_date: PlanDate
    end_date: PlanDate


class Milestone(WorkItem):
    node_type: ClassVar[Enum] = WorkPlanType.MILESTONE

    key: str
    start_date: PlanDate
    end_date: PlanDate
    epics: List[MilestoneEpic] = Field(default_factory=list)
    children: List[Sprint] = Field(default_factory=list)


class DevPlan(PlanModel):
    epics: List[Epic] = Field(default_factory=list)
    sprints: List[Sprint] = Field(default_factory=list)
    milestones: List[Milestone] = Field(default_factory=list)


# =============================================================================
# Scheduling parameters
# =============================================================================

class TeamMember(PlanModel):
    user_id: str
    specialty: str
    story_points_per_sprint: int = Field(0, ge=0)


def _split_list(value: Any, separator: str = ",") -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [item for item in value.split(separator) if item]
    return value


class SchedulingParameters(PlanModel):
    weeks_per_sprint: int = Field(default_factory=lambda: settings.DEFAULT_WEEKS_PER_SPRINT, ge=1)
    team_members: List[TeamMember] = Field(default_factory=list)
    required_specialties: List[str] = Field(default_factory=list)
    chosen_document_ids: List[str] = Field(default_factory=list)
    sprint_start_date: PlanDate = Field(default_factory=date.today)

    @field_validator("required_specialties", "chosen_document_ids", mode="before")
    @classmethod
    def _split_comma_list(cls, value: Any) -> Any:
        return _split_list(value)

    @field_validator("sprint_start_date", mode="before")
    @classmethod
    def _default_start_date(cls, value: Any) -> Any:
        return value or date.today()

    @property
    def sprint_length_days(self) -> int:
        return self.weeks_per_sprint * 7

    @classmethod
    def from_meta(cls, meta: Optional[Mapping[str, Any]]) -> "SchedulingParameters":
        """
        Build parameters from the compact metadata record stored next to a plan.

        ``teammates`` is encoded as ``"user,SPECIALTY,points;user,SPECIALTY,points"``;
        list fields are comma-separated.
        """
        if meta is not None and not isinstance(meta, Mapping):
            raise ValueError(f"Scheduling metadata must be an object, got {type(meta).__name__}")
        meta = dict(meta or {})
        teammates = meta.get("teammates")
        if teammates is not None and not isinstance(teammates, str):
            raise ValueError(f"Malformed teammates field: {teammates!r}")
        team_members = []
        for entry in _split_list(teammates, ";"):
            parts = entry.split(",")
            if len(parts) != 3:
                raise ValueError(f"Malformed teammate entry: {entry!r}")
            user_id, specialty, points = parts
            team_members.append(
                TeamMember(user_id=user_id, specialty=specialty, story_points_per_sprint=points)
            )

        values: Dict[str, Any] = {
            "team_members": team_members,
            "required_specialties": meta.get("requiredSpecialties"),
            "chosen_document_ids": meta.get("chosenDocumentIds"),
            "sprint_start_date": meta.get("sprintStartDate"),
        }
        if meta.get("sprintWeek") not in (None, ""):
            values["weeks_per_sprint"] = meta["sprintWeek"]
        return cls(**values)

    def to_meta(self) -> Dict[str, Any]:
        return {
            "teammates": ";".join(
                f"{m.user_id},{m.specialty},{m.story_points_per_sprint}"
                for m in self.team_members
            ),
            "sprintWeek": self.weeks_per_sprint,
            "sprintStartDate": format_plan_date(self.sprint_start_date),
            "requiredSpecialties": ",".join(self.required_specialties),
            "chosenDocumentIds": ",".join(self.chosen_document_ids),
        }


# =============================================================================
# Tree helpers
# =============================================================================

def iter_tasks(epics: List[Epic]) -> Iterator[Tuple[Epic, Story, Task]]:
    """Walk every task in input order with its story and epic."""
    for epic in epics:
        for story in epic.children:
            for task in story.children:
                yield epic, story, task


def assign_work_item_keys(epics: List[Epic]) -> List[Epic]:
    """Fill in missing keys as ``epic:N``, ``<epic>;story:N``, ``<story>;task:N``."""
    for epic_index, epic in enumerate(epics):
        epic.key = epic.key or f"epic:{epic_index + 1}"
        for story_index, story in enumerate(epic.children):
            story.key = story.key or f"{epic.key};story:{story_index + 1}"
            for task_index, task in enumerate(story.children):
                task.key = task.key or f"{story.key};task:{task_index + 1}"
    return epics
