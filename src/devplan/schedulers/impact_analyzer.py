"""
Impact Analyzer

Compares two scheduled plans of the same project and reports the delivery
impact of the change between them (typically a story added to an epic):
- Where the new story's tasks landed (owner, sprint)
- Epic total and delivery date changes
- Milestone story point, delivery date and completed-epic changes

Usage:
    analyzer = ImpactAnalyzer()
    impact = analyzer.analyze_scope_change(old_plan, new_plan, story_name="Password reset")
    for line in impact.summary():
        print(line)
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from devplan.schemas import DevPlan, Epic, Milestone, PlannedTask, Sprint, Story, format_plan_date

from .base import SchedulerBase


def _fmt(value: Optional[date]) -> str:
    return format_plan_date(value) if value else "n/a"


@dataclass
class EpicImpact:
    name: str
    story_points_before: Optional[int]
    story_points_after: Optional[int]
    end_date_before: Optional[date]
    end_date_after: Optional[date]
    removed: bool = False

    @property
    def changed(self) -> bool:
        return (
            self.removed
            or self.story_points_before != self.story_points_after
            or self.end_date_before != self.end_date_after
        )

    def describe(self) -> str:
        text = f"{self.name}:"
        if self.removed:
            return text + " will no longer be scheduled."
        if self.story_points_before != self.story_points_after:
            text += f" story points to change from {self.story_points_before} to {self.story_points_after},"
        if self.end_date_before != self.end_date_after:
            text += f" delivery date to move from {_fmt(self.end_date_before)} to {_fmt(self.end_date_after)}"
        return text


@dataclass
class MilestoneImpact:
    name: str
    removed: bool = False
    story_points_before: int = 0
    story_points_after: int = 0
    end_date_before: Optional[date] = None
    end_date_after: Optional[date] = None
    completed_epics_before: List[str] = field(default_factory=list)
    completed_epics_after: List[str] = field(default_factory=list)

    def describe(self) -> str:
        text = f"{self.name}:"
        if self.removed:
            return text + " will be removed."

        if self.story_points_before != self.story_points_after:
            text += f" story points to change from {self.story_points_before} to {self.story_points_after},"
        else:
            text += f" story points remains as {self.story_points_before},"

        if self.end_date_before != self.end_date_after:
            text += f" delivery date to move from {_fmt(self.end_date_before)} to {_fmt(self.end_date_after)},"
        else:
            text += f" delivery date remains as {_fmt(self.end_date_before)},"

        before = " ".join(self.completed_epics_before)
        after = " ".join(self.completed_epics_after)
        if before != after:
            text += f" completed epics to change from {before} to {after}."
        else:
            text += f" completed epics remain as {before}."
        return text


@dataclass
class DeliveryImpact:
    new_task_info: List[str] = field(default_factory=list)
    epic_impacts: Dict[str, EpicImpact] = field(default_factory=dict)
    milestone_impacts: Dict[str, MilestoneImpact] = field(default_factory=dict)

    def summary(self) -> List[str]:
        return (
            list(self.new_task_info)
            + [impact.describe() for impact in self.epic_impacts.values()]
            + [impact.describe() for impact in self.milestone_impacts.values()]
        )


class ImpactAnalyzer(SchedulerBase):
    """Delivery impact of a scope change between two plans."""

    def run(self, old_plan: DevPlan, new_plan: DevPlan, story_name: Optional[str] = None) -> DeliveryImpact:
        return self.analyze_scope_change(old_plan, new_plan, story_name)

    def analyze_scope_change(
        self,
        old_plan: DevPlan,
        new_plan: DevPlan,
        story_name: Optional[str] = None
    ) -> DeliveryImpact:
        """
        Compare an old and a re-planned version of the same plan.

        Args:
            old_plan: Plan before the change
            new_plan: Plan after re-scheduling
            story_name: Name of the story that was added, if any

        Returns:
            DeliveryImpact with new task placement, epic and milestone impacts
        """
        self.logger.info("analyzing_scope_change", story_name=story_name)

        impact = DeliveryImpact()
        if story_name:
            impact.new_task_info = self._describe_new_story(story_name, new_plan)

        epics_before = self._epic_spans(old_plan.milestones)
        epics_after = self._epic_spans(new_plan.milestones)
        for name, (points, end) in epics_before.items():
            after = epics_after.get(name)
            impact.epic_impacts[name] = EpicImpact(
                name=name,
                story_points_before=points,
                story_points_after=after[0] if after else None,
                end_date_before=end,
                end_date_after=after[1] if after else None,
                removed=after is None,
            )

        milestones_after = {m.name: m for m in new_plan.milestones}
        for before in old_plan.milestones:
            after = milestones_after.get(before.name)
            if after is None:
                impact.milestone_impacts[before.name] = MilestoneImpact(name=before.name, removed=True)
                continue
            impact.milestone_impacts[before.name] = MilestoneImpact(
                name=before.name,
                story_points_before=before.story_point,
                story_points_after=after.story_point,
                end_date_before=before.end_date,
                end_date_after=after.end_date,
                completed_epics_before=self.completed_epics(before),
                completed_epics_after=self.completed_epics(after),
            )

        self.logger.info(
            "scope_change_analyzed",
            epics_changed=sum(1 for e in impact.epic_impacts.values() if e.changed),
            milestones=len(impact.milestone_impacts),
        )
        return impact

    @staticmethod
    def completed_epics(milestone: Milestone) -> List[str]:
        """Epics whose last story points are delivered in this milestone."""
        return [
            f"[{epic.name}({epic.total_story_point} points)]"
            for epic in milestone.epics
            if epic.story_point + (epic.prev_story_point or 0) == epic.total_story_point
        ]

    @staticmethod
    def _epic_spans(milestones: List[Milestone]) -> Dict[str, Tuple[Optional[int], date]]:
        """Epic name -> (total story points, latest end date) across all milestones."""
        spans: Dict[str, Tuple[Optional[int], date]] = {}
        for milestone in milestones:
            for epic in milestone.epics:
                previous = spans.get(epic.name)
                end = max(previous[1], epic.end_date) if previous else epic.end_date
                spans[epic.name] = (epic.total_story_point, end)
        return spans

    def _describe_new_story(self, story_name: str, plan: DevPlan) -> List[str]:
        found = self._find_story(story_name, plan.epics)
        if found is None:
            self.logger.warning("new_story_not_found", story_name=story_name)
            return []

        epic, story = found
        lines = [
            f'New Story: 1 story "{story_name}" with {len(story.children)} task(s) and '
            f"{story.story_point} story points were added to epic [{epic.name}]"
        ]
        for index, task in enumerate(story.children, start=1):
            placement = self._find_planned_task(task.key, plan.sprints)
            owner, sprint_name = ("unassigned", "unscheduled")
            if placement is not None:
                sprint, planned = placement
                owner, sprint_name = planned.owner_user_id, sprint.name
            lines.append(
                f"New Task {index}: {task.name}, {task.story_point} story point, "
                f"owner: {owner}, sprint: {sprint_name}"
            )
        return lines

    @staticmethod
    def _find_story(story_name: str, epics: List[Epic]) -> Optional[Tuple[Epic, Story]]:
        wanted = story_name.strip().lower()
        found = None
        for epic in epics:
            for story in epic.children:
                if story.name.strip().lower() == wanted:
                    found = (epic, story)
        return found

    @staticmethod
    def _find_planned_task(task_key: Optional[str], sprints: List[Sprint]) -> Optional[Tuple[Sprint, PlannedTask]]:
        for sprint in sprints:
            for story in sprint.children:
                for planned in story.children:
                    if planned.key == task_key:
                        return sprint, planned
        return None
