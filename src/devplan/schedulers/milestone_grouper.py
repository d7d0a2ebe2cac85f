"""
Milestone Grouper

Derives a milestone roadmap from a sprint plan.

Grouping heuristic:
```
for each epic, in order of first appearance in the sprint plan:
    if no milestone yet, or epic.end - milestone.end >= gap days:
        open a new milestone
    else:
        fold the epic into the latest milestone
```

A sprint belongs to at most one milestone (the first that claims it). Each
milestone then reports, per epic, the story points completed inside it and
those completed in earlier milestones, so progress can be drawn per epic.

Usage:
    milestones = MilestoneGrouper().group(sprints, epics)
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Set

from devplan.platform.config import Settings
from devplan.schemas import Epic, Milestone, MilestoneEpic, Sprint

from .base import SchedulerBase


@dataclass
class EpicSprintSpan:
    """Where one epic's work landed in the sprint plan."""
    key: Optional[str]
    name: str
    story_point: int
    start_date: date
    end_date: date
    sprints: List[Sprint] = field(default_factory=list)

    def add_sprint(self, sprint: Sprint) -> None:
        if all(existing.key != sprint.key for existing in self.sprints):
            self.sprints.append(sprint)


class MilestoneGrouper(SchedulerBase):
    """Groups sprints into milestones by epic completion dates."""

    def __init__(self, config: Optional[Settings] = None, gap_days: Optional[int] = None):
        super().__init__(config)
        self.gap_days = self.settings.MILESTONE_GAP_DAYS if gap_days is None else gap_days

    def run(self, sprints: List[Sprint], epics: List[Epic]) -> List[Milestone]:
        return self.group(sprints, epics)

    def group(self, sprints: List[Sprint], epics: List[Epic]) -> List[Milestone]:
        spans = self.map_epics_to_sprints(sprints, epics)
        milestones = self.group_epics_into_milestones(spans)
        self.dedupe_sprints(milestones)
        self.rollup_milestone_epics(milestones, epics)

        self.logger.info(
            "milestone_plan_created",
            milestones=len(milestones),
            sprints=sum(len(m.children) for m in milestones),
            story_points=sum(m.story_point for m in milestones),
        )
        return milestones

    def map_epics_to_sprints(self, sprints: List[Sprint], epics: List[Epic]) -> Dict[str, EpicSprintSpan]:
        """Epic name -> sprints touched, points scheduled and date span, in encounter order."""
        epic_by_name = _index_epics(epics)
        spans: Dict[str, EpicSprintSpan] = {}
        for sprint in sprints:
            for story in sprint.children:
                span = spans.get(story.epic)
                if span is None:
                    epic = epic_by_name.get(story.epic)
                    spans[story.epic] = EpicSprintSpan(
                        key=epic.key if epic else None,
                        name=story.epic,
                        story_point=story.story_point,
                        start_date=story.start_date,
                        end_date=story.end_date,
                        sprints=[sprint],
                    )
                    continue
                span.add_sprint(sprint)
                span.story_point += story.story_point
                span.start_date = min(span.start_date, story.start_date)
                span.end_date = max(span.end_date, story.end_date)
        return spans

    def group_epics_into_milestones(self, spans: Dict[str, EpicSprintSpan]) -> List[Milestone]:
        milestones: List[Milestone] = []
        for span in spans.values():
            entry = MilestoneEpic(
                key=span.key,
                name=span.name,
                story_point=span.story_point,
                total_story_point=span.story_point,
                start_date=span.start_date,
                end_date=span.end_date,
            )
            current = milestones[-1] if milestones else None
            if current is None or self.days_between(current.end_date, span.end_date) >= self.gap_days:
                number = len(milestones) + 1
                milestones.append(Milestone(
                    key=f"milestone:{number}",
                    name=f"Milestone {number}",
                    story_point=span.story_point,
                    start_date=span.start_date,
                    end_date=span.end_date,
                    epics=[entry],
                    children=list(span.sprints),
                ))
                continue

            current.epics.append(entry)
            current.story_point += span.story_point
            current.start_date = min(current.start_date, span.start_date)
            current.end_date = max(current.end_date, span.end_date)
            member_keys = {sprint.key for sprint in current.children}
            current.children.extend(s for s in span.sprints if s.key not in member_keys)
        return milestones

    def dedupe_sprints(self, milestones: List[Milestone]) -> List[Milestone]:
        """Keep each sprint only in the first milestone that lists it."""
        claimed: Set[str] = set()
        for milestone in milestones:
            kept = []
            for sprint in milestone.children:
                if sprint.key in claimed:
                    continue
                claimed.add(sprint.key)
                kept.append(sprint)
            milestone.children = kept
        return milestones

    def rollup_milestone_epics(self, milestones: List[Milestone], epics: List[Epic]) -> List[Milestone]:
        """
        Rebuild each milestone's epic list from the sprints it kept.

        ``story_point`` is what the milestone delivers for the epic,
        ``prev_story_point`` what earlier milestones already delivered.
        """
        epic_by_name = _index_epics(epics)
        completed: Dict[str, int] = {}
        for milestone in milestones:
            milestone.children.sort(key=lambda sprint: sprint.start_date)
            entries: Dict[str, MilestoneEpic] = {}
            for sprint in milestone.children:
                for story in sprint.children:
                    entry = entries.get(story.epic)
                    if entry is not None:
                        entry.story_point += story.story_point
                        entry.start_date = min(entry.start_date, story.start_date)
                        entry.end_date = max(entry.end_date, story.end_date)
                        continue
                    epic = epic_by_name.get(story.epic)
                    entries[story.epic] = MilestoneEpic(
                        key=epic.key if epic else None,
                        name=story.epic,
                        story_point=story.story_point,
                        prev_story_point=completed.get(story.epic, 0),
                        total_story_point=epic.story_point if epic else None,
                        start_date=story.start_date,
                        end_date=story.end_date,
                    )

            milestone.epics = sorted(entries.values(), key=lambda entry: entry.start_date)
            milestone.story_point = sum(entry.story_point for entry in entries.values())
            for name, entry in entries.items():
                completed[name] = completed.get(name, 0) + entry.story_point
        return milestones


def _index_epics(epics: List[Epic]) -> Dict[str, Epic]:
    index: Dict[str, Epic] = {}
    for epic in epics or []:
        index.setdefault(epic.name, epic)
    return index
