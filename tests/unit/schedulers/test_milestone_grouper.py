"""
Tests for MilestoneGrouper

Tests cover:
- Epic to sprint mapping
- Gap heuristic (new milestone vs fold)
- Sprint exclusivity across milestones
- Per-milestone epic progress (storyPoint / prevStoryPoint)
"""

from datetime import date, timedelta

import pytest

from devplan.schedulers import MilestoneGrouper, SprintAllocator
from devplan.schemas import Epic, PlannedStory, PlannedTask, Sprint

BASE = date(2024, 1, 1)


def create_sprint(number: int, stories, length: int = 14) -> Sprint:
    """stories: (epic name, story key, points) tuples."""
    start = BASE + timedelta(days=(number - 1) * length + (0 if number == 1 else 1))
    end = BASE + timedelta(days=number * length)
    children = []
    for epic_name, story_key, points in stories:
        task = PlannedTask(
            key=f"{story_key};task:1",
            name="[Backend] Work",
            story_point=points,
            start_date=start,
            end_date=end,
            owner_user_id="alice",
        )
        children.append(PlannedStory(
            key=story_key,
            name=story_key,
            story_point=points,
            total_story_point=points,
            start_date=start,
            end_date=end,
            epic=epic_name,
            children=[task],
        ))
    return Sprint(
        key=f"sprint:{number}",
        name=f"Sprint {number}",
        story_point=sum(points for _, _, points in stories),
        start_date=start,
        end_date=end,
        children=children,
    )


@pytest.fixture
def grouper(test_settings):
    return MilestoneGrouper(test_settings)


@pytest.fixture
def epics():
    return [
        Epic(key="epic:1", name="A", story_point=5),
        Epic(key="epic:2", name="B", story_point=7),
    ]


class TestMilestoneGrouping:

    def test_single_sprint_single_milestone(self, grouper, backend_epic, backend_engineer, start_date):
        sprints = SprintAllocator().allocate([backend_epic], [backend_engineer], 14, start_date).sprints

        milestones = grouper.group(sprints, [backend_epic])

        assert len(milestones) == 1
        milestone = milestones[0]
        assert milestone.key == "milestone:1"
        assert milestone.name == "Milestone 1"
        assert milestone.start_date == date(2024, 1, 1)
        assert milestone.end_date == date(2024, 1, 15)
        assert milestone.story_point == 10
        assert [s.key for s in milestone.children] == ["sprint:1"]
        assert len(milestone.epics) == 1
        entry = milestone.epics[0]
        assert (entry.key, entry.name, entry.story_point) == ("epic:1", "Authentication", 10)
        assert entry.prev_story_point == 0
        assert entry.total_story_point == 10

    def test_close_epics_fold_into_one_milestone(self, grouper, epics):
        sprints = [create_sprint(1, [("A", "a1", 5), ("B", "b1", 7)])]

        milestones = grouper.group(sprints, epics)

        assert len(milestones) == 1
        assert [e.name for e in milestones[0].epics] == ["A", "B"]
        assert milestones[0].story_point == 12

    def test_gap_of_two_weeks_opens_new_milestone(self, grouper, epics):
        sprints = [
            create_sprint(1, [("A", "a1", 5), ("B", "b1", 3)]),
            create_sprint(2, [("B", "b2", 4)]),
        ]

        milestones = grouper.group(sprints, epics)

        assert [m.key for m in milestones] == ["milestone:1", "milestone:2"]
        first, second = milestones
        assert [s.key for s in first.children] == ["sprint:1"]
        assert [s.key for s in second.children] == ["sprint:2"]

        assert [(e.name, e.story_point, e.prev_story_point, e.total_story_point) for e in first.epics] == [
            ("A", 5, 0, 5),
            ("B", 3, 0, 7),
        ]
        assert first.story_point == 8
        assert [(e.name, e.story_point, e.prev_story_point, e.total_story_point) for e in second.epics] == [
            ("B", 4, 3, 7),
        ]
        assert second.story_point == 4
        assert second.end_date == date(2024, 1, 29)

    def test_custom_gap_folds_epics(self, test_settings, epics):
        sprints = [
            create_sprint(1, [("A", "a1", 5)]),
            create_sprint(2, [("B", "b1", 7)]),
        ]

        milestones = MilestoneGrouper(test_settings, gap_days=30).group(sprints, epics)

        assert len(milestones) == 1
        assert milestones[0].start_date == date(2024, 1, 1)
        assert milestones[0].end_date == date(2024, 1, 29)
        assert [s.key for s in milestones[0].children] == ["sprint:1", "sprint:2"]

    def test_unknown_epic_has_no_key(self, grouper):
        milestones = grouper.group([create_sprint(1, [("Orphan", "o1", 2)])], [])

        assert milestones[0].epics[0].key is None
        assert milestones[0].epics[0].total_story_point is None

    def test_empty_plan(self, grouper):
        assert grouper.group([], []) == []


class TestMilestoneInvariants:

    @pytest.fixture
    def milestones(self, grouper, mixed_epics, mixed_team, start_date):
        sprints = SprintAllocator().allocate(mixed_epics, mixed_team, 7, start_date).sprints
        return grouper.group(sprints, mixed_epics)

    def test_sprint_belongs_to_one_milestone(self, milestones):
        keys = [sprint.key for m in milestones for sprint in m.children]

        assert len(keys) == len(set(keys))

    def test_dates_are_monotonic(self, milestones):
        for milestone in milestones:
            assert milestone.end_date >= milestone.start_date
        starts = [m.start_date for m in milestones]
        assert starts == sorted(starts)

    def test_story_points_match_sprints(self, milestones, mixed_epics):
        for milestone in milestones:
            assert milestone.story_point == sum(s.story_point for s in milestone.children)
        assert sum(m.story_point for m in milestones) == sum(e.story_point for e in mixed_epics)

    def test_sprints_sorted_chronologically(self, milestones):
        for milestone in milestones:
            starts = [s.start_date for s in milestone.children]
            assert starts == sorted(starts)
