"""
Tests for the plan document schemas.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from devplan.schemas import (
    Epic,
    PlannedTask,
    SchedulingParameters,
    Sprint,
    Task,
    assign_work_item_keys,
    extract_skill_tag,
    iter_tasks,
)


class TestWorkItems:

    def test_wire_names_are_camel_case(self):
        task = Task.model_validate({
            "name": "[Backend] Token endpoint",
            "storyPoint": 3,
            "sprintKey": "sprint:2",
            "ownerUserId": "alice",
        })

        assert task.story_point == 3
        assert task.sprint_key == "sprint:2"
        assert task.owner_user_id == "alice"
        assert task.model_dump(by_alias=True)["storyPoint"] == 3

    def test_required_skill_derived_from_name(self):
        assert Task(name="[Frontend] Login form").required_skill == "Frontend"
        assert Task(name="Untagged chore").required_skill is None

    def test_name_tag_wins_over_stored_skill(self):
        task = Task.model_validate({"name": "[Frontend] Login form", "requiredSkill": "Backend"})

        assert task.required_skill == "Frontend"

    def test_stored_skill_kept_for_untagged_name(self):
        assert Task(name="Login form", required_skill="QA").required_skill == "QA"

    def test_type_follows_node_level(self):
        task = Task.model_validate({"name": "[QA] Smoke", "type": "EPIC"})

        assert task.type == "TASK"
        assert Epic(name="Auth").type == "EPIC"
        sprint = Sprint(key="sprint:1", name="Sprint 1", start_date=date(2024, 1, 1), end_date=date(2024, 1, 15))
        assert sprint.type == "SPRINT"

    def test_negative_story_points_rejected(self):
        with pytest.raises(ValidationError):
            Task(name="[Backend] Broken", story_point=-1)

    def test_missing_story_points_default_to_zero(self):
        assert Task(name="[Backend] Spike").story_point == 0


class TestPlanDates:

    def test_dates_serialized_as_month_day_year(self):
        planned = PlannedTask(
            name="[Backend] Token endpoint",
            story_point=5,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 8),
            owner_user_id="alice",
        )

        dumped = planned.model_dump(by_alias=True)

        assert dumped["startDate"] == "01/01/2024"
        assert dumped["endDate"] == "01/08/2024"

    @pytest.mark.parametrize("raw", ["01/05/2024", "2024-01-05", "2024-01-05T10:30:00Z"])
    def test_date_formats_accepted(self, raw):
        sprint = Sprint.model_validate({
            "key": "sprint:1",
            "name": "Sprint 1",
            "startDate": raw,
            "endDate": "01/19/2024",
        })

        assert sprint.start_date == date(2024, 1, 5)

    def test_bad_date_rejected(self):
        with pytest.raises(ValidationError):
            Sprint.model_validate({"key": "sprint:1", "name": "Sprint 1", "startDate": "soon", "endDate": "later"})


class TestSkillTag:

    @pytest.mark.parametrize("name,expected", [
        ("[Backend] Token endpoint", "Backend"),
        ("[ UI/UX ] Wireframes", "UI/UX"),
        ("Write docs [Docs]", "Docs"),
        ("[] Nothing", None),
        ("No tag", None),
        ("", None),
    ])
    def test_extract(self, name, expected):
        assert extract_skill_tag(name) == expected


class TestSchedulingParameters:

    @pytest.fixture
    def meta(self):
        return {
            "teammates": "alice,BACKEND_ENGINEER,10;bob,QA_ENGINEER,4",
            "sprintWeek": 3,
            "sprintStartDate": "01/08/2024",
            "requiredSpecialties": "BACKEND_ENGINEER,QA_ENGINEER",
            "chosenDocumentIds": "",
        }

    def test_from_meta(self, meta):
        parameters = SchedulingParameters.from_meta(meta)

        assert parameters.weeks_per_sprint == 3
        assert parameters.sprint_length_days == 21
        assert parameters.sprint_start_date == date(2024, 1, 8)
        assert [(m.user_id, m.specialty, m.story_points_per_sprint) for m in parameters.team_members] == [
            ("alice", "BACKEND_ENGINEER", 10),
            ("bob", "QA_ENGINEER", 4),
        ]
        assert parameters.required_specialties == ["BACKEND_ENGINEER", "QA_ENGINEER"]
        assert parameters.chosen_document_ids == []

    def test_meta_round_trip(self, meta):
        assert SchedulingParameters.from_meta(meta).to_meta() == meta

    def test_defaults_without_meta(self):
        parameters = SchedulingParameters.from_meta(None)

        assert parameters.weeks_per_sprint == 2
        assert parameters.sprint_start_date == date.today()
        assert parameters.team_members == []

    def test_malformed_teammate_entry(self):
        with pytest.raises(ValueError, match="Malformed teammate entry"):
            SchedulingParameters.from_meta({"teammates": "alice,BACKEND_ENGINEER"})

    def test_weeks_must_be_positive(self):
        with pytest.raises(ValidationError):
            SchedulingParameters(weeks_per_sprint=0)


class TestTreeHelpers:

    def test_assign_keys(self, mixed_epics):
        assign_work_item_keys(mixed_epics)

        auth = mixed_epics[0]
        assert auth.key == "epic:1"
        assert [s.key for s in auth.children] == ["epic:1;story:1", "epic:1;story:2"]
        assert auth.children[1].children[0].key == "epic:1;story:2;task:1"
        assert mixed_epics[2].children[0].children[1].key == "epic:3;story:1;task:2"

    def test_existing_keys_kept(self, make_task, make_story, make_epic):
        epic = make_epic("Auth", [make_story("Login", [make_task("[Backend] A", 1, key="JIRA-7")])], key="E-1")

        assign_work_item_keys([epic])

        assert epic.key == "E-1"
        assert epic.children[0].key == "E-1;story:1"
        assert epic.children[0].children[0].key == "JIRA-7"

    def test_iter_tasks_in_input_order(self, mixed_epics):
        names = [task.name for _, _, task in iter_tasks(mixed_epics)]

        assert len(names) == 10
        assert names[0] == "[Backend] Session API"
        assert names[-1] == "[Backend] Aggregations"
