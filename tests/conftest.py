"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from datetime import date

import pytest

sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from devplan.platform.config import Settings  # noqa: E402
from devplan.schemas import Epic, Story, Task, TeamMember  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> None:
    """Set up test environment variables."""
    os.environ.setdefault("APP_ENV", "test")
    os.environ.setdefault("LOG_LEVEL", "debug")


@pytest.fixture
def test_settings() -> Settings:
    """Settings with the documented defaults, independent of the environment."""
    return Settings(
        SPRINT_BUFFER=6,
        MILESTONE_GAP_DAYS=14,
        DEFAULT_WEEKS_PER_SPRINT=2,
        PRESERVE_PRE_ASSIGNED_SPRINTS=False,
    )


# =============================================================================
# Object Creation Helpers
# =============================================================================

def create_task(name: str, story_point: int, **extra) -> Task:
    return Task(name=name, story_point=story_point, **extra)


def create_story(name: str, tasks, **extra) -> Story:
    fields = {"story_point": sum(t.story_point for t in tasks), **extra}
    return Story(name=name, children=list(tasks), **fields)


def create_epic(name: str, stories, **extra) -> Epic:
    fields = {"story_point": sum(s.story_point for s in stories), **extra}
    return Epic(name=name, children=list(stories), **fields)


def create_member(user_id: str, specialty: str, points: int) -> TeamMember:
    return TeamMember(user_id=user_id, specialty=specialty, story_points_per_sprint=points)


@pytest.fixture
def make_task():
    return create_task


@pytest.fixture
def make_story():
    return create_story


@pytest.fixture
def make_epic():
    return create_epic


@pytest.fixture
def make_member():
    return create_member


# =============================================================================
# Test Data Fixtures
# =============================================================================

@pytest.fixture
def start_date() -> date:
    return date(2024, 1, 1)


@pytest.fixture
def backend_epic() -> Epic:
    """1 epic, 1 story, 2 backend tasks of 5 points."""
    story = create_story("Login API", [
        create_task("[Backend] Implement token endpoint", 5),
        create_task("[Backend] Implement refresh endpoint", 5),
    ])
    return create_epic("Authentication", [story])


@pytest.fixture
def backend_engineer() -> TeamMember:
    return create_member("user_1", "BACKEND_ENGINEER", 10)


@pytest.fixture
def mixed_epics():
    """Three epics over frontend, backend and QA work."""
    return [
        create_epic("Authentication", [
            create_story("Login", [
                create_task("[Backend] Session API", 5),
                create_task("[Frontend] Login form", 3),
                create_task("[QA] Login tests", 2),
            ]),
            create_story("Signup", [
                create_task("[Backend] Signup API", 8),
                create_task("[Frontend] Signup form", 5),
            ]),
        ]),
        create_epic("Billing", [
            create_story("Checkout", [
                create_task("[Backend] Payment intent", 8),
                create_task("[Frontend] Checkout page", 8),
                create_task("[QA] Checkout tests", 3),
            ]),
        ]),
        create_epic("Reporting", [
            create_story("Dashboards", [
                create_task("[Frontend] Charts", 5),
                create_task("[Backend] Aggregations", 5),
            ]),
        ]),
    ]


@pytest.fixture
def mixed_team():
    return [
        create_member("alice", "BACKEND_ENGINEER", 10),
        create_member("bob", "FRONTEND_ENGINEER", 8),
        create_member("carol", "FULLSTACK_ENGINEER", 6),
        create_member("dave", "QA_ENGINEER", 4),
    ]
