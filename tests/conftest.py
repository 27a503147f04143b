"""Shared test fixtures."""

import pytest

import gitjira.settings as settings_module
from gitjira.models import Board, FieldDescriptor, FieldSchema, Sprint
from gitjira.settings import GitJiraSettings

JIRA_URL = "https://acme.atlassian.net"
GITLAB_URL = "https://gitlab.example.com"

_CREDENTIAL_ENV = (
    "GITLAB_URL",
    "GITLAB_ACCESS_TOKEN",
    "JIRA_API_BASE_URL",
    "JIRA_USER_EMAIL",
    "JIRA_API_TOKEN",
    "GITJIRA_PROFILE",
    "GITJIRA_LOG_LEVEL",
    "GITJIRA_LOG_JSON",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Keep the developer's real credentials, .env and config out of tests."""
    for name in _CREDENTIAL_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    settings_module._load_toml.cache_clear()
    yield
    settings_module._load_toml.cache_clear()


@pytest.fixture
def jira_settings() -> GitJiraSettings:
    return GitJiraSettings(  # type: ignore[call-arg]
        jira_api_base_url=JIRA_URL,
        jira_user_email="bot@acme.io",
        jira_api_token="jira_test_token",
    )


@pytest.fixture
def gitlab_settings() -> GitJiraSettings:
    return GitJiraSettings(  # type: ignore[call-arg]
        gitlab_url=GITLAB_URL,
        gitlab_access_token="glpat_test",
    )


@pytest.fixture
def field_catalog() -> list[FieldDescriptor]:
    return [
        FieldDescriptor(id="summary", name="Summary", value_schema=FieldSchema(kind="string")),
        FieldDescriptor(id="priority", name="Priority", value_schema=FieldSchema(kind="option")),
        FieldDescriptor(id="customfield_10016", name="Story Points", custom=True, value_schema=FieldSchema(kind="number")),
        FieldDescriptor(
            id="customfield_10020",
            name="Sprint",
            custom=True,
            value_schema=FieldSchema(kind="sprint", custom_subtype="com.pyxis.greenhopper.jira:gh-sprint"),
        ),
        FieldDescriptor(id="customfield_10030", name="Team", custom=True, value_schema=FieldSchema(kind="option")),
    ]


@pytest.fixture
def sprints() -> list[Sprint]:
    return [
        Sprint(id=31, name="Bug Fix Sprint", state="active", board_id=1),
        Sprint(id=32, name="Sprint 24", state="future", board_id=1),
        Sprint(id=30, name="Sprint 23", state="closed", board_id=1),
    ]


@pytest.fixture
def boards() -> list[Board]:
    return [
        Board(id=1, name="PROJ board", type="scrum", project_key="PROJ"),
        Board(id=2, name="Ops kanban", type="kanban", project_key="OPS"),
        Board(id=3, name="PROJ triage", type="kanban"),
    ]
