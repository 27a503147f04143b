"""Shared pydantic models — the contract between providers, the tool server and main.py."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

FieldKind = Literal["string", "number", "option", "user", "array", "date", "datetime", "sprint", "epicLink", "other"]
SprintState = Literal["future", "active", "closed"]
LineKind = Literal["add", "remove", "context"]


# ---------------------------------------------------------------------------
# Jira
# ---------------------------------------------------------------------------


class FieldSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: FieldKind = "other"
    custom_subtype: str | None = None  # e.g. com.pyxis.greenhopper.jira:gh-sprint


class FieldDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # unique within a catalog
    name: str  # display name, not guaranteed unique
    custom: bool = False
    value_schema: FieldSchema = FieldSchema()


class AllowedValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str | None = None
    value: str


class Board(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    type: Literal["scrum", "kanban", "simple"] = "scrum"
    project_key: str | None = None  # location.projectKey, a hint only


class Sprint(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str = ""
    state: SprintState = "future"
    board_id: int | None = None


class UserRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    display_name: str | None = None
    email: str | None = None
    account_id: str | None = None


# Values of fields without a dedicated attribute on Ticket.
FieldValue = bool | int | float | str | list[str | UserRef | dict[str, Any]] | UserRef | dict[str, Any]


class Ticket(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    summary: str = ""
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    issue_type: str | None = None
    labels: list[str] = []
    created: str | None = None
    updated: str | None = None
    assignee: UserRef | None = None
    reporter: UserRef | None = None
    story_points: float | None = None
    epic_link: str | None = None
    custom_fields: dict[str, FieldValue] = {}  # display name -> value, API order


class TicketSummary(BaseModel):
    """One row of a search result."""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    summary: str = ""
    description: str | None = None
    status: str = ""


class SearchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    jql: str
    tickets: list[TicketSummary] = []


class Comment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    author: UserRef
    body: str = ""
    created: str | None = None
    updated: str | None = None


class Transition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    to_status: str = ""


class JiraProject(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    name: str


class CreatedTicket(BaseModel):
    """Returned by create_ticket — minimal, just what the caller needs."""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    url: str


class TicketUpdate(BaseModel):
    """Well-known fields accepted by update_ticket. Unset fields are left untouched."""

    summary: str | None = None
    description: str | None = None
    labels: list[str] | None = None
    assignee_account_id: str | None = None
    reporter_account_id: str | None = None
    priority_id: str | None = None
    fix_versions: list[str] | None = None
    components: list[str] | None = None
    duedate: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# GitLab
# ---------------------------------------------------------------------------


class DiffLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: LineKind
    old_line: int | None = None
    new_line: int | None = None
    content: str


class DiffHunk(BaseModel):
    header: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[DiffLine] = []


class FileDiff(BaseModel):
    model_config = ConfigDict(frozen=True)

    old_path: str
    new_path: str
    new_file: bool = False
    deleted_file: bool = False
    renamed_file: bool = False
    diff: str = ""


class ParsedFileDiff(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_path: str
    old_path: str
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    hunks: list[DiffHunk] = []


class Position(BaseModel):
    """Anchor of an inline merge request comment."""

    model_config = ConfigDict(frozen=True)

    base_sha: str
    start_sha: str
    head_sha: str
    position_type: str = "text"
    old_path: str
    new_path: str
    new_line: int | None = None
    old_line: int | None = None


class Note(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    body: str
    author_name: str | None = None
    author_username: str
    system: bool = False
    position: Position | None = None


class Discussion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    notes: list[Note] = []
    individual_note: bool = False


class ReviewFeedback(BaseModel):
    """An existing positioned note, surfaced so reviewers do not repeat it."""

    model_config = ConfigDict(frozen=True)

    id: str
    line_number: int | None
    file_path: str
    description: str
    position: Position


class MergeRequestDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_path: str
    mr_iid: int
    project_id: int
    title: str
    author_name: str
    web_url: str
    source_branch: str
    target_branch: str
    base_sha: str | None = None
    start_sha: str | None = None
    head_sha: str | None = None
    file_diffs: list[FileDiff] = []
    diff_for_prompt: str = ""
    parsed_diffs: list[ParsedFileDiff] = []
    discussions: list[Discussion] = []
    existing_feedback: list[ReviewFeedback] = []


class GitLabProject(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    name_with_namespace: str
    path_with_namespace: str
    last_activity_at: str | None = None


class MergeRequestSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    iid: int
    title: str
    author_name: str | None = None
    author_username: str
    state: str | None = None
    updated_at: str | None = None
    web_url: str


class Member(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    name: str
    state: str | None = None
    access_level: int | None = None
    web_url: str | None = None
