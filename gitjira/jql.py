"""Translate structured search criteria into a single JQL string."""

import datetime
from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_RECENCY = "updated >= -7d"
TEXT_FIELDS = ("summary", "description", "comment")

# Lowercased agent wording -> literal Jira values. Misses pass through verbatim.
STATUS_SYNONYMS: dict[str, tuple[str, ...]] = {
    "open": ("Open", "To Do", "Backlog", "Reopened"),
    "todo": ("To Do", "Open", "Backlog"),
    "to do": ("To Do", "Open", "Backlog"),
    "in progress": ("In Progress", "In Development", "In Review"),
    "review": ("In Review", "Code Review", "Review"),
    "blocked": ("Blocked", "On Hold", "Impediment"),
    "done": ("Done", "Closed", "Resolved"),
    "closed": ("Closed", "Done", "Resolved"),
}

PRIORITY_SYNONYMS: dict[str, tuple[str, ...]] = {
    "urgent": ("High", "Highest", "Critical", "Urgent"),
    "critical": ("Highest", "Critical", "Blocker"),
    "blocker": ("Blocker", "Highest", "Critical"),
    "high": ("High", "Highest"),
    "medium": ("Medium",),
    "normal": ("Medium", "Normal"),
    "low": ("Low", "Lowest"),
    "minor": ("Low", "Lowest", "Minor"),
}

ISSUE_TYPE_SYNONYMS: dict[str, tuple[str, ...]] = {
    "bug": ("Bug", "Defect"),
    "bugs": ("Bug", "Defect"),
    "defect": ("Bug", "Defect"),
    "story": ("Story", "User Story"),
    "stories": ("Story", "User Story"),
    "task": ("Task", "Sub-task"),
    "tasks": ("Task", "Sub-task"),
    "epic": ("Epic",),
    "feature": ("Story", "New Feature", "Feature"),
    "subtask": ("Sub-task", "Subtask"),
}


class SearchCriteria(BaseModel):
    project: str | None = None
    assignee: str | None = None
    reporter: str | None = None
    status_category: Literal["To Do", "In Progress", "Done"] | None = None
    status: str | None = None
    priority: str | None = None
    issue_type: str | None = None
    labels: list[str] = []
    labels_match_all: bool = False
    recent_days: int | None = Field(default=None, ge=1)
    updated_since: datetime.date | None = None
    updated_before: datetime.date | None = None
    created_since: datetime.date | None = None
    created_before: datetime.date | None = None
    text: str | None = None
    max_results: int = Field(default=50, ge=1, le=100)
    order_by: str = "updated DESC"


def quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def is_fuzzy_project_token(token: str) -> bool:
    # Short tokens and tokens with spaces are names (or mistyped keys), not exact keys.
    return len(token) < 3 or any(ch.isspace() for ch in token)


def _project(token: str) -> str:
    if is_fuzzy_project_token(token):
        # JQL accepts a project name, key or id on the right-hand side.
        return f"project = {quote(token.strip())}"
    return f"project = {quote(token.upper())}"


def _person(field: str, token: str) -> str:
    if "@" in token:
        return f"{field} = {quote(token)}"
    if token.lower() in ("me", "currentuser", "currentuser()"):
        return f"{field} = currentUser()"
    return f"({field} in ({quote(token)}) OR {field} ~ {quote(token)})"


def _synonyms(field: str, text: str, table: dict[str, tuple[str, ...]]) -> str:
    values = table.get(text.strip().lower())
    if not values:
        return f"{field} = {quote(text)}"
    return "(" + " OR ".join(f"{field} = {quote(v)}" for v in values) + ")"


def _labels(labels: list[str], match_all: bool) -> str:
    joiner = " AND " if match_all else " OR "
    return "(" + joiner.join(f"labels = {quote(label)}" for label in labels) + ")"


def _text(text: str) -> str:
    def any_field(word: str) -> str:
        return "(" + " OR ".join(f"{field} ~ {quote(word)}" for field in TEXT_FIELDS) + ")"

    words = text.split()
    if len(words) == 1:
        return any_field(words[0])
    return "(" + " AND ".join(any_field(word) for word in words) + ")"


def _date_bounds(field: str, since: datetime.date | None, before: datetime.date | None) -> list[str]:
    bounds = []
    if since:
        bounds.append(f'{field} >= "{since.isoformat()}"')
    if before:
        bounds.append(f'{field} <= "{before.isoformat()}"')
    return bounds


def build_conditions(criteria: SearchCriteria) -> list[str]:
    conditions: list[str] = []
    if criteria.project:
        conditions.append(_project(criteria.project))
    if criteria.assignee:
        conditions.append(_person("assignee", criteria.assignee))
    if criteria.reporter:
        conditions.append(_person("reporter", criteria.reporter))
    if criteria.status_category:
        conditions.append(f"statusCategory = {quote(criteria.status_category)}")
    if criteria.status:
        conditions.append(_synonyms("status", criteria.status, STATUS_SYNONYMS))
    if criteria.priority:
        conditions.append(_synonyms("priority", criteria.priority, PRIORITY_SYNONYMS))
    if criteria.issue_type:
        conditions.append(_synonyms("issuetype", criteria.issue_type, ISSUE_TYPE_SYNONYMS))
    if criteria.labels:
        conditions.append(_labels(criteria.labels, criteria.labels_match_all))

    if criteria.recent_days:
        conditions.append(f"updated >= -{criteria.recent_days}d")
    else:
        conditions += _date_bounds("updated", criteria.updated_since, criteria.updated_before)
    conditions += _date_bounds("created", criteria.created_since, criteria.created_before)

    if criteria.text and criteria.text.strip():
        conditions.append(_text(criteria.text))
    return conditions


def build_query(criteria: SearchCriteria) -> str:
    """Return ``cond AND cond ... ORDER BY <order_by>``; never unbounded."""
    conditions = build_conditions(criteria) or [DEFAULT_RECENCY]
    return f"{' AND '.join(conditions)} ORDER BY {criteria.order_by}"
