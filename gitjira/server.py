"""FastMCP tool server exposing the GitLab and Jira providers to agents."""

import datetime
import logging
from functools import lru_cache
from typing import Annotated, Any, Literal

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from gitjira.jql import SearchCriteria
from gitjira.models import Position, TicketUpdate
from gitjira.providers.gitlab import GitLabProvider
from gitjira.providers.jira import JiraProvider
from gitjira.settings import GitJiraSettings, get_settings

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "gitjira",
    instructions=(
        "Tools for GitLab merge requests and Jira tickets. Names of fields, priorities, "
        "sprints, boards and projects may be approximate; on a failed match the error "
        "lists the available values so the call can be retried."
    ),
)

_profile: str | None = None


def use_profile(profile: str | None) -> None:
    global _profile
    _profile = profile
    _settings.cache_clear()
    get_jira.cache_clear()
    get_gitlab.cache_clear()


@lru_cache(maxsize=1)
def _settings() -> GitJiraSettings:
    return get_settings(profile=_profile)


@lru_cache(maxsize=1)
def get_jira() -> JiraProvider:
    return JiraProvider(_settings())


@lru_cache(maxsize=1)
def get_gitlab() -> GitLabProvider:
    return GitLabProvider(_settings())


def _dump(value: Any) -> Any:
    if isinstance(value, list):
        return [_dump(v) for v in value]
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


MrUrl = Annotated[str, Field(description="The URL of the GitLab Merge Request.")]
TicketId = Annotated[str, Field(description="Jira ticket key, e.g. PROJ-123.")]


# ---------------------------------------------------------------------------
# GitLab
# ---------------------------------------------------------------------------


@mcp.tool()
async def get_merge_request_details(mr_url: MrUrl) -> dict:
    """Fetch a GitLab Merge Request with file diffs (parsed into hunks), discussions and existing feedback."""
    return _dump(await get_gitlab().get_merge_request_from_url(mr_url))


@mcp.tool()
async def get_merge_request_discussions(mr_url: MrUrl) -> list:
    """List all discussions of a GitLab Merge Request."""
    return _dump(await get_gitlab().get_discussions_from_url(mr_url))


@mcp.tool()
async def get_file_content(
    mr_url: MrUrl,
    file_path: Annotated[str, Field(description="Path of the file in the repository.")],
    sha: Annotated[str, Field(description="Commit SHA or branch to read the file at.")],
) -> str:
    """Read a file from the merge request's project at a given ref."""
    return await get_gitlab().get_file_content_from_url(mr_url, file_path, sha)


@mcp.tool()
async def add_comment_to_merge_request(
    mr_url: MrUrl,
    comment_body: Annotated[str, Field(description="The content of the comment.")],
    discussion_id: Annotated[str | None, Field(description="Existing discussion to reply to.")] = None,
    position: Annotated[Position | None, Field(description="Position for an inline comment.")] = None,
) -> dict:
    """Add a general comment, a reply to a discussion, or an inline comment to a GitLab Merge Request."""
    return _dump(await get_gitlab().add_comment_from_url(mr_url, comment_body, discussion_id, position))


@mcp.tool()
async def list_merge_requests(
    project_path: Annotated[str, Field(description='Project path, e.g. "namespace/project-name".')],
    state: Literal["opened", "closed", "merged", "all"] = "opened",
) -> list:
    """List merge requests for a GitLab project."""
    return _dump(await get_gitlab().list_merge_requests(project_path, None if state == "all" else state))


@mcp.tool()
async def assign_reviewers_to_merge_request(mr_url: MrUrl, reviewer_ids: list[int]) -> dict:
    """Assign reviewers (GitLab user ids) to a Merge Request."""
    return _dump(await get_gitlab().assign_reviewers_from_url(mr_url, reviewer_ids))


@mcp.tool()
async def list_project_members(mr_url: MrUrl) -> list:
    """List members of the project a Merge Request belongs to."""
    return _dump(await get_gitlab().list_members_from_url(mr_url))


@mcp.tool()
async def list_project_members_by_project_name(project_name: str) -> list:
    """List members of the GitLab project whose name best matches project_name."""
    return _dump(await get_gitlab().list_members_by_project_name(project_name))


@mcp.tool()
async def list_projects_by_name(project_name: str) -> list:
    """Filter GitLab projects by name using a fuzzy, case-insensitive match."""
    return _dump(await get_gitlab().filter_projects_by_name(project_name))


@mcp.tool()
async def list_all_projects() -> list:
    """List accessible GitLab projects. Prefer list_projects_by_name."""
    return _dump(await get_gitlab().list_projects())


# ---------------------------------------------------------------------------
# Jira
# ---------------------------------------------------------------------------


@mcp.tool()
async def get_ticket_details(ticket_id: TicketId) -> dict:
    """Fetch a Jira ticket with its well-known fields and non-empty custom fields."""
    return _dump(await get_jira().get_ticket(ticket_id))


@mcp.tool()
async def get_ticket_comments(ticket_id: TicketId) -> list:
    """List comments on a Jira ticket."""
    return _dump(await get_jira().get_comments(ticket_id))


@mcp.tool()
async def add_comment_to_ticket(ticket_id: TicketId, comment: str) -> str:
    """Add a plain-text comment to a Jira ticket."""
    await get_jira().add_comment(ticket_id, comment)
    return f"Comment added to {ticket_id}."


@mcp.tool()
async def update_ticket(ticket_id: TicketId, update: TicketUpdate) -> str:
    """Update well-known fields (summary, description, labels, assignee, ...) of a Jira ticket."""
    await get_jira().update_ticket(ticket_id, update)
    return f"{ticket_id} updated."


@mcp.tool()
async def update_custom_fields(
    ticket_id: TicketId,
    fields: Annotated[dict[str, Any], Field(description="Values keyed by (approximate) field display name.")],
) -> dict:
    """Set custom fields by display name; returns the field id each name resolved to."""
    return await get_jira().update_custom_fields(ticket_id, fields)


@mcp.tool()
async def create_ticket(
    project_key: str,
    summary: str,
    issue_type: str = "Task",
    description: str | None = None,
    extra_fields: dict[str, Any] | None = None,
) -> dict:
    """Create a Jira ticket. The description defaults to the summary."""
    return _dump(await get_jira().create_ticket(project_key, summary, issue_type, description, extra_fields))


@mcp.tool()
async def get_available_transitions(ticket_id: TicketId) -> list:
    """List the workflow transitions currently available for a ticket."""
    return _dump(await get_jira().get_transitions(ticket_id))


@mcp.tool()
async def transition_ticket(
    ticket_id: TicketId,
    transition: Annotated[str, Field(description="Transition id, transition name or target status name.")],
) -> str:
    """Move a ticket through its workflow."""
    jira = get_jira()
    if transition.isdigit():
        await jira.transition_ticket(ticket_id, transition)
        return f"{ticket_id} transitioned with transition {transition}."
    applied = await jira.transition_ticket_by_name(ticket_id, transition)
    return f"{ticket_id} transitioned via '{applied.name}' to '{applied.to_status}'."


@mcp.tool()
async def update_ticket_priority(ticket_id: TicketId, priority: str) -> dict:
    """Set the priority from approximate text (e.g. "hi" -> High)."""
    return _dump(await get_jira().update_ticket_priority(ticket_id, priority))


@mcp.tool()
async def update_story_points(ticket_id: TicketId, story_points: float) -> str:
    """Set the Story Points field of a ticket."""
    await get_jira().update_story_points(ticket_id, story_points)
    return f"{ticket_id} story points set to {story_points:g}."


@mcp.tool()
async def get_sprints_for_ticket(ticket_id: TicketId) -> list:
    """List sprints of the boards belonging to the ticket's project, active first."""
    return _dump(await get_jira().resolve_sprints_for_ticket(ticket_id))


@mcp.tool()
async def update_ticket_sprint(ticket_id: TicketId, sprint_name: str) -> dict:
    """Move a ticket into the sprint whose name best matches sprint_name."""
    return _dump(await get_jira().update_ticket_sprint(ticket_id, sprint_name))


@mcp.tool()
async def move_tickets_to_sprint(sprint_id: str, ticket_ids: list[str]) -> str:
    """Move tickets into a sprint by numeric sprint id."""
    moved = await get_jira().move_to_sprint(sprint_id, ticket_ids)
    return f"Moved {len(ticket_ids)} ticket(s) to sprint {moved}."


@mcp.tool()
async def find_boards(
    project_key: str | None = None,
    board_name: str | None = None,
    board_id: int | None = None,
    board_type: Literal["scrum", "kanban", "simple"] | None = None,
) -> list:
    """Find Jira boards by id, project key, name fragment or type."""
    return _dump(await get_jira().find_boards(project_key, board_name, board_id, board_type))


@mcp.tool()
async def list_jira_fields() -> list:
    """List the Jira field catalog (id, display name, schema)."""
    return _dump(await get_jira().get_fields())


@mcp.tool()
async def search_tickets_by_jql(jql: str, max_results: int = 50) -> dict:
    """Run a raw JQL query."""
    return _dump(await get_jira().search_by_jql(jql, max_results))


@mcp.tool()
async def search_tickets(
    project: str | None = None,
    assignee: str | None = None,
    reporter: str | None = None,
    status_category: Literal["To Do", "In Progress", "Done"] | None = None,
    status: str | None = None,
    priority: str | None = None,
    issue_type: str | None = None,
    labels: list[str] | None = None,
    labels_match_all: bool = False,
    recent_days: int | None = None,
    updated_since: datetime.date | None = None,
    updated_before: datetime.date | None = None,
    created_since: datetime.date | None = None,
    created_before: datetime.date | None = None,
    text: Annotated[
        str | None,
        Field(description="Words that must each appear in summary, description or comments."),
    ] = None,
    max_results: int = 50,
    order_by: str = "updated DESC",
) -> dict:
    """Search Jira tickets with structured filters; approximate values such as "urgent" or "bugs" are expanded."""
    criteria = SearchCriteria(
        project=project,
        assignee=assignee,
        reporter=reporter,
        status_category=status_category,
        status=status,
        priority=priority,
        issue_type=issue_type,
        labels=labels or [],
        labels_match_all=labels_match_all,
        recent_days=recent_days,
        updated_since=updated_since,
        updated_before=updated_before,
        created_since=created_since,
        created_before=created_before,
        text=text,
        max_results=max_results,
        order_by=order_by,
    )
    return _dump(await get_jira().search_tickets(criteria))


def run(profile: str | None = None) -> None:
    use_profile(profile)
    logger.info("gitjira tool server starting on stdio")
    mcp.run()
