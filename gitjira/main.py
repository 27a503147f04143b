"""gitjira CLI — tool server bootstrap plus a few commands for poking at the resolvers."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from gitjira import server
from gitjira.diff import parse_diff
from gitjira.errors import GitJiraError
from gitjira.jql import SearchCriteria, build_query
from gitjira.logging_utils import configure_logging
from gitjira.providers.jira import JiraProvider
from gitjira.resolution import resolve_sprint_by_name
from gitjira.settings import get_settings

app = typer.Typer(help="gitjira: GitLab + Jira tools for AI agents", no_args_is_help=True)

T = TypeVar("T")

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-P", help="Profile name from ~/.config/gitjira/config.toml"),
]

_STATE_STYLE = {"active": "green", "future": "cyan", "closed": "dim"}


def get_jira(profile: str | None = None) -> JiraProvider:
    settings = get_settings(profile=profile)
    configure_logging(settings.log_level, settings.log_json)
    try:
        return JiraProvider(settings)
    except RuntimeError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc


def _run(jira: JiraProvider, call: Callable[[JiraProvider], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with jira:
            return await call(jira)

    try:
        return asyncio.run(runner())
    except GitJiraError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(profile: ProfileOpt = None) -> None:
    """Run the tool server on stdio."""
    settings = get_settings(profile=profile)
    configure_logging(settings.log_level, settings.log_json)
    server.run(profile)


@app.command("fields")
def fields_cmd(
    name: Annotated[str | None, typer.Argument(help="Approximate field name to resolve")] = None,
    profile: ProfileOpt = None,
) -> None:
    """List the Jira field catalog, or resolve one approximate field name."""
    jira = get_jira(profile)
    if name:
        field_id = _run(jira, lambda j: j.resolve_field_id(name))
        rprint(f"[green]✓[/green] [bold]{escape(name)}[/bold] → {escape(field_id)}")
        return

    catalog = _run(jira, lambda j: j.get_fields())
    table = Table(title="Jira Fields")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Custom", style="dim")
    for field in catalog:
        table.add_row(field.id, escape(field.name), field.value_schema.kind, "yes" if field.custom else "")
    rprint(table)


@app.command("boards")
def boards_cmd(
    project: Annotated[str | None, typer.Option("--project", "-p", help="Project key")] = None,
    name: Annotated[str | None, typer.Option("--name", "-n", help="Board name fragment")] = None,
    board_id: Annotated[int | None, typer.Option("--id", help="Board id")] = None,
    board_type: Annotated[str | None, typer.Option("--type", "-t", help="scrum | kanban | simple")] = None,
    profile: ProfileOpt = None,
) -> None:
    """Find Jira boards."""
    jira = get_jira(profile)
    boards = _run(jira, lambda j: j.find_boards(project, name, board_id, board_type))

    table = Table(title="Boards")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Project", style="dim")
    for board in boards:
        table.add_row(str(board.id), escape(board.name), board.type, escape(board.project_key or "—"))
    rprint(table)


@app.command("sprints")
def sprints_cmd(
    ticket_id: Annotated[str, typer.Argument(help="Ticket key, e.g. PROJ-123")],
    match: Annotated[str | None, typer.Option("--match", "-m", help="Resolve an approximate sprint name")] = None,
    profile: ProfileOpt = None,
) -> None:
    """List sprints available to a ticket's project."""
    jira = get_jira(profile)
    sprints = _run(jira, lambda j: j.resolve_sprints_for_ticket(ticket_id))

    if match:
        try:
            sprint = resolve_sprint_by_name(match, sprints)
        except GitJiraError as exc:
            rprint(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(1) from exc
        rprint(f"[green]✓[/green] [bold]{escape(match)}[/bold] → {escape(sprint.name)} ({sprint.id}, {sprint.state})")
        return

    table = Table(title=f"Sprints for {escape(ticket_id)}")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("State")
    for sprint in sprints:
        style = _STATE_STYLE.get(sprint.state, "")
        table.add_row(str(sprint.id), escape(sprint.name), f"[{style}]{sprint.state}[/{style}]" if style else sprint.state)
    rprint(table)


def _criteria(
    project: str | None,
    assignee: str | None,
    status: str | None,
    priority: str | None,
    issue_type: str | None,
    labels: list[str] | None,
    all_labels: bool,
    recent_days: int | None,
    text: str | None,
    limit: int,
) -> SearchCriteria:
    return SearchCriteria(
        project=project,
        assignee=assignee,
        status=status,
        priority=priority,
        issue_type=issue_type,
        labels=labels or [],
        labels_match_all=all_labels,
        recent_days=recent_days,
        text=text,
        max_results=limit,
    )


ProjectOpt = Annotated[str | None, typer.Option("--project", "-p")]
AssigneeOpt = Annotated[str | None, typer.Option("--assignee", "-a")]
StatusOpt = Annotated[str | None, typer.Option("--status", "-s")]
PriorityOpt = Annotated[str | None, typer.Option("--priority")]
TypeOpt = Annotated[str | None, typer.Option("--type", "-t")]
LabelOpt = Annotated[list[str] | None, typer.Option("--label", "-l", help="Repeatable")]
AllLabelsOpt = Annotated[bool, typer.Option("--all-labels", help="Require every label")]
RecentOpt = Annotated[int | None, typer.Option("--recent", help="Updated within N days")]
TextOpt = Annotated[str | None, typer.Option("--text", "-q", help="Free-text words")]
LimitOpt = Annotated[int, typer.Option("--limit", min=1, max=100)]


@app.command("jql")
def jql_cmd(
    project: ProjectOpt = None,
    assignee: AssigneeOpt = None,
    status: StatusOpt = None,
    priority: PriorityOpt = None,
    issue_type: TypeOpt = None,
    label: LabelOpt = None,
    all_labels: AllLabelsOpt = False,
    recent: RecentOpt = None,
    text: TextOpt = None,
) -> None:
    """Print the JQL built from the given filters without calling Jira."""
    criteria = _criteria(project, assignee, status, priority, issue_type, label, all_labels, recent, text, 50)
    typer.echo(build_query(criteria))


@app.command("search")
def search_cmd(
    project: ProjectOpt = None,
    assignee: AssigneeOpt = None,
    status: StatusOpt = None,
    priority: PriorityOpt = None,
    issue_type: TypeOpt = None,
    label: LabelOpt = None,
    all_labels: AllLabelsOpt = False,
    recent: RecentOpt = None,
    text: TextOpt = None,
    limit: LimitOpt = 50,
    profile: ProfileOpt = None,
) -> None:
    """Search Jira tickets."""
    criteria = _criteria(project, assignee, status, priority, issue_type, label, all_labels, recent, text, limit)
    jira = get_jira(profile)
    result = _run(jira, lambda j: j.search_tickets(criteria))

    table = Table(title=escape(result.jql))
    table.add_column("Key", style="cyan")
    table.add_column("Status")
    table.add_column("Summary")
    for ticket in result.tickets:
        table.add_row(ticket.key, escape(ticket.status), escape(ticket.summary))
    rprint(table)


@app.command("diff")
def diff_cmd(
    path: Annotated[Path, typer.Argument(help="Unified diff file", exists=True, dir_okay=False)],
) -> None:
    """Parse a unified diff and show old/new line numbers per hunk."""
    hunks = parse_diff(path.read_text())
    if not hunks:
        rprint("[yellow]No hunks found.[/yellow]")
        return

    for hunk in hunks:
        table = Table(title=escape(hunk.header))
        table.add_column("Old", style="dim", justify="right")
        table.add_column("New", style="dim", justify="right")
        table.add_column("Line")
        for line in hunk.lines:
            color = {"add": "green", "remove": "red"}.get(line.kind)
            text = escape(line.content)
            content = f"[{color}]{text}[/{color}]" if color else text
            table.add_row(
                "" if line.old_line is None else str(line.old_line),
                "" if line.new_line is None else str(line.new_line),
                content,
            )
        rprint(table)
