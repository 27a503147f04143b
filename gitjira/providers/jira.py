"""Jira Cloud REST v3 + Agile 1.0 provider."""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from gitjira.cache import AsyncCache
from gitjira.errors import (
    FieldNotFound,
    InvalidSprintId,
    NoBoardsFound,
    NoCloseMatch,
    NoSprintsFound,
    UpstreamRequestFailed,
)
from gitjira.jql import SearchCriteria, build_query, is_fuzzy_project_token
from gitjira.matching import STRICT_OPTION, best_match
from gitjira.models import (
    AllowedValue,
    Board,
    Comment,
    CreatedTicket,
    FieldDescriptor,
    FieldSchema,
    FieldValue,
    JiraProject,
    SearchResult,
    Sprint,
    Ticket,
    TicketSummary,
    TicketUpdate,
    Transition,
    UserRef,
)
from gitjira.providers.base import RestProvider
from gitjira.resolution import (
    boards_for_project,
    find_sprint_field,
    find_story_points_field,
    order_sprints,
    pick_allowed_value,
    resolve_field_id,
    resolve_sprint_by_name,
)
from gitjira.settings import GitJiraSettings

logger = logging.getLogger(__name__)

API = "/rest/api/3"
AGILE = "/rest/agile/1.0"

_SCHEMA_KINDS = {"string", "number", "option", "user", "array", "date", "datetime"}


def adf(text: str) -> dict:
    """Wrap plain text in a single-paragraph Atlassian Document Format document."""
    return {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
    }


def adf_to_text(doc: Any) -> str | None:
    """Flatten an ADF document: one line per top-level block."""
    if doc is None or isinstance(doc, str):
        return doc

    def gather(node: Mapping) -> str:
        if "text" in node:
            return node["text"]
        return "".join(gather(child) for child in node.get("content") or [])

    return "\n".join(gather(block) for block in doc.get("content") or [])


def _field_from_node(node: dict) -> FieldDescriptor:
    schema = node.get("schema") or {}
    custom = schema.get("custom")
    kind = schema.get("type")
    if custom and custom.endswith(":gh-sprint"):
        kind = "sprint"
    elif custom and custom.endswith(":gh-epic-link"):
        kind = "epicLink"
    elif kind not in _SCHEMA_KINDS:
        kind = "other"
    return FieldDescriptor(
        id=node["id"],
        name=node.get("name") or node["id"],
        custom=bool(node.get("custom")),
        value_schema=FieldSchema(kind=kind, custom_subtype=custom),
    )


def _user(node: dict | None) -> UserRef | None:
    if not node:
        return None
    return UserRef(
        display_name=node.get("displayName"),
        email=node.get("emailAddress"),
        account_id=node.get("accountId"),
    )


def _dict_value(value: dict) -> UserRef | str | dict:
    if "displayName" in value:
        return _user(value)
    if "value" in value or "name" in value:
        return str(value.get("value") or value.get("name"))
    return value


def _field_value(value: Any) -> FieldValue | None:
    """Reduce a raw field payload to a FieldValue, or None when it is empty."""
    if value is None or value == "" or value == []:
        return None
    if isinstance(value, dict):
        return _dict_value(value)
    if isinstance(value, list):
        return [_dict_value(item) if isinstance(item, dict) else str(item) for item in value]
    return value


def _board_from_node(node: dict) -> Board:
    location = node.get("location") or {}
    return Board(
        id=node["id"],
        name=node.get("name", ""),
        type=node.get("type", "scrum"),
        project_key=location.get("projectKey"),
    )


def _sprint_from_node(node: dict, board_id: int | None = None) -> Sprint:
    return Sprint(
        id=node["id"],
        name=node.get("name") or "",
        state=node.get("state", "future"),
        board_id=node.get("originBoardId", board_id),
    )


class JiraProvider(RestProvider):
    service = "Jira"

    def __init__(self, settings: GitJiraSettings) -> None:
        base_url, email, token = settings.jira_api_base_url, settings.jira_user_email, settings.jira_api_token
        if not (base_url and email and token):
            raise RuntimeError("JIRA_API_BASE_URL, JIRA_USER_EMAIL and JIRA_API_TOKEN are required")
        self.base_url = base_url.rstrip("/")
        super().__init__(
            self.base_url,
            headers={"Content-Type": "application/json"},
            auth=(email, token.get_secret_value()),
            timeout=settings.http_timeout,
        )
        self._page_size = settings.board_page_size
        self._fields: AsyncCache[list[FieldDescriptor]] = AsyncCache("jira fields")
        self._projects: AsyncCache[list[JiraProject]] = AsyncCache("jira projects", ttl=settings.project_cache_ttl)

    # -- fields ---------------------------------------------------------------

    async def get_fields(self) -> list[FieldDescriptor]:
        async def fetch() -> list[FieldDescriptor]:
            nodes = await self._get(f"{API}/field")
            return [_field_from_node(n) for n in nodes]

        return await self._fields.get_or_fetch(fetch)

    async def resolve_field_id(self, field_name: str) -> str:
        return resolve_field_id(field_name, await self.get_fields())

    async def get_story_points_field_id(self) -> str:
        return find_story_points_field(await self.get_fields())

    # -- tickets --------------------------------------------------------------

    async def get_ticket(self, ticket_id: str) -> Ticket:
        node = await self._get(f"{API}/issue/{ticket_id}")
        fields_catalog = await self.get_fields()
        catalog = {field.id: field for field in fields_catalog}
        try:
            story_points_id: str | None = find_story_points_field(fields_catalog)
        except FieldNotFound:
            story_points_id = None
        fields: dict = node.get("fields") or {}

        story_points = epic_link = None
        custom: dict[str, FieldValue] = {}
        for field_id, raw in fields.items():
            if not field_id.startswith("customfield_"):
                continue
            value = _field_value(raw)
            if value is None:
                continue
            descriptor = catalog.get(field_id)
            name = descriptor.name if descriptor else field_id
            if field_id == story_points_id and isinstance(value, int | float):
                story_points = float(value)
            elif descriptor and (descriptor.value_schema.kind == "epicLink" or name.lower() == "epic link"):
                epic_link = str(value)
            else:
                # Duplicate display names are suffixed with the field id.
                custom[f"{name} ({field_id})" if name in custom else name] = value

        return Ticket(
            id=str(node["id"]),
            key=node["key"],
            summary=fields.get("summary") or "",
            description=adf_to_text(fields.get("description")),
            status=(fields.get("status") or {}).get("name"),
            priority=(fields.get("priority") or {}).get("name"),
            issue_type=(fields.get("issuetype") or {}).get("name"),
            labels=fields.get("labels") or [],
            created=fields.get("created"),
            updated=fields.get("updated"),
            assignee=_user(fields.get("assignee")),
            reporter=_user(fields.get("reporter")),
            story_points=story_points,
            epic_link=epic_link,
            custom_fields=custom,
        )

    async def get_comments(self, ticket_id: str) -> list[Comment]:
        data = await self._get(f"{API}/issue/{ticket_id}/comment")
        return [
            Comment(
                id=str(c["id"]),
                author=_user(c.get("author")) or UserRef(),
                body=adf_to_text(c.get("body")) or "",
                created=c.get("created"),
                updated=c.get("updated"),
            )
            for c in data.get("comments", [])
        ]

    async def add_comment(self, ticket_id: str, text: str) -> None:
        await self._post(f"{API}/issue/{ticket_id}/comment", {"body": adf(text)})
        logger.info("Comment added to Jira ticket %s", ticket_id)

    async def _edit(self, ticket_id: str, fields: dict[str, Any]) -> None:
        await self._put(f"{API}/issue/{ticket_id}", {"fields": fields})
        logger.info("Jira ticket %s updated: %s", ticket_id, ", ".join(fields))

    async def update_ticket(self, ticket_id: str, update: TicketUpdate) -> None:
        fields: dict[str, Any] = {}
        if update.summary:
            fields["summary"] = update.summary
        if update.labels is not None:
            fields["labels"] = update.labels
        if update.description:
            fields["description"] = adf(update.description)
        if update.assignee_account_id:
            fields["assignee"] = {"accountId": update.assignee_account_id}
        if update.reporter_account_id:
            fields["reporter"] = {"accountId": update.reporter_account_id}
        if update.priority_id:
            fields["priority"] = {"id": update.priority_id}
        if update.fix_versions is not None:
            fields["fixVersions"] = [{"name": v} for v in update.fix_versions]
        if update.components is not None:
            fields["components"] = [{"name": c} for c in update.components]
        if update.duedate:
            fields["duedate"] = update.duedate
        if not fields:
            raise ValueError("Nothing to update: no fields were provided.")
        await self._edit(ticket_id, fields)

    async def update_custom_fields(self, ticket_id: str, values: Mapping[str, Any]) -> dict[str, str]:
        """Write values keyed by approximate field names; returns name -> resolved field id."""
        resolved = {name: await self.resolve_field_id(name) for name in values}
        await self._edit(ticket_id, {resolved[name]: value for name, value in values.items()})
        return resolved

    async def create_ticket(
        self,
        project_key: str,
        summary: str,
        issue_type: str = "Task",
        description: str | None = None,
        extra_fields: Mapping[str, Any] | None = None,
    ) -> CreatedTicket:
        fields: dict[str, Any] = {
            "project": {"key": project_key},
            "summary": summary,
            "issuetype": {"name": issue_type},
            "description": adf(description or summary),
            **(extra_fields or {}),
        }
        node = await self._post(f"{API}/issue", {"fields": fields})
        logger.info("Jira ticket %s created", node["key"])
        return CreatedTicket(id=str(node["id"]), key=node["key"], url=f"{self.base_url}/browse/{node['key']}")

    # -- transitions ----------------------------------------------------------

    async def get_transitions(self, ticket_id: str) -> list[Transition]:
        data = await self._get(f"{API}/issue/{ticket_id}/transitions")
        return [
            Transition(id=str(t["id"]), name=t["name"], to_status=(t.get("to") or {}).get("name", ""))
            for t in data.get("transitions", [])
            if t.get("id") and t.get("name")
        ]

    async def transition_ticket(self, ticket_id: str, transition_id: str) -> None:
        await self._post(f"{API}/issue/{ticket_id}/transitions", {"transition": {"id": transition_id}})
        logger.info("Jira ticket %s transitioned with transition %s", ticket_id, transition_id)

    async def transition_ticket_by_name(self, ticket_id: str, name: str) -> Transition:
        """Apply the transition whose name or target status is closest to ``name``."""
        transitions = await self.get_transitions(ticket_id)
        candidates = [(t.name, t) for t in transitions] + [(t.to_status, t) for t in transitions if t.to_status]
        labels = [f"{t.name} (-> {t.to_status})" for t in transitions]
        if not candidates:
            raise NoCloseMatch(name, labels, noun="transitions")
        match = best_match(name, candidates)
        if not STRICT_OPTION.accepts(name, match.distance):
            raise NoCloseMatch(name, labels, noun="transitions")
        await self.transition_ticket(ticket_id, match.payload.id)
        return match.payload

    # -- option fields --------------------------------------------------------

    async def resolve_allowed_value(self, ticket_id: str, field_id: str, text: str) -> AllowedValue:
        node = await self._get(f"{API}/issue/{ticket_id}", params={"fields": field_id, "expand": "editmeta"})
        editmeta = (node.get("editmeta") or {}).get("fields") or {}
        return pick_allowed_value(text, ticket_id, field_id, editmeta)

    async def update_ticket_priority(self, ticket_id: str, priority: str) -> AllowedValue:
        field_id = await self.resolve_field_id("Priority")
        value = await self.resolve_allowed_value(ticket_id, field_id, priority)
        await self._edit(ticket_id, {field_id: {"id": value.id} if value.id else {"value": value.value}})
        return value

    async def update_story_points(self, ticket_id: str, points: float) -> None:
        await self._edit(ticket_id, {await self.get_story_points_field_id(): points})

    # -- boards and sprints ---------------------------------------------------

    async def _paginate(self, path: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Fetch every page of an Agile-style ``{values, total, isLast}`` listing.

        Stops on ``isLast``, on reaching ``total``, or on an empty page.
        """
        values: list[dict] = []
        start_at = 0
        while True:
            page = await self._get(path, params={**(params or {}), "startAt": start_at, "maxResults": self._page_size})
            batch = page.get("values") or []
            values.extend(batch)
            total = page.get("total")
            logger.debug("%s: fetched %d at offset %d (total=%s)", path, len(batch), start_at, total)
            if page.get("isLast", False) or not batch or (total is not None and len(values) >= total):
                return values
            start_at += self._page_size

    async def list_all_boards(
        self,
        board_type: str | None = None,
        name_prefix: str | None = None,
        project_hint: str | None = None,
    ) -> list[Board]:
        # Server-side filters are hints only; callers re-filter.
        params: dict[str, Any] = {}
        if board_type:
            params["type"] = board_type
        if name_prefix:
            params["name"] = name_prefix
        if project_hint:
            params["projectKeyOrId"] = project_hint
        return [_board_from_node(n) for n in await self._paginate(f"{AGILE}/board", params)]

    async def list_sprints_for_board(self, board_id: int, state: str | None = None) -> list[Sprint]:
        params = {"state": state} if state else None
        nodes = await self._paginate(f"{AGILE}/board/{board_id}/sprint", params)
        return [_sprint_from_node(n, board_id) for n in nodes]

    async def get_ticket_project_key(self, ticket_id: str) -> str:
        node = await self._get(f"{API}/issue/{ticket_id}", params={"fields": "project"})
        return node["fields"]["project"]["key"]

    async def resolve_sprints_for_ticket(self, ticket_id: str) -> list[Sprint]:
        project_key = await self.get_ticket_project_key(ticket_id)
        boards = await self.list_all_boards()
        matching = boards_for_project(project_key, boards)
        if not matching:
            raise NoBoardsFound(project_key, [b.name for b in boards])

        sprints: list[Sprint] = []
        errors: list[str] = []
        for board in matching:
            try:
                sprints += await self.list_sprints_for_board(board.id)
            except (UpstreamRequestFailed, httpx.HTTPError) as exc:
                logger.warning("Skipping board %s (%s): %s", board.id, board.name, exc)
                errors.append(f"{board.name} ({board.id}): {exc}")

        ordered = order_sprints(sprints)
        if not ordered:
            raise NoSprintsFound(project_key, errors)
        return ordered

    async def update_ticket_sprint(self, ticket_id: str, sprint_name: str) -> Sprint:
        field_id = find_sprint_field(await self.get_fields())
        sprint = resolve_sprint_by_name(sprint_name, await self.resolve_sprints_for_ticket(ticket_id))
        await self._edit(ticket_id, {field_id: sprint.id})
        return sprint

    async def move_to_sprint(self, sprint_id: str | int, ticket_ids: Sequence[str]) -> int:
        text = str(sprint_id).strip()
        if not text.isdigit():
            raise InvalidSprintId(sprint_id)
        await self._post(f"{AGILE}/sprint/{text}/issue", {"issues": list(ticket_ids)})
        return int(text)

    async def find_boards(
        self,
        project_key: str | None = None,
        board_name: str | None = None,
        board_id: int | None = None,
        board_type: str | None = None,
    ) -> list[Board]:
        if board_id is not None:
            try:
                return [_board_from_node(await self._get(f"{AGILE}/board/{board_id}"))]
            except UpstreamRequestFailed as exc:
                if exc.status_code != 404:
                    raise
                logger.info("Board %s not found directly, falling back to listing", board_id)

        boards = await self.list_all_boards(board_type, board_name, project_key)
        if board_id is not None:
            boards = [b for b in boards if b.id == board_id]
        if project_key:
            boards = boards_for_project(project_key, boards)
        if board_name:
            boards = [b for b in boards if board_name.lower() in b.name.lower()]
        if board_type:
            boards = [b for b in boards if b.type == board_type]
        return boards

    # -- projects and search --------------------------------------------------

    async def list_projects(self) -> list[JiraProject]:
        async def fetch() -> list[JiraProject]:
            nodes = await self._paginate(f"{API}/project/search")
            return [JiraProject(id=str(n["id"]), key=n["key"], name=n.get("name", n["key"])) for n in nodes]

        return await self._projects.get_or_fetch(fetch)

    async def resolve_project_key(self, text: str) -> str:
        projects = await self.list_projects()
        for project in projects:
            if project.key.lower() == text.strip().lower():
                return project.key
        candidates = [(p.name, p) for p in projects] + [(p.key, p) for p in projects]
        hint = [f"{p.key} ({p.name})" for p in projects]
        if not candidates:
            raise NoCloseMatch(text, hint, noun="projects")
        match = best_match(text, candidates)
        if not STRICT_OPTION.accepts(text, match.distance):
            raise NoCloseMatch(text, hint, noun="projects")
        return match.payload.key

    async def search_by_jql(self, jql: str, max_results: int = 50) -> SearchResult:
        data = await self._get(
            f"{API}/search/jql",
            params={"jql": jql, "maxResults": max_results, "fields": "summary,description,status"},
        )
        tickets = [
            TicketSummary(
                id=str(issue["id"]),
                key=issue["key"],
                summary=issue["fields"].get("summary") or "",
                description=adf_to_text(issue["fields"].get("description")),
                status=(issue["fields"].get("status") or {}).get("name", ""),
            )
            for issue in data.get("issues", [])
        ]
        return SearchResult(jql=jql, tickets=tickets)

    async def search_tickets(self, criteria: SearchCriteria) -> SearchResult:
        if criteria.project and is_fuzzy_project_token(criteria.project):
            try:
                key = await self.resolve_project_key(criteria.project)
                criteria = criteria.model_copy(update={"project": key})
            except NoCloseMatch:
                logger.info("No project close to %r; searching by name", criteria.project)
        return await self.search_by_jql(build_query(criteria), criteria.max_results)

