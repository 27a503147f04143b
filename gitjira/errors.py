"""Typed failures surfaced to tool callers.

Every resolution failure carries enough context (available options, board
names, per-board errors) for the caller to retry without re-deriving it.
``str(exc)`` is the agent-facing message.
"""

from collections.abc import Sequence


class GitJiraError(RuntimeError):
    kind = "error"

    def __init__(self, message: str, hint: str | None = None) -> None:
        self.hint = hint
        super().__init__(f"{message} {hint}" if hint else message)


class FieldNotFound(GitJiraError):
    kind = "field_not_found"


class FieldNotEditable(GitJiraError):
    kind = "field_not_editable"

    def __init__(self, field_id: str, ticket_id: str) -> None:
        self.field_id = field_id
        self.ticket_id = ticket_id
        super().__init__(f"Field {field_id} is not editable on {ticket_id}.")


class NotAnOptionField(GitJiraError):
    kind = "not_an_option_field"

    def __init__(self, field_id: str) -> None:
        self.field_id = field_id
        super().__init__(f"{field_id} does not have allowed values (may not be an option field).")


class NoCloseMatch(GitJiraError):
    kind = "no_close_match"

    def __init__(self, text: str, candidates: Sequence[str], noun: str = "options", omitted: int = 0) -> None:
        self.text = text
        self.candidates = list(candidates)
        self.omitted = omitted
        available = ", ".join(self.candidates) if self.candidates else "(none)"
        if omitted:
            available += f" ... and {omitted} more"
        super().__init__(f'No close match found for "{text}".', f"Available {noun}: {available}")


class NoBoardsFound(GitJiraError):
    kind = "no_boards_found"

    def __init__(self, project_key: str, board_names: Sequence[str]) -> None:
        self.project_key = project_key
        self.board_names = list(board_names)[:50]
        super().__init__(
            f"No boards found for project {project_key}.",
            f"Available boards: {', '.join(self.board_names) or '(none)'}",
        )


class NoSprintsFound(GitJiraError):
    kind = "no_sprints_found"

    def __init__(self, project_key: str, errors: Sequence[str]) -> None:
        self.project_key = project_key
        self.errors = list(errors)
        hint = f"Board errors: {'; '.join(self.errors)}" if self.errors else None
        super().__init__(f"No sprints found on any board for project {project_key}.", hint)


class InvalidSprintId(GitJiraError):
    kind = "invalid_sprint_id"

    def __init__(self, sprint_id: object) -> None:
        self.sprint_id = sprint_id
        super().__init__(f"Sprint id must be numeric, got {sprint_id!r}.")


class UpstreamRequestFailed(GitJiraError):
    kind = "upstream_request_failed"

    def __init__(self, service: str, status_code: int, body: str) -> None:
        self.service = service
        self.status_code = status_code
        self.body = body
        super().__init__(f"{service} API Error: {status_code} - {body}")
