"""Resolve approximate names typed by an agent to Jira identifiers and records.

Everything here is pure; the Jira provider fetches catalogs, edit metadata,
boards and sprints and hands them in.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from gitjira.errors import FieldNotEditable, FieldNotFound, NoCloseMatch, NotAnOptionField
from gitjira.matching import LENIENT_FREEFORM, STRICT_OPTION, best_match, normalize
from gitjira.models import AllowedValue, Board, FieldDescriptor, Sprint

STATE_ORDER = {"active": 0, "future": 1, "closed": 2}
SPRINT_HINT_LIMIT = 10


def resolve_field_id(display_name: str, catalog: Sequence[FieldDescriptor]) -> str:
    """Best-effort: the closest field name always wins, there is no threshold."""
    if not catalog:
        raise FieldNotFound("No fields found in Jira.")
    match = best_match(display_name, [(field.name, field.id) for field in catalog])
    return match.payload


def _squash(name: str) -> str:
    return normalize(name).replace(" ", "")


def find_story_points_field(catalog: Sequence[FieldDescriptor]) -> str:
    for field in catalog:
        if _squash(field.name) == "storypoints":
            return field.id
    raise FieldNotFound("Could not find the Story Points field for this Jira instance.")


def find_sprint_field(catalog: Sequence[FieldDescriptor]) -> str:
    for field in catalog:
        if field.value_schema.kind == "sprint":
            return field.id
    return resolve_field_id("Sprint", catalog)


def _label(option: Mapping[str, Any]) -> str:
    return str(option.get("value") or option.get("name") or "")


def pick_allowed_value(
    text: str,
    ticket_id: str,
    field_id: str,
    editmeta_fields: Mapping[str, Any],
) -> AllowedValue:
    """Pick the allowed option closest to ``text`` under the strict threshold."""
    meta = editmeta_fields.get(field_id)
    if meta is None:
        raise FieldNotEditable(field_id, ticket_id)
    options = meta.get("allowedValues")
    if not options:
        raise NotAnOptionField(field_id)

    labelled = [(_label(option), option) for option in options if _label(option)]
    match = best_match(text, labelled)
    if not STRICT_OPTION.accepts(text, match.distance):
        raise NoCloseMatch(text, [label for label, _ in labelled])

    option_id = match.payload.get("id")
    return AllowedValue(id=str(option_id) if option_id is not None else None, value=match.label)


def boards_for_project(project_key: str, boards: Iterable[Board]) -> list[Board]:
    """Boards located in the project, or whose name mentions its key."""
    key = project_key.lower()
    return [
        board
        for board in boards
        if (board.project_key and board.project_key.lower() == key) or key in board.name.lower()
    ]


def order_sprints(sprints: Iterable[Sprint]) -> list[Sprint]:
    """Dedupe by id, drop unnamed sprints, active first then future then closed, then by name."""
    unique: dict[int, Sprint] = {}
    for sprint in sprints:
        if sprint.name and sprint.id not in unique:
            unique[sprint.id] = sprint
    return sorted(unique.values(), key=lambda s: (STATE_ORDER.get(s.state, len(STATE_ORDER)), s.name.lower()))


def resolve_sprint_by_name(text: str, sprints: Sequence[Sprint]) -> Sprint:
    if sprints:
        match = best_match(text, [(sprint.name, sprint) for sprint in sprints])
        if LENIENT_FREEFORM.accepts(text, match.distance):
            return match.payload

    shown = [f"{sprint.name} ({sprint.state})" for sprint in sprints[:SPRINT_HINT_LIMIT]]
    raise NoCloseMatch(text, shown, noun="sprints", omitted=max(len(sprints) - SPRINT_HINT_LIMIT, 0))
