"""Tests for gitjira.errors — agent-facing messages."""

from gitjira.errors import (
    GitJiraError,
    InvalidSprintId,
    NoBoardsFound,
    NoCloseMatch,
    NoSprintsFound,
    NotAnOptionField,
    UpstreamRequestFailed,
)


class TestMessages:
    def test_no_close_match_lists_candidates(self) -> None:
        exc = NoCloseMatch("xyz", ["Low", "High"])
        assert str(exc) == 'No close match found for "xyz". Available options: Low, High'
        assert exc.kind == "no_close_match"

    def test_no_close_match_omitted_suffix(self) -> None:
        exc = NoCloseMatch("xyz", ["a"], noun="sprints", omitted=4)
        assert str(exc).endswith("Available sprints: a ... and 4 more")

    def test_board_names_capped(self) -> None:
        exc = NoBoardsFound("PROJ", [f"B{i}" for i in range(80)])
        assert len(exc.board_names) == 50
        assert str(exc).startswith("No boards found for project PROJ. Available boards: B0, B1")

    def test_no_sprints_without_errors_has_no_hint(self) -> None:
        assert str(NoSprintsFound("PROJ", [])) == "No sprints found on any board for project PROJ."

    def test_upstream(self) -> None:
        exc = UpstreamRequestFailed("GitLab", 403, "forbidden")
        assert str(exc) == "GitLab API Error: 403 - forbidden"

    def test_not_an_option_field(self) -> None:
        assert str(NotAnOptionField("summary")) == "summary does not have allowed values (may not be an option field)."

    def test_all_are_runtime_errors(self) -> None:
        assert isinstance(InvalidSprintId("x"), GitJiraError)
        assert isinstance(InvalidSprintId("x"), RuntimeError)
