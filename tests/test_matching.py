"""Tests for gitjira.matching — edit distance, normalization and thresholds."""

import pytest

from gitjira.errors import NoCloseMatch
from gitjira.matching import LENIENT_FREEFORM, STRICT_OPTION, best_match, levenshtein, normalize


class TestNormalize:
    def test_lowercases_and_trims(self) -> None:
        assert normalize("  Story Points ") == "story points"

    def test_collapses_separators(self) -> None:
        assert normalize("story_points") == "story points"
        assert normalize("story--points") == "story points"
        assert normalize("story \t _ points") == "story points"


class TestLevenshtein:
    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [
            ("kitten", "sitting", 3),
            ("hello", "hallo", 1),
            ("", "abc", 3),
            ("abc", "", 3),
            ("", "", 0),
            ("same", "same", 0),
        ],
    )
    def test_known_distances(self, a: str, b: str, expected: int) -> None:
        assert levenshtein(a, b) == expected

    def test_symmetric(self) -> None:
        assert levenshtein("sprint 24", "bug fix") == levenshtein("bug fix", "sprint 24")

    def test_bounded_by_longer_length(self) -> None:
        assert levenshtein("ab", "wxyz") <= 4


class TestBestMatch:
    def test_picks_closest(self) -> None:
        match = best_match("hi", [("Low", 1), ("High", 2), ("Critical", 3)])
        assert match.payload == 2
        assert match.label == "High"
        assert match.distance == 2

    def test_compares_normalized_labels(self) -> None:
        match = best_match("STORY_POINTS", [("Summary", "a"), ("Story Points", "b")])
        assert match.payload == "b"
        assert match.distance == 0

    def test_first_candidate_wins_ties(self) -> None:
        match = best_match("abx", [("abc", "first"), ("abd", "second")])
        assert match.payload == "first"

    def test_later_candidate_replaces_first_only_when_closer(self) -> None:
        match = best_match("abc", [("xyz", "first"), ("abd", "second"), ("abe", "third")])
        assert match.payload == "second"
        assert match.distance == 1

    def test_never_rejects(self) -> None:
        match = best_match("zzzzzzzz", [("Low", 1)])
        assert match.payload == 1
        assert match.distance == 8

    def test_empty_candidates_raise(self) -> None:
        with pytest.raises(NoCloseMatch):
            best_match("anything", [])


class TestThreshold:
    def test_strict_floor_for_short_text(self) -> None:
        assert STRICT_OPTION.limit("hi") == 2

    def test_strict_cap(self) -> None:
        assert STRICT_OPTION.limit("critical") == 4

    def test_lenient_floor(self) -> None:
        assert LENIENT_FREEFORM.limit("abc") == 10

    def test_lenient_scales_then_caps(self) -> None:
        assert LENIENT_FREEFORM.limit("bug fix") == 14
        assert LENIENT_FREEFORM.limit("completely-unrelated-name-xyz") == 16

    def test_accepts_boundary(self) -> None:
        assert STRICT_OPTION.accepts("hi", 2)
        assert not STRICT_OPTION.accepts("hi", 3)
