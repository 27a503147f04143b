"""Edit-distance matching of free text against candidate labels."""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from gitjira.errors import NoCloseMatch

T = TypeVar("T")

_SEPARATORS = re.compile(r"[\s_-]+")


def normalize(text: str) -> str:
    """Lowercase, trim, and collapse whitespace/underscores/hyphens to single spaces."""
    return _SEPARATORS.sub(" ", text.lower()).strip()


def levenshtein(a: str, b: str) -> int:
    rows, cols = len(a) + 1, len(b) + 1
    table = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        table[i][0] = i
    for j in range(cols):
        table[0][j] = j
    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            table[i][j] = min(
                table[i - 1][j] + 1,  # deletion
                table[i][j - 1] + 1,  # insertion
                table[i - 1][j - 1] + cost,  # substitution
            )
    return table[-1][-1]


@dataclass(frozen=True)
class Match(Generic[T]):
    payload: T
    label: str
    distance: int


def best_match(text: str, candidates: Sequence[tuple[str, T]]) -> Match[T]:
    """Return the candidate whose normalized label is closest to ``text``.

    Earlier candidates win ties. Never rejects a poor match; callers apply a
    ``Threshold``. An empty candidate list raises ``NoCloseMatch``.
    """
    if not candidates:
        raise NoCloseMatch(text, [])
    needle = normalize(text)
    first_label, first_payload = candidates[0]
    best = Match(payload=first_payload, label=first_label, distance=levenshtein(needle, normalize(first_label)))
    for label, payload in candidates[1:]:
        distance = levenshtein(needle, normalize(label))
        if distance < best.distance:
            best = Match(payload=payload, label=label, distance=distance)
    return best


@dataclass(frozen=True)
class Threshold:
    """Maximum accepted distance: ``max(min(floor(len * factor), cap), floor)``."""

    name: str
    factor: float
    cap: int
    floor: int

    def limit(self, text: str) -> int:
        return max(min(int(len(normalize(text)) * self.factor), self.cap), self.floor)

    def accepts(self, text: str, distance: int) -> bool:
        return distance <= self.limit(text)


# Enumerated option values (priority, status, transitions).
STRICT_OPTION = Threshold("strict-option", factor=1, cap=4, floor=2)
# Free-form names (sprints, boards, projects).
LENIENT_FREEFORM = Threshold("lenient-freeform", factor=2, cap=16, floor=10)
