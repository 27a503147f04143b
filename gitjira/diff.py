"""Unified diff parsing with per-line old/new line numbers."""

import re

from gitjira.models import DiffHunk, DiffLine, FileDiff, ParsedFileDiff

HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)")


def parse_diff(diff: str) -> list[DiffHunk]:
    """Split a unified diff into hunks.

    Lines before the first ``@@`` header (file headers) are ignored. Added lines
    get only a new-side number, removed lines only an old-side number, context
    lines both. Counts default to 1 when omitted from the header. Only ``\\n``
    separates lines; form feeds and other separators stay in the content.
    """
    hunks: list[DiffHunk] = []
    current: DiffHunk | None = None
    old_seen = new_seen = 0

    lines = diff.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    for line in lines:
        line = line.removesuffix("\r")
        if line.startswith("@@"):
            match = HUNK_HEADER.match(line)
            if match:
                if current:
                    hunks.append(current)
                current = DiffHunk(
                    header=line,
                    old_start=int(match.group(1)),
                    old_count=int(match.group(2) or 1),
                    new_start=int(match.group(3)),
                    new_count=int(match.group(4) or 1),
                )
                old_seen = new_seen = 0
            continue
        if current is None:
            continue

        if line.startswith("+"):
            entry = DiffLine(kind="add", new_line=current.new_start + new_seen, content=line)
            new_seen += 1
        elif line.startswith("-"):
            entry = DiffLine(kind="remove", old_line=current.old_start + old_seen, content=line)
            old_seen += 1
        else:
            entry = DiffLine(
                kind="context",
                old_line=current.old_start + old_seen,
                new_line=current.new_start + new_seen,
                content=line,
            )
            old_seen += 1
            new_seen += 1
        current.lines.append(entry)

    if current:
        hunks.append(current)
    return hunks


def parse_file_diff(change: FileDiff) -> ParsedFileDiff:
    return ParsedFileDiff(
        file_path=change.new_path,
        old_path=change.old_path,
        is_new=change.new_file,
        is_deleted=change.deleted_file,
        is_renamed=change.renamed_file,
        hunks=parse_diff(change.diff),
    )
