"""Tests for gitjira.diff — hunk splitting and line numbering."""

from gitjira.diff import parse_diff, parse_file_diff
from gitjira.models import FileDiff

_DIFF = """\
diff --git a/app.py b/app.py
--- a/app.py
+++ b/app.py
@@ -1,3 +1,4 @@
 import os
-import sys
+import sys  # noqa
+import json
 
@@ -10,2 +11,3 @@ def main():
     run()
+    log()
     return 0
"""


class TestParseDiff:
    def test_two_hunks(self) -> None:
        hunks = parse_diff(_DIFF)
        assert len(hunks) == 2
        assert (hunks[0].old_start, hunks[0].old_count, hunks[0].new_start, hunks[0].new_count) == (1, 3, 1, 4)
        assert hunks[1].header == "@@ -10,2 +11,3 @@ def main():"

    def test_line_kinds_and_counts(self) -> None:
        first = parse_diff(_DIFF)[0]
        assert [line.kind for line in first.lines] == ["context", "remove", "add", "add", "context"]

    def test_added_lines_numbered_on_new_side_only(self) -> None:
        first = parse_diff(_DIFF)[0]
        added = [line for line in first.lines if line.kind == "add"]
        assert [(line.old_line, line.new_line) for line in added] == [(None, 2), (None, 3)]

    def test_removed_line_numbered_on_old_side_only(self) -> None:
        removed = parse_diff(_DIFF)[0].lines[1]
        assert (removed.old_line, removed.new_line) == (2, None)
        assert removed.content == "-import sys"

    def test_context_lines_numbered_on_both_sides(self) -> None:
        first, second = parse_diff(_DIFF)
        assert (first.lines[-1].old_line, first.lines[-1].new_line) == (3, 4)
        assert (second.lines[0].old_line, second.lines[0].new_line) == (10, 11)
        assert (second.lines[-1].old_line, second.lines[-1].new_line) == (11, 13)

    def test_omitted_counts_default_to_one(self) -> None:
        (hunk,) = parse_diff("@@ -5 +5 @@\n-old\n+new\n")
        assert (hunk.old_count, hunk.new_count) == (1, 1)
        assert [(line.old_line, line.new_line) for line in hunk.lines] == [(5, None), (None, 5)]

    def test_no_hunks(self) -> None:
        assert parse_diff("") == []
        assert parse_diff("Binary files a/logo.png and b/logo.png differ\n") == []


class TestParseFileDiff:
    def test_carries_file_flags(self) -> None:
        parsed = parse_file_diff(
            FileDiff(old_path="old.py", new_path="new.py", renamed_file=True, diff="@@ -1 +1 @@\n-a\n+b\n")
        )
        assert parsed.file_path == "new.py"
        assert parsed.old_path == "old.py"
        assert parsed.is_renamed
        assert len(parsed.hunks) == 1


class TestLineSeparators:
    def test_form_feed_stays_inside_line(self) -> None:
        (hunk,) = parse_diff("@@ -1,2 +1,2 @@\n a\x0cb\n-c\n+d\n")
        assert [(line.kind, line.old_line, line.new_line) for line in hunk.lines] == [
            ("context", 1, 1),
            ("remove", 2, None),
            ("add", None, 2),
        ]
        assert hunk.lines[0].content == " a\x0cb"

    def test_unicode_line_separator_stays_inside_line(self) -> None:
        (hunk,) = parse_diff("@@ -1 +1 @@\n-x = 'a\u2028b'\n+x = 'ab'\n")
        assert len(hunk.lines) == 2
        assert hunk.lines[1].new_line == 1

    def test_crlf_line_endings(self) -> None:
        (hunk,) = parse_diff("@@ -1 +1 @@\r\n-old\r\n+new\r\n")
        assert [line.content for line in hunk.lines] == ["-old", "+new"]
