"""Tests for the annotate output parser."""

from __future__ import annotations

import pytest

from aiop4vault.p4.annotate import Annotation, parse_annotate_output, parse_annotation_line


class TestParseAnnotationLine:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("48: mord4r 2025/11/08  - fixed bug", Annotation(48, "mord4r", "2025/11/08", "fixed bug")),
            ("48: jdoe 2025-11-08 text", Annotation(48, "jdoe", "2025-11-08", "text")),
            ("48: jdoe 2025/11/08: text", Annotation(48, "jdoe", "2025/11/08", "text")),
            ("48: jdoe: some text", Annotation(48, "jdoe", None, "some text")),
            ("48 - jdoe 2025/11/08: text", Annotation(48, "jdoe", "2025/11/08", "text")),
            ("48: just content", Annotation(48, "unknown", None, "just content")),
            ("jdoe 48 2025/11/08: text", Annotation(48, "jdoe", "2025/11/08", "text")),
        ],
    )
    def test_formats(self, line: str, expected: Annotation) -> None:
        assert parse_annotation_line(line) == expected

    def test_unmatched(self) -> None:
        assert parse_annotation_line("not an annotation") is None


class TestParseAnnotateOutput:
    def test_header_and_blank_lines_skipped(self) -> None:
        output = (
            "//depot/notes/a.md - edit change 50 (text)\r\n"
            "48: jdoe 2025/11/08: first\r\n"
            "\r\n"
            "50: asmith 2025/11/09: second\r\n"
        )
        lines = parse_annotate_output(output)
        assert [(line.line_number, line.changelist, line.user) for line in lines] == [
            (1, 48, "jdoe"),
            (2, 50, "asmith"),
        ]
        assert lines[1].content == "second"

    def test_unmatched_lines_do_not_consume_numbers(self) -> None:
        output = "48: jdoe 2025/11/08: one\n???\n49: jdoe 2025/11/08: two\n"
        lines = parse_annotate_output(output)
        assert [line.line_number for line in lines] == [1, 2]
        assert [line.content for line in lines] == ["one", "two"]

    def test_empty(self) -> None:
        assert parse_annotate_output("") == []
