"""Tests for changelist spec text helpers."""

from __future__ import annotations

import pytest

from aiop4vault.exceptions import SpecParseError
from aiop4vault.p4.spec_text import new_changelist_spec, parse_created_change, replace_description

SPEC = """# A Perforce Change Specification.
Change:\t42

Client:\tws

User:\talice

Status:\tpending

Description:
\told line one
\told line two

Files:
\t//depot/vault/a.md\t# edit
"""


class TestNewChangelistSpec:
    def test_multiline_description_indented(self) -> None:
        spec = new_changelist_spec("first\nsecond")
        assert spec == "Change: new\n\nDescription:\n\tfirst\n\tsecond\n"


class TestReplaceDescription:
    def test_other_fields_kept(self) -> None:
        result = replace_description(SPEC, "new text")
        assert "\tnew text" in result
        assert "old line" not in result
        assert "Change:\t42" in result
        assert "Files:\n\t//depot/vault/a.md\t# edit" in result

    def test_crlf_input(self) -> None:
        result = replace_description(SPEC.replace("\n", "\r\n"), "x")
        assert "\r" not in result
        assert "Description:\n\tx\n" in result

    def test_missing_description(self) -> None:
        with pytest.raises(SpecParseError):
            replace_description("Change:\t42\n", "x")


class TestParseCreatedChange:
    def test_number(self) -> None:
        assert parse_created_change("Change 1234 created.\n") == 1234

    def test_unexpected_reply(self) -> None:
        with pytest.raises(SpecParseError, match="Failed to parse changelist number"):
            parse_created_change("Something else")
