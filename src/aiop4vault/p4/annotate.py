"""Parser for ``p4 annotate -u -c`` output.

The line format varies with server version and locale, so each line is tried
against an ordered list of pattern/extractor pairs and the first match wins.
Lines no pattern recognises are dropped without consuming a line number;
partial results are preferred over failing the whole file.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import NamedTuple

from ..models.blame import BlameLine

logger = logging.getLogger(__name__)

_DATE = r"\d{4}/\d{2}/\d{2}"
_LOOSE_DATE = r"\d{4}[/\-]\d{2}[/\-]\d{2}"

# Separator left between the date and the text in the loosest format.
_LEADING_SEPARATOR = re.compile(r"^\s*(?::[\s:]*|-\s+)?")


class Annotation(NamedTuple):
    changelist: int
    user: str
    date: str | None
    content: str


Extractor = Callable[[re.Match[str]], Annotation]


def _loose(match: re.Match[str]) -> Annotation:
    content = _LEADING_SEPARATOR.sub("", match[4] or "", count=1).strip()
    return Annotation(int(match[1]), match[2], match[3], content)


def _user_date_colon(match: re.Match[str]) -> Annotation:
    return Annotation(int(match[1]), match[2], match[3], (match[4] or "").strip())


def _user_colon(match: re.Match[str]) -> Annotation:
    return Annotation(int(match[1]), match[2], None, (match[3] or "").strip())


def _dash(match: re.Match[str]) -> Annotation:
    return Annotation(int(match[1]), match[2], match[3], match[4] or "")


def _changelist_only(match: re.Match[str]) -> Annotation:
    return Annotation(int(match[1]), "unknown", None, match[2] or "")


def _user_first(match: re.Match[str]) -> Annotation:
    return Annotation(int(match[2]), match[1], match[3], match[4] or "")


LINE_FORMATS: tuple[tuple[re.Pattern[str], Extractor], ...] = (
    # 48: jdoe 2025/11/08  - text
    (re.compile(rf"^(\d+):\s*(\S+)\s+({_LOOSE_DATE})(.*)$"), _loose),
    # 48: jdoe 2025/11/08: text
    (re.compile(rf"^(\d+):\s*(\S+)\s+({_DATE}):\s*(.*)$"), _user_date_colon),
    # 48: jdoe: text
    (re.compile(r"^(\d+):\s*(\S+):\s*(.*)$"), _user_colon),
    # 48 - jdoe 2025/11/08: text
    (re.compile(rf"^(\d+)\s*-\s*(\S+)\s+({_DATE}):\s?(.*)$"), _dash),
    # 48: text
    (re.compile(r"^(\d+):\s*(.*)$"), _changelist_only),
    # jdoe 48 2025/11/08: text
    (re.compile(rf"^(\S+)\s+(\d+)\s+({_DATE}):\s?(.*)$"), _user_first),
)


def parse_annotation_line(line: str) -> Annotation | None:
    """Parse one annotate line, or return ``None`` if no format matches."""
    for pattern, extract in LINE_FORMATS:
        match = pattern.match(line)
        if match:
            return extract(match)
    return None


def parse_annotate_output(output: str) -> list[BlameLine]:
    """Turn raw annotate output into numbered :class:`BlameLine` entries."""
    lines: list[BlameLine] = []
    line_number = 0

    for raw in output.replace("\r", "").split("\n"):
        if not raw.strip():
            continue
        # Depot file header, e.g. "//depot/notes/a.md - edit change 1234"
        if raw.startswith("//"):
            continue

        annotation = parse_annotation_line(raw)
        if annotation is None:
            logger.debug("Unmatched annotate line: %r", raw[:60])
            continue

        line_number += 1
        lines.append(
            BlameLine(
                line_number=line_number,
                changelist=annotation.changelist,
                user=annotation.user,
                date=annotation.date,
                content=annotation.content,
            )
        )

    logger.debug("Parsed %d annotated lines", len(lines))
    return lines
