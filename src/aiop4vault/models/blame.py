"""Annotate (blame) models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class BlameLine(BaseModel):
    """Attribution for a single line."""

    line_number: int
    changelist: int
    user: str
    date: str | None = None
    content: str = ""
    description: str | None = None


class BlameResult(BaseModel):
    """Annotated lines of one file plus the time they were fetched."""

    file_path: str
    lines: list[BlameLine] = Field(default_factory=list)
    fetched_at: float

    def line(self, line_number: int) -> BlameLine | None:
        for entry in self.lines:
            if entry.line_number == line_number:
                return entry
        return None
