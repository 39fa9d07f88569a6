"""Changelist models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from .files import ChangelistId, FileStatus

DEFAULT_CHANGELIST: Literal["default"] = "default"


class Changelist(BaseModel):
    """A pending, submitted or shelved changelist."""

    change: ChangelistId
    description: str = ""
    user: str = ""
    client: str = ""
    status: Literal["pending", "submitted", "shelved"] = "pending"
    date: str | None = None
    files: list[FileStatus] | None = None

    @property
    def is_default(self) -> bool:
        return self.change == DEFAULT_CHANGELIST


class HistoryEntry(BaseModel):
    """A submitted changelist in the history view."""

    change: int
    user: str = ""
    client: str = ""
    date: str = ""
    description: str = ""
