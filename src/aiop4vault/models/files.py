"""File status and file-operation models."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

ChangelistId = int | Literal["default"]


class P4Action(StrEnum):
    """Action a file is opened for (``p4 opened``)."""

    EDIT = "edit"
    ADD = "add"
    DELETE = "delete"
    BRANCH = "branch"
    INTEGRATE = "integrate"
    MOVE_ADD = "move/add"
    MOVE_DELETE = "move/delete"

    @classmethod
    def parse(cls, value: str | None) -> P4Action:
        """Map a raw action string, treating unknown or missing values as edit."""
        try:
            return cls(value or "edit")
        except ValueError:
            return cls.EDIT


class SyncAction(StrEnum):
    """Normalised outcome of syncing one file."""

    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"
    UP_TO_DATE = "upToDate"

    @classmethod
    def from_tool(cls, action: str) -> SyncAction:
        match action:
            case "added":
                return cls.ADDED
            case "updated" | "refreshing":
                return cls.UPDATED
            case "deleted":
                return cls.DELETED
            case _:
                return cls.UP_TO_DATE


DecoratorStatus = Literal[
    "edit",
    "add",
    "delete",
    "branch",
    "integrate",
    "move/add",
    "move/delete",
    "synced",
    "locked",
]


class FileStatus(BaseModel):
    """A file opened in the workspace, rebuilt on every refresh."""

    depot_file: str
    client_file: str
    vault_path: str
    action: P4Action = P4Action.EDIT
    changelist: ChangelistId = "default"
    file_type: str | None = None
    rev: int | None = None
    have_rev: int | None = None

    @property
    def is_locked(self) -> bool:
        return bool(self.file_type and "+l" in self.file_type)


class SyncedFile(BaseModel):
    """One file touched by ``p4 sync``."""

    depot_file: str
    client_file: str
    vault_path: str
    action: SyncAction
    rev: int


class SyncResult(BaseModel):
    """Result of a sync."""

    files: list[SyncedFile] = Field(default_factory=list)
    total_bytes: int | None = None


class DiffResult(BaseModel):
    """Depot text, local text and the tool's own diff for one file."""

    depot_file: str
    local_file: str
    depot_content: str = ""
    local_content: str = ""
    diff_text: str = ""

    @property
    def has_changes(self) -> bool:
        return bool(self.diff_text.strip()) or self.depot_content != self.local_content


class FilePathResult(BaseModel):
    """Base result for operations that target a single vault path."""

    success: bool
    path: str


class FileWriteResult(FilePathResult):
    """Result of a file-write operation."""

    size: int


class FileRenameResult(FilePathResult):
    """Result of moving a file inside the vault; *path* is the destination."""

    source_path: str
