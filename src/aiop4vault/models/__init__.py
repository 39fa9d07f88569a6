"""Pydantic models for aiop4vault."""

from .blame import BlameLine, BlameResult
from .changelists import DEFAULT_CHANGELIST, Changelist, HistoryEntry
from .config import P4Settings
from .conflicts import ConflictFile, MergeVersions, ResolveAction, ResolveAllResult
from .files import (
    ChangelistId,
    DecoratorStatus,
    DiffResult,
    FilePathResult,
    FileRenameResult,
    FileStatus,
    FileWriteResult,
    P4Action,
    SyncAction,
    SyncedFile,
    SyncResult,
)
from .info import P4Info, RequirementsResult

__all__ = [
    "DEFAULT_CHANGELIST",
    "BlameLine",
    "BlameResult",
    "Changelist",
    "ChangelistId",
    "ConflictFile",
    "DecoratorStatus",
    "DiffResult",
    "FilePathResult",
    "FileRenameResult",
    "FileStatus",
    "FileWriteResult",
    "HistoryEntry",
    "MergeVersions",
    "P4Action",
    "P4Info",
    "P4Settings",
    "RequirementsResult",
    "ResolveAction",
    "ResolveAllResult",
    "SyncAction",
    "SyncResult",
    "SyncedFile",
]
