"""aiop4vault: async Perforce integration for a notes vault that is also a client workspace."""

from ._version import __version__
from .blame import BlameCache
from .config import load_settings
from .exceptions import (
    CommandTimeoutError,
    ConfigError,
    ExternalToolError,
    FileError,
    NotAuthenticatedError,
    NotInWorkspaceError,
    OperationFailedError,
    P4VaultError,
    PathSecurityError,
    SpecParseError,
    SubmitValidationError,
    ToolUnavailableError,
)
from .files import AsyncFileManager
from .guard import EditGuard, EventBus, GuardSession
from .models import (
    BlameLine,
    BlameResult,
    Changelist,
    ConflictFile,
    DiffResult,
    FileStatus,
    MergeVersions,
    P4Info,
    P4Settings,
    RequirementsResult,
    ResolveAction,
    SyncResult,
)
from .p4 import CommandBridge, P4Manager
from .plugin import VaultPlugin

__all__ = [
    "AsyncFileManager",
    "BlameCache",
    "BlameLine",
    "BlameResult",
    "Changelist",
    "CommandBridge",
    "CommandTimeoutError",
    "ConfigError",
    "ConflictFile",
    "DiffResult",
    "EditGuard",
    "EventBus",
    "ExternalToolError",
    "FileError",
    "FileStatus",
    "GuardSession",
    "MergeVersions",
    "NotAuthenticatedError",
    "NotInWorkspaceError",
    "OperationFailedError",
    "P4Info",
    "P4Manager",
    "P4Settings",
    "P4VaultError",
    "PathSecurityError",
    "RequirementsResult",
    "ResolveAction",
    "SpecParseError",
    "SubmitValidationError",
    "SyncResult",
    "ToolUnavailableError",
    "VaultPlugin",
    "__version__",
    "load_settings",
]
