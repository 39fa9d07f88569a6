"""Exception hierarchy for aiop4vault."""


class P4VaultError(Exception):
    """Base exception for all aiop4vault errors."""


class ConfigError(P4VaultError):
    """Failed to load or validate settings."""


class ExternalToolError(P4VaultError):
    """Error raised while invoking the ``p4`` command-line client."""


class ToolUnavailableError(ExternalToolError):
    """The ``p4`` executable could not be spawned."""


class CommandTimeoutError(ExternalToolError):
    """A ``p4`` invocation exceeded its wall-clock deadline."""


class OperationFailedError(ExternalToolError):
    """A ``p4`` command failed; the message is the tool's own text."""


class NotAuthenticatedError(OperationFailedError):
    """The Perforce ticket is missing or expired."""


class NotInWorkspaceError(P4VaultError):
    """No valid client workspace is configured for the vault."""


class SubmitValidationError(P4VaultError):
    """A submit request was rejected before reaching the server."""


class SpecParseError(P4VaultError):
    """A changelist spec could not be parsed or rewritten."""


class FileError(P4VaultError):
    """Error during a file operation."""


class PathSecurityError(FileError):
    """A requested path resolved outside the vault directory."""
