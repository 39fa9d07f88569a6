"""Translation between depot-client paths, absolute paths and vault paths.

Pure string logic with no I/O.  All paths are handled with forward slashes;
containment checks are case-insensitive so that the same vault can be reached
through differently-cased roots on case-insensitive filesystems.
"""

from __future__ import annotations

import posixpath

from ..exceptions import PathSecurityError

# Extension the editor may hide when showing a note by name.
CONTENT_EXTENSION = ".md"


def normalize_slashes(path: str) -> str:
    return path.replace("\\", "/")


def _comparable(path: str) -> str:
    return normalize_slashes(path).rstrip("/").lower()


def client_relative(client_path: str) -> str | None:
    """Return the part of ``//clientName/rest`` after the client name.

    The client name is skipped by locating the first ``/`` after the leading
    ``//`` because the name embedded in tool output does not always equal the
    configured one.  Returns ``None`` if *client_path* is not in client syntax.
    """
    if not client_path.startswith("//"):
        return None
    remainder = client_path[2:]
    slash_index = remainder.find("/")
    if slash_index == -1:
        return None
    return remainder[slash_index + 1 :]


def client_path_to_absolute(client_path: str, client_root: str) -> str:
    """Map ``//clientName/rest`` onto *client_root*.

    Paths that are not in client syntax are returned slash-normalised, since
    ``p4`` reports local paths for some commands.
    """
    relative = client_relative(client_path)
    if relative is None:
        return normalize_slashes(client_path)
    root = normalize_slashes(client_root).rstrip("/")
    return f"{root}/{relative}"


def path_key(path: str) -> str:
    """Lookup key for a vault path: forward slashes, lower case."""
    return _comparable(path)


def same_path(first: str, second: str) -> bool:
    """Compare two vault paths ignoring case, slash direction and a lone ``.md``."""
    a = _comparable(first)
    b = _comparable(second)
    if not a or not b:
        return False
    return a == b or a + CONTENT_EXTENSION == b or b + CONTENT_EXTENSION == a


def depot_wildcard(absolute_dir: str) -> str:
    """Recursive ``p4`` wildcard (``dir/...``) for a local directory."""
    return normalize_slashes(absolute_dir).rstrip("/") + "/..."


class PathTranslator:
    """Converts between absolute paths and paths relative to *vault_root*."""

    def __init__(self, vault_root: str) -> None:
        self.vault_root = normalize_slashes(str(vault_root)).rstrip("/") or "/"

    def is_inside(self, absolute_path: str) -> bool:
        """Case-insensitive, slash-normalised containment test."""
        root = _comparable(self.vault_root)
        candidate = _comparable(absolute_path)
        if not root:
            return True
        return candidate == root or candidate.startswith(root + "/")

    def to_absolute(self, vault_path: str) -> str:
        """Absolute path for *vault_path*; ``..`` escapes are rejected."""
        relative = normalize_slashes(vault_path).lstrip("/")
        if relative in ("", "."):
            return self.vault_root
        normalized = posixpath.normpath(relative)
        if normalized == ".." or normalized.startswith("../"):
            raise PathSecurityError(f"Path outside vault: {vault_path}")
        if self.vault_root == "/":
            return "/" + normalized
        return f"{self.vault_root}/{normalized}"

    def to_vault_relative(self, absolute_path: str) -> str:
        """Vault-relative form of *absolute_path*, preserving the tail's case.

        The root prefix is matched case-insensitively and dropped, so
        :meth:`to_absolute` returns it in the configured casing.
        """
        if not self.is_inside(absolute_path):
            raise PathSecurityError(f"Path outside vault: {absolute_path}")
        normalized = normalize_slashes(absolute_path).rstrip("/")
        root_length = len(self.vault_root.rstrip("/"))
        return normalized[root_length:].lstrip("/")

    def client_to_vault(self, client_path: str, client_root: str) -> str | None:
        """Vault path for a client path, or ``None`` when it lies outside the vault."""
        absolute = client_path_to_absolute(client_path, client_root)
        if not self.is_inside(absolute):
            return None
        return self.to_vault_relative(absolute)
