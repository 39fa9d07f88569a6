"""Async file access restricted to the vault directory.

This is the file-content primitive the guard and the repository model use,
keyed by vault-relative path.  It never talks to ``p4``; callers decide what
a write means for the workspace.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from ..exceptions import FileError, PathSecurityError
from ..models.files import FileRenameResult, FileWriteResult

logger = logging.getLogger(__name__)


class AsyncFileManager:
    """Safe async file operations restricted to a *vault_root* directory."""

    def __init__(self, vault_root: Path) -> None:
        self.vault_root = vault_root.resolve()

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def _get_full_path(self, relative_path: str) -> Path:
        """Return the absolute path, ensuring it stays within *vault_root*.

        Raises :class:`PathSecurityError` if the resolved path escapes the
        vault.
        """
        relative_path = relative_path.replace("\\", "/")
        if relative_path in ("", "/"):
            return self.vault_root

        # Leading slash still means vault-relative
        relative_path = relative_path.lstrip("/")

        full_path = (self.vault_root / relative_path).resolve()

        if full_path != self.vault_root and self.vault_root not in full_path.parents:
            raise PathSecurityError(f"Path outside vault: {relative_path}")

        return full_path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def read_file(self, file_path: str) -> str:
        """Read and return the UTF-8 contents of *file_path*."""
        try:
            full_path = self._get_full_path(file_path)

            if not full_path.exists():
                raise FileNotFoundError(f"File not found: {file_path}")

            async with aiofiles.open(full_path, encoding="utf-8") as fh:
                content = await fh.read()

            logger.debug("Read file: %s (%d bytes)", file_path, len(content))
            return content
        except (FileNotFoundError, PathSecurityError):
            raise
        except Exception as exc:
            logger.error("Error reading file %s: %s", file_path, exc)
            raise FileError(str(exc)) from exc

    async def write_file(self, file_path: str, content: str) -> FileWriteResult:
        """Write *content* to *file_path*, creating parent directories as needed."""
        try:
            full_path = self._get_full_path(file_path)
            await aiofiles.os.makedirs(full_path.parent, exist_ok=True)

            # newline="" keeps depot line endings byte-for-byte
            async with aiofiles.open(full_path, "w", encoding="utf-8", newline="") as fh:
                await fh.write(content)

            logger.debug("Wrote file: %s (%d bytes)", file_path, len(content))
            return FileWriteResult(success=True, path=file_path, size=len(content))
        except PathSecurityError:
            raise
        except Exception as exc:
            logger.error("Error writing file %s: %s", file_path, exc)
            raise FileError(str(exc)) from exc

    async def rename_file(self, current_path: str, original_path: str) -> FileRenameResult:
        """Move *current_path* back to *original_path*."""
        try:
            source = self._get_full_path(current_path)
            target = self._get_full_path(original_path)
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            await aiofiles.os.rename(source, target)

            logger.info("Moved file: %s -> %s", current_path, original_path)
            return FileRenameResult(success=True, path=original_path, source_path=current_path)
        except PathSecurityError:
            raise
        except Exception as exc:
            logger.error("Error moving file %s: %s", current_path, exc)
            raise FileError(str(exc)) from exc
