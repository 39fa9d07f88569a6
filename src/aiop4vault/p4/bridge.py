"""Async bridge to the ``p4`` command-line client.

Every call spawns ``p4`` with ``asyncio.create_subprocess_exec`` (an argv list,
never a shell string), enforces a hard wall-clock timeout and classifies the
result.  ``p4`` routinely writes informational text to stderr, so a zero exit
status with stderr is only treated as a failure when the text matches one of
:data:`FATAL_STDERR_PATTERNS`.  That list is empirical; unseen server message
variants may slip through.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from ..exceptions import (
    CommandTimeoutError,
    NotAuthenticatedError,
    OperationFailedError,
    ToolUnavailableError,
)
from ..models.config import P4Settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
PROBE_TIMEOUT = 5.0

FATAL_STDERR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^error:", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^fatal:", re.IGNORECASE | re.MULTILINE),
    re.compile(r"password.*invalid", re.IGNORECASE),
    re.compile(r"not logged in", re.IGNORECASE),
    re.compile(r"connect to server failed", re.IGNORECASE),
    re.compile(r"client.*unknown", re.IGNORECASE),
    re.compile(r"no such file", re.IGNORECASE),
)

_AUTH_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"perforce password", re.IGNORECASE),
    re.compile(r"password.*invalid", re.IGNORECASE),
    re.compile(r"not logged in", re.IGNORECASE),
    re.compile(r"session has expired", re.IGNORECASE),
)

STRUCTURED_FLAGS = ("-Mj", "-ztag")


def is_fatal_stderr(stderr: str) -> bool:
    """Return ``True`` if *stderr* carries a real error rather than chatter."""
    return any(pattern.search(stderr) for pattern in FATAL_STDERR_PATTERNS)


def classify_failure(message: str) -> OperationFailedError:
    """Build the exception matching a failed command's *message*."""
    if any(pattern.search(message) for pattern in _AUTH_PATTERNS):
        return NotAuthenticatedError(message)
    return OperationFailedError(message)


def parse_json_lines(output: str) -> list[dict[str, Any]]:
    """Decode one JSON object per line, dropping anything that is not a record.

    Summary text interleaved with the records is skipped, as are error records
    carrying a ``data`` payload (benign conditions such as "file(s) not opened").
    """
    records: list[dict[str, Any]] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(parsed, dict):
            continue
        if parsed.get("code") == "error" and parsed.get("data"):
            logger.debug("Skipping p4 error record: %s", str(parsed["data"]).strip())
            continue
        records.append(parsed)
    return records


class CommandBridge:
    """Runs ``p4`` with settings read at call time.

    *settings* may be swapped on a live bridge; the next call picks up the
    new executable path and ``P4PORT``/``P4USER``/``P4CLIENT`` overrides.
    """

    def __init__(self, settings: P4Settings, cwd: Path) -> None:
        self.settings = settings
        self.cwd = cwd

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        env.update(self.settings.env_overrides())
        return env

    async def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        stdin_text: str | None = None,
    ) -> str:
        """Run ``p4 <args>`` and return stdout.

        Raises :class:`ToolUnavailableError` if the process cannot be spawned,
        :class:`CommandTimeoutError` when *timeout* elapses, and
        :class:`OperationFailedError` (or :class:`NotAuthenticatedError`) for a
        non-zero exit or fatal stderr.
        """
        executable = self.settings.executable
        work_dir = cwd or self.cwd
        logger.debug("p4 command: %s %s", executable, " ".join(args))

        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdin=asyncio.subprocess.PIPE if stdin_text is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(work_dir),
                env=self._env(),
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise ToolUnavailableError(f"p4 executable not found: {executable}") from exc
        except OSError as exc:
            raise ToolUnavailableError(f"Failed to start p4: {exc}") from exc

        stdin_bytes = stdin_text.encode("utf-8") if stdin_text is not None else None
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                proc.communicate(stdin_bytes),
                timeout=timeout,
            )
        except TimeoutError:
            # The process may exit on its own right at the deadline
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            logger.warning("p4 %s timed out after %gs", args[0] if args else "", timeout)
            raise CommandTimeoutError(
                f"P4 command timed out after {timeout:g} seconds"
            ) from None

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        if proc.returncode:
            message = stderr.strip() or stdout.strip() or (
                f"p4 {args[0] if args else ''} exited with code {proc.returncode}"
            )
            raise classify_failure(message)

        if stderr and is_fatal_stderr(stderr):
            raise classify_failure(stderr.strip())

        return stdout

    async def run_structured(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> list[dict[str, Any]]:
        """Run ``p4 -Mj -ztag <args>`` and return the decoded records."""
        output = await self.run([*STRUCTURED_FLAGS, *args], cwd=cwd, timeout=timeout)
        records = parse_json_lines(output)
        logger.debug("p4 %s returned %d records", args[0] if args else "", len(records))
        return records

    async def run_with_input(
        self,
        args: Sequence[str],
        stdin_text: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> str:
        """Run ``p4 <args>`` feeding *stdin_text* (specs, passwords)."""
        return await self.run(args, timeout=timeout, stdin_text=stdin_text)
