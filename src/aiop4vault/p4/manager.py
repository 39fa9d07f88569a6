"""High-level Perforce operations for a vault that is also a client workspace.

Every method shells out through :class:`CommandBridge` and returns pydantic
models keyed by vault-relative paths.  Conditions that ``p4`` reports as
errors but that simply mean "nothing here" (files not opened, nothing to
resolve) come back as empty results; every other failure propagates with
the tool's message intact.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, assert_never

from ..exceptions import (
    ExternalToolError,
    FileError,
    NotInWorkspaceError,
    OperationFailedError,
    SubmitValidationError,
)
from ..files.manager import AsyncFileManager
from ..models.blame import BlameResult
from ..models.changelists import DEFAULT_CHANGELIST, Changelist, HistoryEntry
from ..models.config import P4Settings
from ..models.conflicts import ConflictFile, MergeVersions, ResolveAction, ResolveAllResult
from ..models.files import (
    ChangelistId,
    DiffResult,
    FileStatus,
    P4Action,
    SyncAction,
    SyncedFile,
    SyncResult,
)
from ..models.info import P4Info, RequirementsResult
from .annotate import parse_annotate_output
from .bridge import DEFAULT_TIMEOUT, PROBE_TIMEOUT, CommandBridge
from .paths import PathTranslator, depot_wildcard
from .spec_text import new_changelist_spec, parse_created_change, replace_description

logger = logging.getLogger(__name__)

# Error text that means "empty result" rather than failure.
_BENIGN_MARKERS = ("not opened", "no such file", "no file(s) to resolve")

_HAVE_REVISION = re.compile(r"#(\d+)\s*-")

_RESOLVE_FLAGS = {
    ResolveAction.ACCEPT_YOURS: "-ay",
    ResolveAction.ACCEPT_THEIRS: "-at",
    ResolveAction.ACCEPT_SAFE_MERGE: "-as",
}


def is_benign_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _BENIGN_MARKERS)


def parse_changelist_id(value: str | None) -> ChangelistId:
    """``"default"`` stays as-is; positive numbers become ints."""
    if value and value != DEFAULT_CHANGELIST:
        try:
            number = int(value)
        except ValueError:
            return DEFAULT_CHANGELIST
        if number > 0:
            return number
    return DEFAULT_CHANGELIST


def _to_int(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _cl_arg(changelist: ChangelistId) -> str:
    return DEFAULT_CHANGELIST if changelist == DEFAULT_CHANGELIST else str(changelist)


class P4Manager:
    """Wraps the ``p4`` CLI for a single vault.

    The constructor accepts plain values; *bridge* and *files* can be
    injected, otherwise they are built from *settings* and *vault_root*.
    """

    def __init__(
        self,
        settings: P4Settings,
        vault_root: Path,
        *,
        bridge: CommandBridge | None = None,
        files: AsyncFileManager | None = None,
    ) -> None:
        self.vault_root = vault_root.resolve()
        self.bridge = bridge or CommandBridge(settings, self.vault_root)
        self.files = files or AsyncFileManager(self.vault_root)
        self.paths = PathTranslator(str(self.vault_root))
        self.info: P4Info | None = None
        self.is_resolving_merge = False

    @property
    def client_root(self) -> str:
        return self.info.client_root if self.info else ""

    def _abs(self, vault_path: str) -> str:
        return self.paths.to_absolute(vault_path)

    def _vault_wildcard(self) -> str:
        return depot_wildcard(self.paths.vault_root)

    async def _current_info(self) -> P4Info:
        if self.info is None:
            info = await self.get_info()
            if not info.has_workspace:
                raise NotInWorkspaceError(
                    f"No Perforce workspace for {self.vault_root} (client: {info.client_name or 'unset'})"
                )
            self.info = info
        return self.info

    def _vault_path_for(self, client_file: str, client_root: str) -> str | None:
        return self.paths.client_to_vault(client_file, client_root)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def check_requirements(self) -> RequirementsResult:
        """Probe the executable, then the workspace, with short timeouts."""
        try:
            await self.bridge.run(["help"], timeout=PROBE_TIMEOUT)
        except ExternalToolError as exc:
            logger.warning("p4 not available: %s", exc)
            return RequirementsResult.MISSING_P4

        try:
            info = await self.get_info(timeout=PROBE_TIMEOUT)
        except ExternalToolError as exc:
            if "Perforce password" in str(exc) or "not logged in" in str(exc).lower():
                return RequirementsResult.NOT_LOGGED_IN
            logger.warning("p4 info failed: %s", exc)
            return RequirementsResult.NOT_IN_WORKSPACE

        if not info.has_workspace:
            return RequirementsResult.NOT_IN_WORKSPACE

        self.info = info
        return RequirementsResult.VALID

    async def get_info(self, *, timeout: float = DEFAULT_TIMEOUT) -> P4Info:
        """Return user, client and server details from ``p4 info``."""
        records = await self.bridge.run_structured(["info"], timeout=timeout)
        data = records[0] if records else {}
        return P4Info(
            user_name=data.get("userName", ""),
            client_name=data.get("clientName", ""),
            client_root=data.get("clientRoot", ""),
            server_address=data.get("serverAddress", ""),
            server_version=data.get("serverVersion"),
        )

    async def refresh(self) -> None:
        """Reload cached ``p4 info``."""
        self.info = await self.get_info()

    async def login(self, password: str) -> None:
        """Log in, passing the password on stdin."""
        await self.bridge.run_with_input(["login"], password + "\n")
        logger.info("Logged in to Perforce")

    async def is_logged_in(self) -> bool:
        try:
            await self.bridge.run(["login", "-s"])
        except ExternalToolError:
            return False
        return True

    # ------------------------------------------------------------------
    # Status queries
    # ------------------------------------------------------------------

    async def get_opened_files(self) -> list[FileStatus]:
        """Files opened on this client that live inside the vault."""
        try:
            records = await self.bridge.run_structured(["opened"])
        except OperationFailedError as exc:
            if is_benign_error(str(exc)):
                return []
            raise

        info = await self._current_info()
        opened: dict[str, FileStatus] = {}

        for item in records:
            client_file = item.get("clientFile", "")
            vault_path = self._vault_path_for(client_file, info.client_root)
            if vault_path is None:
                logger.debug("Skipping opened file outside vault: %s", client_file)
                continue
            if vault_path in opened:
                continue

            opened[vault_path] = FileStatus(
                depot_file=item.get("depotFile", ""),
                client_file=self._abs(vault_path),
                vault_path=vault_path,
                action=P4Action.parse(item.get("action")),
                changelist=parse_changelist_id(item.get("change")),
                file_type=item.get("type"),
                rev=_to_int(item.get("rev")),
                have_rev=_to_int(item.get("haveRev")),
            )

        return list(opened.values())

    async def get_have_files(self) -> set[str]:
        """Vault paths synced from the depot.  Failures yield an empty set."""
        synced: set[str] = set()
        try:
            records = await self.bridge.run_structured(["have", self._vault_wildcard()])
            info = await self._current_info()
        except (ExternalToolError, NotInWorkspaceError) as exc:
            logger.warning("Failed to list synced files: %s", exc)
            return synced

        for item in records:
            vault_path = self._vault_path_for(item.get("clientFile", ""), info.client_root)
            if vault_path:
                synced.add(vault_path)
        return synced

    async def is_file_opened(self, file_path: str) -> bool:
        try:
            output = await self.bridge.run(["opened", self._abs(file_path)])
        except ExternalToolError as exc:
            logger.debug("opened check failed for %s: %s", file_path, exc)
            return False
        return bool(output.strip())

    async def is_file_in_depot(self, file_path: str) -> bool:
        try:
            output = await self.bridge.run(["files", self._abs(file_path)])
        except ExternalToolError as exc:
            logger.debug("depot check failed for %s: %s", file_path, exc)
            return False
        return bool(output.strip()) and "no such file" not in output

    async def get_depot_content(self, file_path: str) -> str | None:
        """Head revision text, or ``None`` if the file is not in the depot."""
        try:
            return await self.bridge.run(["print", "-q", self._abs(file_path)])
        except ExternalToolError as exc:
            logger.debug("print failed for %s: %s", file_path, exc)
            return None

    # ------------------------------------------------------------------
    # File operations
    # ------------------------------------------------------------------

    async def edit(self, file_path: str) -> None:
        await self.bridge.run(["edit", self._abs(file_path)])

    async def edit_and_lock(self, file_path: str) -> None:
        """Check out with an exclusive lock (``+l`` file type modifier)."""
        await self.bridge.run(["edit", "-t", "+l", self._abs(file_path)])

    async def lock(self, file_path: str) -> None:
        await self.bridge.run(["lock", self._abs(file_path)])

    async def add(self, file_path: str) -> None:
        await self.bridge.run(["add", self._abs(file_path)])

    async def delete(self, file_path: str) -> None:
        await self.bridge.run(["delete", self._abs(file_path)])

    async def revert(self, file_path: str) -> None:
        await self.bridge.run(["revert", self._abs(file_path)])

    async def revert_changelist(self, changelist: ChangelistId) -> None:
        await self.bridge.run(["revert", "-c", _cl_arg(changelist), "//..."])

    async def add_folder(self, folder_path: str) -> None:
        await self.bridge.run(["add", depot_wildcard(self._abs(folder_path))])

    async def edit_folder(self, folder_path: str) -> None:
        await self.bridge.run(["edit", depot_wildcard(self._abs(folder_path))])

    async def delete_folder(self, folder_path: str) -> None:
        await self.bridge.run(["delete", depot_wildcard(self._abs(folder_path))])

    async def revert_folder(self, folder_path: str) -> None:
        await self.bridge.run(["revert", depot_wildcard(self._abs(folder_path))])

    async def move(self, old_path: str, new_path: str) -> None:
        """``p4 move``, checking the source out first if needed."""
        if not await self.is_file_opened(old_path):
            await self.edit(old_path)
        await self.bridge.run(["move", self._abs(old_path), self._abs(new_path)])

    async def revert_rename(self, current_path: str, original_path: str) -> None:
        """Undo a local rename by moving the file back on disk."""
        await self.files.rename_file(current_path, original_path)

    async def move_to_changelist(self, file_path: str, changelist: ChangelistId) -> None:
        await self.bridge.run(["reopen", "-c", _cl_arg(changelist), self._abs(file_path)])

    async def ensure_checked_out(self, file_path: str) -> bool:
        """Make sure *file_path* is open: edit it, or add it if it is new."""
        if await self.is_file_opened(file_path):
            return True
        try:
            await self.edit(file_path)
            return True
        except ExternalToolError:
            pass
        try:
            await self.add(file_path)
            return True
        except ExternalToolError as exc:
            logger.warning("Could not open %s: %s", file_path, exc)
            return False

    # ------------------------------------------------------------------
    # Changelists
    # ------------------------------------------------------------------

    async def get_pending_changelists(self) -> list[Changelist]:
        """Pending changelists, always headed by the default changelist."""
        info = await self._current_info()
        records = await self.bridge.run_structured(
            ["changes", "-s", "pending", "-u", info.user_name, "-c", info.client_name]
        )

        changelists = [
            Changelist(
                change=DEFAULT_CHANGELIST,
                description="Default changelist",
                user=info.user_name,
                client=info.client_name,
                status="pending",
            )
        ]
        seen: set[int] = set()
        for item in records:
            number = _to_int(item.get("change"))
            if number is None or number <= 0 or number in seen:
                continue
            seen.add(number)
            changelists.append(
                Changelist(
                    change=number,
                    description=(item.get("desc") or "").strip(),
                    user=item.get("user", ""),
                    client=item.get("client", ""),
                    status="pending",
                    date=item.get("time"),
                )
            )
        return changelists

    async def create_changelist(self, description: str) -> int:
        """Create a numbered changelist and return its number."""
        output = await self.bridge.run_with_input(["change", "-i"], new_changelist_spec(description))
        number = parse_created_change(output)
        logger.info("Created changelist %d", number)
        return number

    async def update_changelist_description(self, changelist: int, description: str) -> None:
        """Rewrite the description of an existing changelist via its spec."""
        spec = await self.bridge.run(["change", "-o", str(changelist)])
        await self.bridge.run_with_input(["change", "-i"], replace_description(spec, description))

    async def delete_changelist(self, changelist: int) -> None:
        await self.bridge.run(["change", "-d", str(changelist)])

    async def get_changelist_description(self, changelist: int) -> str:
        try:
            records = await self.bridge.run_structured(["describe", "-s", str(changelist)])
        except ExternalToolError as exc:
            logger.debug("describe %d failed: %s", changelist, exc)
            return ""
        if records and records[0].get("desc"):
            return str(records[0]["desc"]).strip()
        return ""

    async def get_changelist_files(self, changelist: int) -> list[FileStatus]:
        """Files in a submitted changelist, as reported by ``describe -s``."""
        records = await self.bridge.run_structured(["describe", "-s", str(changelist)])
        files: list[FileStatus] = []
        for item in records:
            for depot_file, action, rev, file_type in _describe_entries(item):
                files.append(
                    FileStatus(
                        depot_file=depot_file,
                        client_file="",
                        vault_path=depot_file,
                        action=P4Action.parse(action),
                        changelist=changelist,
                        file_type=file_type,
                        rev=_to_int(rev),
                    )
                )
        return files

    async def get_history(self, max_results: int = 50) -> list[HistoryEntry]:
        """Most recent submitted changelists touching the vault."""
        records = await self.bridge.run_structured(
            ["changes", "-m", str(max_results), "-s", "submitted", "-t", self._vault_wildcard()]
        )
        return [
            HistoryEntry(
                change=_to_int(item.get("change")) or 0,
                user=item.get("user", ""),
                client=item.get("client", ""),
                date=item.get("time", ""),
                description=(item.get("desc") or "").strip(),
            )
            for item in records
        ]

    # ------------------------------------------------------------------
    # Submit, sync, shelve
    # ------------------------------------------------------------------

    async def submit(self, changelist: ChangelistId, description: str | None = None) -> int:
        """Submit and return the submitted changelist number (0 if unknown).

        The default changelist has no description of its own, so one is
        required; numbered changelists already carry theirs.
        """
        if changelist == DEFAULT_CHANGELIST:
            if not description or not description.strip():
                raise SubmitValidationError("Description is required for default changelist")
            args = ["submit", "-d", description]
        else:
            args = ["submit", "-c", str(changelist)]

        records = await self.bridge.run_structured(args)
        for item in records:
            submitted = _to_int(item.get("submittedChange"))
            if submitted:
                logger.info("Submitted changelist %d", submitted)
                return submitted
        return 0

    async def sync(self, file_path: str | None = None) -> SyncResult:
        """Sync one file, or the whole vault (never the entire workspace)."""
        target = self._abs(file_path) if file_path else self._vault_wildcard()
        records = await self.bridge.run_structured(["sync", target])
        info = await self._current_info()

        files: list[SyncedFile] = []
        for item in records:
            depot_file = item.get("depotFile")
            if not depot_file:
                continue
            client_file = item.get("clientFile", "")
            vault_path = self._vault_path_for(client_file, info.client_root) or depot_file
            files.append(
                SyncedFile(
                    depot_file=depot_file,
                    client_file=client_file,
                    vault_path=vault_path,
                    action=SyncAction.from_tool(item.get("action", "")),
                    rev=_to_int(item.get("rev")) or 0,
                )
            )
        total = sum(_to_int(item.get("fileSize")) or 0 for item in records)
        return SyncResult(files=files, total_bytes=total or None)

    async def shelve(self, changelist: int) -> None:
        await self.bridge.run(["shelve", "-c", str(changelist)])

    async def unshelve(self, changelist: int, target: ChangelistId | None = None) -> None:
        args = ["unshelve", "-s", str(changelist)]
        if target is not None:
            args += ["-c", _cl_arg(target)]
        await self.bridge.run(args)

    async def delete_shelve(self, changelist: int) -> None:
        await self.bridge.run(["shelve", "-d", "-c", str(changelist)])

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------

    async def _diff_text(self, absolute: str) -> str:
        try:
            return await self.bridge.run(["diff", absolute])
        except ExternalToolError as exc:
            logger.debug("diff failed for %s: %s", absolute, exc)
            return ""

    async def _local_content(self, file_path: str) -> str:
        try:
            return await self.files.read_file(file_path)
        except (FileNotFoundError, FileError):
            return ""

    async def diff(self, file_path: str) -> DiffResult:
        """Depot text, local text and ``p4 diff`` output for *file_path*.

        The three are fetched independently; an empty diff means no textual
        difference.
        """
        absolute = self._abs(file_path)
        diff_text, depot_content, local_content = await asyncio.gather(
            self._diff_text(absolute),
            self.get_depot_content(file_path),
            self._local_content(file_path),
        )
        return DiffResult(
            depot_file=absolute,
            local_file=file_path,
            depot_content=depot_content or "",
            local_content=local_content,
            diff_text=diff_text,
        )

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------

    async def get_conflicts(self) -> list[ConflictFile]:
        """Files needing resolve, via ``p4 resolve -n`` (preview)."""
        try:
            records = await self.bridge.run_structured(["resolve", "-n", self._vault_wildcard()])
        except OperationFailedError as exc:
            if is_benign_error(str(exc)):
                return []
            raise

        info = await self._current_info()
        conflicts: list[ConflictFile] = []
        for item in records:
            client_file = item.get("clientFile", "")
            vault_path = self._vault_path_for(client_file, info.client_root)
            if vault_path is None:
                continue
            conflicts.append(
                ConflictFile(
                    depot_file=item.get("fromFile") or client_file,
                    client_file=self._abs(vault_path),
                    vault_path=vault_path,
                    base_rev=_to_int(item.get("baseRev")) or 0,
                    their_rev=_to_int(item.get("endFromRev")) or 0,
                    conflict_type="content" if item.get("resolveType") == "content" else "action",
                    from_file=item.get("fromFile"),
                )
            )
        return conflicts

    async def _base_content(self, absolute: str) -> str | None:
        try:
            have_output = await self.bridge.run(["have", absolute])
            match = _HAVE_REVISION.search(have_output)
            if not match:
                return None
            return await self.bridge.run(["print", "-q", f"{absolute}#{match[1]}"])
        except ExternalToolError as exc:
            logger.debug("base lookup failed for %s: %s", absolute, exc)
            return None

    async def get_conflict_versions(self, file_path: str) -> MergeVersions:
        """Base, theirs and yours for a three-way merge.

        The base is the revision the client last synced; when that cannot be
        fetched, ``theirs`` stands in for it and ``base_is_fallback`` is set.
        That is an approximation of the true common ancestor.
        """
        absolute = self._abs(file_path)
        yours = await self._local_content(file_path)
        theirs = await self.get_depot_content(file_path) or ""

        base = await self._base_content(absolute)
        if base is None:
            logger.warning("No base revision for %s; using depot head as base", file_path)
            return MergeVersions(base=theirs, theirs=theirs, yours=yours, base_is_fallback=True)
        return MergeVersions(base=base, theirs=theirs, yours=yours)

    @contextmanager
    def _merge_write(self) -> Iterator[None]:
        self.is_resolving_merge = True
        try:
            yield
        finally:
            self.is_resolving_merge = False

    async def resolve(
        self,
        file_path: str,
        action: ResolveAction,
        merged_content: str | None = None,
    ) -> None:
        """Resolve a conflict.

        For :attr:`ResolveAction.ACCEPT_MERGED` the merged text is written to
        the local file before ``resolve -ae`` runs; the write-block guard is
        suppressed for the duration.
        """
        absolute = self._abs(file_path)
        match action:
            case (
                ResolveAction.ACCEPT_YOURS
                | ResolveAction.ACCEPT_THEIRS
                | ResolveAction.ACCEPT_SAFE_MERGE
            ):
                await self.bridge.run(["resolve", _RESOLVE_FLAGS[action], absolute])
            case ResolveAction.ACCEPT_MERGED:
                with self._merge_write():
                    if merged_content is not None:
                        await self.files.write_file(file_path, merged_content)
                    await self.bridge.run(["resolve", "-ae", absolute])
            case _:
                assert_never(action)

    async def resolve_all_safe(self) -> ResolveAllResult:
        """Auto-merge every conflict that merges cleanly."""
        result = ResolveAllResult()
        for conflict in await self.get_conflicts():
            try:
                await self.resolve(conflict.vault_path, ResolveAction.ACCEPT_SAFE_MERGE)
                result.resolved.append(conflict.vault_path)
            except ExternalToolError as exc:
                logger.info("Safe merge failed for %s: %s", conflict.vault_path, exc)
                result.failed.append(conflict.vault_path)
        return result

    # ------------------------------------------------------------------
    # Annotate
    # ------------------------------------------------------------------

    async def annotate(self, file_path: str) -> BlameResult:
        """Per-line changelist and user for *file_path*."""
        output = await self.bridge.run(["annotate", "-u", "-c", self._abs(file_path)])
        return BlameResult(
            file_path=file_path,
            lines=parse_annotate_output(output),
            fetched_at=time.time(),
        )


def _describe_entries(item: dict[str, Any]) -> Iterator[tuple[str, str | None, Any, str | None]]:
    """Yield ``(depotFile, action, rev, type)`` from a describe record.

    Tagged output lists files as ``depotFile0``, ``depotFile1``...; plain
    per-file records use the unnumbered keys.
    """
    if item.get("depotFile"):
        yield item["depotFile"], item.get("action"), item.get("rev"), item.get("type")
        return
    index = 0
    while f"depotFile{index}" in item:
        yield (
            item[f"depotFile{index}"],
            item.get(f"action{index}"),
            item.get(f"rev{index}"),
            item.get(f"type{index}"),
        )
        index += 1
