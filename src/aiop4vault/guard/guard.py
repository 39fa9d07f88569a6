"""Interception of editor events for files the workspace tracks.

:class:`EditGuard` turns host events (file opened, view mode changed, file
written, created, deleted or renamed) into checkout, add, delete and move
operations, asking the user through a :class:`Prompter` where a decision is
needed.  It also owns the status refresh: a debounced passive refresh and an
immediate one, each replacing the session snapshot in one step and then
broadcasting ``status-changed``.

Tracked files that are not checked out stay read-only: their views are held
in preview mode, and writes that reach disk anyway are rolled back to the
depot revision.
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, assert_never

from ..constants import is_editable_file
from ..exceptions import FileError, NotAuthenticatedError, P4VaultError
from ..models.config import P4Settings
from ..p4.manager import P4Manager
from .events import REFRESH, REFRESH_NOW, STATUS_CHANGED, EventBus
from .host import (
    AddDecision,
    CheckoutDecision,
    DeleteDecision,
    EditorHost,
    EditorMode,
    Notifier,
    Prompter,
)
from .session import GuardSession

logger = logging.getLogger(__name__)


def _name(vault_path: str) -> str:
    return posixpath.basename(vault_path.replace("\\", "/"))


class EditGuard:
    """Reacts to editor events on behalf of one vault."""

    AUTO_ADD_DELAY = 0.5
    AUTO_CHECKOUT_WINDOW = 5.0

    def __init__(
        self,
        manager: P4Manager,
        session: GuardSession,
        settings: P4Settings,
        *,
        prompter: Prompter,
        editor: EditorHost,
        notifier: Notifier,
        bus: EventBus,
        is_ready: Callable[[], bool] = lambda: True,
        on_auth_failure: Callable[[str], Awaitable[Any]] | None = None,
    ) -> None:
        self.manager = manager
        self.session = session
        self.settings = settings
        self.prompter = prompter
        self.editor = editor
        self.notifier = notifier
        self.bus = bus
        self.is_ready = is_ready
        self.on_auth_failure = on_auth_failure

        self._add_timers: dict[str, asyncio.TimerHandle] = {}
        self._checkout_window: dict[str, asyncio.TimerHandle] = {}
        self._refresh_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self) -> None:
        self.bus.on(REFRESH, self.request_refresh)
        self.bus.on(REFRESH_NOW, self.refresh_now)

    def detach(self) -> None:
        self.bus.off(REFRESH, self.request_refresh)
        self.bus.off(REFRESH_NOW, self.refresh_now)

    def stop(self) -> None:
        """Cancel pending timers and background work."""
        for handle in [*self._add_timers.values(), *self._checkout_window.values()]:
            handle.cancel()
        self._add_timers.clear()
        self._checkout_window.clear()
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None
        # A refresh that triggered re-initialisation may be the caller
        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
        self._tasks.clear()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _message(self, text: str) -> None:
        logger.info(text)
        if self.settings.show_notices:
            self.notifier.message(text)

    def _error(self, text: str) -> None:
        logger.error(text)
        self.notifier.error(text)

    def _set_mode(self, vault_path: str, mode: EditorMode) -> None:
        if self.editor.get_mode(vault_path) not in (None, mode):
            self.editor.set_mode(vault_path, mode)
        self.session.last_known_mode[vault_path] = mode

    def _is_read_only(self, vault_path: str) -> bool:
        return self.session.is_tracked(vault_path) and not self.session.is_opened(vault_path)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def _prompt_checkout(self, vault_path: str) -> bool:
        """Ask whether to check *vault_path* out; ``True`` once it is open."""
        decision = await self.prompter.ask_checkout(vault_path)
        match decision:
            case CheckoutDecision.CHECKOUT | CheckoutDecision.CHECKOUT_LOCK:
                try:
                    if decision is CheckoutDecision.CHECKOUT_LOCK:
                        await self.manager.edit_and_lock(vault_path)
                    else:
                        await self.manager.edit(vault_path)
                except P4VaultError as exc:
                    self._error(f"Failed to check out {_name(vault_path)}: {exc}")
                    return False
                self.session.skipped_once.discard(vault_path)
                self._message(f"Checked out: {_name(vault_path)}")
                self._set_mode(vault_path, EditorMode.SOURCE)
                self.bus.trigger(REFRESH_NOW)
                return True
            case CheckoutDecision.SKIP:
                self.session.skipped_once.add(vault_path)
            case CheckoutDecision.SKIP_SESSION:
                self.session.skipped_session.add(vault_path)
            case CheckoutDecision.CANCEL:
                pass
            case _:
                assert_never(decision)
        return False

    async def on_file_open(self, vault_path: str) -> None:
        """Hold tracked, unopened notes in preview and offer a checkout."""
        if not self.is_ready() or not is_editable_file(vault_path):
            return
        if vault_path in self.session.skipped_session or vault_path in self._checkout_window:
            return

        # Lock the view before any round trip to p4
        if self._is_read_only(vault_path):
            self._set_mode(vault_path, EditorMode.PREVIEW)

        if not await self.manager.is_file_in_depot(vault_path):
            return
        if await self.manager.is_file_opened(vault_path):
            return

        self._set_mode(vault_path, EditorMode.PREVIEW)
        # A plain skip lasts until the file is opened again
        self.session.skipped_once.discard(vault_path)
        await self._prompt_checkout(vault_path)

    async def on_mode_change(self, vault_path: str, mode: EditorMode) -> None:
        """Intercept switches into source mode for read-only files."""
        if self.session.showing_mode_prompt or not is_editable_file(vault_path):
            return

        previous = self.session.last_known_mode.get(vault_path)
        self.session.last_known_mode[vault_path] = mode
        if mode is not EditorMode.SOURCE or previous is EditorMode.SOURCE:
            return
        if not self._is_read_only(vault_path):
            return

        self.session.showing_mode_prompt = True
        try:
            self._set_mode(vault_path, EditorMode.PREVIEW)
            opened = await self._prompt_checkout(vault_path)
            if not opened:
                opened = await self.manager.is_file_opened(vault_path)
            if opened:
                self._set_mode(vault_path, EditorMode.SOURCE)
        finally:
            self.session.showing_mode_prompt = False

    def on_editor_change(self, vault_path: str) -> None:
        """First keystroke in a note: offer a checkout, at most once per window."""
        if not self.settings.auto_checkout or not self.is_ready():
            return
        if not is_editable_file(vault_path) or vault_path in self._checkout_window:
            return

        loop = asyncio.get_running_loop()
        self._checkout_window[vault_path] = loop.call_later(
            self.AUTO_CHECKOUT_WINDOW, self._checkout_window.pop, vault_path, None
        )
        self._spawn(self._auto_checkout(vault_path))

    async def _auto_checkout(self, vault_path: str) -> None:
        if vault_path in self.session.skipped_session or vault_path in self.session.skipped_once:
            return
        if await self.manager.is_file_opened(vault_path):
            return
        if not await self.manager.is_file_in_depot(vault_path):
            return
        await self._prompt_checkout(vault_path)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def on_modify(self, vault_path: str) -> bool:
        """Roll back a write to a tracked file that is not checked out.

        The decision is taken from the cached snapshot before anything is
        awaited.  Returns ``True`` when the write was blocked.
        """
        session = self.session
        if self.manager.is_resolving_merge or session.is_reverting_file:
            return False
        if not self._is_read_only(vault_path):
            return False

        session.is_reverting_file = True
        try:
            depot_content = await self.manager.get_depot_content(vault_path)
            if depot_content is None:
                self._error(f"Cannot save {_name(vault_path)}: the file is not checked out")
                return True
            try:
                local_content = await self.manager.files.read_file(vault_path)
            except (FileNotFoundError, FileError):
                local_content = None
            # Echo of our own restore
            if local_content == depot_content:
                return True
            await self.manager.files.write_file(vault_path, depot_content)
        except P4VaultError as exc:
            self._error(f"Cannot save {_name(vault_path)}: {exc}")
            return True
        finally:
            session.is_reverting_file = False

        self.notifier.message(
            f"Save blocked: {_name(vault_path)} is not checked out. Check out the file first to edit it."
        )
        return True

    # ------------------------------------------------------------------
    # Create / delete / rename
    # ------------------------------------------------------------------

    def on_create(self, vault_path: str) -> None:
        """Schedule an add prompt; a newer create for the same path replaces it."""
        if not self.is_ready() or not self.settings.auto_add_new_files:
            return
        if self.session.skip_new_files_session:
            return

        pending = self._add_timers.pop(vault_path, None)
        if pending is not None:
            pending.cancel()
        loop = asyncio.get_running_loop()
        self._add_timers[vault_path] = loop.call_later(self.AUTO_ADD_DELAY, self._fire_add, vault_path)

    def _fire_add(self, vault_path: str) -> None:
        self._add_timers.pop(vault_path, None)
        self._spawn(self._prompt_add(vault_path))

    async def _prompt_add(self, vault_path: str) -> None:
        if self.session.skip_new_files_session:
            return
        decision = await self.prompter.ask_add(vault_path)
        match decision:
            case AddDecision.ADD:
                try:
                    await self.manager.add(vault_path)
                except P4VaultError as exc:
                    self._error(f"Failed to add {_name(vault_path)}: {exc}")
                    return
                self._message(f"Added to Perforce: {_name(vault_path)}")
                self.bus.trigger(REFRESH_NOW)
            case AddDecision.SKIP:
                pass
            case AddDecision.SKIP_SESSION:
                self.session.skip_new_files_session = True
                self._message("New files will not be added for the rest of this session")
            case AddDecision.CANCEL:
                pass
            case _:
                assert_never(decision)

    async def on_delete(self, vault_path: str) -> None:
        if self.session.skip_delete_files_session or not self.session.is_tracked(vault_path):
            self.request_refresh()
            return

        decision = await self.prompter.ask_delete(vault_path)
        match decision:
            case DeleteDecision.DELETE:
                try:
                    await self.manager.delete(vault_path)
                except P4VaultError as exc:
                    self._error(f"Failed to mark {_name(vault_path)} for delete: {exc}")
                    self.request_refresh()
                    return
                self._message(f"Marked for delete: {_name(vault_path)}")
                self.bus.trigger(REFRESH_NOW)
                return
            case DeleteDecision.KEEP:
                self._message(f"{_name(vault_path)} kept in Perforce and will show as missing")
            case DeleteDecision.SKIP_SESSION:
                self.session.skip_delete_files_session = True
                self._message("Deleted files will not be marked for delete for the rest of this session")
            case DeleteDecision.CANCEL:
                pass
            case _:
                assert_never(decision)
        self.request_refresh()

    async def on_rename(self, vault_path: str, old_path: str) -> None:
        """Record a rename with ``p4 move``, or undo it if the file is read-only."""
        tracked = self.session.is_tracked(old_path) or await self.manager.is_file_in_depot(old_path)
        if not tracked:
            self.request_refresh()
            return

        if await self.manager.is_file_opened(vault_path):
            try:
                await self.manager.move(old_path, vault_path)
            except P4VaultError as exc:
                self._error(f"Failed to move {_name(old_path)}: {exc}")
            else:
                self._message(f"Moved: {_name(old_path)} -> {_name(vault_path)}")
            self.request_refresh()
            return

        self._error(f"Cannot rename {_name(old_path)}: the file is not checked out. Reverting rename")
        self.session.is_reverting_file = True
        try:
            await self.manager.revert_rename(vault_path, old_path)
        except P4VaultError as exc:
            self._error(f"Failed to revert rename of {_name(old_path)}: {exc}")
            return
        finally:
            self.session.is_reverting_file = False

        self.editor.notify_renamed(old_path, vault_path)
        self.bus.trigger(REFRESH_NOW)
        self._message("Rename reverted. Check out the file first to rename it.")

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def request_refresh(self) -> None:
        """Debounced refresh; each request restarts the interval."""
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
        loop = asyncio.get_running_loop()
        self._refresh_handle = loop.call_later(self.settings.refresh_interval, self._fire_refresh)

    def _fire_refresh(self) -> None:
        self._refresh_handle = None
        self._spawn(self.refresh())

    def refresh_now(self) -> asyncio.Task[Any]:
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None
        return self._spawn(self.refresh())

    async def refresh(self) -> None:
        """Re-read opened and synced files and publish the new snapshot."""
        if not self.is_ready():
            return
        try:
            opened = await self.manager.get_opened_files()
            tracked = await self.manager.get_have_files()
        except NotAuthenticatedError as exc:
            logger.warning("Refresh needs a login: %s", exc)
            if self.on_auth_failure is not None:
                await self.on_auth_failure(str(exc))
            return
        except P4VaultError as exc:
            self._error(f"Failed to refresh Perforce status: {exc}")
            return

        self.session.replace_snapshot(opened, tracked)
        logger.debug("Refreshed status: %d opened, %d synced", len(opened), len(tracked))
        self.bus.trigger(STATUS_CHANGED, self.session.opened_snapshot())
