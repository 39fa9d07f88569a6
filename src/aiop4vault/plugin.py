"""Session lifecycle for one vault.

:class:`VaultPlugin` checks that ``p4`` is usable, degrades to an inactive
state when it is not, handles login and re-initialisation, and wires the
event bus to the edit guard.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, assert_never

from .blame.cache import BlameCache
from .exceptions import P4VaultError
from .guard.events import EventBus
from .guard.guard import EditGuard
from .guard.host import EditorHost, Notifier, Prompter
from .guard.session import GuardSession
from .models.config import P4Settings
from .models.files import SyncAction, SyncResult
from .models.info import RequirementsResult
from .p4.manager import P4Manager

logger = logging.getLogger(__name__)


class VaultPlugin:
    """Owns the manager, guard, blame cache and event bus for a vault."""

    def __init__(
        self,
        settings: P4Settings,
        vault_root: Path,
        *,
        prompter: Prompter,
        editor: EditorHost,
        notifier: Notifier,
        manager: P4Manager | None = None,
    ) -> None:
        self.settings = settings
        self.vault_root = vault_root
        self.prompter = prompter
        self.editor = editor
        self.notifier = notifier
        self.manager = manager or P4Manager(settings, vault_root)
        self.bus = EventBus()
        self.ready = False
        self.result: RequirementsResult | None = None

        self.session = GuardSession()
        self.guard = EditGuard(
            self.manager,
            self.session,
            settings,
            prompter=prompter,
            editor=editor,
            notifier=notifier,
            bus=self.bus,
            is_ready=lambda: self.ready,
            on_auth_failure=self.prompt_for_login,
        )
        self.blame = BlameCache(self.manager, is_ready=lambda: self.ready)
        self._startup_task: asyncio.Task[Any] | None = None
        self._logging_in = False

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------

    def _message(self, text: str) -> None:
        logger.info(text)
        if self.settings.show_notices:
            self.notifier.message(text)

    def _error(self, text: str) -> None:
        logger.error(text)
        self.notifier.error(text)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> RequirementsResult:
        """Check requirements and bring the session up if they are met."""
        self.guard.attach()
        result = await self.manager.check_requirements()
        self.result = result

        match result:
            case RequirementsResult.MISSING_P4:
                self._error("p4 command not found. Install the Perforce command-line client.")
            case RequirementsResult.NOT_IN_WORKSPACE:
                self._message("Not in a Perforce workspace. Perforce features are unavailable.")
            case RequirementsResult.NOT_LOGGED_IN:
                if await self.prompt_for_login("You are not logged in to Perforce."):
                    return RequirementsResult.VALID
            case RequirementsResult.VALID:
                await self._populate()
                self.ready = True
                if self.settings.sync_on_startup:
                    self._startup_task = asyncio.create_task(self._sync_on_startup())
                else:
                    self._startup_task = asyncio.create_task(self.guard.refresh())
            case _:
                assert_never(result)

        return result

    async def stop(self) -> None:
        self.ready = False
        self.guard.stop()
        self.guard.detach()
        if self._startup_task is not None:
            self._startup_task.cancel()
            self._startup_task = None

    async def reinitialize(self) -> RequirementsResult:
        """Tear the session down and rebuild it as on a cold start."""
        self.ready = False
        self.guard.stop()
        self.session = GuardSession()
        self.guard.session = self.session
        self.blame.invalidate_all()
        self.manager.info = None

        result = await self.manager.check_requirements()
        self.result = result
        match result:
            case RequirementsResult.VALID:
                await self._populate()
                self.ready = True
                self._message("Connected to Perforce")
                await self.guard.refresh()
            case RequirementsResult.MISSING_P4:
                self._error("p4 command not found. Install the Perforce command-line client.")
            case RequirementsResult.NOT_IN_WORKSPACE:
                self._message("Still not in a Perforce workspace. Check the P4CLIENT setting.")
            case RequirementsResult.NOT_LOGGED_IN:
                self._error("Still not logged in to Perforce.")
            case _:
                assert_never(result)
        return result

    async def _populate(self) -> None:
        tracked = await self.manager.get_have_files()
        try:
            opened = await self.manager.get_opened_files()
        except P4VaultError as exc:
            logger.warning("Could not list opened files: %s", exc)
            opened = []
        self.session.replace_snapshot(opened, tracked)
        logger.info("Loaded %d synced and %d opened files", len(tracked), len(opened))

    async def _sync_on_startup(self) -> None:
        result = await self.sync()
        if result is not None:
            changed = [item for item in result.files if item.action is not SyncAction.UP_TO_DATE]
            self._message(f"Synced {len(changed)} file(s) from Perforce")
        await self.guard.refresh()

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def prompt_for_login(self, message: str) -> bool:
        """Ask for a password, log in and re-initialise.  ``True`` on success."""
        if self._logging_in:
            return False
        self._logging_in = True
        try:
            password = await self.prompter.ask_password(message)
            if not password:
                return False
            try:
                await self.manager.login(password)
            except P4VaultError as exc:
                self._error(f"Login failed: {exc}")
                return False
            self._message("Logged in to Perforce")
        finally:
            self._logging_in = False

        return await self.reinitialize() is RequirementsResult.VALID

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def on_file_open(self, vault_path: str) -> None:
        await self.guard.on_file_open(vault_path)
        if self.settings.show_inline_blame:
            await self.blame.get_blame(vault_path)

    async def sync(self) -> SyncResult | None:
        try:
            result = await self.manager.sync()
        except P4VaultError as exc:
            self._error(f"Sync failed: {exc}")
            return None
        self.blame.invalidate_all()
        return result

    async def submit_default(self, description: str | None = None) -> int | None:
        """Submit the default changelist, using the message template when no description is given."""
        message = description or self.settings.render_submit_message()
        try:
            change = await self.manager.submit("default", message)
        except P4VaultError as exc:
            self._error(f"Submit failed: {exc}")
            return None
        self._message(f"Submitted changelist {change}")
        self.blame.invalidate_all()
        await self.guard.refresh()
        return change

    def update_settings(self, settings: P4Settings) -> None:
        self.settings = settings
        self.guard.settings = settings
        self.manager.bridge.settings = settings
