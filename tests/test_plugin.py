"""Tests for the VaultPlugin lifecycle."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from aiop4vault.exceptions import NotAuthenticatedError, OperationFailedError, ToolUnavailableError
from aiop4vault.models import P4Settings, RequirementsResult
from aiop4vault.p4 import P4Manager
from aiop4vault.plugin import VaultPlugin

if TYPE_CHECKING:
    from conftest import FakeBridge, FakeEditor, FakeNotifier, FakePrompter

HAVE = [
    {"depotFile": "//depot/vault/notes/a.md", "clientFile": "//ws/vault/notes/a.md"},
    {"depotFile": "//depot/vault/notes/b.md", "clientFile": "//ws/vault/notes/b.md"},
]


@pytest.fixture
async def plugin(
    manager: P4Manager,
    vault_root: Path,
    prompter: FakePrompter,
    editor: FakeEditor,
    notifier: FakeNotifier,
) -> AsyncIterator[VaultPlugin]:
    vault_plugin = VaultPlugin(
        P4Settings(sync_on_startup=False),
        vault_root,
        prompter=prompter,
        editor=editor,
        notifier=notifier,
        manager=manager,
    )
    yield vault_plugin
    await vault_plugin.stop()


class TestStart:
    async def test_valid_populates_before_ready(self, plugin: VaultPlugin, bridge: FakeBridge) -> None:
        bridge.structured["have"] = HAVE
        bridge.structured["opened"] = [
            {"depotFile": "//depot/vault/notes/a.md", "clientFile": "//ws/vault/notes/a.md", "action": "edit"}
        ]

        assert await plugin.start() is RequirementsResult.VALID

        assert plugin.ready
        assert plugin.session.is_tracked("notes/b.md")
        assert plugin.session.is_opened("notes/a.md")

    async def test_missing_p4(self, plugin: VaultPlugin, bridge: FakeBridge, notifier: FakeNotifier) -> None:
        bridge.responses["help"] = ToolUnavailableError("p4 executable not found: p4")

        assert await plugin.start() is RequirementsResult.MISSING_P4

        assert not plugin.ready
        assert len(notifier.errors) == 1
        assert "have" not in bridge.commands()

    async def test_not_in_workspace(self, plugin: VaultPlugin, bridge: FakeBridge) -> None:
        bridge.structured["info"] = [{"userName": "alice", "clientName": "*unknown*"}]
        assert await plugin.start() is RequirementsResult.NOT_IN_WORKSPACE
        assert not plugin.ready

    async def test_sync_on_startup(self, plugin: VaultPlugin, bridge: FakeBridge) -> None:
        plugin.update_settings(P4Settings(sync_on_startup=True))
        await plugin.start()
        await asyncio.sleep(0.01)
        assert "sync" in bridge.commands()

    async def test_opened_failure_still_ready(self, plugin: VaultPlugin, bridge: FakeBridge) -> None:
        bridge.structured["have"] = HAVE
        bridge.structured["opened"] = OperationFailedError("Connect to server failed")
        assert await plugin.start() is RequirementsResult.VALID
        assert plugin.ready
        assert plugin.session.is_tracked("notes/a.md")


class TestLogin:
    async def test_login_then_reinitialize(
        self, plugin: VaultPlugin, bridge: FakeBridge, prompter: FakePrompter, info_record: dict[str, str]
    ) -> None:
        attempts: list[int] = []

        def info(args: list[str]) -> list[dict[str, str]]:
            attempts.append(1)
            if len(attempts) == 1:
                raise NotAuthenticatedError("Perforce password (P4PASSWD) invalid or unset.")
            return [info_record]

        bridge.structured["info"] = info
        bridge.structured["have"] = HAVE
        old_session = plugin.session

        assert await plugin.start() is RequirementsResult.VALID

        assert bridge.inputs == ["secret\n"]
        assert plugin.ready
        assert plugin.session is not old_session
        assert plugin.guard.session is plugin.session
        assert plugin.session.is_tracked("notes/a.md")

    async def test_password_cancelled(
        self, plugin: VaultPlugin, bridge: FakeBridge, prompter: FakePrompter
    ) -> None:
        bridge.structured["info"] = NotAuthenticatedError("Perforce password (P4PASSWD) invalid or unset.")
        prompter.password = None

        assert await plugin.start() is RequirementsResult.NOT_LOGGED_IN

        assert not plugin.ready
        assert "login" not in bridge.commands()

    async def test_login_failure(
        self, plugin: VaultPlugin, bridge: FakeBridge, notifier: FakeNotifier
    ) -> None:
        bridge.structured["info"] = NotAuthenticatedError("Perforce password (P4PASSWD) invalid or unset.")
        bridge.responses["login"] = NotAuthenticatedError("Password invalid.")

        assert await plugin.start() is RequirementsResult.NOT_LOGGED_IN
        assert notifier.errors == ["Login failed: Password invalid."]


class TestCommands:
    async def test_reinitialize_resets_session(self, plugin: VaultPlugin, bridge: FakeBridge) -> None:
        bridge.structured["have"] = HAVE
        await plugin.start()
        plugin.session.skipped_session.add("notes/a.md")

        assert await plugin.reinitialize() is RequirementsResult.VALID
        assert plugin.session.skipped_session == set()
        assert plugin.session.is_tracked("notes/a.md")

    async def test_submit_default_uses_template(self, plugin: VaultPlugin, bridge: FakeBridge) -> None:
        bridge.structured["submit"] = [{"submittedChange": "31"}]
        await plugin.start()

        assert await plugin.submit_default() == 31
        submit_call = next(call for call in bridge.calls if call[0] == "submit")
        assert submit_call[1] == "-d"
        assert submit_call[2].startswith("vault update: ")

    async def test_sync_failure_surfaced(
        self, plugin: VaultPlugin, bridge: FakeBridge, notifier: FakeNotifier
    ) -> None:
        bridge.structured["sync"] = OperationFailedError("Connect to server failed")
        assert await plugin.sync() is None
        assert notifier.errors == ["Sync failed: Connect to server failed"]

    async def test_open_loads_blame_when_enabled(self, plugin: VaultPlugin, bridge: FakeBridge) -> None:
        plugin.update_settings(P4Settings(sync_on_startup=False, show_inline_blame=True))
        bridge.responses["files"] = "//depot/vault/notes/b.md#1"
        bridge.responses["opened"] = "//depot/vault/notes/b.md#1 - edit"
        bridge.responses["annotate"] = "1: alice 2025/11/08: second\n"
        await plugin.start()

        await plugin.on_file_open("notes/b.md")

        assert plugin.blame.is_cached("notes/b.md")
