"""Shared fixtures for aiop4vault tests."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from aiop4vault.files import AsyncFileManager
from aiop4vault.guard import AddDecision, CheckoutDecision, DeleteDecision, EditorMode
from aiop4vault.models import P4Settings
from aiop4vault.p4 import DEFAULT_TIMEOUT, P4Manager

Response = Any


class FakeBridge:
    """Stands in for :class:`CommandBridge`, answering by p4 sub-command.

    ``responses`` answers :meth:`run`, ``structured`` answers
    :meth:`run_structured`.  A value may be a string/list, an exception to
    raise, or a callable taking the argument list.
    """

    def __init__(self, settings: P4Settings | None = None) -> None:
        self.settings = settings or P4Settings()
        self.responses: dict[str, Response] = {}
        self.structured: dict[str, Response] = {}
        self.calls: list[list[str]] = []
        self.inputs: list[str] = []
        self.timeouts: list[float] = []

    @staticmethod
    def _answer(table: dict[str, Response], args: list[str], default: Any) -> Any:
        value = table.get(args[0], default)
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(args)
        return value

    async def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        stdin_text: str | None = None,
    ) -> str:
        args = list(args)
        self.calls.append(args)
        self.timeouts.append(timeout)
        if stdin_text is not None:
            self.inputs.append(stdin_text)
        return self._answer(self.responses, args, "")

    async def run_structured(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> list[dict[str, Any]]:
        args = list(args)
        self.calls.append(args)
        self.timeouts.append(timeout)
        return self._answer(self.structured, args, [])

    async def run_with_input(
        self, args: Sequence[str], stdin_text: str, *, timeout: float = DEFAULT_TIMEOUT
    ) -> str:
        return await self.run(args, timeout=timeout, stdin_text=stdin_text)

    def commands(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakePrompter:
    def __init__(self) -> None:
        self.checkout = CheckoutDecision.CHECKOUT
        self.add = AddDecision.ADD
        self.delete = DeleteDecision.DELETE
        self.password: str | None = "secret"
        self.asked: list[tuple[str, str]] = []

    async def ask_checkout(self, vault_path: str) -> CheckoutDecision:
        self.asked.append(("checkout", vault_path))
        return self.checkout

    async def ask_add(self, vault_path: str) -> AddDecision:
        self.asked.append(("add", vault_path))
        return self.add

    async def ask_delete(self, vault_path: str) -> DeleteDecision:
        self.asked.append(("delete", vault_path))
        return self.delete

    async def ask_password(self, message: str) -> str | None:
        self.asked.append(("password", message))
        return self.password


class FakeEditor:
    def __init__(self) -> None:
        self.modes: dict[str, EditorMode] = {}
        self.renamed: list[tuple[str, str]] = []

    def get_mode(self, vault_path: str) -> EditorMode | None:
        return self.modes.get(vault_path)

    def set_mode(self, vault_path: str, mode: EditorMode) -> None:
        self.modes[vault_path] = mode

    def notify_renamed(self, restored_path: str, stale_path: str) -> None:
        self.renamed.append((restored_path, stale_path))


class FakeNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []
        self.errors: list[str] = []

    def message(self, text: str) -> None:
        self.messages.append(text)

    def error(self, text: str) -> None:
        self.errors.append(text)


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    """A vault inside a client workspace rooted one level up."""
    root = tmp_path / "vault"
    (root / "notes").mkdir(parents=True)
    (root / "notes" / "a.md").write_text("depot text\n")
    (root / "notes" / "b.md").write_text("second\n")
    return root.resolve()


@pytest.fixture
def client_root(vault_root: Path) -> str:
    return str(vault_root.parent)


@pytest.fixture
def info_record(client_root: str) -> dict[str, str]:
    return {
        "userName": "alice",
        "clientName": "ws",
        "clientRoot": client_root,
        "serverAddress": "ssl:perforce:1666",
        "serverVersion": "P4D/LINUX26X86_64/2024.1",
    }


@pytest.fixture
def bridge(info_record: dict[str, str]) -> FakeBridge:
    fake = FakeBridge()
    fake.structured["info"] = [info_record]
    return fake


@pytest.fixture
def file_manager(vault_root: Path) -> AsyncFileManager:
    return AsyncFileManager(vault_root)


@pytest.fixture
def manager(vault_root: Path, bridge: FakeBridge) -> P4Manager:
    return P4Manager(P4Settings(), vault_root, bridge=bridge)  # type: ignore[arg-type]


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture
def editor() -> FakeEditor:
    return FakeEditor()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()
