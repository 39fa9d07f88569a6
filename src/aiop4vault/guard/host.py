"""Interfaces the embedding editor implements, and the decisions its prompts return."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol


class EditorMode(StrEnum):
    SOURCE = "source"
    PREVIEW = "preview"


class CheckoutDecision(StrEnum):
    CHECKOUT = "checkout"
    CHECKOUT_LOCK = "checkout-lock"
    SKIP = "skip"
    SKIP_SESSION = "skip-session"
    CANCEL = "cancel"


class AddDecision(StrEnum):
    ADD = "add"
    SKIP = "skip"
    SKIP_SESSION = "skip-session"
    CANCEL = "cancel"


class DeleteDecision(StrEnum):
    DELETE = "delete"
    KEEP = "keep"
    SKIP_SESSION = "skip-session"
    CANCEL = "cancel"


class Prompter(Protocol):
    """Modal prompts; each call resolves once the user has answered."""

    async def ask_checkout(self, vault_path: str) -> CheckoutDecision: ...

    async def ask_add(self, vault_path: str) -> AddDecision: ...

    async def ask_delete(self, vault_path: str) -> DeleteDecision: ...

    async def ask_password(self, message: str) -> str | None: ...


class EditorHost(Protocol):
    """Presentation state of the views showing vault files."""

    def get_mode(self, vault_path: str) -> EditorMode | None: ...

    def set_mode(self, vault_path: str, mode: EditorMode) -> None: ...

    def notify_renamed(self, restored_path: str, stale_path: str) -> None:
        """Tell the host's file index that *stale_path* is back at *restored_path*."""
        ...


class Notifier(Protocol):
    """Transient user notifications."""

    def message(self, text: str) -> None: ...

    def error(self, text: str) -> None: ...
