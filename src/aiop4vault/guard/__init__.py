"""Edit guard: editor event interception and workspace status refresh."""

from .events import REFRESH, REFRESH_NOW, STATUS_CHANGED, EventBus
from .guard import EditGuard
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

__all__ = [
    "REFRESH",
    "REFRESH_NOW",
    "STATUS_CHANGED",
    "AddDecision",
    "CheckoutDecision",
    "DeleteDecision",
    "EditGuard",
    "EditorHost",
    "EditorMode",
    "EventBus",
    "GuardSession",
    "Notifier",
    "Prompter",
]
