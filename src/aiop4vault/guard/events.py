"""Minimal event bus the guard publishes to and UI components subscribe to."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

STATUS_CHANGED = "status-changed"
REFRESH = "refresh"
REFRESH_NOW = "refresh-now"

Callback = Callable[..., Any]


class EventBus:
    """Named events with plain or coroutine callbacks.

    Coroutine callbacks are scheduled as tasks on the running loop; the bus
    keeps a reference until they finish.
    """

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[Callback]] = defaultdict(list)
        self._tasks: set[asyncio.Task[Any]] = set()

    def on(self, name: str, callback: Callback) -> None:
        self._listeners[name].append(callback)

    def off(self, name: str, callback: Callback) -> None:
        listeners = self._listeners.get(name, [])
        if callback in listeners:
            listeners.remove(callback)

    def trigger(self, name: str, *args: Any) -> None:
        for callback in list(self._listeners.get(name, [])):
            try:
                result = callback(*args)
            except Exception:
                logger.exception("Listener for %s failed", name)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

    def clear(self) -> None:
        self._listeners.clear()
