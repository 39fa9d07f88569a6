"""Per-file cache of annotate results.

Results stay fresh for :attr:`BlameCache.CACHE_TTL` seconds.  Only one fetch
per path is ever in flight: callers arriving while it runs await the same
future and receive the same result, or ``None`` if the fetch failed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import NamedTuple

from ..constants import is_text_file
from ..exceptions import P4VaultError
from ..models.blame import BlameLine, BlameResult
from ..p4.manager import P4Manager

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    result: BlameResult
    cached_at: float


class CacheStats(NamedTuple):
    count: int
    oldest_age: float


class BlameCache:
    """Annotate results with TTL, in-flight de-duplication and description prefetch."""

    CACHE_TTL = 5 * 60.0
    DESCRIPTION_BATCH_SIZE = 5

    def __init__(
        self,
        manager: P4Manager,
        *,
        is_ready: Callable[[], bool] = lambda: True,
        ttl: float = CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.manager = manager
        self.is_ready = is_ready
        self.ttl = ttl
        self.clock = clock
        self._cache: dict[str, _Entry] = {}
        self._descriptions: dict[int, str] = {}
        self._pending: dict[str, asyncio.Future[BlameResult | None]] = {}

    def _fresh(self, entry: _Entry) -> bool:
        return self.clock() - entry.cached_at < self.ttl

    async def get_blame(self, file_path: str, force_refresh: bool = False) -> BlameResult | None:
        """Return blame data for *file_path*, fetching it when not cached."""
        if not force_refresh:
            entry = self._cache.get(file_path)
            if entry is not None and self._fresh(entry):
                return entry.result

        pending = self._pending.get(file_path)
        if pending is not None:
            return await asyncio.shield(pending)

        return await self._fetch(file_path)

    async def _fetch(self, file_path: str) -> BlameResult | None:
        future: asyncio.Future[BlameResult | None] = asyncio.get_running_loop().create_future()
        self._pending[file_path] = future

        result: BlameResult | None = None
        try:
            result = await self._load(file_path)
        except P4VaultError as exc:
            logger.error("Failed to get blame for %s: %s", file_path, exc)
        finally:
            self._pending.pop(file_path, None)
            if not future.done():
                future.set_result(result)
        return result

    async def _load(self, file_path: str) -> BlameResult | None:
        if not self.is_ready():
            return None
        # Binary files cannot be annotated
        if not is_text_file(file_path):
            return None
        if not await self.manager.is_file_in_depot(file_path):
            return None

        result = await self.manager.annotate(file_path)
        await self._fetch_descriptions(result.lines)
        for line in result.lines:
            line.description = self._descriptions.get(line.changelist, "")

        self._cache[file_path] = _Entry(result=result, cached_at=self.clock())
        logger.debug("Cached blame for %s (%d lines)", file_path, len(result.lines))
        return result

    async def _fetch_descriptions(self, lines: Iterable[BlameLine]) -> None:
        missing = list(
            dict.fromkeys(
                line.changelist for line in lines if line.changelist not in self._descriptions
            )
        )
        size = self.DESCRIPTION_BATCH_SIZE
        for start in range(0, len(missing), size):
            batch = missing[start : start + size]
            descriptions = await asyncio.gather(
                *(self.manager.get_changelist_description(cl) for cl in batch),
                return_exceptions=True,
            )
            for changelist, description in zip(batch, descriptions, strict=True):
                self._descriptions[changelist] = description if isinstance(description, str) else ""

    async def get_blame_for_line(self, file_path: str, line_number: int) -> BlameLine | None:
        blame = await self.get_blame(file_path)
        if blame is None:
            return None
        return blame.line(line_number)

    def invalidate(self, file_path: str) -> None:
        self._cache.pop(file_path, None)

    def invalidate_all(self) -> None:
        """Drop every cached result and changelist description."""
        self._cache.clear()
        self._descriptions.clear()

    def is_cached(self, file_path: str) -> bool:
        entry = self._cache.get(file_path)
        return entry is not None and self._fresh(entry)

    def cache_stats(self) -> CacheStats:
        now = self.clock()
        oldest = max((now - entry.cached_at for entry in self._cache.values()), default=0.0)
        return CacheStats(count=len(self._cache), oldest_age=oldest)

    def cleanup(self) -> None:
        """Evict entries older than twice the TTL."""
        now = self.clock()
        for path, entry in list(self._cache.items()):
            if now - entry.cached_at > self.ttl * 2:
                del self._cache[path]
