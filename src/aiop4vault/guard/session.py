"""Per-session guard state, shared between the guard and status consumers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models.files import DecoratorStatus, FileStatus
from ..p4.paths import CONTENT_EXTENSION, path_key, same_path
from .host import EditorMode


@dataclass
class GuardSession:
    """Caches and skip lists for one plugin lifetime.

    The opened-file map and the tracked set are only ever replaced together
    through :meth:`replace_snapshot`, so readers never see one updated
    without the other.
    """

    opened_files: dict[str, FileStatus] = field(default_factory=dict)
    tracked_paths: set[str] = field(default_factory=set)
    skipped_session: set[str] = field(default_factory=set)
    skipped_once: set[str] = field(default_factory=set)
    skip_new_files_session: bool = False
    skip_delete_files_session: bool = False
    last_known_mode: dict[str, EditorMode] = field(default_factory=dict)
    is_reverting_file: bool = False
    showing_mode_prompt: bool = False
    _tracked_keys: set[str] = field(default_factory=set, repr=False)

    def replace_snapshot(self, opened: Iterable[FileStatus], tracked: Iterable[str]) -> None:
        tracked_paths = set(tracked)
        self.opened_files = {status.vault_path: status for status in opened}
        self.tracked_paths = tracked_paths
        self._tracked_keys = {path_key(path) for path in tracked_paths}

    def opened_snapshot(self) -> list[FileStatus]:
        return list(self.opened_files.values())

    def find_opened(self, vault_path: str) -> FileStatus | None:
        exact = self.opened_files.get(vault_path)
        if exact is not None:
            return exact
        for status in self.opened_files.values():
            if same_path(status.vault_path, vault_path):
                return status
        return None

    def is_opened(self, vault_path: str) -> bool:
        return self.find_opened(vault_path) is not None

    def is_tracked(self, vault_path: str) -> bool:
        key = path_key(vault_path)
        if key in self._tracked_keys or key + CONTENT_EXTENSION in self._tracked_keys:
            return True
        return key.endswith(CONTENT_EXTENSION) and key[: -len(CONTENT_EXTENSION)] in self._tracked_keys

    def status_for(self, vault_path: str) -> DecoratorStatus | None:
        """Badge for the file explorer; opened files win over synced ones."""
        opened = self.find_opened(vault_path)
        if opened is not None:
            return "locked" if opened.is_locked else opened.action.value
        if self.is_tracked(vault_path):
            return "synced"
        return None
