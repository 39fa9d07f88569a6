"""Settings model."""

from __future__ import annotations

import sys
from datetime import datetime

from pydantic import BaseModel, Field


class P4Settings(BaseModel):
    """User-facing settings; environment values win where a field is empty."""

    p4_path: str = ""
    p4_port: str = ""
    p4_user: str = ""
    p4_client: str = ""
    auto_checkout: bool = True
    auto_add_new_files: bool = True
    sync_on_startup: bool = True
    submit_message_template: str = "vault update: {{date}}"
    show_notices: bool = True
    refresh_interval: float = Field(default=5.0, gt=0)
    show_inline_blame: bool = False

    @property
    def executable(self) -> str:
        """Path of the ``p4`` binary; a directory gets the executable name appended."""
        p4_path = self.p4_path or "p4"
        exe_name = "p4.exe" if sys.platform == "win32" else "p4"
        if "/" in p4_path or "\\" in p4_path:
            lower = p4_path.lower()
            if not lower.endswith("p4.exe") and not lower.endswith("p4"):
                separator = "\\" if "\\" in p4_path and "/" not in p4_path else "/"
                p4_path = p4_path.rstrip("/\\") + separator + exe_name
        return p4_path

    def env_overrides(self) -> dict[str, str]:
        overrides: dict[str, str] = {}
        if self.p4_port:
            overrides["P4PORT"] = self.p4_port
        if self.p4_user:
            overrides["P4USER"] = self.p4_user
        if self.p4_client:
            overrides["P4CLIENT"] = self.p4_client
        return overrides

    def render_submit_message(self, now: datetime | None = None) -> str:
        stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
        return self.submit_message_template.replace("{{date}}", stamp)
