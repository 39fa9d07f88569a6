"""Connection and workspace models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class P4Info(BaseModel):
    """Subset of ``p4 info``."""

    user_name: str = ""
    client_name: str = ""
    client_root: str = ""
    server_address: str = ""
    server_version: str | None = None

    @property
    def has_workspace(self) -> bool:
        return bool(self.client_name) and self.client_name != "*unknown*"


class RequirementsResult(StrEnum):
    """Outcome of probing the tool and the workspace."""

    VALID = "valid"
    MISSING_P4 = "missing-p4"
    NOT_IN_WORKSPACE = "not-in-workspace"
    NOT_LOGGED_IN = "not-logged-in"
