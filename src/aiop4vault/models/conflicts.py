"""Conflict-resolution models."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field


class ResolveAction(StrEnum):
    """How a conflicted file should be resolved."""

    ACCEPT_YOURS = "accept-yours"
    ACCEPT_THEIRS = "accept-theirs"
    ACCEPT_MERGED = "accept-merged"
    ACCEPT_SAFE_MERGE = "accept-safe-merge"


class ConflictFile(BaseModel):
    """A file with a pending resolve."""

    depot_file: str
    client_file: str
    vault_path: str
    base_rev: int = 0
    their_rev: int = 0
    conflict_type: Literal["content", "action"] = "action"
    from_file: str | None = None


class MergeVersions(BaseModel):
    """Three full-text versions of a conflicted file.

    ``base_is_fallback`` is set when the common ancestor could not be fetched
    and ``base`` is a copy of ``theirs``.
    """

    base: str = ""
    theirs: str = ""
    yours: str = ""
    base_is_fallback: bool = False


class ResolveAllResult(BaseModel):
    """Outcome of a safe auto-resolve over all conflicts."""

    resolved: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
