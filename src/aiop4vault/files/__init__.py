"""Async file operations inside the vault."""

from .manager import AsyncFileManager

__all__ = ["AsyncFileManager"]
