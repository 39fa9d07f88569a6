"""Blame (annotate) cache."""

from .cache import BlameCache, CacheStats

__all__ = ["BlameCache", "CacheStats"]
