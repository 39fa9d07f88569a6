"""Perforce command bridge, path translation and repository operations."""

from .annotate import parse_annotate_output, parse_annotation_line
from .bridge import DEFAULT_TIMEOUT, PROBE_TIMEOUT, CommandBridge
from .manager import P4Manager
from .paths import PathTranslator, client_path_to_absolute, same_path

__all__ = [
    "DEFAULT_TIMEOUT",
    "PROBE_TIMEOUT",
    "CommandBridge",
    "P4Manager",
    "PathTranslator",
    "client_path_to_absolute",
    "parse_annotate_output",
    "parse_annotation_line",
    "same_path",
]
