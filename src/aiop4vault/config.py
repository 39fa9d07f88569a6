"""Settings loader.

Settings live in a small YAML mapping whose keys match :class:`P4Settings`
fields.  A missing file yields the defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models.config import P4Settings

logger = logging.getLogger(__name__)


def load_settings(path: Path) -> P4Settings:
    """Read settings from *path*, falling back to defaults when it does not exist."""
    if not path.exists():
        logger.debug("No settings file at %s, using defaults", path)
        return P4Settings()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return P4Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")

    try:
        settings = P4Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {path}: {exc}") from exc

    logger.info("Loaded settings from %s", path)
    return settings
