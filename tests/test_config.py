"""Tests for the settings loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from aiop4vault.config import load_settings
from aiop4vault.exceptions import ConfigError


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "p4vault.yaml")
        assert settings.sync_on_startup is True
        assert settings.p4_client == ""

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "p4vault.yaml"
        path.write_text("")
        assert load_settings(path).auto_add_new_files is True

    def test_values_loaded(self, tmp_path: Path) -> None:
        path = tmp_path / "p4vault.yaml"
        path.write_text(
            "p4_client: notes-ws\n"
            "sync_on_startup: false\n"
            "refresh_interval: 2.5\n"
            "submit_message_template: 'notes {{date}}'\n"
        )
        settings = load_settings(path)
        assert settings.p4_client == "notes-ws"
        assert settings.sync_on_startup is False
        assert settings.refresh_interval == 2.5
        assert settings.submit_message_template == "notes {{date}}"

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "p4vault.yaml"
        path.write_text("p4_client: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "p4vault.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_settings(path)

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "p4vault.yaml"
        path.write_text("refresh_interval: -1\n")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings(path)
