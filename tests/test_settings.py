"""Tests for configuration loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from config.settings import AppConfig, DiscussionConfig, SchedulerConfig, get_template_config


def test_load_from_file(tmp_path: Path) -> None:
    path = tmp_path / "debox_config.json"
    path.write_text(
        json.dumps(
            {
                "discussion": {"default_phase_time_limit": 3},
                "system": {"database_path": "custom.db", "log_level": "DEBUG"},
            }
        ),
        encoding="utf-8",
    )
    config = AppConfig.load_from_file(path)
    assert config.discussion.default_phase_time_limit == 3
    assert config.scheduler.enabled is True
    assert config.system.log_level == "DEBUG"


def test_missing_sections_are_reported(tmp_path: Path) -> None:
    path = tmp_path / "debox_config.json"
    path.write_text(json.dumps({"discussion": {}}), encoding="utf-8")
    with pytest.raises(ValueError, match="system"):
        AppConfig.load_from_file(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        AppConfig.load_from_file(tmp_path / "nope.json")


def test_save_to_file_writes_yaml(tmp_path: Path) -> None:
    path = tmp_path / "out" / "config.yaml"
    get_template_config().save_to_file(path)
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data["discussion"]["default_phase_time_limit"] == 5
    assert data["system"]["database_path"] == "debox.db"


def test_database_path_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    config = get_template_config()
    monkeypatch.delenv("DEBOX_DB_PATH", raising=False)
    assert config.get_database_path() == "debox.db"
    monkeypatch.setenv("DEBOX_DB_PATH", "/tmp/other.db")
    assert config.get_database_path() == "/tmp/other.db"


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValidationError):
        DiscussionConfig(default_phase_time_limit=0)
    with pytest.raises(ValidationError):
        SchedulerConfig(tick_seconds=0)
