"""Configuration settings and data models."""

import json
import os
import shutil
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator


class DiscussionConfig(BaseModel):
    """Defaults applied when a discussion is created."""

    default_phase_time_limit: int = Field(
        default=5, description="Minutes per phase for structured pros-cons debates"
    )
    min_time_limit: int = Field(default=1, description="Smallest accepted time limit (minutes)")
    max_time_limit: int = Field(default=180, description="Largest accepted time limit (minutes)")
    max_message_length: int = Field(default=2000, description="Maximum characters per message")
    categories: list[str] = Field(
        default=["정치", "사회", "경제", "기술", "문화", "환경", "교육", "기타"],
        description="Suggested discussion categories",
    )

    @field_validator("default_phase_time_limit")
    @classmethod
    def validate_phase_time_limit(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("default_phase_time_limit must be positive")
        return v


class SchedulerConfig(BaseModel):
    """Server-side phase timer configuration."""

    enabled: bool = Field(default=True, description="Run auto-transition timers")
    tick_seconds: float = Field(default=1.0, description="Seconds between timer checks")

    @field_validator("tick_seconds")
    @classmethod
    def validate_tick(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("tick_seconds must be positive")
        return v


class SystemConfig(BaseModel):
    """System-wide configuration."""

    database_path: str = Field(default="debox.db", description="SQLite database file")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


class AppConfig(BaseModel):
    """Complete application configuration."""

    discussion: DiscussionConfig = Field(default_factory=DiscussionConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        required_sections = ["discussion", "system"]
        missing_sections = [
            section for section in required_sections if section not in data
        ]
        if missing_sections:
            raise ValueError(f"Missing required config sections: {missing_sections}")

        return cls(**data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_unset=True),
                f,
                default_flow_style=False,
                indent=2,
                allow_unicode=True,
            )

    def get_database_path(self) -> str:
        """Database path, with DEBOX_DB_PATH taking precedence."""
        return os.environ.get("DEBOX_DB_PATH", self.system.database_path)


def get_default_config() -> AppConfig:
    """Load default configuration from debox_config.json, creating it if needed."""
    config_path = Path("debox_config.json")
    if not config_path.exists():
        # Auto-create from debox_config.example.json if it exists
        example_path = Path("debox_config.example.json")
        if example_path.exists():
            shutil.copy2(example_path, config_path)
        else:
            template_config = get_template_config()
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(template_config.model_dump(), f, indent=2, ensure_ascii=False)
    return AppConfig.load_from_file(config_path)


def get_template_config() -> AppConfig:
    """Get template configuration for config file generation."""
    return AppConfig(
        discussion=DiscussionConfig(
            default_phase_time_limit=5,
            min_time_limit=1,
            max_time_limit=180,
            max_message_length=2000,
        ),
        scheduler=SchedulerConfig(enabled=True, tick_seconds=1.0),
        system=SystemConfig(database_path="debox.db", log_level="INFO"),
    )
