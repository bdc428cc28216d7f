"""Settings for the plugin pipeline, loaded from environment or .env."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings.

    Environment variables use the ``PLUGIN_PIPELINE_`` prefix, e.g.
    ``PLUGIN_PIPELINE_PLUGIN_DIR=~/.assistant/plugins``. ``plugin_config`` is
    read as JSON.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLUGIN_PIPELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    plugin_dir: Optional[Path] = None
    plugin_config: Dict[str, str] = Field(default_factory=dict)

    log_level: str = "INFO"
    log_json: bool = False

    meta_cognition_insight_interval: int = Field(default=10, ge=1)

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("plugin_dir")
    @classmethod
    def _expand_plugin_dir(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value is not None else None

    def plugin_configuration(self) -> Dict[str, str]:
        """Key-value configuration handed to plugins on initialize."""
        config = {
            "meta_cognition.insight_interval": str(
                self.meta_cognition_insight_interval
            ),
        }
        config.update(self.plugin_config)
        return config


@lru_cache
def get_settings() -> Settings:
    return Settings()
