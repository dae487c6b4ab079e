"""
gridconf Process Settings

Process-level settings loaded from environment variables prefixed with
``GRID_`` (e.g. ``GRID_LOG_LEVEL=DEBUG``, ``GRID_WORK_DIR=/scratch``).
"""

from __future__ import annotations

import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "gridconf"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class GridSettings(BaseSettings):
    """
    Settings shared by every factory in the process.

    Cluster attributes themselves are not read here: they come from the
    cluster map and the ``env_var_prefix`` variables via ``ClusterConfig``.
    """

    app_name: str = Field(default=APP_NAME, min_length=1)
    work_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] = "json"
    env_var_prefix: str = "GRID_CLUSTER_"

    model_config = SettingsConfigDict(
        env_prefix="GRID_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("work_dir", mode="before")
    @classmethod
    def ensure_path(cls, v: Any) -> Path:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


# Global settings instance (lazy loaded)
_settings: Optional[GridSettings] = None


def get_settings() -> GridSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = GridSettings()
    return _settings


def set_settings(settings: GridSettings) -> None:
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset the global settings so the next access reloads the environment."""
    global _settings
    _settings = None
