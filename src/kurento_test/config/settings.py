"""
Harness settings from environment variables.

These select where configuration comes from and how the harness logs,
before any test configuration key can be resolved:
- Environment variables use the KURENTO_TEST_ prefix
- Validation via Pydantic field validators
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from kurento_test.config.test_configuration import TEST_CONFIG_JSON_DEFAULT

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class HarnessSettings(BaseSettings):
    """Harness settings from environment variables.

    Attributes:
        config_file: JSON test configuration file (executions and properties).
            Relative paths resolve against the working directory.
        log_level: Level for the kurento_test loggers.
        log_focus: Only show client and page logs at log_level, everything
            else at WARNING.
    """

    config_file: Path = Field(
        default=Path(TEST_CONFIG_JSON_DEFAULT),
        description="JSON test configuration file",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for harness modules",
    )
    log_focus: bool = Field(
        default=False,
        description="Reduce noise to client and browser page logs",
    )

    model_config = {
        "env_prefix": "KURENTO_TEST_",
        "case_sensitive": False,
    }

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> HarnessSettings:
    """Settings loaded once per process."""
    return HarnessSettings()
