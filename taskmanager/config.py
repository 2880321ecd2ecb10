"""Scheduler settings loaded from environment variables."""

import logging
import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """TaskManager configuration. Values come from ``TASKMANAGER_*`` environment variables."""

    # Pacing
    tick_length_ms: int = Field(default=10, ge=0)
    min_sleep_ms: int = Field(default=1, ge=1)

    # Loop thread
    thread_name: str = Field(default="taskmanager")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="TASKMANAGER_",
        env_file=_env_file(),
        env_file_encoding="utf-8",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_log_level(self) -> int:
        """Resolve LOG_LEVEL to a ``logging`` level, falling back to INFO."""
        level = logging.getLevelName(self.log_level.strip().upper())
        return level if isinstance(level, int) else logging.INFO


settings = Settings()
