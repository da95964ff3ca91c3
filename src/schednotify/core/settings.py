"""
Centralized settings for the notifier.

All fields can be set through ``SCHEDNOTIFY_*`` environment variables
(e.g. ``SCHEDNOTIFY_HTTP_TIMEOUT_SECONDS=5``) or a ``.env`` file.

Tags:
    configuration, settings, pydantic, caching, validation
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from schednotify.core.errors import ConfigError


class NotifierSettings(BaseSettings):
    """Notifier configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDNOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Delivery ─────────────────────────────────────────────────
    http_timeout_seconds: float = Field(default=10.0, gt=0)
    slack_api_url: str = Field(default="https://slack.com/api/chat.postMessage")
    user_agent: str = Field(default="schednotify/0.1")
    fallback_text: str = Field(
        default="Workload status notification",
        min_length=1,
        description="Plain-text fallback used when a notification has no title",
    )

    # ── Dispatch ─────────────────────────────────────────────────
    max_parallel_dispatch: int = Field(default=4, ge=1, description="1 dispatches sequentially")
    dedup_enabled: bool = Field(default=True)

    # ── Declarative inputs ───────────────────────────────────────
    manifests_dir: Path | None = Field(default=None)
    secrets_dir: Path | None = Field(default=None)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    service_name: str = Field(default="schednotify")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ValueError(f"unsupported log level: {v}")
        return level


_settings_cache: dict[str, NotifierSettings] = {}


def get_settings(*, _force_reload: bool = False) -> NotifierSettings:
    """Load, validate, and cache a :class:`NotifierSettings` instance.

    Raises:
        ConfigError: If environment values fail validation
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    try:
        settings = NotifierSettings()
    except ValidationError as e:
        raise ConfigError("Invalid notifier settings", cause=e) from e

    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["NotifierSettings", "get_settings", "clear_settings_cache"]
