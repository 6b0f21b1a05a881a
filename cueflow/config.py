"""Environment-driven settings for the expression engine."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class ExpressionSettings:
    """Knobs read from ``CUEFLOW_*`` environment variables (or a ``.env`` file)."""

    log_level: str = "INFO"
    # Include the offending expression text when a failed invocation is logged.
    log_source_on_error: bool = True
    trace: bool = False

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "ExpressionSettings":
        if dotenv:
            load_dotenv()
        return cls(
            log_level=(os.getenv("CUEFLOW_LOG_LEVEL") or "INFO").strip().upper(),
            log_source_on_error=_env_flag("CUEFLOW_LOG_SOURCE_ON_ERROR", True),
            trace=_env_flag("CUEFLOW_TRACE", False),
        )


_settings: Optional[ExpressionSettings] = None


def get_settings() -> ExpressionSettings:
    """Return the process settings, loading them from the environment once."""
    global _settings
    if _settings is None:
        _settings = ExpressionSettings.from_env()
    return _settings


def set_settings(settings: Optional[ExpressionSettings]) -> None:
    """Override (or with ``None`` forget) the cached settings."""
    global _settings
    _settings = settings


def configure_logging(settings: Optional[ExpressionSettings] = None) -> None:
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


__all__ = [
    "ExpressionSettings",
    "LOG_FORMAT",
    "configure_logging",
    "get_settings",
    "set_settings",
]
