"""Application configuration loaded from environment variables."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

SESSION_BACKENDS = ("memory", "file", "fsm")
ANALYSIS_MODES = ("placeholder", "seeded")


@dataclass(frozen=True, slots=True)
class ProcessingConfig:
    """Latency and analysis settings of the simulated engine."""

    upload_delay_sec: float
    composite_delay_sec: float
    analyze_delay_sec: float
    analysis_mode: str


@dataclass(slots=True)
class Config:
    """Runtime configuration for the bot."""

    bot_token: Optional[str]
    session_backend: str
    sessions_root: Path
    max_photo_mb: int
    processing: ProcessingConfig
    log_level: str
    logs_dir: Path

    @property
    def max_photo_bytes(self) -> int:
        return self.max_photo_mb * 1024 * 1024

    def require_bot_token(self) -> str:
        if not self.bot_token:
            raise RuntimeError("Environment variable BOT_TOKEN is required")
        return self.bot_token


def _optional_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    if not stripped:
        return default
    return stripped


def _parse_int_env(name: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = _optional_env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer value") from None
    if minimum is not None and value < minimum:
        raise RuntimeError(f"{name} must be greater than or equal to {minimum}")
    return value


def _parse_float_env(name: str, default: float, *, minimum: float = 0.0) -> float:
    raw = _optional_env(name)
    if raw is None:
        return default
    try:
        value = float(raw.replace(",", "."))
    except ValueError:
        raise RuntimeError(f"{name} must be a number") from None
    if not math.isfinite(value) or value < minimum:
        raise RuntimeError(f"{name} must be a finite number >= {minimum:g}")
    return value


def _parse_choice_env(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = (_optional_env(name, default) or default).lower()
    if value not in choices:
        raise RuntimeError(f"{name} must be one of: {', '.join(choices)}")
    return value


def load_config(env_file: str | None = None) -> Config:
    """Load configuration from the provided .env file (or default location)."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    processing = ProcessingConfig(
        upload_delay_sec=_parse_float_env("UPLOAD_DELAY_SEC", 2.0),
        composite_delay_sec=_parse_float_env("COMPOSITE_DELAY_SEC", 3.0),
        analyze_delay_sec=_parse_float_env("ANALYZE_DELAY_SEC", 2.0),
        analysis_mode=_parse_choice_env("ANALYSIS_MODE", "placeholder", ANALYSIS_MODES),
    )
    log_level = (_optional_env("LOG_LEVEL", "INFO") or "INFO").upper()
    if log_level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
        raise RuntimeError("LOG_LEVEL must be a standard logging level name")

    return Config(
        bot_token=_optional_env("BOT_TOKEN"),
        session_backend=_parse_choice_env("SESSION_BACKEND", "fsm", SESSION_BACKENDS),
        sessions_root=Path(_optional_env("SESSIONS_ROOT", "./sessions") or "./sessions"),
        max_photo_mb=_parse_int_env("MAX_PHOTO_MB", 10, minimum=1),
        processing=processing,
        log_level=log_level,
        logs_dir=Path(_optional_env("LOGS_DIR", "./logs") or "./logs"),
    )


__all__ = ["Config", "ProcessingConfig", "load_config", "SESSION_BACKENDS", "ANALYSIS_MODES"]
