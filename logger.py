from __future__ import annotations

import json
import logging
import os
from contextvars import ContextVar
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping

from rich.console import Console
from rich.logging import RichHandler


_REQUEST_ID: ContextVar[str | None] = ContextVar("request_id", default=None)
_SESSION_ID: ContextVar[int | str | None] = ContextVar("session_id", default=None)

# Record attribute -> label used in the compact context suffix.
_CONTEXT_FIELDS: tuple[tuple[str, str], ...] = (
    ("request_id", "rid"),
    ("session_id", "session"),
    ("stage", "stage"),
)
_SILENCED_LOGGERS = ("aiogram", "aiogram.event", "aiogram.dispatcher", "PIL")
_LOG_FILE_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5


class _ContextLoggerAdapter(logging.LoggerAdapter):
    """Adapter that accepts ``session_id``/``stage``/``payload`` keywords.

    Anything not passed explicitly is filled from the context bound with
    :func:`bind_context`.
    """

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        extra: Dict[str, Any] = dict(kwargs.get("extra") or {})
        extra.setdefault("module_name", self.extra.get("module_name") or self.logger.name)

        for key in ("request_id", "session_id", "stage", "payload"):
            value = kwargs.pop(key, None)
            if value is None:
                value = extra.pop(key, None)
            if value is None and key == "request_id":
                value = _REQUEST_ID.get()
            if value is None and key == "session_id":
                value = _SESSION_ID.get()
            if value is not None:
                extra[key] = value

        kwargs["extra"] = extra
        return msg, kwargs


class _CompactFormatter(logging.Formatter):
    """One-line records: ``[time] [LEVEL] [module] message (context)``."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        module_name = getattr(record, "module_name", record.name)
        header = f"[{self.formatTime(record, self.datefmt)}] [{record.levelname}] [{module_name}]"

        context = [
            f"{label}={value}"
            for attr, label in _CONTEXT_FIELDS
            if (value := getattr(record, attr, None))
        ]
        payload = _stringify_payload(getattr(record, "payload", None))
        if payload:
            context.append(payload)
        if context:
            message = f"{message} ({', '.join(context)})"

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f"{message}\n{record.exc_text}"
        return f"{header} {message}"


def _stringify_payload(payload: Any) -> str:
    if not payload:
        return ""
    if isinstance(payload, str):
        return payload
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(payload)


class _DomainInfoFilter(logging.Filter):
    """Let INFO through only for records flagged as workflow milestones."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno != logging.INFO or bool(getattr(record, "domain", False))


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(logs_dir: Path | None = None, *, level: str | int | None = None) -> logging.Logger:
    """Install console and rotating file handlers on the root logger once."""

    root = logging.getLogger()
    if getattr(root, "_virtual_fit_configured", False):
        return root

    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(_resolve_level(level))

    console_handler = RichHandler(
        console=Console(),
        rich_tracebacks=True,
        show_time=False,
        show_level=False,
        show_path=False,
        markup=False,
    )
    console_handler.setFormatter(_CompactFormatter(datefmt="%H:%M:%S"))
    if os.getenv("LOG_NOISE", "low").strip().lower() != "debug":
        console_handler.addFilter(_DomainInfoFilter())

    target_dir = logs_dir or Path(__file__).resolve().parent / "logs"
    target_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        target_dir / "virtual_fit.log",
        maxBytes=_LOG_FILE_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setFormatter(_CompactFormatter(datefmt="%Y-%m-%d %H:%M:%S"))

    root.addHandler(console_handler)
    root.addHandler(file_handler)
    for name in _SILENCED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root._virtual_fit_configured = True  # type: ignore[attr-defined]
    return root


@lru_cache(maxsize=None)
def get_logger(name: str) -> logging.LoggerAdapter:
    return _ContextLoggerAdapter(logging.getLogger(name), {"module_name": name})


def log_event(
    level: str | int,
    module: str,
    message: str,
    *,
    session_id: int | str | None = None,
    stage: str | None = None,
    extra: Mapping[str, Any] | None = None,
    exc_info: Any | None = None,
    domain: bool = False,
) -> None:
    """Log ``message`` with optional context; ``extra`` becomes the payload."""

    record_extra: Dict[str, Any] = {"domain": domain}
    if extra:
        record_extra["payload"] = dict(extra)
    get_logger(module).log(
        _resolve_level(level),
        message,
        exc_info=exc_info,
        extra=record_extra,
        session_id=session_id,
        stage=stage,
    )


def info_domain(
    module: str,
    message: str,
    *,
    stage: str | None = None,
    session_id: int | str | None = None,
    **context: Any,
) -> None:
    """Log a workflow milestone that stays visible on the console."""

    log_event(
        logging.INFO,
        module,
        message,
        session_id=session_id,
        stage=stage,
        extra=context or None,
        domain=True,
    )


def bind_context(*, request_id: str | None = None, session_id: int | str | None = None) -> Dict[str, Any]:
    tokens: Dict[str, Any] = {}
    if request_id is not None:
        tokens["request_id"] = _REQUEST_ID.set(request_id)
    if session_id is not None:
        tokens["session_id"] = _SESSION_ID.set(session_id)
    return tokens


def reset_context(tokens: Mapping[str, Any]) -> None:
    for key, var in (("request_id", _REQUEST_ID), ("session_id", _SESSION_ID)):
        token = tokens.get(key)
        if token is not None:
            var.reset(token)


__all__ = [
    "setup_logging",
    "get_logger",
    "info_domain",
    "log_event",
    "bind_context",
    "reset_context",
]
