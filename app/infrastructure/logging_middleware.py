from __future__ import annotations

import time
import uuid
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware

from logger import bind_context, get_logger, reset_context

_logger = get_logger("bot.updates")


def _session_key(data: dict[str, Any]) -> int | None:
    # One workflow session per chat; fall back to the sender for chatless updates.
    for source in ("event_chat", "event_from_user"):
        identifier = getattr(data.get(source), "id", None)
        if identifier is not None:
            return identifier
    return None


class LoggingMiddleware(BaseMiddleware):
    """Bind a short request id and the chat session to every update's log records."""

    async def __call__(
        self,
        handler: Callable[[Any, dict[str, Any]], Awaitable[Any]],
        event: Any,
        data: dict[str, Any],
    ) -> Any:
        request_id = uuid.uuid4().hex[:8]
        session_id = _session_key(data)
        data["request_id"] = request_id
        if session_id is not None:
            data["session_id"] = session_id

        tokens = bind_context(request_id=request_id, session_id=session_id)
        started = time.perf_counter()
        try:
            return await handler(event, data)
        except Exception:
            _logger.exception("Update handling failed", stage="UPDATE_FAILED")
            raise
        finally:
            _logger.debug(
                "Update handled in %.1f ms",
                (time.perf_counter() - started) * 1000,
                stage="UPDATE_DONE",
            )
            reset_context(tokens)
