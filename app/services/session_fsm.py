"""Session store backed by the aiogram FSM storage of a chat."""

from __future__ import annotations

from typing import Any, Optional

from aiogram.fsm.context import FSMContext

from app.services.session_base import SessionStore

SESSION_DATA_KEY = "virtual_fit_session"


class FsmSessionStore(SessionStore):
    """Keep session slots inside the chat's FSM data.

    The slots live under a single key so they do not mix with other
    per-chat bookkeeping the bot keeps in the same storage.
    """

    def __init__(self, context: FSMContext) -> None:
        super().__init__()
        self._context = context

    async def _entries(self) -> dict[str, Any]:
        data = await self._context.get_data()
        entries = data.get(SESSION_DATA_KEY)
        return dict(entries) if isinstance(entries, dict) else {}

    async def _read(self, key: str) -> Optional[str]:
        value = (await self._entries()).get(key)
        return value if isinstance(value, str) else None

    async def _write(self, key: str, raw: str) -> None:
        entries = await self._entries()
        entries[key] = raw
        await self._context.update_data({SESSION_DATA_KEY: entries})

    async def _delete(self, key: str) -> None:
        entries = await self._entries()
        if entries.pop(key, None) is None:
            return
        await self._context.update_data({SESSION_DATA_KEY: entries})
