"""In-memory session store."""

from __future__ import annotations

from typing import Optional

from app.services.session_base import SessionStore


class MemorySessionStore(SessionStore):
    """Keep session slots in a plain dict for the lifetime of the object."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        super().__init__()
        self.raw: dict[str, str] = dict(initial or {})

    async def _read(self, key: str) -> Optional[str]:
        return self.raw.get(key)

    async def _write(self, key: str, raw: str) -> None:
        self.raw[key] = raw

    async def _delete(self, key: str) -> None:
        self.raw.pop(key, None)
