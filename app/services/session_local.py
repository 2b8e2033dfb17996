"""Local filesystem session store implementation."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Optional

from app.services.session_base import SessionStore


def _session_filename(session_id: str) -> str:
    safe = "".join(ch for ch in session_id if ch.isalnum() or ch in {"_", "-", "."}).lstrip(".")
    return f"{safe or 'default'}.json"


class FileSessionStore(SessionStore):
    """Store one session as a JSON object on disk.

    Each key maps to the raw string written by :class:`SessionStore`, so a
    damaged value in one slot does not affect the others.
    """

    def __init__(self, sessions_root: Path, session_id: str) -> None:
        super().__init__()
        sessions_root.mkdir(parents=True, exist_ok=True)
        self._path = sessions_root / _session_filename(str(session_id))

    @property
    def path(self) -> Path:
        return self._path

    async def _read(self, key: str) -> Optional[str]:
        entries = await asyncio.to_thread(self._load_sync)
        value = entries.get(key)
        return value if isinstance(value, str) else None

    async def _write(self, key: str, raw: str) -> None:
        await asyncio.to_thread(self._update_sync, key, raw)

    async def _delete(self, key: str) -> None:
        await asyncio.to_thread(self._update_sync, key, None)

    def _load_sync(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            self._logger.warning(
                "Session file %s is unreadable: %s",
                self._path.name,
                exc,
                extra={"stage": "SESSION_MALFORMED"},
            )
            return {}
        return data if isinstance(data, dict) else {}

    def _update_sync(self, key: str, raw: Optional[str]) -> None:
        entries = self._load_sync()
        if raw is None:
            if key not in entries:
                return
            entries.pop(key, None)
        else:
            entries[key] = raw
        tmp_path = self._path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(entries, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self._path)
