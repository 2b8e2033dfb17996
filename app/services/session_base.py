"""Session store interface."""

from __future__ import annotations

import abc
import json
from enum import Enum
from typing import Any, Optional

from logger import get_logger


class Slot(str, Enum):
    """Named entries persisted for one client session."""

    MEASUREMENTS = "measurements"
    PHOTO = "photo"
    TRY_ON_RESULT = "tryOnResult"


SLOT_KEYS: dict[Slot, str] = {
    Slot.MEASUREMENTS: "virtualFitMeasurements",
    Slot.PHOTO: "virtualFitUserImage",
    Slot.TRY_ON_RESULT: "virtualFitTryOnResult",
}


class SessionStore(abc.ABC):
    """Key-value store scoped to one session.

    Values are JSON-encoded at this boundary and nothing else: the store does
    not know what a slot should contain. A value that cannot be decoded reads
    back as absent.
    """

    def __init__(self) -> None:
        self._logger = get_logger("session.store")

    async def get(self, slot: Slot) -> Optional[Any]:
        raw = await self._read(SLOT_KEYS[slot])
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as exc:
            self._logger.warning(
                "Stored slot %s is not valid JSON: %s",
                slot.value,
                exc,
                extra={"stage": "SESSION_MALFORMED"},
            )
            return None

    async def set(self, slot: Slot, value: Any) -> None:
        await self._write(SLOT_KEYS[slot], json.dumps(value, ensure_ascii=False))

    async def clear(self, slot: Slot) -> None:
        await self._delete(SLOT_KEYS[slot])

    async def clear_all(self) -> None:
        for slot in Slot:
            await self.clear(slot)

    @abc.abstractmethod
    async def _read(self, key: str) -> Optional[str]:
        """Return the raw stored string for ``key`` or ``None``."""

    @abc.abstractmethod
    async def _write(self, key: str, raw: str) -> None:
        """Persist the raw string under ``key``."""

    @abc.abstractmethod
    async def _delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
