"""Stage prerequisites and submission validation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, TypeVar

from app.errors import (
    MalformedPersistedState,
    MissingPrerequisiteState,
    OversizedAsset,
    ValidationError,
)
from app.models import (
    MEASUREMENT_FIELDS,
    Measurements,
    TryOnResult,
    UserPhoto,
    parse_measurement,
    resolve_product,
)
from app.services.image_io import detect_image_type
from app.services.session_base import SessionStore, Slot
from app.stages import Stage
from app.texts import messages as msg
from logger import get_logger

T = TypeVar("T")

MAX_PHOTO_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class GateDecision:
    """Whether a stage may be entered and where to go otherwise."""

    allowed: bool
    redirect_to: Optional[Stage] = None
    notice: Optional[MissingPrerequisiteState] = None


ALLOWED = GateDecision(allowed=True)


class StageGate:
    """Inspect the session store on behalf of the workflow controller."""

    def __init__(self, store: SessionStore, *, max_photo_bytes: int = MAX_PHOTO_BYTES) -> None:
        self._store = store
        self._max_photo_bytes = max_photo_bytes
        self._logger = get_logger("workflow.gate")

    @property
    def max_photo_bytes(self) -> int:
        return self._max_photo_bytes

    async def load_measurements(self) -> Optional[Measurements]:
        return await self._load(Slot.MEASUREMENTS, Measurements.from_payload)

    async def load_photo(self) -> Optional[UserPhoto]:
        return await self._load(Slot.PHOTO, UserPhoto.from_data_url)

    async def load_try_on_result(self) -> Optional[TryOnResult]:
        return await self._load(Slot.TRY_ON_RESULT, TryOnResult.from_payload)

    async def _load(self, slot: Slot, decoder: Callable[[Any], T]) -> Optional[T]:
        payload = await self._store.get(slot)
        if payload is None:
            return None
        try:
            return decoder(payload)
        except (TypeError, ValueError, OverflowError) as exc:
            error = MalformedPersistedState(slot.value, str(exc))
            self._logger.warning(
                "Ignoring malformed slot %s: %s",
                slot.value,
                error.description,
                extra={"stage": "SESSION_MALFORMED"},
            )
            return None

    async def can_enter(self, stage: Stage) -> GateDecision:
        if stage is Stage.TRY_ON:
            photo = await self.load_photo()
            measurements = await self.load_measurements()
            if photo is None or measurements is None:
                return _redirect(
                    Stage.MEASUREMENTS, msg.MISSING_PROFILE_TITLE, msg.MISSING_PROFILE_TEXT
                )
        elif stage is Stage.FIT_ANALYSIS:
            if await self.load_try_on_result() is None:
                return _redirect(Stage.TRY_ON, msg.MISSING_TRY_ON_TITLE, msg.MISSING_TRY_ON_TEXT)
        return ALLOWED

    async def can_proceed(self, stage: Stage) -> GateDecision:
        """Check the state a stage needs before its submission may advance."""

        if stage is Stage.UPLOAD and await self.load_measurements() is None:
            return _redirect(
                Stage.MEASUREMENTS,
                msg.MISSING_MEASUREMENTS_TITLE,
                msg.MISSING_MEASUREMENTS_TEXT,
            )
        if stage in {Stage.TRY_ON, Stage.FIT_ANALYSIS}:
            return await self.can_enter(stage)
        return ALLOWED

    def validate_measurements(self, form: Mapping[str, Any]) -> Measurements:
        blank = [name for name in MEASUREMENT_FIELDS if not _text(form.get(name))]
        if blank:
            raise ValidationError(
                msg.MISSING_FIELDS_TITLE, msg.MISSING_FIELDS_TEXT, fields=tuple(blank)
            )
        values: dict[str, str] = {name: _text(form.get(name)) for name in MEASUREMENT_FIELDS}
        invalid: list[str] = []
        for name, value in values.items():
            try:
                parse_measurement(value)
            except ValueError:
                invalid.append(name)
        if invalid:
            raise ValidationError(
                msg.INVALID_NUMBER_TITLE,
                msg.INVALID_NUMBER_TEXT.format(fields=", ".join(invalid)),
                fields=tuple(invalid),
            )
        return Measurements.from_payload(values)

    def validate_photo(
        self,
        data: Optional[bytes],
        *,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
        size: Optional[int] = None,
    ) -> UserPhoto:
        size = len(data) if data else (size or 0)
        if size > self._max_photo_bytes:
            raise OversizedAsset(
                msg.FILE_TOO_LARGE_TITLE,
                msg.FILE_TOO_LARGE_TEXT.format(limit_mb=self._max_photo_bytes // (1024 * 1024)),
                size=size,
                limit=self._max_photo_bytes,
            )
        if not data:
            raise ValidationError(msg.NO_IMAGE_TITLE, msg.NO_IMAGE_TEXT)
        if content_type and not content_type.lower().startswith("image/"):
            raise ValidationError(msg.NOT_AN_IMAGE_TITLE, msg.NOT_AN_IMAGE_TEXT)
        detected = detect_image_type(data)
        if detected is None:
            raise ValidationError(msg.NOT_AN_IMAGE_TITLE, msg.NOT_AN_IMAGE_TEXT)
        return UserPhoto(data=bytes(data), content_type=detected, filename=filename)

    def validate_product(self, identifier: Any) -> str:
        product = resolve_product(_text(identifier))
        if not product:
            raise ValidationError(msg.PRODUCT_REQUIRED_TITLE, msg.PRODUCT_REQUIRED_TEXT)
        return product


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _redirect(stage: Stage, title: str, description: str) -> GateDecision:
    notice = MissingPrerequisiteState(title, description, redirect_to=stage)
    return GateDecision(allowed=False, redirect_to=stage, notice=notice)


__all__ = ["GateDecision", "StageGate", "MAX_PHOTO_BYTES"]
