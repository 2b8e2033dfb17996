import asyncio
import base64
import io

import pytest
from PIL import Image

from app.errors import MissingPrerequisiteState, OversizedAsset, ValidationError
from app.gate import MAX_PHOTO_BYTES, StageGate
from app.services.session_base import Slot
from app.services.session_memory import MemorySessionStore
from app.stages import Stage
from app.texts import messages as msg


VALID_FORM = {
    "height": "170",
    "weight": "65",
    "chest": "90",
    "waist": "75",
    "hips": "95",
    "shoulders": "40",
}


def _png_bytes(size: tuple[int, int] = (4, 6)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def _photo_url() -> str:
    return "data:image/png;base64," + base64.b64encode(_png_bytes()).decode("ascii")


def test_home_measurements_and_upload_are_always_enterable() -> None:
    gate = StageGate(MemorySessionStore())

    async def scenario() -> None:
        for stage in (Stage.HOME, Stage.MEASUREMENTS, Stage.UPLOAD):
            decision = await gate.can_enter(stage)
            assert decision.allowed
            assert decision.redirect_to is None

    asyncio.run(scenario())


def test_try_on_requires_photo_and_measurements() -> None:
    store = MemorySessionStore()
    gate = StageGate(store)

    async def scenario() -> None:
        await store.set(Slot.MEASUREMENTS, {key: int(value) for key, value in VALID_FORM.items()})
        decision = await gate.can_enter(Stage.TRY_ON)
        assert not decision.allowed
        assert decision.redirect_to is Stage.MEASUREMENTS
        assert isinstance(decision.notice, MissingPrerequisiteState)
        assert decision.notice.title == msg.MISSING_PROFILE_TITLE

        await store.set(Slot.PHOTO, _photo_url())
        assert (await gate.can_enter(Stage.TRY_ON)).allowed

    asyncio.run(scenario())


def test_fit_analysis_without_result_redirects_to_try_on() -> None:
    gate = StageGate(MemorySessionStore())

    async def scenario() -> None:
        decision = await gate.can_enter(Stage.FIT_ANALYSIS)
        assert not decision.allowed
        assert decision.redirect_to is Stage.TRY_ON
        assert decision.notice.redirect_to is Stage.TRY_ON

    asyncio.run(scenario())


def test_upload_submission_requires_measurements() -> None:
    gate = StageGate(MemorySessionStore())

    async def scenario() -> None:
        decision = await gate.can_proceed(Stage.UPLOAD)
        assert not decision.allowed
        assert decision.redirect_to is Stage.MEASUREMENTS
        assert decision.notice.title == msg.MISSING_MEASUREMENTS_TITLE

    asyncio.run(scenario())


def test_malformed_slots_read_as_absent() -> None:
    store = MemorySessionStore(
        {
            "virtualFitMeasurements": '{"height": 170}',
            "virtualFitUserImage": '"not a data url"',
            "virtualFitTryOnResult": "[]",
        }
    )
    gate = StageGate(store)

    async def scenario() -> None:
        assert await gate.load_measurements() is None
        assert await gate.load_photo() is None
        assert await gate.load_try_on_result() is None
        assert (await gate.can_enter(Stage.FIT_ANALYSIS)).redirect_to is Stage.TRY_ON

    asyncio.run(scenario())
    assert "virtualFitMeasurements" in store.raw


def test_validate_measurements_reports_blank_fields() -> None:
    gate = StageGate(MemorySessionStore())
    form = dict(VALID_FORM, waist="   ", hips="")

    with pytest.raises(ValidationError) as excinfo:
        gate.validate_measurements(form)

    assert excinfo.value.title == msg.MISSING_FIELDS_TITLE
    assert excinfo.value.fields == ("waist", "hips")


def test_validate_measurements_reports_non_numeric_fields() -> None:
    gate = StageGate(MemorySessionStore())

    with pytest.raises(ValidationError) as excinfo:
        gate.validate_measurements(dict(VALID_FORM, chest="abc", shoulders="-1"))

    assert excinfo.value.title == msg.INVALID_NUMBER_TITLE
    assert excinfo.value.fields == ("chest", "shoulders")


def test_validate_measurements_parses_decimal_commas() -> None:
    gate = StageGate(MemorySessionStore())

    measurements = gate.validate_measurements(dict(VALID_FORM, weight="65,5"))

    assert measurements.weight == 65.5
    assert measurements.height == 170


def test_validate_photo_rejects_oversized_payload() -> None:
    gate = StageGate(MemorySessionStore())
    payload = b"\x89PNG" + b"\0" * (12 * 1024 * 1024)

    with pytest.raises(OversizedAsset) as excinfo:
        gate.validate_photo(payload, content_type="image/png")

    assert excinfo.value.kind == "OversizedAsset"
    assert excinfo.value.limit == MAX_PHOTO_BYTES
    assert excinfo.value.size == len(payload)
    assert isinstance(excinfo.value, ValidationError)


def test_validate_photo_checks_content() -> None:
    gate = StageGate(MemorySessionStore())

    with pytest.raises(ValidationError) as empty:
        gate.validate_photo(b"")
    assert empty.value.title == msg.NO_IMAGE_TITLE

    with pytest.raises(ValidationError) as declared:
        gate.validate_photo(_png_bytes(), content_type="application/pdf")
    assert declared.value.title == msg.NOT_AN_IMAGE_TITLE

    with pytest.raises(ValidationError) as garbage:
        gate.validate_photo(b"plain text pretending to be a photo", content_type="image/jpeg")
    assert garbage.value.title == msg.NOT_AN_IMAGE_TITLE

    photo = gate.validate_photo(_png_bytes(), content_type="image/jpeg", filename="me.png")
    assert photo.content_type == "image/png"
    assert photo.filename == "me.png"


def test_validate_photo_honours_custom_limit() -> None:
    gate = StageGate(MemorySessionStore(), max_photo_bytes=16)

    with pytest.raises(OversizedAsset):
        gate.validate_photo(_png_bytes())


def test_validate_photo_uses_reported_size_when_bytes_are_missing() -> None:
    gate = StageGate(MemorySessionStore())

    with pytest.raises(OversizedAsset) as excinfo:
        gate.validate_photo(b"", content_type="image/jpeg", size=25 * 1024 * 1024)
    assert excinfo.value.size == 25 * 1024 * 1024

    with pytest.raises(ValidationError) as small:
        gate.validate_photo(b"", size=1024)
    assert small.value.title == msg.NO_IMAGE_TITLE


def test_validate_product_resolves_samples_and_rejects_blank() -> None:
    gate = StageGate(MemorySessionStore())

    assert gate.validate_product("denim-jacket") == "https://example.com/denim-jacket"
    assert gate.validate_product(" https://shop.example.com/a ") == "https://shop.example.com/a"
    with pytest.raises(ValidationError) as excinfo:
        gate.validate_product("   ")
    assert excinfo.value.title == msg.PRODUCT_REQUIRED_TITLE
