from datetime import datetime, timezone

import pytest

from app.models import (
    FitAnalysisResult,
    LengthFit,
    Measurements,
    OverallFit,
    RegionFit,
    TryOnRequest,
    TryOnResult,
    UserPhoto,
    parse_measurement,
    resolve_product,
)


MEASUREMENTS = {"height": 170, "weight": 65, "chest": 90, "waist": 75, "hips": 95, "shoulders": 40}


def test_parse_measurement_accepts_positive_numbers() -> None:
    assert parse_measurement("170") == 170.0
    assert parse_measurement(" 65,5 ") == 65.5
    assert parse_measurement(40) == 40.0


@pytest.mark.parametrize("value", ["", "abc", "0", "-3", "nan", "inf", True, 10**400])
def test_parse_measurement_rejects_invalid_values(value) -> None:
    with pytest.raises(ValueError):
        parse_measurement(value)


def test_measurements_payload_keeps_whole_numbers_as_ints() -> None:
    measurements = Measurements.from_payload({**MEASUREMENTS, "weight": "65.5"})

    payload = measurements.to_payload()

    assert payload["height"] == 170
    assert isinstance(payload["height"], int)
    assert payload["weight"] == 65.5


def test_measurements_payload_requires_every_field() -> None:
    partial = dict(MEASUREMENTS)
    partial.pop("hips")
    with pytest.raises(ValueError):
        Measurements.from_payload(partial)
    with pytest.raises(ValueError):
        Measurements.from_payload(["not", "a", "mapping"])


def test_user_photo_data_url_is_stable() -> None:
    photo = UserPhoto(data=b"\x89PNG-bytes", content_type="image/png")

    encoded = photo.to_data_url()
    decoded = UserPhoto.from_data_url(encoded)

    assert encoded.startswith("data:image/png;base64,")
    assert decoded.data == photo.data
    assert decoded.content_type == "image/png"


@pytest.mark.parametrize(
    "value",
    [
        None,
        "https://example.com/photo.png",
        "data:text/plain;base64,aGVsbG8=",
        "data:image/png,raw",
        "data:image/png;base64,!!!",
        "data:image/png;base64,",
    ],
)
def test_user_photo_rejects_malformed_data_urls(value) -> None:
    with pytest.raises(ValueError):
        UserPhoto.from_data_url(value)


def test_try_on_result_payload_uses_stored_field_names() -> None:
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    completed = datetime(2024, 5, 1, 12, 0, 3, tzinfo=timezone.utc)
    request = TryOnRequest(
        photo=UserPhoto(data=b"img", content_type="image/jpeg"),
        product_id="https://example.com/white-tshirt",
        measurements=Measurements.from_payload(MEASUREMENTS),
        created_at=created,
    )
    result = TryOnResult(request=request, completed_at=completed)

    payload = result.to_payload()

    assert set(payload) == {"userImage", "productUrl", "measurements", "timestamp", "completedAt"}
    assert payload["productUrl"] == "https://example.com/white-tshirt"
    assert payload["measurements"] == MEASUREMENTS
    restored = TryOnResult.from_payload(payload)
    assert restored.completed_at == completed
    assert restored.request.created_at == created
    assert restored.photo.data == b"img"


def test_try_on_result_without_completion_time_falls_back_to_creation() -> None:
    payload = {
        "userImage": "data:image/png;base64,aW1n",
        "productUrl": "https://example.com/black-dress",
        "measurements": MEASUREMENTS,
        "timestamp": "2024-05-01T12:00:00.000Z",
    }

    result = TryOnResult.from_payload(payload)

    assert result.completed_at == result.request.created_at
    assert result.completed_at.tzinfo is not None


def test_fit_analysis_result_validates_ranges() -> None:
    result = FitAnalysisResult(
        overall="good",
        chest="perfect",
        waist="tight",
        length="perfect",
        confidence=87,
        recommendations=["Size up"],
    )
    assert result.overall is OverallFit.GOOD
    assert result.waist is RegionFit.TIGHT
    assert result.length is LengthFit.PERFECT
    assert result.recommendations == ("Size up",)

    with pytest.raises(ValueError):
        FitAnalysisResult("good", "perfect", "tight", "perfect", 101, ("x",))
    with pytest.raises(ValueError):
        FitAnalysisResult("good", "perfect", "tight", "perfect", 50, ())
    with pytest.raises(ValueError):
        FitAnalysisResult("great", "perfect", "tight", "perfect", 50, ("x",))


def test_resolve_product_maps_sample_ids() -> None:
    assert resolve_product("white-tshirt") == "https://example.com/white-tshirt"
    assert resolve_product(" https://shop.example.com/item ") == "https://shop.example.com/item"
    assert resolve_product("   ") == ""
