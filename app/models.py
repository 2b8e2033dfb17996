"""Domain models used by the workflow."""

from __future__ import annotations

import base64
import binascii
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional


MEASUREMENT_FIELDS: tuple[str, ...] = ("height", "weight", "chest", "waist", "hips", "shoulders")

MEASUREMENT_UNITS: dict[str, str] = {
    "height": "cm",
    "weight": "kg",
    "chest": "cm",
    "waist": "cm",
    "hips": "cm",
    "shoulders": "cm",
}

MEASUREMENT_LABELS: dict[str, str] = {
    "height": "Height",
    "weight": "Weight",
    "chest": "Chest",
    "waist": "Waist",
    "hips": "Hips",
    "shoulders": "Shoulders",
}


def parse_measurement(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a measurement")
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).strip().replace(",", "."))
    except OverflowError:
        raise ValueError("measurement is out of range") from None
    if not math.isfinite(number) or number <= 0:
        raise ValueError(f"{value!r} is not a positive number")
    return number


def _format_number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


@dataclass(frozen=True, slots=True)
class Measurements:
    """Body measurements; weight in kg, everything else in cm."""

    height: float
    weight: float
    chest: float
    waist: float
    hips: float
    shoulders: float

    def to_payload(self) -> dict[str, int | float]:
        return {name: _format_number(getattr(self, name)) for name in MEASUREMENT_FIELDS}

    @classmethod
    def from_payload(cls, payload: Any) -> "Measurements":
        if not isinstance(payload, Mapping):
            raise ValueError("measurements payload must be an object")
        values: dict[str, float] = {}
        for name in MEASUREMENT_FIELDS:
            if name not in payload:
                raise ValueError(f"measurement {name} is missing")
            values[name] = parse_measurement(payload[name])
        return cls(**values)


@dataclass(frozen=True, slots=True)
class UserPhoto:
    """Uploaded image payload kept verbatim."""

    data: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"

    @classmethod
    def from_data_url(cls, value: Any) -> "UserPhoto":
        if not isinstance(value, str) or not value.startswith("data:"):
            raise ValueError("photo must be a data URL")
        header, sep, encoded = value.partition(",")
        if not sep or not header.endswith(";base64"):
            raise ValueError("photo data URL must be base64 encoded")
        content_type = header[len("data:") : -len(";base64")]
        if not content_type.startswith("image/"):
            raise ValueError(f"unsupported content type {content_type!r}")
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"photo payload is not valid base64: {exc}") from None
        if not data:
            raise ValueError("photo payload is empty")
        return cls(data=data, content_type=content_type)


@dataclass(frozen=True, slots=True)
class TryOnRequest:
    """Everything needed to composite a garment onto the user photo."""

    photo: UserPhoto
    product_id: str
    measurements: Measurements
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class TryOnResult:
    """Completed try-on; embeds the originating request."""

    request: TryOnRequest
    completed_at: datetime

    @property
    def photo(self) -> UserPhoto:
        return self.request.photo

    @property
    def product_id(self) -> str:
        return self.request.product_id

    def to_payload(self) -> dict[str, Any]:
        return {
            "userImage": self.request.photo.to_data_url(),
            "productUrl": self.request.product_id,
            "measurements": self.request.measurements.to_payload(),
            "timestamp": self.request.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat(),
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "TryOnResult":
        if not isinstance(payload, Mapping):
            raise ValueError("try-on result payload must be an object")
        product_id = str(payload.get("productUrl") or "").strip()
        if not product_id:
            raise ValueError("try-on result has no product")
        created_at = _parse_timestamp(payload.get("timestamp"))
        completed_raw = payload.get("completedAt")
        completed_at = _parse_timestamp(completed_raw) if completed_raw else created_at
        request = TryOnRequest(
            photo=UserPhoto.from_data_url(payload.get("userImage")),
            product_id=product_id,
            measurements=Measurements.from_payload(payload.get("measurements")),
            created_at=created_at,
        )
        return cls(request=request, completed_at=completed_at)


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("timestamp is missing")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class OverallFit(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    LOOSE = "loose"
    TIGHT = "tight"


class RegionFit(str, Enum):
    PERFECT = "perfect"
    LOOSE = "loose"
    TIGHT = "tight"


class LengthFit(str, Enum):
    PERFECT = "perfect"
    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True, slots=True)
class FitAnalysisResult:
    """Outcome of the fit analysis step."""

    overall: OverallFit
    chest: RegionFit
    waist: RegionFit
    length: LengthFit
    confidence: int
    recommendations: tuple[str, ...]

    def __post_init__(self) -> None:
        # Coerce raw strings so rules may return plain values.
        object.__setattr__(self, "overall", OverallFit(self.overall))
        object.__setattr__(self, "chest", RegionFit(self.chest))
        object.__setattr__(self, "waist", RegionFit(self.waist))
        object.__setattr__(self, "length", LengthFit(self.length))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"confidence {self.confidence} is outside [0, 100]")
        if not self.recommendations or not all(
            isinstance(item, str) and item.strip() for item in self.recommendations
        ):
            raise ValueError("recommendations must be a non-empty list of strings")

    def to_payload(self) -> dict[str, Any]:
        return {
            "overall": self.overall.value,
            "chest": self.chest.value,
            "waist": self.waist.value,
            "length": self.length.value,
            "confidence": self.confidence,
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True, slots=True)
class SampleProduct:
    """Quick-pick garment offered on the try-on stage."""

    sample_id: str
    name: str
    url: str
    icon: str


SAMPLE_PRODUCTS: tuple[SampleProduct, ...] = (
    SampleProduct("white-tshirt", "Classic White T-Shirt", "https://example.com/white-tshirt", "👕"),
    SampleProduct("denim-jacket", "Blue Denim Jacket", "https://example.com/denim-jacket", "🧥"),
    SampleProduct("black-dress", "Black Dress", "https://example.com/black-dress", "👗"),
)


def find_sample(sample_id: str) -> SampleProduct | None:
    key = (sample_id or "").strip().lower()
    for product in SAMPLE_PRODUCTS:
        if product.sample_id == key:
            return product
    return None


def resolve_product(identifier: str) -> str:
    """Map a sample id to its URL; anything else is returned trimmed."""

    sample = find_sample(identifier)
    if sample is not None:
        return sample.url
    return (identifier or "").strip()
