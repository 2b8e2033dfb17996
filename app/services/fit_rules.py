"""Rules that turn a try-on result into a fit analysis."""

from __future__ import annotations

import hashlib
import json
import random
from typing import Callable

from app.models import FitAnalysisResult, LengthFit, OverallFit, RegionFit, TryOnResult
from app.texts import messages as msg

AnalysisRule = Callable[[TryOnResult], FitAnalysisResult]

_PERFECT_TEXTS = frozenset(
    text for (_, category), text in msg.RECOMMENDATIONS.items() if category == "perfect"
)


def placeholder_analysis(result: TryOnResult) -> FitAnalysisResult:
    """Constant analysis, independent of the input."""

    return FitAnalysisResult(
        overall=OverallFit.GOOD,
        chest=RegionFit.PERFECT,
        waist=RegionFit.TIGHT,
        length=LengthFit.PERFECT,
        confidence=87,
        recommendations=(
            msg.RECOMMENDATIONS[("waist", "tight")],
            msg.RECOMMENDATIONS[("chest", "perfect")],
            msg.RECOMMENDATIONS[("length", "perfect")],
            msg.RECOMMENDATION_BY_OVERALL["good"],
        ),
    )


def request_seed(result: TryOnResult) -> int:
    """Stable seed for a product and measurement combination."""

    material = json.dumps(
        {
            "product": result.request.product_id,
            "measurements": result.request.measurements.to_payload(),
        },
        sort_keys=True,
    )
    return int.from_bytes(hashlib.sha256(material.encode("utf-8")).digest()[:8], "big")


def seeded_analysis(result: TryOnResult) -> FitAnalysisResult:
    """Pseudo-random analysis that is repeatable for the same request."""

    rng = random.Random(request_seed(result))
    chest = rng.choice(list(RegionFit))
    waist = rng.choice(list(RegionFit))
    length = rng.choice(list(LengthFit))
    overall = _overall_from_regions(chest, waist, length)
    mismatches = sum(
        1 for value in (chest, waist, length) if value.value != "perfect"
    )
    confidence = max(0, min(100, rng.randint(82, 96) - mismatches * rng.randint(3, 8)))
    recommendations = [
        msg.RECOMMENDATIONS[("waist", waist.value)],
        msg.RECOMMENDATIONS[("chest", chest.value)],
        msg.RECOMMENDATIONS[("length", length.value)],
        msg.RECOMMENDATION_BY_OVERALL[overall.value],
    ]
    # Problem areas first.
    recommendations.sort(key=lambda text: text in _PERFECT_TEXTS)
    return FitAnalysisResult(
        overall=overall,
        chest=chest,
        waist=waist,
        length=length,
        confidence=confidence,
        recommendations=tuple(recommendations),
    )


def _overall_from_regions(chest: RegionFit, waist: RegionFit, length: LengthFit) -> OverallFit:
    regions = (chest, waist)
    if all(value is RegionFit.PERFECT for value in regions) and length is LengthFit.PERFECT:
        return OverallFit.PERFECT
    tight = sum(1 for value in regions if value is RegionFit.TIGHT)
    loose = sum(1 for value in regions if value is RegionFit.LOOSE)
    if tight == 2:
        return OverallFit.TIGHT
    if loose == 2:
        return OverallFit.LOOSE
    return OverallFit.GOOD


ANALYSIS_RULES: dict[str, AnalysisRule] = {
    "placeholder": placeholder_analysis,
    "seeded": seeded_analysis,
}


__all__ = [
    "AnalysisRule",
    "ANALYSIS_RULES",
    "placeholder_analysis",
    "seeded_analysis",
    "request_seed",
]
