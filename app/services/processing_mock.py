"""Simulated processing engine with fixed latency."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable

from app.models import FitAnalysisResult, TryOnRequest, TryOnResult, UserPhoto
from app.services.fit_rules import AnalysisRule, placeholder_analysis
from app.services.processing_base import ProcessingEngine


class SimulatedProcessingEngine(ProcessingEngine):
    """Stand-in for an inference backend.

    Every operation suspends for its configured delay and then returns a
    result of the right shape. Nothing is computed from the pixels: the
    composite references the same photo, and the analysis comes from
    ``analysis_rule``.
    """

    def __init__(
        self,
        *,
        upload_delay: float = 2.0,
        composite_delay: float = 3.0,
        analyze_delay: float = 2.0,
        analysis_rule: AnalysisRule = placeholder_analysis,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._upload_delay = max(upload_delay, 0.0)
        self._composite_delay = max(composite_delay, 0.0)
        self._analyze_delay = max(analyze_delay, 0.0)
        self._analysis_rule = analysis_rule
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def ingest(self, photo: UserPhoto) -> UserPhoto:
        await asyncio.sleep(self._upload_delay)
        return photo

    async def composite(self, request: TryOnRequest) -> TryOnResult:
        await asyncio.sleep(self._composite_delay)
        return TryOnResult(request=request, completed_at=self._clock())

    async def analyze(self, result: TryOnResult) -> FitAnalysisResult:
        await asyncio.sleep(self._analyze_delay)
        return self._analysis_rule(result)
