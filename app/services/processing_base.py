"""Processing engine interface."""

from __future__ import annotations

import abc
from enum import Enum

from app.models import FitAnalysisResult, TryOnRequest, TryOnResult, UserPhoto


class ProcessingState(str, Enum):
    """Lifecycle shared by every processing operation."""

    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETE = "complete"


class Operation(str, Enum):
    INGEST = "ingest"
    COMPOSITE = "composite"
    ANALYZE = "analyze"


class ProcessingEngine(abc.ABC):
    """Interface for the try-on processing backend."""

    @abc.abstractmethod
    async def ingest(self, photo: UserPhoto) -> UserPhoto:
        """Prepare an uploaded photo for try-on."""

    @abc.abstractmethod
    async def composite(self, request: TryOnRequest) -> TryOnResult:
        """Place the requested garment onto the user photo."""

    @abc.abstractmethod
    async def analyze(self, result: TryOnResult) -> FitAnalysisResult:
        """Estimate how the garment fits the stored measurements."""
