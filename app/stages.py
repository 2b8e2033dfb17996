"""Workflow stages and their routed paths."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Stage(str, Enum):
    """The five steps of the try-on workflow, in order."""

    HOME = "home"
    MEASUREMENTS = "measurements"
    UPLOAD = "upload"
    TRY_ON = "try_on"
    FIT_ANALYSIS = "fit_analysis"


STAGE_ORDER: tuple[Stage, ...] = (
    Stage.HOME,
    Stage.MEASUREMENTS,
    Stage.UPLOAD,
    Stage.TRY_ON,
    Stage.FIT_ANALYSIS,
)

STAGE_PATHS: dict[Stage, str] = {
    Stage.HOME: "/",
    Stage.MEASUREMENTS: "/measurements",
    Stage.UPLOAD: "/upload",
    Stage.TRY_ON: "/try-on",
    Stage.FIT_ANALYSIS: "/fit-analysis",
}

STAGE_LABELS: dict[Stage, str] = {
    Stage.HOME: "Home",
    Stage.MEASUREMENTS: "Measurements",
    Stage.UPLOAD: "Upload",
    Stage.TRY_ON: "Try-On",
    Stage.FIT_ANALYSIS: "Fit Analysis",
}

_PATH_INDEX = {path: stage for stage, path in STAGE_PATHS.items()}


def path_for_stage(stage: Stage) -> str:
    return STAGE_PATHS[stage]


def stage_for_path(path: Optional[str]) -> Stage | None:
    """Resolve a routed path (or bare slug) to its stage.

    Accepts ``/try-on``, ``try-on``, ``/try-on/`` and the stage value
    ``try_on``. Unknown paths resolve to ``None``.
    """

    if path is None:
        return None
    raw = path.strip().lower()
    if not raw:
        return None
    raw = raw.split("?", 1)[0].split("#", 1)[0]
    normalized = "/" + raw.strip("/")
    stage = _PATH_INDEX.get(normalized)
    if stage is not None:
        return stage
    try:
        return Stage(raw.strip("/").replace("-", "_"))
    except ValueError:
        return None


def stage_index(stage: Stage) -> int:
    return STAGE_ORDER.index(stage)


def previous_stage(stage: Stage) -> Stage:
    """Return the stage a "back" action leads to; Home stays on Home."""

    index = stage_index(stage)
    return STAGE_ORDER[max(index - 1, 0)]


def is_forward(current: Stage, target: Stage) -> bool:
    return stage_index(target) > stage_index(current)


__all__ = [
    "Stage",
    "STAGE_ORDER",
    "STAGE_PATHS",
    "STAGE_LABELS",
    "path_for_stage",
    "stage_for_path",
    "stage_index",
    "previous_stage",
    "is_forward",
]
