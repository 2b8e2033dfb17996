"""Deep link helpers."""

from __future__ import annotations

from typing import Optional

from app.stages import Stage, path_for_stage, stage_for_path


def stage_slug(stage: Stage) -> str:
    """Slug used as ``/start`` payload for the stage (``home`` for the root)."""

    return path_for_stage(stage).strip("/") or "home"


def build_stage_link(bot_username: str, stage: Stage) -> str:
    """Construct a deep link that opens the bot on the given stage."""

    return f"https://t.me/{bot_username.lstrip('@')}?start={stage_slug(stage)}"


def parse_stage_payload(payload: Optional[str]) -> Stage | None:
    """Resolve a ``/start`` payload back to its stage."""

    if payload is None:
        return None
    cleaned = payload.strip()
    if cleaned.lower() == "home":
        return Stage.HOME
    return stage_for_path(cleaned)
