"""Domain errors raised inside the workflow and turned into render state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from app.stages import Stage


class WorkflowError(Exception):
    """Base class for recoverable workflow errors.

    Every error carries a short ``title`` and a longer ``description`` that the
    presentation layer shows as-is.
    """

    kind = "WorkflowError"

    def __init__(self, title: str, description: str = "") -> None:
        super().__init__(description or title)
        self.title = title
        self.description = description


class ValidationError(WorkflowError):
    """Incomplete or invalid form input; the stage does not advance."""

    kind = "ValidationError"

    def __init__(
        self,
        title: str,
        description: str = "",
        *,
        fields: tuple[str, ...] = (),
    ) -> None:
        super().__init__(title, description)
        self.fields = fields


class OversizedAsset(ValidationError):
    """Uploaded photo exceeds the configured size ceiling."""

    kind = "OversizedAsset"

    def __init__(self, title: str, description: str = "", *, size: int, limit: int) -> None:
        super().__init__(title, description)
        self.size = size
        self.limit = limit


class MissingPrerequisiteState(WorkflowError):
    """A stage was entered before the state it depends on exists."""

    kind = "MissingPrerequisiteState"

    def __init__(self, title: str, description: str = "", *, redirect_to: "Stage") -> None:
        super().__init__(title, description)
        self.redirect_to = redirect_to


class MalformedPersistedState(WorkflowError):
    """A stored slot could not be decoded; callers treat the slot as absent."""

    kind = "MalformedPersistedState"

    def __init__(self, slot: str, reason: Optional[str] = None) -> None:
        super().__init__("Stored data is unreadable", reason or f"slot {slot} is malformed")
        self.slot = slot


__all__ = [
    "WorkflowError",
    "ValidationError",
    "OversizedAsset",
    "MissingPrerequisiteState",
    "MalformedPersistedState",
]
