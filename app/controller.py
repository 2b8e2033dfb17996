"""Workflow controller: stage transitions, submissions and processing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from app.errors import ValidationError, WorkflowError
from app.gate import MAX_PHOTO_BYTES, StageGate
from app.infrastructure.concurrency import OperationSlot
from app.models import (
    MEASUREMENT_FIELDS,
    MEASUREMENT_LABELS,
    MEASUREMENT_UNITS,
    SAMPLE_PRODUCTS,
    FitAnalysisResult,
    TryOnRequest,
    TryOnResult,
    UserPhoto,
)
from app.services.image_io import image_dimensions
from app.services.processing_base import Operation, ProcessingEngine, ProcessingState
from app.services.session_base import SessionStore, Slot
from app.stages import (
    STAGE_LABELS,
    STAGE_ORDER,
    Stage,
    is_forward,
    path_for_stage,
    previous_stage,
    stage_for_path,
)
from app.texts import messages as msg
from logger import get_logger, info_domain


class ActionType(str, Enum):
    """User actions forwarded by the presentation layer."""

    SUBMIT_MEASUREMENTS = "submitMeasurements"
    SELECT_PHOTO = "selectPhoto"
    SUBMIT_PHOTO = "submitPhoto"
    SUBMIT_PRODUCT = "submitProduct"
    NAVIGATE_BACK = "navigateBack"
    NAVIGATE_HOME = "navigateHome"
    NAVIGATE = "navigate"
    RESET = "reset"


@dataclass(frozen=True, slots=True)
class Action:
    type: ActionType
    payload: Any = None


@dataclass(frozen=True, slots=True)
class PhotoSelection:
    """Payload of ``selectPhoto``: the raw file chosen by the user.

    ``size`` is the size reported by the client; it lets an oversized file be
    refused before its bytes are fetched, in which case ``data`` is empty.
    """

    data: bytes
    content_type: Optional[str] = None
    filename: Optional[str] = None
    size: Optional[int] = None


@dataclass(frozen=True, slots=True)
class Notice:
    """User-visible message attached to a render state."""

    kind: str
    title: str
    description: str = ""

    @classmethod
    def from_error(cls, error: WorkflowError) -> "Notice":
        return cls(kind=error.kind, title=error.title, description=error.description)

    def to_payload(self) -> dict[str, str]:
        return {"kind": self.kind, "title": self.title, "description": self.description}


@dataclass(slots=True)
class WorkflowState:
    """Everything the controller knows about one session besides the store."""

    stage: Stage = Stage.HOME
    measurements_form: dict[str, str] = field(default_factory=dict)
    photo_draft: Optional[UserPhoto] = None
    product_draft: str = ""
    processing: ProcessingState = ProcessingState.IDLE
    operation: Optional[Operation] = None
    validation_error: Optional[Notice] = None
    notices: list[Notice] = field(default_factory=list)
    analysis: Optional[FitAnalysisResult] = None
    analysis_key: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RenderState:
    """What the presentation layer needs to draw the current stage."""

    stage: Stage
    path: str
    data: dict[str, Any]
    is_processing: bool
    operation: Optional[Operation] = None
    validation_error: Optional[Notice] = None
    notices: tuple[Notice, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "stage": self.stage.value,
            "path": self.path,
            "data": self.data,
            "isProcessing": self.is_processing,
            "notices": [notice.to_payload() for notice in self.notices],
        }
        if self.operation is not None:
            payload["operation"] = self.operation.value
        if self.validation_error is not None:
            payload["validationError"] = self.validation_error.to_payload()
        return payload


Listener = Callable[[RenderState], Awaitable[None]]
Live = Callable[[], bool]

_FAILED = object()


class WorkflowController:
    """Drive one session through Home -> Measurements -> Upload -> TryOn -> FitAnalysis.

    All writes to the session store happen here. Submissions are validated by
    the :class:`StageGate`; processing steps run in the background through an
    :class:`OperationSlot`, and ``listener`` is awaited with a fresh render
    state whenever one of them completes.
    """

    def __init__(
        self,
        store: SessionStore,
        engine: ProcessingEngine,
        *,
        gate: Optional[StageGate] = None,
        state: Optional[WorkflowState] = None,
        listener: Optional[Listener] = None,
        session_id: int | str | None = None,
        max_photo_bytes: int = MAX_PHOTO_BYTES,
    ) -> None:
        self._store = store
        self._engine = engine
        self._gate = gate or StageGate(store, max_photo_bytes=max_photo_bytes)
        self.state = state or WorkflowState()
        self._listener = listener
        self._session_id = session_id
        self._slot: OperationSlot[Any] = OperationSlot()
        self._logger = get_logger("workflow.controller")
        self._handlers: dict[ActionType, Callable[[Any], Awaitable[None]]] = {
            ActionType.SUBMIT_MEASUREMENTS: self._submit_measurements,
            ActionType.SELECT_PHOTO: self._select_photo,
            ActionType.SUBMIT_PHOTO: self._submit_photo,
            ActionType.SUBMIT_PRODUCT: self._submit_product,
            ActionType.NAVIGATE_BACK: self._navigate_back,
            ActionType.NAVIGATE_HOME: self._navigate_home,
            ActionType.NAVIGATE: self._navigate,
            ActionType.RESET: self._reset,
        }

    @property
    def stage(self) -> Stage:
        return self.state.stage

    @property
    def is_processing(self) -> bool:
        return self._slot.busy

    @property
    def gate(self) -> StageGate:
        return self._gate

    def set_listener(self, listener: Optional[Listener]) -> None:
        self._listener = listener

    async def wait_idle(self) -> None:
        """Wait for the running processing step and anything it chains."""

        await self._slot.join()

    async def open(self, path: str) -> RenderState:
        """Deep-link entry: resolve ``path`` and enter it through the gate."""

        return await self.dispatch(Action(ActionType.NAVIGATE, path))

    async def enter(self, stage: Stage) -> RenderState:
        return await self.dispatch(Action(ActionType.NAVIGATE, path_for_stage(stage)))

    async def dispatch(self, action: Action) -> RenderState:
        self.state.validation_error = None
        self.state.notices.clear()
        handler = self._handlers[ActionType(action.type)]
        try:
            await handler(action.payload)
        except WorkflowError as exc:
            self.state.validation_error = Notice.from_error(exc)
            self._logger.debug(
                "Rejected %s: %s",
                ActionType(action.type).value,
                exc.title,
                extra={"stage": self.state.stage.value.upper()},
                session_id=self._session_id,
            )
        return await self.render()

    # Action handlers

    async def _submit_measurements(self, payload: Any) -> None:
        if not self._expect(Stage.MEASUREMENTS, ActionType.SUBMIT_MEASUREMENTS):
            return
        self._ensure_idle()
        form = dict(payload) if isinstance(payload, Mapping) else {}
        self.state.measurements_form = {
            name: "" if form.get(name) is None else str(form.get(name)) for name in MEASUREMENT_FIELDS
        }
        measurements = self._gate.validate_measurements(form)
        await self._store.set(Slot.MEASUREMENTS, measurements.to_payload())
        info_domain(
            "workflow.controller",
            "📏 Measurements saved",
            stage="MEASUREMENTS_SAVED",
            session_id=self._session_id,
            **measurements.to_payload(),
        )
        self.state.notices.append(
            Notice("success", msg.MEASUREMENTS_SAVED_TITLE, msg.MEASUREMENTS_SAVED_TEXT)
        )
        await self._transition(Stage.UPLOAD)

    async def _select_photo(self, payload: Any) -> None:
        if not self._expect(Stage.UPLOAD, ActionType.SELECT_PHOTO):
            return
        self._ensure_idle()
        if not isinstance(payload, PhotoSelection):
            raise ValidationError(msg.NO_IMAGE_TITLE, msg.NO_IMAGE_TEXT)
        self.state.photo_draft = self._gate.validate_photo(
            payload.data,
            content_type=payload.content_type,
            filename=payload.filename,
            size=payload.size,
        )

    async def _submit_photo(self, payload: Any) -> None:
        if not self._expect(Stage.UPLOAD, ActionType.SUBMIT_PHOTO):
            return
        self._ensure_idle()
        if payload is not None:
            await self._select_photo(payload)
        photo = self.state.photo_draft
        if photo is None:
            raise ValidationError(msg.NO_IMAGE_TITLE, msg.NO_IMAGE_TEXT)
        decision = await self._gate.can_proceed(Stage.UPLOAD)
        if not decision.allowed:
            self._redirect_notice(decision.notice)
            await self._transition(decision.redirect_to)
            return
        await self._store.set(Slot.PHOTO, photo.to_data_url())
        info_domain(
            "workflow.controller",
            "🖼️ Photo stored",
            stage="PHOTO_STORED",
            session_id=self._session_id,
            size=photo.size,
            content_type=photo.content_type,
        )

        async def _uploaded(_: UserPhoto, live: Live) -> None:
            self.state.notices.append(
                Notice("success", msg.IMAGE_UPLOADED_TITLE, msg.IMAGE_UPLOADED_TEXT)
            )
            await self._transition(Stage.TRY_ON, live=live)

        self._launch(Operation.INGEST, lambda: self._engine.ingest(photo), _uploaded)

    async def _submit_product(self, payload: Any) -> None:
        if not self._expect(Stage.TRY_ON, ActionType.SUBMIT_PRODUCT):
            return
        self._ensure_idle()
        self.state.product_draft = "" if payload is None else str(payload)
        product = self._gate.validate_product(payload)
        decision = await self._gate.can_proceed(Stage.TRY_ON)
        if not decision.allowed:
            self._redirect_notice(decision.notice)
            await self._transition(decision.redirect_to)
            return
        photo = await self._gate.load_photo()
        measurements = await self._gate.load_measurements()
        request = TryOnRequest(photo=photo, product_id=product, measurements=measurements)

        async def _composed(result: TryOnResult, live: Live) -> None:
            await self._store.set(Slot.TRY_ON_RESULT, result.to_payload())
            if not live():
                # Abandoned while writing: the session moved on without this result.
                await self._store.clear(Slot.TRY_ON_RESULT)
                return
            info_domain(
                "workflow.controller",
                "👕 Try-on composed",
                stage="TRY_ON_COMPLETE",
                session_id=self._session_id,
                product=result.product_id,
            )
            self.state.notices.append(
                Notice("success", msg.TRY_ON_COMPLETE_TITLE, msg.TRY_ON_COMPLETE_TEXT)
            )
            await self._transition(Stage.FIT_ANALYSIS, live=live)

        self._launch(Operation.COMPOSITE, lambda: self._engine.composite(request), _composed)

    async def _navigate_back(self, _: Any) -> None:
        await self._transition(previous_stage(self.state.stage), gated=False)

    async def _navigate_home(self, _: Any) -> None:
        await self._transition(Stage.HOME, gated=False)

    async def _navigate(self, payload: Any) -> None:
        target = payload if isinstance(payload, Stage) else stage_for_path(str(payload or ""))
        if target is None:
            raise ValidationError(
                msg.UNKNOWN_PAGE_TITLE, msg.UNKNOWN_PAGE_TEXT.format(path=payload)
            )
        await self._transition(target)

    async def _reset(self, _: Any) -> None:
        if self._slot.abandon():
            self._log_abandoned()
        await self._store.clear_all()
        self.state = WorkflowState()
        self.state.notices.append(Notice("info", msg.SESSION_RESET_TITLE, msg.SESSION_RESET_TEXT))
        info_domain(
            "workflow.controller",
            "🧹 Session reset",
            stage="SESSION_RESET",
            session_id=self._session_id,
        )

    # Transitions

    async def _transition(
        self, target: Stage, *, gated: bool = True, live: Optional[Live] = None
    ) -> None:
        if live is None and self._slot.active:
            if target is self.state.stage:
                return
            if is_forward(self.state.stage, target):
                raise ValidationError(msg.BUSY_TITLE, msg.BUSY_TEXT)
            self._slot.abandon()
            self._log_abandoned()
        while gated:
            decision = await self._gate.can_enter(target)
            if live is not None and not live():
                return
            if decision.allowed:
                break
            self._redirect_notice(decision.notice)
            self._logger.warning(
                "Redirecting %s -> %s",
                target.value,
                decision.redirect_to.value,
                extra={"stage": "GATE_REDIRECT"},
                session_id=self._session_id,
            )
            target = decision.redirect_to
        self.state.stage = target
        self.state.processing = ProcessingState.IDLE
        self.state.operation = None
        await self._on_enter(target, live)

    async def _on_enter(self, stage: Stage, live: Optional[Live] = None) -> None:
        if stage is Stage.MEASUREMENTS and not self.state.measurements_form:
            stored = await self._gate.load_measurements()
            if live is not None and not live():
                return
            if stored is not None:
                self.state.measurements_form = {
                    name: str(value) for name, value in stored.to_payload().items()
                }
        elif stage is Stage.FIT_ANALYSIS:
            result = await self._gate.load_try_on_result()
            if result is None or (live is not None and not live()):
                return
            key = result.completed_at.isoformat()
            if self.state.analysis is not None and self.state.analysis_key == key:
                self.state.processing = ProcessingState.COMPLETE
                return
            self.state.analysis = None
            self.state.analysis_key = None

            async def _analyzed(analysis: FitAnalysisResult, live: Live) -> None:
                self.state.analysis = analysis
                self.state.analysis_key = key
                info_domain(
                    "workflow.controller",
                    "📊 Fit analysis ready",
                    stage="FIT_ANALYSIS_COMPLETE",
                    session_id=self._session_id,
                    overall=analysis.overall.value,
                    confidence=analysis.confidence,
                )

            self._launch(Operation.ANALYZE, lambda: self._engine.analyze(result), _analyzed)

    def _launch(
        self,
        operation: Operation,
        factory: Callable[[], Awaitable[Any]],
        on_done: Callable[[Any, Live], Awaitable[None]],
    ) -> None:
        epoch = self._slot.epoch

        def live() -> bool:
            return self._slot.epoch == epoch

        async def _execute() -> Any:
            try:
                return await factory()
            except Exception:  # noqa: BLE001
                self._logger.exception(
                    "Processing step %s failed",
                    operation.value,
                    extra={"stage": "PROCESSING_FAILED"},
                    session_id=self._session_id,
                )
                return _FAILED

        async def _finish(result: Any) -> None:
            self.state.validation_error = None
            self.state.notices.clear()
            self.state.operation = None
            if result is _FAILED:
                self.state.processing = ProcessingState.IDLE
                self.state.validation_error = Notice(
                    "ProcessingError", msg.PROCESSING_FAILED_TITLE, msg.PROCESSING_FAILED_TEXT
                )
            else:
                self.state.processing = ProcessingState.COMPLETE
                await on_done(result, live)
            if live():
                await self._notify()

        if not self._slot.start(operation.value, _execute, _finish):
            raise ValidationError(msg.BUSY_TITLE, msg.BUSY_TEXT)
        self.state.processing = ProcessingState.PROCESSING
        self.state.operation = operation
        self._logger.debug(
            "Started %s",
            operation.value,
            extra={"stage": "PROCESSING_STARTED"},
            session_id=self._session_id,
        )

    async def _notify(self) -> None:
        if self._listener is None:
            return
        await self._listener(await self.render())

    # Helpers

    def _expect(self, stage: Stage, action: ActionType) -> bool:
        if self.state.stage is stage:
            return True
        self._logger.debug(
            "Ignoring %s outside %s",
            action.value,
            stage.value,
            extra={"stage": self.state.stage.value.upper()},
            session_id=self._session_id,
        )
        return False

    def _ensure_idle(self) -> None:
        if self._slot.active:
            raise ValidationError(msg.BUSY_TITLE, msg.BUSY_TEXT)

    def _redirect_notice(self, error: Optional[WorkflowError]) -> None:
        if error is not None:
            self.state.notices.append(Notice.from_error(error))

    def _log_abandoned(self) -> None:
        info_domain(
            "workflow.controller",
            "↩️ Pending processing abandoned",
            stage="PROCESSING_ABANDONED",
            session_id=self._session_id,
        )

    # Rendering

    async def render(self) -> RenderState:
        stage = self.state.stage
        return RenderState(
            stage=stage,
            path=path_for_stage(stage),
            data=await self._stage_data(stage),
            is_processing=self._slot.busy,
            operation=self.state.operation if self._slot.busy else None,
            validation_error=self.state.validation_error,
            notices=tuple(self.state.notices),
        )

    async def _stage_data(self, stage: Stage) -> dict[str, Any]:
        if stage is Stage.HOME:
            return {
                "steps": [
                    {"stage": item.value, "label": STAGE_LABELS[item], "path": path_for_stage(item)}
                    for item in STAGE_ORDER[1:]
                ]
            }
        if stage is Stage.MEASUREMENTS:
            stored = await self._gate.load_measurements()
            return {
                "fields": [
                    {
                        "name": name,
                        "label": MEASUREMENT_LABELS[name],
                        "unit": MEASUREMENT_UNITS[name],
                        "value": self.state.measurements_form.get(name, ""),
                    }
                    for name in MEASUREMENT_FIELDS
                ],
                "saved": stored is not None,
            }
        if stage is Stage.UPLOAD:
            draft = self.state.photo_draft
            selected = None
            if draft is not None:
                selected = {
                    "contentType": draft.content_type,
                    "size": draft.size,
                    "dimensions": image_dimensions(draft.data),
                    "preview": draft.to_data_url(),
                }
            return {
                "maxBytes": self._gate.max_photo_bytes,
                "selected": selected,
                "hasMeasurements": await self._gate.load_measurements() is not None,
            }
        if stage is Stage.TRY_ON:
            photo = await self._gate.load_photo()
            measurements = await self._gate.load_measurements()
            return {
                "photo": photo.to_data_url() if photo else None,
                "measurements": measurements.to_payload() if measurements else None,
                "product": self.state.product_draft,
                "samples": [
                    {"id": item.sample_id, "name": item.name, "url": item.url, "icon": item.icon}
                    for item in SAMPLE_PRODUCTS
                ],
            }
        result = await self._gate.load_try_on_result()
        analysis = self.state.analysis
        return {
            "tryOn": result.to_payload() if result else None,
            "analysis": analysis.to_payload() if analysis else None,
        }


__all__ = [
    "Action",
    "ActionType",
    "Notice",
    "PhotoSelection",
    "RenderState",
    "WorkflowController",
    "WorkflowState",
]
