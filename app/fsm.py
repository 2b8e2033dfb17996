"""FSM definitions and handler registration."""

from __future__ import annotations

import html
import re
from typing import Callable, MutableMapping, Optional

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandStart, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message

from app.controller import (
    Action,
    ActionType,
    PhotoSelection,
    RenderState,
    WorkflowController,
)
from app.gate import MAX_PHOTO_BYTES
from app.keyboards import (
    BACK_CALLBACK,
    HOME_CALLBACK,
    NAV_PREFIX,
    RESET_CALLBACK,
    SAMPLE_PREFIX,
    stage_keyboard,
)
from app.models import MEASUREMENT_FIELDS
from app.services.image_io import download_telegram_file
from app.services.processing_base import ProcessingEngine
from app.services.session_base import SessionStore
from app.stages import Stage, path_for_stage
from app.texts import messages as msg
from app.utils.deeplink import parse_stage_payload
from logger import get_logger, info_domain


class WorkflowStates(StatesGroup):
    HOME = State()
    MEASUREMENTS = State()
    UPLOAD = State()
    TRY_ON = State()
    FIT_ANALYSIS = State()


STAGE_STATES: dict[Stage, State] = {
    Stage.HOME: WorkflowStates.HOME,
    Stage.MEASUREMENTS: WorkflowStates.MEASUREMENTS,
    Stage.UPLOAD: WorkflowStates.UPLOAD,
    Stage.TRY_ON: WorkflowStates.TRY_ON,
    Stage.FIT_ANALYSIS: WorkflowStates.FIT_ANALYSIS,
}

StoreFactory = Callable[[int, FSMContext], SessionStore]
EngineFactory = Callable[[], ProcessingEngine]

_PAIR_SPLIT = re.compile(r"[,;\n]+")
_TOKEN_SPLIT = re.compile(r"[\s;]+")
_LOOSE_SPLIT = re.compile(r"[\s,;]+")


def parse_measurements_text(text: str) -> dict[str, str]:
    """Turn a chat message into a measurement form.

    Accepts six values in field order (``170 65 90 75 95 40``) or named
    pairs (``height=170, weight=65``). Fields that are not given come back
    empty so that validation reports them.
    """

    cleaned = (text or "").strip()
    form = {name: "" for name in MEASUREMENT_FIELDS}
    if not cleaned:
        return form
    if "=" in cleaned or ":" in cleaned:
        for pair in _PAIR_SPLIT.split(cleaned):
            key, sep, value = pair.replace(":", "=", 1).partition("=")
            name = key.strip().lower()
            if sep and name in form:
                form[name] = value.strip()
        return form
    tokens = [token.strip(",") for token in _TOKEN_SPLIT.split(cleaned) if token.strip(",")]
    if len(tokens) < len(MEASUREMENT_FIELDS) and "," in cleaned:
        tokens = [token for token in _LOOSE_SPLIT.split(cleaned) if token]
    for name, token in zip(MEASUREMENT_FIELDS, tokens):
        form[name] = token
    return form


def _stage_body(render: RenderState, *, limit_mb: int) -> str:
    data = render.data
    if render.stage is Stage.HOME:
        return msg.HOME_TEXT
    if render.stage is Stage.MEASUREMENTS:
        body = msg.MEASUREMENTS_PROMPT
        if data.get("saved"):
            summary = ", ".join(
                f"{field['name']} {field['value']} {field['unit']}" for field in data.get("fields", [])
            )
            body = f"{body}\n\n{msg.MEASUREMENTS_STORED_LINE.format(summary=html.escape(summary))}"
        return body
    if render.stage is Stage.UPLOAD:
        if render.is_processing:
            return msg.UPLOAD_PROCESSING
        body = msg.UPLOAD_PROMPT.format(limit_mb=limit_mb)
        selected = data.get("selected")
        if selected:
            line = msg.UPLOAD_SELECTED_LINE.format(
                content_type=selected["contentType"],
                size_kb=max(1, round(selected["size"] / 1024)),
            )
            body = f"{body}\n\n{line}"
        return body
    if render.stage is Stage.TRY_ON:
        if render.is_processing:
            return msg.TRY_ON_PROCESSING
        measurements = data.get("measurements") or {}
        return msg.TRY_ON_PROMPT.format(
            height=measurements.get("height", "?"),
            chest=measurements.get("chest", "?"),
        )
    analysis = data.get("analysis")
    if analysis is None:
        return msg.ANALYZING_TEXT
    try_on = data.get("tryOn") or {}
    return msg.FIT_RESULT_TEXT.format(
        product=html.escape(str(try_on.get("productUrl", ""))),
        overall=analysis["overall"].capitalize(),
        confidence=analysis["confidence"],
        chest=analysis["chest"].capitalize(),
        waist=analysis["waist"].capitalize(),
        length=analysis["length"].capitalize(),
        recommendations="\n".join(
            f"• {html.escape(line)}" for line in analysis["recommendations"]
        ),
    )


def render_text(render: RenderState, *, limit_mb: int = MAX_PHOTO_BYTES // (1024 * 1024)) -> str:
    """Compose the chat message for a render state."""

    lines = [
        msg.NOTICE_LINE.format(
            title=html.escape(notice.title), description=html.escape(notice.description)
        )
        for notice in render.notices
    ]
    error = render.validation_error
    if error is not None:
        lines.append(
            msg.ERROR_LINE.format(
                title=html.escape(error.title), description=html.escape(error.description)
            )
        )
    lines.append(_stage_body(render, limit_mb=limit_mb))
    return "\n\n".join(lines)


def setup_router(
    *,
    store_factory: StoreFactory,
    engine_factory: EngineFactory,
    max_photo_bytes: int = MAX_PHOTO_BYTES,
    controllers: Optional[MutableMapping[int, WorkflowController]] = None,
) -> Router:
    router = Router()
    logger = get_logger("bot.handlers")
    registry: MutableMapping[int, WorkflowController] = (
        controllers if controllers is not None else {}
    )
    limit_mb = max(1, max_photo_bytes // (1024 * 1024))

    async def _deliver(bot: Bot, chat_id: int, state: FSMContext, render: RenderState) -> None:
        await state.set_state(STAGE_STATES[render.stage])
        await bot.send_message(
            chat_id,
            render_text(render, limit_mb=limit_mb),
            reply_markup=stage_keyboard(render),
        )

    def _controller_for(bot: Bot, chat_id: int, state: FSMContext) -> WorkflowController:
        controller = registry.get(chat_id)
        if controller is not None:
            return controller
        controller = WorkflowController(
            store_factory(chat_id, state),
            engine_factory(),
            session_id=chat_id,
            max_photo_bytes=max_photo_bytes,
        )

        async def _on_change(render: RenderState) -> None:
            await _deliver(bot, chat_id, state, render)

        controller.set_listener(_on_change)
        registry[chat_id] = controller
        logger.debug(
            "Created workflow controller",
            extra={"stage": "SESSION_OPENED"},
            session_id=chat_id,
        )
        return controller

    async def _dispatch(
        bot: Bot, chat_id: int, state: FSMContext, action: Action
    ) -> RenderState:
        controller = _controller_for(bot, chat_id, state)
        render = await controller.dispatch(action)
        await _deliver(bot, chat_id, state, render)
        return render

    async def _fetch_selection(
        bot: Bot,
        file_id: str,
        file_size: Optional[int],
        *,
        content_type: Optional[str],
        filename: Optional[str] = None,
    ) -> PhotoSelection:
        # getFile fails above 20 MB; an oversized file is judged by its reported size.
        if file_size is not None and file_size > max_photo_bytes:
            logger.debug(
                "Skipping download of %s byte file",
                file_size,
                extra={"stage": "UPLOAD_TOO_LARGE"},
            )
            return PhotoSelection(
                data=b"", content_type=content_type, filename=filename, size=file_size
            )
        data = await download_telegram_file(bot, file_id)
        return PhotoSelection(
            data=data, content_type=content_type, filename=filename, size=file_size
        )

    async def _reset(bot: Bot, chat_id: int, state: FSMContext) -> None:
        await _dispatch(bot, chat_id, state, Action(ActionType.RESET))
        # A reset session starts from scratch; the next update builds a fresh controller.
        if registry.pop(chat_id, None) is not None:
            logger.debug(
                "Dropped workflow controller",
                extra={"stage": "SESSION_CLOSED"},
                session_id=chat_id,
            )

    @router.message(CommandStart())
    async def handle_start(message: Message, state: FSMContext) -> None:
        chat_id = message.chat.id
        parts = (message.text or "").split(maxsplit=1)
        payload = parts[1] if len(parts) > 1 else None
        target = parse_stage_payload(payload) if payload else Stage.HOME
        info_domain(
            "bot.handlers",
            "🚀 /start",
            stage="START",
            session_id=chat_id,
            target=target.value if target else payload,
        )
        path = path_for_stage(target) if target else payload
        await _dispatch(message.bot, chat_id, state, Action(ActionType.NAVIGATE, path))

    @router.message(Command("reset"))
    async def handle_reset(message: Message, state: FSMContext) -> None:
        await _reset(message.bot, message.chat.id, state)

    @router.message(StateFilter(WorkflowStates.MEASUREMENTS), F.text, ~F.text.startswith("/"))
    async def handle_measurements(message: Message, state: FSMContext) -> None:
        form = parse_measurements_text(message.text or "")
        await _dispatch(
            message.bot,
            message.chat.id,
            state,
            Action(ActionType.SUBMIT_MEASUREMENTS, form),
        )

    @router.message(StateFilter(WorkflowStates.UPLOAD), F.photo)
    async def handle_photo(message: Message, state: FSMContext) -> None:
        photo = message.photo[-1]
        selection = await _fetch_selection(
            message.bot, photo.file_id, photo.file_size, content_type="image/jpeg"
        )
        await _dispatch(
            message.bot,
            message.chat.id,
            state,
            Action(ActionType.SUBMIT_PHOTO, selection),
        )

    @router.message(StateFilter(WorkflowStates.UPLOAD), F.document)
    async def handle_document(message: Message, state: FSMContext) -> None:
        document = message.document
        selection = await _fetch_selection(
            message.bot,
            document.file_id,
            document.file_size,
            content_type=document.mime_type,
            filename=document.file_name,
        )
        await _dispatch(
            message.bot,
            message.chat.id,
            state,
            Action(ActionType.SUBMIT_PHOTO, selection),
        )

    @router.message(StateFilter(WorkflowStates.UPLOAD), ~F.photo, ~F.document)
    async def reject_non_photo(message: Message, state: FSMContext) -> None:
        text = (message.text or "").strip()
        if text.startswith("/"):
            return
        await _dispatch(
            message.bot, message.chat.id, state, Action(ActionType.SELECT_PHOTO, None)
        )

    @router.message(StateFilter(WorkflowStates.TRY_ON), F.text, ~F.text.startswith("/"))
    async def handle_product(message: Message, state: FSMContext) -> None:
        await _dispatch(
            message.bot,
            message.chat.id,
            state,
            Action(ActionType.SUBMIT_PRODUCT, message.text),
        )

    @router.callback_query(F.data.startswith(SAMPLE_PREFIX))
    async def pick_sample(callback: CallbackQuery, state: FSMContext) -> None:
        sample_id = (callback.data or "")[len(SAMPLE_PREFIX):]
        await callback.answer()
        await _dispatch(
            callback.bot,
            callback.message.chat.id,
            state,
            Action(ActionType.SUBMIT_PRODUCT, sample_id),
        )

    @router.callback_query(F.data.startswith(NAV_PREFIX))
    async def navigate(callback: CallbackQuery, state: FSMContext) -> None:
        slug = (callback.data or "")[len(NAV_PREFIX):]
        target = parse_stage_payload(slug)
        await callback.answer()
        await _dispatch(
            callback.bot,
            callback.message.chat.id,
            state,
            Action(ActionType.NAVIGATE, path_for_stage(target) if target else slug),
        )

    @router.callback_query(F.data == BACK_CALLBACK)
    async def navigate_back(callback: CallbackQuery, state: FSMContext) -> None:
        await callback.answer()
        await _dispatch(
            callback.bot, callback.message.chat.id, state, Action(ActionType.NAVIGATE_BACK)
        )

    @router.callback_query(F.data == HOME_CALLBACK)
    async def navigate_home(callback: CallbackQuery, state: FSMContext) -> None:
        await callback.answer()
        await _dispatch(
            callback.bot, callback.message.chat.id, state, Action(ActionType.NAVIGATE_HOME)
        )

    @router.callback_query(F.data == RESET_CALLBACK)
    async def reset_session(callback: CallbackQuery, state: FSMContext) -> None:
        await callback.answer()
        await _reset(callback.bot, callback.message.chat.id, state)

    return router


__all__ = [
    "WorkflowStates",
    "STAGE_STATES",
    "parse_measurements_text",
    "render_text",
    "setup_router",
]
