"""Application entry point."""

from __future__ import annotations

import asyncio
import signal
from contextlib import suppress
from logging import LoggerAdapter
from pathlib import Path

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.context import FSMContext
from aiogram.types import BotCommand, MenuButtonCommands

from app.config import Config, ProcessingConfig, load_config
from app.fsm import EngineFactory, StoreFactory, setup_router
from app.infrastructure.logging_middleware import LoggingMiddleware
from app.services.fit_rules import ANALYSIS_RULES
from app.services.processing_mock import SimulatedProcessingEngine
from app.services.session_base import SessionStore
from app.services.session_fsm import FsmSessionStore
from app.services.session_local import FileSessionStore
from app.services.session_memory import MemorySessionStore
from app.stages import Stage
from app.utils.deeplink import build_stage_link
from logger import get_logger, info_domain, log_event, setup_logging

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _resolve(path: Path) -> Path:
    return path if path.is_absolute() else (PROJECT_ROOT / path).resolve()


def make_store_factory(backend: str, sessions_root: Path) -> StoreFactory:
    """Build the per-chat session store factory for the configured backend."""

    if backend == "memory":
        def _memory(chat_id: int, state: FSMContext) -> SessionStore:
            return MemorySessionStore()

        return _memory
    if backend == "file":
        def _file(chat_id: int, state: FSMContext) -> SessionStore:
            return FileSessionStore(sessions_root, str(chat_id))

        return _file
    if backend == "fsm":
        def _fsm(chat_id: int, state: FSMContext) -> SessionStore:
            return FsmSessionStore(state)

        return _fsm
    raise RuntimeError(f"Unknown session backend: {backend}")


def make_engine_factory(processing: ProcessingConfig) -> EngineFactory:
    rule = ANALYSIS_RULES[processing.analysis_mode]

    def _engine() -> SimulatedProcessingEngine:
        return SimulatedProcessingEngine(
            upload_delay=processing.upload_delay_sec,
            composite_delay=processing.composite_delay_sec,
            analyze_delay=processing.analyze_delay_sec,
            analysis_rule=rule,
        )

    return _engine


def build_dispatcher(config: Config) -> Dispatcher:
    dp = Dispatcher()
    dp.update.middleware(LoggingMiddleware())
    router = setup_router(
        store_factory=make_store_factory(
            config.session_backend, _resolve(config.sessions_root)
        ),
        engine_factory=make_engine_factory(config.processing),
        max_photo_bytes=config.max_photo_bytes,
    )
    dp.include_router(router)
    return dp


_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def _poll_until_stopped(dp: Dispatcher, bot: Bot, logger: LoggerAdapter) -> None:
    """Poll Telegram until a stop signal arrives, then wind polling down."""

    loop = asyncio.get_running_loop()
    shutdown_tasks: list[asyncio.Task] = []

    def _request_stop(sig: signal.Signals) -> None:
        logger.debug("Received %s, stopping polling", sig.name, stage="SHUTDOWN")
        shutdown_tasks.append(loop.create_task(dp.stop_polling()))

    installed: list[signal.Signals] = []
    for sig in _STOP_SIGNALS:
        with suppress(NotImplementedError, RuntimeError):  # pragma: no cover - platform specific
            loop.add_signal_handler(sig, _request_stop, sig)
            installed.append(sig)

    try:
        await dp.start_polling(bot, handle_signals=False)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        if shutdown_tasks:
            await asyncio.gather(*shutdown_tasks, return_exceptions=True)


async def main() -> None:
    config = load_config()
    setup_logging(_resolve(config.logs_dir), level=config.log_level)
    logger = get_logger("bot.start")

    info_domain(
        "bot.start",
        "Config loaded",
        stage="CONFIG_OK",
        session_backend=config.session_backend,
        analysis_mode=config.processing.analysis_mode,
        max_photo_mb=config.max_photo_mb,
    )

    bot = Bot(
        token=config.require_bot_token(),
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    await bot.set_my_commands(
        [
            BotCommand(command="start", description="🚀 Start the virtual fitting"),
            BotCommand(command="reset", description="🧹 Clear my data"),
        ]
    )
    await bot.set_chat_menu_button(menu_button=MenuButtonCommands())

    dp = build_dispatcher(config)

    me = await bot.get_me()
    info_domain(
        "bot.start",
        "Bot started",
        stage="BOT_STARTED",
        link=build_stage_link(me.username or "", Stage.MEASUREMENTS),
    )
    try:
        await _poll_until_stopped(dp, bot, logger)
    finally:
        await bot.session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception as exc:  # noqa: BLE001
        setup_logging()
        log_event(
            "CRITICAL",
            "bot.runtime",
            f"Unhandled exception: {exc}",
            stage="UNHANDLED_EXCEPTION",
            extra={"exception": repr(exc)},
        )
        raise
