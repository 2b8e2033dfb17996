"""Inline keyboards used across the bot."""

from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from app.controller import RenderState
from app.stages import Stage
from app.texts import messages as msg
from app.utils.deeplink import stage_slug

BACK_CALLBACK = "back"
HOME_CALLBACK = "home"
RESET_CALLBACK = "reset"
NAV_PREFIX = "nav:"
SAMPLE_PREFIX = "sample:"


def nav_callback(stage: Stage) -> str:
    return f"{NAV_PREFIX}{stage_slug(stage)}"


def sample_callback(sample_id: str) -> str:
    return f"{SAMPLE_PREFIX}{sample_id}"


def _back_row() -> list[InlineKeyboardButton]:
    return [
        InlineKeyboardButton(text=msg.BACK_BUTTON, callback_data=BACK_CALLBACK),
        InlineKeyboardButton(text=msg.HOME_BUTTON, callback_data=HOME_CALLBACK),
    ]


def home_keyboard() -> InlineKeyboardMarkup:
    """Keyboard for the start screen."""

    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text=msg.START_BUTTON,
                    callback_data=nav_callback(Stage.MEASUREMENTS),
                )
            ],
            [InlineKeyboardButton(text=msg.RESET_BUTTON, callback_data=RESET_CALLBACK)],
        ]
    )


def measurements_keyboard(*, saved: bool) -> InlineKeyboardMarkup:
    rows: list[list[InlineKeyboardButton]] = []
    if saved:
        rows.append(
            [
                InlineKeyboardButton(
                    text=msg.UPLOAD_CONTINUE_BUTTON,
                    callback_data=nav_callback(Stage.UPLOAD),
                )
            ]
        )
    rows.append(_back_row())
    return InlineKeyboardMarkup(inline_keyboard=rows)


def try_on_keyboard(samples: list[dict[str, str]]) -> InlineKeyboardMarkup:
    """One button per sample garment plus navigation."""

    rows = [
        [
            InlineKeyboardButton(
                text=f"{sample['icon']} {sample['name']}",
                callback_data=sample_callback(sample["id"]),
            )
        ]
        for sample in samples
    ]
    rows.append(_back_row())
    return InlineKeyboardMarkup(inline_keyboard=rows)


def fit_analysis_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text=msg.TRY_ANOTHER_BUTTON,
                    callback_data=nav_callback(Stage.TRY_ON),
                )
            ],
            [InlineKeyboardButton(text=msg.HOME_BUTTON, callback_data=HOME_CALLBACK)],
            [InlineKeyboardButton(text=msg.RESET_BUTTON, callback_data=RESET_CALLBACK)],
        ]
    )


def back_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[_back_row()])


def stage_keyboard(render: RenderState) -> InlineKeyboardMarkup:
    """Pick the keyboard matching a render state."""

    if render.is_processing:
        return back_keyboard()
    if render.stage is Stage.HOME:
        return home_keyboard()
    if render.stage is Stage.MEASUREMENTS:
        return measurements_keyboard(saved=bool(render.data.get("saved")))
    if render.stage is Stage.TRY_ON:
        return try_on_keyboard(list(render.data.get("samples") or []))
    if render.stage is Stage.FIT_ANALYSIS and render.data.get("analysis"):
        return fit_analysis_keyboard()
    return back_keyboard()


__all__ = [
    "BACK_CALLBACK",
    "HOME_CALLBACK",
    "RESET_CALLBACK",
    "NAV_PREFIX",
    "SAMPLE_PREFIX",
    "nav_callback",
    "sample_callback",
    "home_keyboard",
    "measurements_keyboard",
    "try_on_keyboard",
    "fit_analysis_keyboard",
    "back_keyboard",
    "stage_keyboard",
]
