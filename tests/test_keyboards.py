from aiogram.types import InlineKeyboardMarkup

from app.controller import Notice, RenderState
from app.fsm import parse_measurements_text, render_text
from app.keyboards import (
    BACK_CALLBACK,
    HOME_CALLBACK,
    RESET_CALLBACK,
    home_keyboard,
    nav_callback,
    stage_keyboard,
)
from app.models import SAMPLE_PRODUCTS
from app.services.processing_base import Operation
from app.stages import Stage
from app.texts import messages as msg


def _callbacks(markup: InlineKeyboardMarkup) -> list[str]:
    return [button.callback_data for row in markup.inline_keyboard for button in row]


def _samples() -> list[dict[str, str]]:
    return [
        {"id": item.sample_id, "name": item.name, "url": item.url, "icon": item.icon}
        for item in SAMPLE_PRODUCTS
    ]


def test_home_keyboard_starts_with_measurements() -> None:
    callbacks = _callbacks(home_keyboard())

    assert callbacks[0] == nav_callback(Stage.MEASUREMENTS) == "nav:measurements"
    assert RESET_CALLBACK in callbacks


def test_try_on_keyboard_lists_samples() -> None:
    render = RenderState(
        stage=Stage.TRY_ON,
        path="/try-on",
        data={"samples": _samples()},
        is_processing=False,
    )

    callbacks = _callbacks(stage_keyboard(render))

    assert callbacks[:3] == ["sample:white-tshirt", "sample:denim-jacket", "sample:black-dress"]
    assert callbacks[3:] == [BACK_CALLBACK, HOME_CALLBACK]


def test_processing_render_only_offers_navigation() -> None:
    render = RenderState(
        stage=Stage.TRY_ON,
        path="/try-on",
        data={"samples": _samples()},
        is_processing=True,
        operation=Operation.COMPOSITE,
    )

    assert _callbacks(stage_keyboard(render)) == [BACK_CALLBACK, HOME_CALLBACK]
    assert render_text(render) == msg.TRY_ON_PROCESSING


def test_fit_analysis_keyboard_offers_another_try() -> None:
    render = RenderState(
        stage=Stage.FIT_ANALYSIS,
        path="/fit-analysis",
        data={
            "tryOn": {"productUrl": "https://example.com/a?b=<c>"},
            "analysis": {
                "overall": "good",
                "chest": "perfect",
                "waist": "tight",
                "length": "perfect",
                "confidence": 87,
                "recommendations": ["Size up"],
            },
        },
        is_processing=False,
        notices=(Notice("success", msg.TRY_ON_COMPLETE_TITLE, msg.TRY_ON_COMPLETE_TEXT),),
    )

    callbacks = _callbacks(stage_keyboard(render))
    text = render_text(render)

    assert callbacks == [nav_callback(Stage.TRY_ON), HOME_CALLBACK, RESET_CALLBACK]
    assert text.startswith(f"<b>{msg.TRY_ON_COMPLETE_TITLE}</b>")
    assert "Confidence: 87%" in text
    assert "&lt;c&gt;" in text
    assert "• Size up" in text


def test_parse_measurements_text_positional_and_named() -> None:
    assert parse_measurements_text("170 65 90 75 95 40") == {
        "height": "170",
        "weight": "65",
        "chest": "90",
        "waist": "75",
        "hips": "95",
        "shoulders": "40",
    }
    assert parse_measurements_text("170, 65, 90, 75, 95, 40")["shoulders"] == "40"
    assert parse_measurements_text("170,65,90,75,95,40")["hips"] == "95"
    assert parse_measurements_text("170 65,5 90 75 95 40")["weight"] == "65,5"

    named = parse_measurements_text("Height=180; weight: 80\nchest=100")
    assert named["height"] == "180"
    assert named["weight"] == "80"
    assert named["chest"] == "100"
    assert named["waist"] == ""

    assert parse_measurements_text("170 65")["chest"] == ""
