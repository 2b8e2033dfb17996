from app.stages import (
    STAGE_LABELS,
    STAGE_ORDER,
    Stage,
    is_forward,
    path_for_stage,
    previous_stage,
    stage_for_path,
)
from app.utils.deeplink import build_stage_link, parse_stage_payload, stage_slug


def test_routes_match_stage_order() -> None:
    assert [path_for_stage(stage) for stage in STAGE_ORDER] == [
        "/",
        "/measurements",
        "/upload",
        "/try-on",
        "/fit-analysis",
    ]
    assert [STAGE_LABELS[stage] for stage in STAGE_ORDER] == [
        "Home",
        "Measurements",
        "Upload",
        "Try-On",
        "Fit Analysis",
    ]


def test_stage_for_path_accepts_common_spellings() -> None:
    assert stage_for_path("/try-on") is Stage.TRY_ON
    assert stage_for_path("try-on") is Stage.TRY_ON
    assert stage_for_path("/try-on/") is Stage.TRY_ON
    assert stage_for_path("try_on") is Stage.TRY_ON
    assert stage_for_path("/fit-analysis?from=share") is Stage.FIT_ANALYSIS
    assert stage_for_path("/") is Stage.HOME
    assert stage_for_path("/nowhere") is None
    assert stage_for_path("") is None
    assert stage_for_path(None) is None


def test_previous_stage_saturates_and_forward_order() -> None:
    assert previous_stage(Stage.HOME) is Stage.HOME
    assert previous_stage(Stage.FIT_ANALYSIS) is Stage.TRY_ON
    assert is_forward(Stage.UPLOAD, Stage.TRY_ON)
    assert not is_forward(Stage.TRY_ON, Stage.UPLOAD)
    assert not is_forward(Stage.UPLOAD, Stage.UPLOAD)


def test_stage_deep_links_round_trip_through_payload() -> None:
    assert stage_slug(Stage.HOME) == "home"
    assert build_stage_link("@fit_bot", Stage.TRY_ON) == "https://t.me/fit_bot?start=try-on"
    for stage in STAGE_ORDER:
        assert parse_stage_payload(stage_slug(stage)) is stage
    assert parse_stage_payload("bogus") is None
    assert parse_stage_payload(None) is None
