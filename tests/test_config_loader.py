from pathlib import Path

import pytest

from app.config import load_config
from app.main import make_engine_factory, make_store_factory
from app.services.fit_rules import seeded_analysis
from app.services.session_fsm import FsmSessionStore
from app.services.session_local import FileSessionStore
from app.services.session_memory import MemorySessionStore


ENV_NAMES = (
    "BOT_TOKEN",
    "SESSION_BACKEND",
    "SESSIONS_ROOT",
    "MAX_PHOTO_MB",
    "UPLOAD_DELAY_SEC",
    "COMPOSITE_DELAY_SEC",
    "ANALYZE_DELAY_SEC",
    "ANALYSIS_MODE",
    "LOG_LEVEL",
    "LOGS_DIR",
)


def _isolate_env(monkeypatch) -> None:
    # setenv first so that teardown removes whatever load_dotenv adds.
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_load_config_reads_env_file(tmp_path, monkeypatch) -> None:
    _isolate_env(monkeypatch)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "BOT_TOKEN=token123",
                "SESSION_BACKEND=file",
                "SESSIONS_ROOT=/var/lib/fit/sessions",
                "MAX_PHOTO_MB=5",
                "UPLOAD_DELAY_SEC=0.5",
                "COMPOSITE_DELAY_SEC=1",
                "ANALYZE_DELAY_SEC=0",
                "ANALYSIS_MODE=Seeded",
                "LOG_LEVEL=debug",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(str(env_file))

    assert config.bot_token == "token123"
    assert config.require_bot_token() == "token123"
    assert config.session_backend == "file"
    assert config.sessions_root == Path("/var/lib/fit/sessions")
    assert config.max_photo_mb == 5
    assert config.max_photo_bytes == 5 * 1024 * 1024
    assert config.processing.upload_delay_sec == 0.5
    assert config.processing.composite_delay_sec == 1.0
    assert config.processing.analyze_delay_sec == 0.0
    assert config.processing.analysis_mode == "seeded"
    assert config.log_level == "DEBUG"


def test_load_config_defaults(tmp_path, monkeypatch) -> None:
    _isolate_env(monkeypatch)

    config = load_config(str(tmp_path / "missing.env"))

    assert config.bot_token is None
    assert config.session_backend == "fsm"
    assert config.sessions_root == Path("./sessions")
    assert config.max_photo_bytes == 10 * 1024 * 1024
    assert config.processing.upload_delay_sec == 2.0
    assert config.processing.composite_delay_sec == 3.0
    assert config.processing.analyze_delay_sec == 2.0
    assert config.processing.analysis_mode == "placeholder"
    with pytest.raises(RuntimeError, match="BOT_TOKEN"):
        config.require_bot_token()


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SESSION_BACKEND", "redis"),
        ("MAX_PHOTO_MB", "ten"),
        ("MAX_PHOTO_MB", "0"),
        ("UPLOAD_DELAY_SEC", "-1"),
        ("COMPOSITE_DELAY_SEC", "soon"),
        ("ANALYZE_DELAY_SEC", "inf"),
        ("ANALYSIS_MODE", "neural"),
        ("LOG_LEVEL", "LOUD"),
    ],
)
def test_load_config_rejects_invalid_values(tmp_path, monkeypatch, name, value) -> None:
    _isolate_env(monkeypatch)
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match=name):
        load_config(str(tmp_path / "missing.env"))


def test_store_factory_follows_backend(tmp_path) -> None:
    state = object()

    assert isinstance(make_store_factory("memory", tmp_path)(1, state), MemorySessionStore)
    file_store = make_store_factory("file", tmp_path)(7, state)
    assert isinstance(file_store, FileSessionStore)
    assert file_store.path == tmp_path / "7.json"
    assert isinstance(make_store_factory("fsm", tmp_path)(1, state), FsmSessionStore)
    with pytest.raises(RuntimeError):
        make_store_factory("redis", tmp_path)


def test_engine_factory_uses_configured_rule(tmp_path, monkeypatch) -> None:
    _isolate_env(monkeypatch)
    monkeypatch.setenv("ANALYSIS_MODE", "seeded")
    monkeypatch.setenv("COMPOSITE_DELAY_SEC", "0")

    config = load_config(str(tmp_path / "missing.env"))
    engine = make_engine_factory(config.processing)()

    assert engine._analysis_rule is seeded_analysis
    assert engine._composite_delay == 0.0
