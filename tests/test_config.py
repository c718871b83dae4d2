from __future__ import annotations

import json
from pathlib import Path

import pytest

import config
from config import AppConfig, HealthDeltas, load_config, to_json
from gameplay_models import JudgmentGrade

_ENV_NAMES = (
    "STEPCHART_CONFIG_PATH",
    "STEPCHART_SONGS_DIR",
    "STEPCHART_SCORES_PATH",
    "STEPCHART_PREP_TIME_MS",
    "STEPCHART_AUDIO_OFFSET_MS",
    "STEPCHART_END_MARGIN_MS",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    for env_name in _ENV_NAMES:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config.paths, "user_config_path", lambda: tmp_path / "user-config")


def _write_config(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_defaults_without_config_file():
    app_config, resolved_path = load_config()

    assert resolved_path is None
    assert app_config.gameplay.prep_time_ms == 3000
    assert app_config.gameplay.audio_offset_ms == 0
    assert app_config.gameplay.end_margin_ms == 2000
    assert app_config.health == HealthDeltas()
    assert app_config.library.songs_dir is None


def test_default_health_deltas():
    deltas = HealthDeltas()

    assert [deltas.delta_for(grade) for grade in JudgmentGrade] == [2, 2, 1, 0, -4, -8]


def test_explicit_path(tmp_path):
    config_path = _write_config(
        tmp_path / "custom.json",
        {"gameplay": {"audio_offset_ms": -15}, "health": {"miss": -20}, "library": {"songs_dir": "charts"}},
    )

    app_config, resolved_path = load_config(config_path)

    assert resolved_path == config_path
    assert app_config.gameplay.audio_offset_ms == -15
    assert app_config.health.miss == -20
    assert app_config.health.boo == -4
    assert app_config.library.resolved_songs_dir() == Path("charts")


def test_working_directory_config_is_found(tmp_path):
    config_path = _write_config(tmp_path / "stepchart_config.json", {"gameplay": {"prep_time_ms": 1000}})

    app_config, resolved_path = load_config()

    assert resolved_path == config_path
    assert app_config.gameplay.prep_time_ms == 1000


def test_user_config_dir_is_searched(tmp_path):
    (tmp_path / "user-config").mkdir()
    config_path = _write_config(tmp_path / "user-config" / "stepchart_config.json", {"gameplay": {"end_margin_ms": 0}})

    app_config, resolved_path = load_config()

    assert resolved_path == config_path
    assert app_config.gameplay.end_margin_ms == 0


def test_config_path_env_var(monkeypatch, tmp_path):
    config_path = _write_config(tmp_path / "from-env.json", {"health": {"great": 3}})
    monkeypatch.setenv("STEPCHART_CONFIG_PATH", str(config_path))

    app_config, resolved_path = load_config()

    assert resolved_path == config_path
    assert app_config.health.great == 3


def test_config_path_env_var_must_exist(monkeypatch, tmp_path):
    monkeypatch.setenv("STEPCHART_CONFIG_PATH", str(tmp_path / "missing.json"))

    with pytest.raises(FileNotFoundError):
        load_config()


def test_environment_overrides(monkeypatch, tmp_path):
    config_path = _write_config(tmp_path / "base.json", {"gameplay": {"prep_time_ms": 1000}})
    monkeypatch.setenv("STEPCHART_PREP_TIME_MS", "2500")
    monkeypatch.setenv("STEPCHART_AUDIO_OFFSET_MS", "-12.5")
    monkeypatch.setenv("STEPCHART_SONGS_DIR", "  /srv/songs  ")
    monkeypatch.setenv("STEPCHART_SCORES_PATH", "/srv/best.json")

    app_config, _ = load_config(config_path)

    assert app_config.gameplay.prep_time_ms == 2500
    assert app_config.gameplay.audio_offset_ms == -12.5
    assert app_config.library.songs_dir == "/srv/songs"
    assert app_config.library.resolved_scores_path() == Path("/srv/best.json")


def test_non_numeric_override_is_rejected(monkeypatch):
    monkeypatch.setenv("STEPCHART_END_MARGIN_MS", "soon")

    with pytest.raises(ValueError, match="STEPCHART_END_MARGIN_MS"):
        load_config()


def test_invalid_json(tmp_path):
    config_path = tmp_path / "broken.json"
    config_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="not valid JSON"):
        load_config(config_path)


def test_root_must_be_object(tmp_path):
    config_path = _write_config(tmp_path / "list.json", [1, 2, 3])

    with pytest.raises(ValueError, match="JSON object"):
        load_config(config_path)


@pytest.mark.parametrize(
    "payload",
    [
        {"gameplay": {"prep_time_ms": -1}},
        {"gameplay": {"end_margin_ms": "later"}},
        {"health": {"miss": -500}},
    ],
)
def test_validation_errors(tmp_path, payload):
    config_path = _write_config(tmp_path / "invalid.json", payload)

    with pytest.raises(ValueError, match="Config validation failed"):
        load_config(config_path)


def test_blank_library_paths_fall_back_to_defaults(tmp_path):
    config_path = _write_config(tmp_path / "blank.json", {"library": {"songs_dir": "   ", "scores_path": ""}})

    app_config, _ = load_config(config_path)

    assert app_config.library.songs_dir is None
    assert app_config.library.resolved_songs_dir() == tmp_path / "songs"
    assert app_config.library.resolved_scores_path().name == "best_scores.json"


def test_to_json_round_trips():
    app_config = AppConfig()

    assert AppConfig.model_validate(json.loads(to_json(app_config))) == app_config


def test_main_prints_payload(capsys):
    assert config.main() == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is True
    assert payload["config_path"] is None
    assert payload["config"]["gameplay"]["prep_time_ms"] == 3000


def test_get_config_is_cached():
    config.get_config.cache_clear()
    try:
        first = config.get_config()
        assert config.get_config() is first
        assert first[1] is None
    finally:
        config.get_config.cache_clear()
