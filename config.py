"""
config.py

Typed configuration loading and validation for stepchart.

Design goals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If STEPCHART_CONFIG_PATH is set, that file is used (and must exist).
- Otherwise stepchart searches these paths in order and uses the first one that exists:
  1) ./stepchart_config.json (current working directory)
  2) <user config dir>/stepchart/stepchart_config.json
- When none exists the built-in defaults are used.

Example config file (stepchart_config.json)
{
  "gameplay": {
    "prep_time_ms": 3000,
    "audio_offset_ms": 0,
    "end_margin_ms": 2000
  },
  "health": {
    "marvelous": 2,
    "perfect": 2,
    "great": 1,
    "good": 0,
    "boo": -4,
    "miss": -8
  },
  "library": {
    "songs_dir": "songs",
    "scores_path": null
  }
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

import gameplay_models
import paths


class GameplayConfig(BaseModel):
    prep_time_ms: float = Field(default=3000.0, ge=0, description="Pre-roll before song time zero.")
    audio_offset_ms: float = Field(default=0.0, description="Added to game time. Positive means audio plays later.")
    end_margin_ms: float = Field(default=2000.0, ge=0, description="Time after the last note before the song ends.")


class HealthDeltas(BaseModel):
    """Health change per judgment grade. Health itself is clamped to [0, 100]."""

    marvelous: float = Field(default=2.0, ge=-100, le=100)
    perfect: float = Field(default=2.0, ge=-100, le=100)
    great: float = Field(default=1.0, ge=-100, le=100)
    good: float = Field(default=0.0, ge=-100, le=100)
    boo: float = Field(default=-4.0, ge=-100, le=100)
    miss: float = Field(default=-8.0, ge=-100, le=100)

    def delta_for(self, grade: gameplay_models.JudgmentGrade) -> float:
        if grade is gameplay_models.JudgmentGrade.MARVELOUS:
            return float(self.marvelous)
        if grade is gameplay_models.JudgmentGrade.PERFECT:
            return float(self.perfect)
        if grade is gameplay_models.JudgmentGrade.GREAT:
            return float(self.great)
        if grade is gameplay_models.JudgmentGrade.GOOD:
            return float(self.good)
        if grade is gameplay_models.JudgmentGrade.BOO:
            return float(self.boo)
        if grade is gameplay_models.JudgmentGrade.MISS:
            return float(self.miss)
        raise ValueError(f"Unknown judgment grade: {grade!r}")


class LibraryConfig(BaseModel):
    songs_dir: Optional[str] = Field(default=None, description="Directory holding <song_id>/chart.stp folders.")
    scores_path: Optional[str] = Field(default=None, description="JSON file for best scores.")

    @field_validator("songs_dir", "scores_path")
    @classmethod
    def normalize_optional_paths(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None

    def resolved_songs_dir(self) -> Path:
        if self.songs_dir:
            return Path(self.songs_dir).expanduser()
        return paths.default_songs_dir()

    def resolved_scores_path(self) -> Path:
        if self.scores_path:
            return Path(self.scores_path).expanduser()
        return paths.default_scores_path()


class AppConfig(BaseModel):
    gameplay: GameplayConfig = Field(default_factory=GameplayConfig)
    health: HealthDeltas = Field(default_factory=HealthDeltas)
    library: LibraryConfig = Field(default_factory=LibraryConfig)


def _default_config_candidates() -> List[Path]:
    return [
        Path.cwd() / "stepchart_config.json",
        paths.user_config_path() / "stepchart_config.json",
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("STEPCHART_CONFIG_PATH", "").strip()
    if explicit_path_text:
        explicit_path = Path(explicit_path_text)
        if not explicit_path.exists():
            raise FileNotFoundError(f"STEPCHART_CONFIG_PATH points to a missing file: {explicit_path}")
        return explicit_path

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    return None


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional. The config file is the primary source of truth.

    Override variables:
    - STEPCHART_SONGS_DIR
    - STEPCHART_SCORES_PATH
    - STEPCHART_PREP_TIME_MS
    - STEPCHART_AUDIO_OFFSET_MS
    - STEPCHART_END_MARGIN_MS
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            section = dict(section)
        else:
            section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    gameplay_section = ensure_nested(updated_config, "gameplay")
    library_section = ensure_nested(updated_config, "library")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_float(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = float(value_text)
        except ValueError as exception:
            raise ValueError(f"{env_name} must be a number, got {value_text!r}") from exception

    override_string("STEPCHART_SONGS_DIR", library_section, "songs_dir")
    override_string("STEPCHART_SCORES_PATH", library_section, "scores_path")

    override_float("STEPCHART_PREP_TIME_MS", gameplay_section, "prep_time_ms")
    override_float("STEPCHART_AUDIO_OFFSET_MS", gameplay_section, "audio_offset_ms")
    override_float("STEPCHART_END_MARGIN_MS", gameplay_section, "end_margin_ms")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict: Dict[str, Any] = {}
    if resolved_path is not None:
        json_dict = _read_json_file_utf8(resolved_path)
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        source_text = str(resolved_path) if resolved_path is not None else "(defaults)"
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path) if resolved_path is not None else None,
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
