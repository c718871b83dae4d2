# -*- coding: utf-8 -*-
########################
# score_store.py
########################
# Purpose:
# - Persist the best result per song and difficulty.
#
# Design notes:
# - The store is an explicit object owned by its caller. There is no shared instance.
# - A missing file is an empty store. Unreadable or corrupt content raises ScoreStoreError.
# - save() writes through a temp file and replaces the target.
#
########################
# Interfaces:
# Public dataclasses:
# - BestScore(song_id, difficulty, score, grade, max_combo, percentage, is_full_combo, failed)
#
# Public classes:
# - class BestScoreStore
#   - __init__(path: pathlib.Path)
#   - path -> pathlib.Path
#   - load() -> None
#   - save() -> None
#   - get_best(song_id: str, difficulty: Difficulty) -> Optional[BestScore]
#   - all_best() -> dict[str, BestScore]
#   - record(results: ResultsData) -> bool
#   - clear() -> None
#
# Inputs:
# - ResultsData from scoring.generate_results.
#
# Outputs:
# - JSON file at config.LibraryConfig.resolved_scores_path().
#
########################

from __future__ import annotations

import json
import logging
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import gameplay_models
import scoring

log = logging.getLogger(__name__)

_FORMAT_VERSION = 1


class ScoreStoreError(Exception):
    pass


@dataclass(frozen=True)
class BestScore:
    song_id: str
    difficulty: str
    score: int
    grade: str
    max_combo: int
    percentage: float
    is_full_combo: bool
    failed: bool


def _store_key(song_id: str, difficulty: gameplay_models.Difficulty) -> str:
    return f"{song_id}:{difficulty.value}"


def _best_score_from_payload(payload: Any) -> Optional[BestScore]:
    if not isinstance(payload, dict):
        return None
    try:
        return BestScore(
            song_id=str(payload["song_id"]),
            difficulty=str(payload["difficulty"]),
            score=int(payload["score"]),
            grade=str(payload["grade"]),
            max_combo=int(payload["max_combo"]),
            percentage=float(payload["percentage"]),
            is_full_combo=bool(payload["is_full_combo"]),
            failed=bool(payload["failed"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


class BestScoreStore:
    """Best score per song and difficulty, keyed by "<song_id>:<Difficulty>"."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._entries: Dict[str, BestScore] = {}

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        self._entries = {}
        if not self._path.exists():
            return

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exception:
            raise ScoreStoreError(f"Failed to read score file: {self._path}. Error: {exception}") from exception
        except json.JSONDecodeError as exception:
            raise ScoreStoreError(f"Score file is not valid JSON: {self._path}. Error: {exception}") from exception

        if not isinstance(payload, dict) or not isinstance(payload.get("scores"), dict):
            raise ScoreStoreError(f"Score file has an unexpected layout: {self._path}")

        for key, entry_payload in payload["scores"].items():
            best_score = _best_score_from_payload(entry_payload)
            if best_score is None:
                log.warning("Skipping malformed score entry %r in %s", key, self._path)
                continue
            self._entries[str(key)] = best_score

    def save(self) -> None:
        payload = {
            "version": _FORMAT_VERSION,
            "scores": {key: asdict(entry) for key, entry in sorted(self._entries.items())},
        }
        temporary_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temporary_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            temporary_path.replace(self._path)
        except OSError as exception:
            raise ScoreStoreError(f"Failed to write score file: {self._path}. Error: {exception}") from exception

    def get_best(self, song_id: str, difficulty: gameplay_models.Difficulty) -> Optional[BestScore]:
        return self._entries.get(_store_key(song_id, difficulty))

    def all_best(self) -> Dict[str, BestScore]:
        return dict(self._entries)

    def record(self, results: scoring.ResultsData) -> bool:
        """Keep `results` if it beats the stored score. Returns True for a new best."""
        key = _store_key(results.song.id, results.chart.difficulty)
        existing = self._entries.get(key)
        if existing is not None and existing.score >= int(results.score):
            return False

        self._entries[key] = BestScore(
            song_id=str(results.song.id),
            difficulty=results.chart.difficulty.value,
            score=int(results.score),
            grade=results.grade.value,
            max_combo=int(results.max_combo),
            percentage=float(results.percentage),
            is_full_combo=bool(results.is_full_combo),
            failed=bool(results.failed),
        )
        log.info("New best for %s: %d", key, int(results.score))
        return True

    def clear(self) -> None:
        self._entries = {}


def _run_unit_tests() -> None:
    chart = gameplay_models.Chart(difficulty=gameplay_models.Difficulty.EASY, level=1)
    song = gameplay_models.Song(
        id="smoke",
        title="Smoke",
        artist="Test",
        bpm=120.0,
        offset_ms=0.0,
        music_file="smoke.mp3",
        preview_start=0.0,
        charts=(chart,),
    )
    results = scoring.generate_results(scoring.create_score_state(0), song, chart)

    with tempfile.TemporaryDirectory() as temporary_dir:
        store = BestScoreStore(Path(temporary_dir) / "best_scores.json")
        store.load()
        assert store.all_best() == {}
        assert store.record(results)
        assert not store.record(results)
        store.save()

        reloaded = BestScoreStore(store.path)
        reloaded.load()
        assert reloaded.get_best("smoke", gameplay_models.Difficulty.EASY) == store.get_best(
            "smoke", gameplay_models.Difficulty.EASY
        )


if __name__ == "__main__":
    _run_unit_tests()
    print("score_store.py: ok")
