from __future__ import annotations

import json
import logging

import pytest

import score_store
from gameplay_models import Chart, Difficulty, LetterGrade, Song
from score_store import BestScore, BestScoreStore, ScoreStoreError
from scoring import JudgmentCounts, ResultsData


def _results(score: int, *, song_id: str = "song-a", difficulty: Difficulty = Difficulty.HARD) -> ResultsData:
    chart = Chart(difficulty=difficulty, level=8)
    song = Song(
        id=song_id,
        title="Title",
        artist="Artist",
        bpm=140.0,
        offset_ms=0.0,
        music_file="a.ogg",
        preview_start=0.0,
        charts=(chart,),
    )
    return ResultsData(
        song=song,
        chart=chart,
        score=score,
        grade=LetterGrade.A,
        max_combo=42,
        judgment_counts=JudgmentCounts(marvelous=40, miss=2),
        total_notes=42,
        percentage=score / 10_000,
        failed=False,
        is_full_combo=False,
    )


@pytest.fixture
def store(tmp_path) -> BestScoreStore:
    return BestScoreStore(tmp_path / "nested" / "best_scores.json")


def test_missing_file_loads_empty(store):
    store.load()

    assert store.all_best() == {}
    assert store.get_best("song-a", Difficulty.HARD) is None


def test_record_first_result(store):
    assert store.record(_results(850_000)) is True

    best = store.get_best("song-a", Difficulty.HARD)
    assert best == BestScore(
        song_id="song-a",
        difficulty="Hard",
        score=850_000,
        grade="A",
        max_combo=42,
        percentage=85.0,
        is_full_combo=False,
        failed=False,
    )


def test_only_strictly_higher_scores_replace(store):
    store.record(_results(850_000))

    assert store.record(_results(850_000)) is False
    assert store.record(_results(700_000)) is False
    assert store.record(_results(850_001)) is True
    assert store.get_best("song-a", Difficulty.HARD).score == 850_001


def test_difficulties_are_kept_apart(store):
    store.record(_results(500_000, difficulty=Difficulty.EASY))
    store.record(_results(900_000, difficulty=Difficulty.HARD))

    assert store.get_best("song-a", Difficulty.EASY).score == 500_000
    assert store.get_best("song-a", Difficulty.HARD).score == 900_000
    assert sorted(store.all_best()) == ["song-a:Easy", "song-a:Hard"]


def test_save_and_reload(store):
    store.record(_results(777_777, song_id="song-b"))
    store.save()

    payload = json.loads(store.path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert list(payload["scores"]) == ["song-b:Hard"]
    assert not store.path.with_suffix(".json.tmp").exists()

    reloaded = BestScoreStore(store.path)
    reloaded.load()
    assert reloaded.get_best("song-b", Difficulty.HARD) == store.get_best("song-b", Difficulty.HARD)


def test_corrupt_file_raises(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{oops", encoding="utf-8")

    with pytest.raises(ScoreStoreError, match="not valid JSON"):
        store.load()


def test_unexpected_layout_raises(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps(["not", "a", "store"]), encoding="utf-8")

    with pytest.raises(ScoreStoreError, match="unexpected layout"):
        store.load()


def test_malformed_entries_are_skipped(store, caplog):
    store.record(_results(600_000))
    store.save()
    payload = json.loads(store.path.read_text(encoding="utf-8"))
    payload["scores"]["broken:Easy"] = {"song_id": "broken"}
    store.path.write_text(json.dumps(payload), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="score_store"):
        store.load()

    assert list(store.all_best()) == ["song-a:Hard"]
    assert "broken:Easy" in caplog.text


def test_clear(store):
    store.record(_results(1))
    store.clear()

    assert store.all_best() == {}


def test_module_smoke_check():
    score_store._run_unit_tests()
