# -*- coding: utf-8 -*-
########################
# scoring.py
########################
# Purpose:
# - Score and health accumulator: a fold over judgments into ScoreState.
# - Final percentage, score, letter grade and full-combo summary at end of play.
#
# Design notes:
# - ScoreState is frozen. apply_judgment returns a new value and never mutates its input.
# - The running raw score applies the combo multiplier from the pre-judgment combo.
#   The final score and grade are recomputed from judgment counts without any multiplier.
# - `failed` is sticky: once health touches 0 it stays true for the session.
#
########################
# Interfaces:
# Public dataclasses:
# - JudgmentCounts(marvelous, perfect, great, good, boo, miss)
# - ScoreState(raw_score, max_possible_score, combo, max_combo, judgment_counts,
#              total_judged, total_notes, health, failed)
# - ResultsData(song, chart, score, grade, max_combo, judgment_counts, total_notes,
#               percentage, failed, is_full_combo)
#
# Public functions:
# - create_score_state(total_notes: int) -> ScoreState
# - get_combo_multiplier(combo: int) -> int
# - grade_score_value(grade: JudgmentGrade) -> int
# - grade_maintains_combo(grade: JudgmentGrade) -> bool
# - apply_judgment(state, judgment, health_deltas=None) -> ScoreState
# - calculate_percentage(state) -> float
# - calculate_final_score(state) -> int
# - calculate_grade(percentage, is_full_marvelous=False) -> LetterGrade
# - is_full_combo(state) -> bool
# - generate_results(state, song, chart) -> ResultsData
# - results_to_dict(results) -> dict
#
# Inputs:
# - Judgment values from timing.judge_note or synthetic misses from judge.JudgeEngine.
#
# Outputs:
# - ScoreState for live display and ResultsData for results presentation and score_store.
#
########################

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import config
import gameplay_models

MAX_SCORE = 1_000_000
MAX_GRADE_SCORE = 100
COMBO_MULTIPLIER_THRESHOLDS = (10, 20, 30)
MAX_MULTIPLIER = 4
INITIAL_HEALTH = 50.0
MAX_HEALTH = 100.0
MIN_HEALTH = 0.0

# Descending percentage thresholds. AAAA is reserved for full marvelous plays.
GRADE_THRESHOLDS = (
    (gameplay_models.LetterGrade.AAA, 100.0),
    (gameplay_models.LetterGrade.AA, 93.0),
    (gameplay_models.LetterGrade.A, 80.0),
    (gameplay_models.LetterGrade.B, 65.0),
    (gameplay_models.LetterGrade.C, 45.0),
    (gameplay_models.LetterGrade.D, 0.0),
)

DEFAULT_HEALTH_DELTAS = config.HealthDeltas()


@dataclass(frozen=True)
class JudgmentCounts:
    marvelous: int = 0
    perfect: int = 0
    great: int = 0
    good: int = 0
    boo: int = 0
    miss: int = 0

    def count_for(self, grade: gameplay_models.JudgmentGrade) -> int:
        return int(getattr(self, grade.value))

    def incremented(self, grade: gameplay_models.JudgmentGrade) -> "JudgmentCounts":
        return replace(self, **{grade.value: self.count_for(grade) + 1})

    def as_dict(self) -> Dict[str, int]:
        return {grade.value: self.count_for(grade) for grade in gameplay_models.JudgmentGrade}


@dataclass(frozen=True)
class ScoreState:
    raw_score: int = 0
    max_possible_score: int = 0
    combo: int = 0
    max_combo: int = 0
    judgment_counts: JudgmentCounts = JudgmentCounts()
    total_judged: int = 0
    total_notes: int = 0
    health: float = INITIAL_HEALTH
    failed: bool = False


@dataclass(frozen=True)
class ResultsData:
    song: gameplay_models.Song
    chart: gameplay_models.Chart
    score: int
    grade: gameplay_models.LetterGrade
    max_combo: int
    judgment_counts: JudgmentCounts
    total_notes: int
    percentage: float
    failed: bool
    is_full_combo: bool


def create_score_state(total_notes: int) -> ScoreState:
    return ScoreState(total_notes=int(total_notes))


def get_combo_multiplier(combo: int) -> int:
    if combo >= COMBO_MULTIPLIER_THRESHOLDS[2]:
        return MAX_MULTIPLIER
    if combo >= COMBO_MULTIPLIER_THRESHOLDS[1]:
        return 3
    if combo >= COMBO_MULTIPLIER_THRESHOLDS[0]:
        return 2
    return 1


def grade_score_value(grade: gameplay_models.JudgmentGrade) -> int:
    if grade is gameplay_models.JudgmentGrade.MARVELOUS:
        return 100
    if grade is gameplay_models.JudgmentGrade.PERFECT:
        return 98
    if grade is gameplay_models.JudgmentGrade.GREAT:
        return 65
    if grade is gameplay_models.JudgmentGrade.GOOD:
        return 25
    if grade is gameplay_models.JudgmentGrade.BOO:
        return 0
    if grade is gameplay_models.JudgmentGrade.MISS:
        return 0
    raise ValueError(f"Unknown judgment grade: {grade!r}")


def grade_maintains_combo(grade: gameplay_models.JudgmentGrade) -> bool:
    if grade in (
        gameplay_models.JudgmentGrade.MARVELOUS,
        gameplay_models.JudgmentGrade.PERFECT,
        gameplay_models.JudgmentGrade.GREAT,
        gameplay_models.JudgmentGrade.GOOD,
    ):
        return True
    if grade in (gameplay_models.JudgmentGrade.BOO, gameplay_models.JudgmentGrade.MISS):
        return False
    raise ValueError(f"Unknown judgment grade: {grade!r}")


def apply_judgment(
    state: ScoreState,
    judgment: gameplay_models.Judgment,
    health_deltas: Optional[config.HealthDeltas] = None,
) -> ScoreState:
    deltas = health_deltas if health_deltas is not None else DEFAULT_HEALTH_DELTAS
    grade = judgment.grade

    new_combo = state.combo + 1 if grade_maintains_combo(grade) else 0
    new_max_combo = max(state.max_combo, new_combo)

    multiplier = get_combo_multiplier(state.combo)
    score_gain = grade_score_value(grade) * multiplier

    new_health = state.health + deltas.delta_for(grade)
    new_health = max(MIN_HEALTH, min(MAX_HEALTH, new_health))
    has_failed = new_health <= MIN_HEALTH

    return ScoreState(
        raw_score=state.raw_score + score_gain,
        max_possible_score=state.max_possible_score + MAX_GRADE_SCORE * MAX_MULTIPLIER,
        combo=new_combo,
        max_combo=new_max_combo,
        judgment_counts=state.judgment_counts.incremented(grade),
        total_judged=state.total_judged + 1,
        total_notes=state.total_notes,
        health=new_health,
        failed=state.failed or has_failed,
    )


def _weighted_count_total(counts: JudgmentCounts) -> int:
    return sum(counts.count_for(grade) * grade_score_value(grade) for grade in gameplay_models.JudgmentGrade)


def calculate_percentage(state: ScoreState) -> float:
    if state.total_notes <= 0:
        return 0.0
    max_raw = state.total_notes * MAX_GRADE_SCORE
    return _weighted_count_total(state.judgment_counts) / max_raw * 100.0


def calculate_final_score(state: ScoreState) -> int:
    if state.total_notes <= 0:
        return 0
    max_raw = state.total_notes * MAX_GRADE_SCORE
    fraction = _weighted_count_total(state.judgment_counts) / max_raw
    # Half-up like a browser Math.round, not banker's rounding.
    return int(fraction * MAX_SCORE + 0.5)


def calculate_grade(percentage: float, is_full_marvelous: bool = False) -> gameplay_models.LetterGrade:
    if is_full_marvelous and percentage >= 100.0:
        return gameplay_models.LetterGrade.AAAA

    for letter_grade, threshold in GRADE_THRESHOLDS:
        if percentage >= threshold:
            return letter_grade
    return gameplay_models.LetterGrade.D


def is_full_combo(state: ScoreState) -> bool:
    counts = state.judgment_counts
    return state.total_judged > 0 and counts.good == 0 and counts.boo == 0 and counts.miss == 0


def generate_results(
    state: ScoreState,
    song: gameplay_models.Song,
    chart: gameplay_models.Chart,
) -> ResultsData:
    percentage = calculate_percentage(state)
    score = calculate_final_score(state)
    is_full_marvelous = state.total_notes > 0 and state.judgment_counts.marvelous == state.total_notes
    grade = calculate_grade(percentage, is_full_marvelous)

    return ResultsData(
        song=song,
        chart=chart,
        score=score,
        grade=grade,
        max_combo=state.max_combo,
        judgment_counts=replace(state.judgment_counts),
        total_notes=state.total_notes,
        percentage=percentage,
        failed=state.failed,
        is_full_combo=is_full_combo(state),
    )


def results_to_dict(results: ResultsData) -> Dict[str, Any]:
    return {
        "song_id": results.song.id,
        "title": results.song.title,
        "artist": results.song.artist,
        "difficulty": results.chart.difficulty.value,
        "level": int(results.chart.level),
        "score": int(results.score),
        "grade": results.grade.value,
        "max_combo": int(results.max_combo),
        "judgment_counts": results.judgment_counts.as_dict(),
        "total_notes": int(results.total_notes),
        "percentage": float(results.percentage),
        "failed": bool(results.failed),
        "is_full_combo": bool(results.is_full_combo),
    }


def _run_unit_tests() -> None:
    assert [get_combo_multiplier(value) for value in (9, 10, 19, 20, 29, 30)] == [1, 2, 2, 3, 3, 4]

    state = create_score_state(3)
    for note_id in range(3):
        judgment = gameplay_models.Judgment(
            note_id=note_id,
            timing_diff_ms=0.0,
            grade=gameplay_models.JudgmentGrade.MARVELOUS,
            time_ms=0.0,
        )
        state = apply_judgment(state, judgment)
    assert state.combo == 3 and state.max_combo == 3
    assert calculate_final_score(state) == MAX_SCORE
    assert calculate_percentage(state) == 100.0
    assert is_full_combo(state)

    miss = gameplay_models.Judgment(note_id=0, timing_diff_ms=200.0, grade=gameplay_models.JudgmentGrade.MISS, time_ms=200.0)
    missed_state = create_score_state(10)
    for _ in range(10):
        missed_state = apply_judgment(missed_state, miss)
    assert missed_state.health == MIN_HEALTH and missed_state.failed


if __name__ == "__main__":
    _run_unit_tests()
    print("scoring.py: ok")
