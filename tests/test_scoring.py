"""Tests for scoring: combo multiplier, health, final score and results."""

from __future__ import annotations

import pytest

from config import HealthDeltas
from gameplay_models import Chart, Difficulty, Direction, Judgment, JudgmentGrade, LetterGrade, Note, Song
from scoring import (
    INITIAL_HEALTH,
    MAX_SCORE,
    JudgmentCounts,
    ScoreState,
    apply_judgment,
    calculate_final_score,
    calculate_grade,
    calculate_percentage,
    create_score_state,
    generate_results,
    get_combo_multiplier,
    grade_maintains_combo,
    grade_score_value,
    is_full_combo,
    results_to_dict,
)


def _judgment(grade: JudgmentGrade, note_id: int = 0) -> Judgment:
    return Judgment(note_id=note_id, timing_diff_ms=0.0, grade=grade, time_ms=1000.0)


def _fold(state: ScoreState, grades) -> ScoreState:
    for index, grade in enumerate(grades):
        state = apply_judgment(state, _judgment(grade, index))
    return state


def _song_and_chart(note_count: int):
    notes = tuple(Note(id=index, time_ms=index * 500.0, direction=Direction.LEFT) for index in range(note_count))
    chart = Chart(difficulty=Difficulty.MEDIUM, level=6, notes=notes)
    song = Song(
        id="s",
        title="Song",
        artist="Artist",
        bpm=120.0,
        offset_ms=0.0,
        music_file="m.mp3",
        preview_start=0.0,
        charts=(chart,),
    )
    return song, chart


# ── State creation ───────────────────────────────────────────


def test_create_score_state():
    state = create_score_state(100)

    assert state.raw_score == 0
    assert state.max_possible_score == 0
    assert state.combo == 0
    assert state.max_combo == 0
    assert state.total_notes == 100
    assert state.total_judged == 0
    assert state.health == INITIAL_HEALTH == 50
    assert state.failed is False
    assert state.judgment_counts == JudgmentCounts()


# ── Combo multiplier ─────────────────────────────────────────


@pytest.mark.parametrize(
    "combo, expected",
    [(0, 1), (9, 1), (10, 2), (19, 2), (20, 3), (29, 3), (30, 4), (1000, 4)],
)
def test_combo_multiplier_tiers(combo, expected):
    assert get_combo_multiplier(combo) == expected


def test_grade_tables_cover_every_grade():
    for grade in JudgmentGrade:
        assert isinstance(grade_score_value(grade), int)
        assert isinstance(grade_maintains_combo(grade), bool)
        assert isinstance(HealthDeltas().delta_for(grade), float)


# ── apply_judgment ───────────────────────────────────────────


@pytest.mark.parametrize("grade", [JudgmentGrade.MARVELOUS, JudgmentGrade.PERFECT, JudgmentGrade.GREAT, JudgmentGrade.GOOD])
def test_combo_extending_grades(grade):
    state = apply_judgment(create_score_state(10), _judgment(grade))

    assert state.combo == 1
    assert state.max_combo == 1
    assert state.judgment_counts.count_for(grade) == 1


@pytest.mark.parametrize("grade", [JudgmentGrade.BOO, JudgmentGrade.MISS])
def test_combo_breaking_grades(grade):
    state = _fold(create_score_state(10), [JudgmentGrade.MARVELOUS] * 5 + [grade])

    assert state.combo == 0
    assert state.max_combo == 5


def test_apply_judgment_does_not_mutate_input():
    state = create_score_state(10)
    apply_judgment(state, _judgment(JudgmentGrade.MARVELOUS))

    assert state == create_score_state(10)


def test_multiplier_uses_pre_judgment_combo():
    state = _fold(create_score_state(20), [JudgmentGrade.MARVELOUS] * 9)
    assert state.raw_score == 900

    # Combo is 9 before this one, so the multiplier is still 1.
    state = apply_judgment(state, _judgment(JudgmentGrade.MARVELOUS))
    assert state.raw_score == 1000
    assert state.combo == 10

    # Combo is 10 before this one.
    state = apply_judgment(state, _judgment(JudgmentGrade.MARVELOUS))
    assert state.raw_score == 1200


def test_max_possible_score_assumes_best_multiplier():
    state = _fold(create_score_state(3), [JudgmentGrade.MISS, JudgmentGrade.GOOD, JudgmentGrade.MARVELOUS])

    assert state.max_possible_score == 3 * 400
    assert state.total_judged == 3


def test_score_values_per_grade():
    state = _fold(
        create_score_state(6),
        [
            JudgmentGrade.PERFECT,
            JudgmentGrade.GREAT,
            JudgmentGrade.GOOD,
            JudgmentGrade.BOO,
            JudgmentGrade.MISS,
        ],
    )

    assert state.raw_score == 98 + 65 + 25


def test_health_is_clamped_to_maximum():
    state = _fold(create_score_state(100), [JudgmentGrade.MARVELOUS] * 60)

    assert state.health == 100


def test_custom_health_deltas():
    deltas = HealthDeltas(marvelous=5, perfect=4, great=3, good=1, boo=-10, miss=-25)
    state = apply_judgment(create_score_state(4), _judgment(JudgmentGrade.MISS), deltas)
    state = apply_judgment(state, _judgment(JudgmentGrade.GREAT), deltas)

    assert state.health == 50 - 25 + 3


def test_failed_is_sticky_after_health_reaches_zero():
    state = create_score_state(20)
    failed_at = None
    for index in range(10):
        state = apply_judgment(state, _judgment(JudgmentGrade.MISS, index))
        if state.failed and failed_at is None:
            failed_at = index
            assert state.health == 0

    assert failed_at == 6
    state = _fold(state, [JudgmentGrade.MARVELOUS] * 5)
    assert state.health > 0
    assert state.failed is True


# ── Final score ──────────────────────────────────────────────


def test_all_marvelous_play():
    state = _fold(create_score_state(50), [JudgmentGrade.MARVELOUS] * 50)

    assert calculate_final_score(state) == MAX_SCORE
    assert calculate_percentage(state) == 100
    assert is_full_combo(state)

    song, chart = _song_and_chart(50)
    results = generate_results(state, song, chart)
    assert results.grade is LetterGrade.AAAA
    assert results.is_full_combo


def test_all_miss_play():
    state = _fold(create_score_state(12), [JudgmentGrade.MISS] * 12)

    assert calculate_final_score(state) == 0
    assert calculate_percentage(state) == 0
    assert state.failed
    assert not is_full_combo(state)


def test_final_score_ignores_combo_multiplier():
    grades = [JudgmentGrade.MARVELOUS] * 40
    state = _fold(create_score_state(40), grades)

    assert state.raw_score > 40 * 100
    assert calculate_final_score(state) == MAX_SCORE


def test_final_score_rounds_half_up():
    # 1 good out of 8 notes: 25 / 800 = 0.03125 -> 31250 exactly.
    state = _fold(create_score_state(8), [JudgmentGrade.GOOD])
    assert calculate_final_score(state) == 31250

    # 1 perfect out of 3 notes: 98 / 300 * 1e6 = 326666.66...
    state = _fold(create_score_state(3), [JudgmentGrade.PERFECT])
    assert calculate_final_score(state) == 326667


def test_zero_note_chart_scores_zero():
    state = create_score_state(0)

    assert calculate_final_score(state) == 0
    assert calculate_percentage(state) == 0
    assert not is_full_combo(state)


# ── Grades and full combo ────────────────────────────────────


@pytest.mark.parametrize(
    "percentage, expected",
    [
        (100, LetterGrade.AAA),
        (99.99, LetterGrade.AA),
        (93, LetterGrade.AA),
        (92.9, LetterGrade.A),
        (80, LetterGrade.A),
        (65, LetterGrade.B),
        (45, LetterGrade.C),
        (44.9, LetterGrade.D),
        (0, LetterGrade.D),
    ],
)
def test_grade_thresholds(percentage, expected):
    assert calculate_grade(percentage) is expected


def test_full_marvelous_grade():
    assert calculate_grade(100, is_full_marvelous=True) is LetterGrade.AAAA
    assert calculate_grade(99, is_full_marvelous=True) is LetterGrade.AA


def test_perfects_are_graded_below_full_marvelous():
    state = _fold(create_score_state(2), [JudgmentGrade.MARVELOUS, JudgmentGrade.PERFECT])
    song, chart = _song_and_chart(2)

    results = generate_results(state, song, chart)

    assert results.percentage == pytest.approx(99.0)
    assert results.grade is LetterGrade.AA
    assert results.is_full_combo


def test_great_keeps_full_combo_but_good_breaks_it():
    great_state = _fold(create_score_state(2), [JudgmentGrade.MARVELOUS, JudgmentGrade.GREAT])
    good_state = _fold(create_score_state(2), [JudgmentGrade.MARVELOUS, JudgmentGrade.GOOD])

    assert is_full_combo(great_state)
    assert not is_full_combo(good_state)


def test_results_bundle_and_dict():
    song, chart = _song_and_chart(4)
    state = _fold(
        create_score_state(4),
        [JudgmentGrade.MARVELOUS, JudgmentGrade.MARVELOUS, JudgmentGrade.BOO, JudgmentGrade.GREAT],
    )

    results = generate_results(state, song, chart)

    assert results.song is song
    assert results.chart is chart
    assert results.max_combo == 2
    assert results.total_notes == 4
    assert results.failed is False
    assert results.is_full_combo is False
    assert results.judgment_counts == state.judgment_counts

    payload = results_to_dict(results)
    assert payload["difficulty"] == "Medium"
    assert payload["grade"] == results.grade.value
    assert payload["judgment_counts"] == {
        "marvelous": 2,
        "perfect": 0,
        "great": 1,
        "good": 0,
        "boo": 1,
        "miss": 0,
    }
