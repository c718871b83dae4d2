# -*- coding: utf-8 -*-
########################
# timing.py
########################
# Purpose:
# - Judgment engine: timing windows, grade classification and input-to-note matching.
# - Beat and millisecond conversion helpers.
#
# Design notes:
# - Pure functions. No I/O and no mutation of the notes passed in.
# - Signed differences are input time minus note time. Negative means early.
# - Windows are symmetric except that anything later than the boo window is a miss,
#   while anything earlier than it is not judgeable yet.
#
########################
# Interfaces:
# Public dataclasses:
# - TimingWindows(marvelous_ms, perfect_ms, great_ms, good_ms, boo_ms)
#   - classify_delta(delta_ms: float) -> Optional[JudgmentGrade]
#
# Public functions:
# - calculate_judgment(timing_diff_ms: float) -> Optional[JudgmentGrade]
# - is_note_missed(note_time_ms: float, current_time_ms: float) -> bool
# - is_note_judgeable(note_time_ms: float, current_time_ms: float) -> bool
# - find_matching_note(notes, direction, current_time_ms) -> Optional[ScheduledNote]
# - judge_note(note, input_time_ms: float) -> Judgment
# - beat_to_ms(beat, bpm, offset_ms=0.0) -> float
# - ms_to_beat(time_ms, bpm, offset_ms=0.0) -> float
# - get_measure_info(time_ms, bpm, offset_ms=0.0) -> MeasureInfo
#
# Inputs:
# - Notes from NoteScheduler, a direction, and a game time in milliseconds.
#
# Outputs:
# - JudgmentGrade values and Judgment records consumed by scoring.apply_judgment.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable, Optional, Union

import gameplay_models


@dataclass(frozen=True)
class TimingWindows:
    marvelous_ms: float = 22.5
    perfect_ms: float = 45.0
    great_ms: float = 90.0
    good_ms: float = 135.0
    boo_ms: float = 180.0

    def classify_delta(self, delta_ms: float) -> Optional[gameplay_models.JudgmentGrade]:
        delta = float(delta_ms)
        if delta < -float(self.boo_ms):
            return None

        abs_delta = abs(delta)
        if abs_delta <= float(self.marvelous_ms):
            return gameplay_models.JudgmentGrade.MARVELOUS
        if abs_delta <= float(self.perfect_ms):
            return gameplay_models.JudgmentGrade.PERFECT
        if abs_delta <= float(self.great_ms):
            return gameplay_models.JudgmentGrade.GREAT
        if abs_delta <= float(self.good_ms):
            return gameplay_models.JudgmentGrade.GOOD
        if abs_delta <= float(self.boo_ms):
            return gameplay_models.JudgmentGrade.BOO
        return gameplay_models.JudgmentGrade.MISS


TIMING_WINDOWS = TimingWindows()


@dataclass(frozen=True)
class MeasureInfo:
    measure: int
    beat_in_measure: float


def calculate_judgment(timing_diff_ms: float) -> Optional[gameplay_models.JudgmentGrade]:
    """Grade a signed timing difference, or None when the input is too early to judge."""
    return TIMING_WINDOWS.classify_delta(timing_diff_ms)


def is_note_missed(note_time_ms: float, current_time_ms: float) -> bool:
    return float(current_time_ms) - float(note_time_ms) > TIMING_WINDOWS.boo_ms


def is_note_judgeable(note_time_ms: float, current_time_ms: float) -> bool:
    diff = float(current_time_ms) - float(note_time_ms)
    return -TIMING_WINDOWS.boo_ms <= diff <= TIMING_WINDOWS.boo_ms


def find_matching_note(
    notes: Iterable[gameplay_models.ScheduledNote],
    direction: gameplay_models.Direction,
    current_time_ms: float,
) -> Optional[gameplay_models.ScheduledNote]:
    """Return the unjudged note in `direction` closest to `current_time_ms`.

    Only notes inside the judgeable window are candidates. Hold notes that have
    already started are skipped. When two candidates are equally close the one
    with the lowest note id wins.
    """
    best_note: Optional[gameplay_models.ScheduledNote] = None
    best_abs_delta = math.inf

    for candidate in notes:
        if candidate.direction is not direction:
            continue
        if candidate.is_judged:
            continue
        if candidate.kind is gameplay_models.NoteKind.HOLD and candidate.hold_state is not None:
            if candidate.hold_state.started:
                continue
        if not is_note_judgeable(candidate.time_ms, current_time_ms):
            continue

        abs_delta = abs(float(current_time_ms) - float(candidate.time_ms))
        if abs_delta < best_abs_delta:
            best_note = candidate
            best_abs_delta = abs_delta
        elif abs_delta == best_abs_delta and best_note is not None and candidate.id < best_note.id:
            best_note = candidate

    return best_note


def judge_note(
    note: Union[gameplay_models.Note, gameplay_models.ScheduledNote],
    input_time_ms: float,
) -> gameplay_models.Judgment:
    timing_diff = float(input_time_ms) - float(note.time_ms)
    grade = calculate_judgment(timing_diff)
    if grade is None:
        # Only reachable when the caller skipped the judgeable-window check.
        grade = gameplay_models.JudgmentGrade.MISS

    return gameplay_models.Judgment(
        note_id=int(note.id),
        timing_diff_ms=timing_diff,
        grade=grade,
        time_ms=float(input_time_ms),
    )


def beat_to_ms(beat: float, bpm: float, offset_ms: float = 0.0) -> float:
    ms_per_beat = 60000.0 / float(bpm)
    return float(offset_ms) + float(beat) * ms_per_beat


def ms_to_beat(time_ms: float, bpm: float, offset_ms: float = 0.0) -> float:
    ms_per_beat = 60000.0 / float(bpm)
    return (float(time_ms) - float(offset_ms)) / ms_per_beat


def get_measure_info(time_ms: float, bpm: float, offset_ms: float = 0.0) -> MeasureInfo:
    total_beats = ms_to_beat(time_ms, bpm, offset_ms)
    measure = int(math.floor(total_beats / 4.0))
    beat_in_measure = total_beats - measure * 4.0
    return MeasureInfo(measure=measure, beat_in_measure=beat_in_measure)


def _run_unit_tests() -> None:
    grade = gameplay_models.JudgmentGrade
    boundaries = [
        (0, grade.MARVELOUS),
        (22, grade.MARVELOUS),
        (23, grade.PERFECT),
        (45, grade.PERFECT),
        (46, grade.GREAT),
        (90, grade.GREAT),
        (91, grade.GOOD),
        (135, grade.GOOD),
        (136, grade.BOO),
        (180, grade.BOO),
        (181, grade.MISS),
        (-181, None),
    ]
    for diff, expected in boundaries:
        assert calculate_judgment(diff) is expected, (diff, calculate_judgment(diff))

    notes = [
        gameplay_models.ScheduledNote(note=gameplay_models.Note(id=0, time_ms=1000.0, direction=gameplay_models.Direction.LEFT)),
        gameplay_models.ScheduledNote(note=gameplay_models.Note(id=1, time_ms=1100.0, direction=gameplay_models.Direction.LEFT)),
    ]
    match = find_matching_note(notes, gameplay_models.Direction.LEFT, 1080.0)
    assert match is not None and match.id == 1
    assert find_matching_note(notes, gameplay_models.Direction.UP, 1000.0) is None

    assert abs(ms_to_beat(beat_to_ms(3.25, 150.0, -40.0), 150.0, -40.0) - 3.25) < 1e-9


if __name__ == "__main__":
    _run_unit_tests()
    print("timing.py: ok")
