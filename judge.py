# -*- coding: utf-8 -*-
########################
# judge.py
########################
# Purpose:
# - Per-play driver that turns time steps and input presses into judgments.
# - Folds every judgment, hit or miss, into the ScoreState through scoring.apply_judgment.
#
# Design notes:
# - Pure gameplay logic. The caller supplies song time; nothing here reads a clock.
# - Per time step the caller runs update_for_time first, then on_input_event for each
#   buffered press in arrival order. Each note is judged exactly once (first writer wins).
# - NoteScheduler owns the note list. JudgeEngine marks notes via NoteScheduler.mark_judged.
#
########################
# Interfaces:
# Public classes:
# - class JudgeEngine
#   - __init__(note_scheduler: NoteScheduler, health_deltas: Optional[HealthDeltas] = None)
#   - score_state() -> ScoreState
#   - judgments() -> list[Judgment]
#   - combo_breaks() -> int
#   - reset() -> None
#   - on_input_event(input_event: InputEvent, song_time_ms: float) -> Optional[Judgment]
#   - update_for_time(song_time_ms: float) -> list[Judgment]
#   - is_finished(song_time_ms: float, *, end_margin_ms: float = 2000.0) -> bool
#   - results(song: Song) -> ResultsData
#
# Inputs:
# - InputEvent values already converted to song time (see timing_model.TimingModel).
# - song_time_ms: float
#
# Outputs:
# - Judgment values for presentation, ScoreState for live display, ResultsData at the end.
#
########################

from __future__ import annotations

import logging
from typing import List, Optional

import config
import gameplay_models
import note_scheduler
import scoring
import timing

log = logging.getLogger(__name__)

DEFAULT_END_MARGIN_MS = 2000.0


class JudgeEngine:
    def __init__(
        self,
        note_scheduler_obj: note_scheduler.NoteScheduler,
        health_deltas: Optional[config.HealthDeltas] = None,
    ) -> None:
        self._note_scheduler = note_scheduler_obj
        self._health_deltas = health_deltas
        self._score_state = scoring.create_score_state(len(note_scheduler_obj.chart().notes))
        self._judgments: List[gameplay_models.Judgment] = []
        self._combo_breaks = 0

    def score_state(self) -> scoring.ScoreState:
        return self._score_state

    def judgments(self) -> List[gameplay_models.Judgment]:
        return list(self._judgments)

    def combo_breaks(self) -> int:
        return self._combo_breaks

    def reset(self) -> None:
        self._note_scheduler.reset()
        self._score_state = scoring.create_score_state(len(self._note_scheduler.chart().notes))
        self._judgments.clear()
        self._combo_breaks = 0

    def _record(
        self,
        scheduled_note: gameplay_models.ScheduledNote,
        judgment: gameplay_models.Judgment,
    ) -> None:
        self._note_scheduler.mark_judged(scheduled_note, judgment)
        previous_combo = self._score_state.combo
        was_failed = self._score_state.failed
        self._score_state = scoring.apply_judgment(self._score_state, judgment, self._health_deltas)
        self._judgments.append(judgment)

        if previous_combo > 0 and self._score_state.combo == 0:
            self._combo_breaks += 1
            log.debug("Combo of %d broken by %s on note %d", previous_combo, judgment.grade.value, judgment.note_id)
        if self._score_state.failed and not was_failed:
            log.info("Health depleted at %.1f ms", judgment.time_ms)

    def on_input_event(
        self,
        input_event: gameplay_models.InputEvent,
        song_time_ms: Optional[float] = None,
    ) -> Optional[gameplay_models.Judgment]:
        """Judge one press. `song_time_ms` defaults to the event's own timestamp."""
        if not input_event.pressed:
            return None

        input_time_ms = float(input_event.timestamp_ms) if song_time_ms is None else float(song_time_ms)
        scheduled_note = timing.find_matching_note(
            self._note_scheduler.active_notes(),
            input_event.direction,
            input_time_ms,
        )
        if scheduled_note is None:
            return None

        judgment = timing.judge_note(scheduled_note, input_time_ms)
        self._record(scheduled_note, judgment)
        return judgment

    def update_for_time(self, song_time_ms: float) -> List[gameplay_models.Judgment]:
        misses: List[gameplay_models.Judgment] = []
        for scheduled_note in self._note_scheduler.notes_past_miss_window(song_time_ms=float(song_time_ms)):
            judgment = gameplay_models.Judgment(
                note_id=scheduled_note.id,
                timing_diff_ms=float(song_time_ms) - float(scheduled_note.time_ms),
                grade=gameplay_models.JudgmentGrade.MISS,
                time_ms=float(song_time_ms),
            )
            self._record(scheduled_note, judgment)
            misses.append(judgment)
        return misses

    def is_finished(self, song_time_ms: float, *, end_margin_ms: float = DEFAULT_END_MARGIN_MS) -> bool:
        if not self._note_scheduler.all_judged():
            return False
        last_note_time = self._note_scheduler.last_note_time_ms()
        if last_note_time is None:
            return True
        return float(song_time_ms) > last_note_time + float(end_margin_ms)

    def results(self, song: gameplay_models.Song) -> scoring.ResultsData:
        return scoring.generate_results(self._score_state, song, self._note_scheduler.chart())


def _run_unit_tests() -> None:
    notes = (gameplay_models.Note(id=0, time_ms=1000.0, direction=gameplay_models.Direction.LEFT),)
    chart = gameplay_models.Chart(difficulty=gameplay_models.Difficulty.EASY, level=1, notes=notes)
    engine = JudgeEngine(note_scheduler.NoteScheduler(chart))

    hit = engine.on_input_event(gameplay_models.InputEvent(direction=gameplay_models.Direction.LEFT, timestamp_ms=1000.0))
    assert hit is not None
    assert hit.grade is gameplay_models.JudgmentGrade.MARVELOUS
    assert engine.score_state().raw_score == 100

    stray = engine.on_input_event(gameplay_models.InputEvent(direction=gameplay_models.Direction.DOWN, timestamp_ms=1000.0))
    assert stray is None

    engine.reset()
    misses = engine.update_for_time(2000.0)
    assert len(misses) == 1
    assert engine.score_state().judgment_counts.miss == 1
    assert engine.update_for_time(3000.0) == []
    assert engine.is_finished(3001.0)


if __name__ == "__main__":
    _run_unit_tests()
    print("judge.py: ok")
