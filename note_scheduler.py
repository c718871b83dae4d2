# -*- coding: utf-8 -*-
########################
# note_scheduler.py
########################
# Purpose:
# - Own the per-play working copy of a chart's notes and their judged state.
# - Provide candidate queries for JudgeEngine (active notes, notes past the miss window).
#
# Design notes:
# - The parsed Chart is never mutated. reset() restores a fresh play of the same chart.
# - Schedule order is deterministic: sort by (time_ms, id).
# - Judged state is one-way. Judging a note twice is a caller bug and raises ValueError.
#
########################
# Interfaces:
# Public classes:
# - class NoteScheduler
#   - __init__(chart: gameplay_models.Chart)
#   - chart() -> gameplay_models.Chart
#   - reset() -> None
#   - scheduled_notes() -> list[ScheduledNote]
#   - active_notes() -> list[ScheduledNote]
#   - mark_judged(scheduled_note: ScheduledNote, judgment: Judgment) -> None
#   - notes_past_miss_window(*, song_time_ms: float) -> list[ScheduledNote]
#   - all_judged() -> bool
#   - last_note_time_ms() -> Optional[float]
#
# Inputs:
# - Chart from stp_parser and song time in milliseconds.
#
# Outputs:
# - ScheduledNote views for JudgeEngine and timing.find_matching_note.
#
########################

from __future__ import annotations

from typing import List, Optional

import gameplay_models
import timing


def _new_scheduled_note(note: gameplay_models.Note) -> gameplay_models.ScheduledNote:
    hold_state = gameplay_models.HoldState() if note.kind is gameplay_models.NoteKind.HOLD else None
    return gameplay_models.ScheduledNote(note=note, hold_state=hold_state)


class NoteScheduler:
    def __init__(self, chart: gameplay_models.Chart) -> None:
        self._chart = chart
        self._sorted_notes = sorted(chart.notes, key=lambda item: (float(item.time_ms), int(item.id)))
        self._scheduled_notes: List[gameplay_models.ScheduledNote] = []
        self.reset()

    def chart(self) -> gameplay_models.Chart:
        return self._chart

    def reset(self) -> None:
        self._scheduled_notes = [_new_scheduled_note(note) for note in self._sorted_notes]
        self._first_unjudged_index = 0

    def scheduled_notes(self) -> List[gameplay_models.ScheduledNote]:
        return list(self._scheduled_notes)

    def active_notes(self) -> List[gameplay_models.ScheduledNote]:
        return [item for item in self._scheduled_notes[self._first_unjudged_index:] if not item.is_judged]

    def mark_judged(self, scheduled_note: gameplay_models.ScheduledNote, judgment: gameplay_models.Judgment) -> None:
        if scheduled_note.is_judged:
            raise ValueError(f"Note {scheduled_note.id} is already judged")
        if judgment.note_id != scheduled_note.id:
            raise ValueError(f"Judgment for note {judgment.note_id} applied to note {scheduled_note.id}")
        scheduled_note.is_judged = True
        scheduled_note.judgment = judgment
        self._advance_first_unjudged_index()

    def _advance_first_unjudged_index(self) -> None:
        index = self._first_unjudged_index
        while index < len(self._scheduled_notes) and self._scheduled_notes[index].is_judged:
            index += 1
        self._first_unjudged_index = index

    def notes_past_miss_window(self, *, song_time_ms: float) -> List[gameplay_models.ScheduledNote]:
        candidates: List[gameplay_models.ScheduledNote] = []
        for scheduled_note in self._scheduled_notes[self._first_unjudged_index:]:
            if not timing.is_note_missed(scheduled_note.time_ms, song_time_ms):
                break
            if not scheduled_note.is_judged:
                candidates.append(scheduled_note)
        return candidates

    def all_judged(self) -> bool:
        return self._first_unjudged_index >= len(self._scheduled_notes)

    def last_note_time_ms(self) -> Optional[float]:
        if not self._scheduled_notes:
            return None
        return float(self._scheduled_notes[-1].time_ms)


def _run_unit_tests() -> None:
    notes = (
        gameplay_models.Note(id=0, time_ms=500.0, direction=gameplay_models.Direction.UP),
        gameplay_models.Note(id=1, time_ms=1000.0, direction=gameplay_models.Direction.LEFT),
        gameplay_models.Note(id=2, time_ms=1000.0, direction=gameplay_models.Direction.DOWN),
    )
    chart = gameplay_models.Chart(difficulty=gameplay_models.Difficulty.EASY, level=1, notes=notes)
    scheduler = NoteScheduler(chart)

    assert [item.id for item in scheduler.active_notes()] == [0, 1, 2]

    misses = scheduler.notes_past_miss_window(song_time_ms=1000.0)
    assert [item.id for item in misses] == [0]

    judgment = timing.judge_note(misses[0], 1000.0)
    scheduler.mark_judged(misses[0], judgment)
    assert [item.id for item in scheduler.active_notes()] == [1, 2]
    assert chart.notes[0] is notes[0]

    scheduler.reset()
    assert not scheduler.all_judged()
    assert len(scheduler.active_notes()) == 3


if __name__ == "__main__":
    _run_unit_tests()
    print("note_scheduler.py: ok")
