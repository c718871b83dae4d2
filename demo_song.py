# -*- coding: utf-8 -*-
########################
# demo_song.py
########################
# Purpose:
# - Built-in song for running without any chart files or audio.
#
# Design notes:
# - 16 measures at 120 BPM: quarter notes, then eighth notes, then jumps on the downbeats.
# - Note ids follow playback order, the same as stp_parser output.
#
########################
# Interfaces:
# Public functions:
# - create_demo_song() -> gameplay_models.Song
#
# Inputs:
# - None.
#
# Outputs:
# - Song used by `stepchart autoplay --demo`.
#
########################

from __future__ import annotations

from typing import List

import gameplay_models
import timing

DEMO_SONG_ID = "demo"


def _build_demo_notes(*, bpm: float, measures: int) -> List[gameplay_models.Note]:
    directions = gameplay_models.DIRECTIONS
    notes: List[gameplay_models.Note] = []
    note_id = 0

    def add(beat: float, direction: gameplay_models.Direction) -> None:
        nonlocal note_id
        notes.append(gameplay_models.Note(id=note_id, time_ms=timing.beat_to_ms(beat, bpm), direction=direction))
        note_id += 1

    for measure in range(measures):
        measure_beat = measure * 4.0
        if measure < 4:
            # Quarter notes.
            for beat in range(4):
                add(measure_beat + beat, directions[beat % 4])
        elif measure < 12:
            # Eighth notes.
            for eighth in range(8):
                add(measure_beat + eighth * 0.5, directions[eighth % 4])
        else:
            # Jumps on the downbeats.
            for beat in range(4):
                if beat % 2 == 0:
                    add(measure_beat + beat, gameplay_models.Direction.LEFT)
                    add(measure_beat + beat, gameplay_models.Direction.RIGHT)
                else:
                    add(measure_beat + beat, directions[beat])

    return notes


def create_demo_song() -> gameplay_models.Song:
    """Built-in song for running without any chart files or audio."""
    bpm = 120.0
    chart = gameplay_models.Chart(
        difficulty=gameplay_models.Difficulty.EASY,
        level=3,
        notes=tuple(_build_demo_notes(bpm=bpm, measures=16)),
    )
    return gameplay_models.Song(
        id=DEMO_SONG_ID,
        title="Demo Song",
        artist="StepMania Web",
        bpm=bpm,
        offset_ms=0.0,
        music_file="silence.mp3",
        preview_start=0.0,
        charts=(chart,),
    )


def _run_unit_tests() -> None:
    song = create_demo_song()
    notes = song.charts[0].notes
    assert len(notes) == 104
    assert [note.id for note in notes] == list(range(104))
    assert all(first.time_ms <= second.time_ms for first, second in zip(notes, notes[1:]))


if __name__ == "__main__":
    _run_unit_tests()
    print("demo_song.py: ok")
