from __future__ import annotations

from collections import Counter

import demo_song
from demo_song import DEMO_SONG_ID, create_demo_song
from gameplay_models import Difficulty, Direction


def test_demo_song_metadata():
    song = create_demo_song()

    assert song.id == DEMO_SONG_ID
    assert song.title == "Demo Song"
    assert song.bpm == 120
    assert song.music_file == "silence.mp3"
    assert [chart.difficulty for chart in song.charts] == [Difficulty.EASY]
    assert song.charts[0].level == 3


def test_demo_chart_layout():
    notes = create_demo_song().charts[0].notes

    # 4 quarter measures, 8 eighth measures and 4 measures with jumps.
    assert len(notes) == 4 * 4 + 8 * 8 + 4 * 6
    assert [note.id for note in notes] == list(range(len(notes)))
    assert all(a.time_ms <= b.time_ms for a, b in zip(notes, notes[1:]))
    assert notes[0].time_ms == 0
    assert notes[4].time_ms == 2000
    assert notes[17].time_ms - notes[16].time_ms == 250


def test_demo_chart_has_jumps():
    notes = create_demo_song().charts[0].notes
    per_time = Counter(note.time_ms for note in notes)

    jump_times = sorted(time_ms for time_ms, count in per_time.items() if count == 2)
    assert len(jump_times) == 8
    assert {note.direction for note in notes if note.time_ms == jump_times[0]} == {Direction.LEFT, Direction.RIGHT}


def test_module_smoke_check():
    demo_song._run_unit_tests()
