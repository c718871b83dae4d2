# -*- coding: utf-8 -*-
########################
# gameplay_models.py
########################
# Purpose:
# - Core gameplay data models shared by the parser, judgment engine and score accumulator.
# - Defines Song, Chart, Note and the per-play ScheduledNote working copy.
#
# Design notes:
# - Parsed models (Song, Chart, Note) are frozen. A play mutates only ScheduledNote.
# - Times are float milliseconds from song start. Negative values are valid during pre-roll.
# - Enumerations are closed sets. Code that branches on them must cover every member.
#
########################
# Interfaces:
# Public enums:
# - class Direction(enum.Enum): LEFT | DOWN | UP | RIGHT
# - class Difficulty(enum.Enum): BEGINNER | EASY | MEDIUM | HARD | CHALLENGE
# - class NoteKind(enum.Enum): TAP | HOLD (HOLD is reserved, the parser never emits it)
# - class JudgmentGrade(enum.Enum): MARVELOUS | PERFECT | GREAT | GOOD | BOO | MISS
# - class LetterGrade(enum.Enum): AAAA | AAA | AA | A | B | C | D
#
# Public dataclasses:
# - HoldState(started: bool, dropped: bool, released: bool)
# - Note(id: int, time_ms: float, direction: Direction, kind: NoteKind, end_time_ms: Optional[float])
# - ScheduledNote(note: Note, is_judged: bool, judgment: Optional[Judgment], hold_state: Optional[HoldState])
# - Judgment(note_id: int, timing_diff_ms: float, grade: JudgmentGrade, time_ms: float)
# - Chart(difficulty: Difficulty, level: int, notes: tuple[Note, ...])
# - Song(id, title, artist, bpm, offset_ms, music_file, preview_start, charts)
# - InputEvent(direction: Direction, timestamp_ms: float, pressed: bool)
# - ParserError(line: int, message: str)
#
# Inputs/Outputs:
# - These types are exchanged between stp_parser, timing, note_scheduler, judge and scoring.
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
import enum
from typing import Optional, Tuple


class Direction(enum.Enum):
    LEFT = "left"
    DOWN = "down"
    UP = "up"
    RIGHT = "right"


# Column order of a note row.
DIRECTIONS: Tuple[Direction, ...] = (Direction.LEFT, Direction.DOWN, Direction.UP, Direction.RIGHT)


class Difficulty(enum.Enum):
    BEGINNER = "Beginner"
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    CHALLENGE = "Challenge"


class NoteKind(enum.Enum):
    TAP = "tap"
    HOLD = "hold"


class JudgmentGrade(enum.Enum):
    """Judgment grades, best to worst."""

    MARVELOUS = "marvelous"
    PERFECT = "perfect"
    GREAT = "great"
    GOOD = "good"
    BOO = "boo"
    MISS = "miss"


class LetterGrade(enum.Enum):
    AAAA = "AAAA"
    AAA = "AAA"
    AA = "AA"
    A = "A"
    B = "B"
    C = "C"
    D = "D"


@dataclass
class HoldState:
    started: bool = False
    dropped: bool = False
    released: bool = False


@dataclass(frozen=True)
class Note:
    id: int
    time_ms: float
    direction: Direction
    kind: NoteKind = NoteKind.TAP
    end_time_ms: Optional[float] = None


@dataclass(frozen=True)
class Judgment:
    note_id: int
    timing_diff_ms: float
    grade: JudgmentGrade
    time_ms: float


@dataclass
class ScheduledNote:
    note: Note
    is_judged: bool = False
    judgment: Optional[Judgment] = None
    hold_state: Optional[HoldState] = None

    @property
    def id(self) -> int:
        return self.note.id

    @property
    def time_ms(self) -> float:
        return self.note.time_ms

    @property
    def direction(self) -> Direction:
        return self.note.direction

    @property
    def kind(self) -> NoteKind:
        return self.note.kind


@dataclass(frozen=True)
class Chart:
    difficulty: Difficulty
    level: int
    notes: Tuple[Note, ...] = ()


@dataclass(frozen=True)
class Song:
    id: str
    title: str
    artist: str
    bpm: float
    offset_ms: float
    music_file: str
    preview_start: float
    charts: Tuple[Chart, ...] = field(default_factory=tuple)

    def chart_for(self, difficulty: Difficulty) -> Optional[Chart]:
        for chart in self.charts:
            if chart.difficulty is difficulty:
                return chart
        return None


@dataclass(frozen=True)
class InputEvent:
    direction: Direction
    timestamp_ms: float
    pressed: bool = True


@dataclass(frozen=True)
class ParserError:
    line: int
    message: str
