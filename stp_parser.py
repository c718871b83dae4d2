# -*- coding: utf-8 -*-
########################
# stp_parser.py
########################
# Purpose:
# - Parse .stp chart text into a gameplay_models.Song with one Chart per difficulty.
# - Convert measure rows into absolute note times from BPM and offset.
#
# Design notes:
# - parse_stp_file never raises. Every problem is reported as a ParserError in the result.
# - Only TITLE, BPM and MUSIC are hard preconditions. Everything else is line-local:
#   the offending line is dropped and parsing continues.
# - Every measure is exactly 4 beats. The row count only sets the subdivision.
#
########################
# Interfaces:
# Public exceptions:
# - class StpError(Exception)
# - class StpReadError(StpError)
#
# Public dataclasses:
# - ParseResult(song: Optional[Song], errors: list[ParserError])
#
# Public functions:
# - parse_stp_file(content: str, song_id: str) -> ParseResult
# - read_stp_file(file_path: pathlib.Path, song_id: str) -> ParseResult
# - normalize_difficulty(difficulty: str) -> Optional[Difficulty]
# - beat_to_time(beat, bpm, offset_ms=0.0) -> float
# - time_to_beat(time_ms, bpm, offset_ms=0.0) -> float
#
# Inputs:
# - Full chart text (LF or CRLF) and an opaque song id.
#
# Outputs:
# - ParseResult for song_library.py and the CLI.
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
import math
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import gameplay_models
import timing


class StpError(Exception):
    """Base error for chart file handling."""


class StpReadError(StpError):
    """Raised when a chart file cannot be read or decoded."""


@dataclass
class ParseResult:
    song: Optional[gameplay_models.Song]
    errors: List[gameplay_models.ParserError] = field(default_factory=list)


@dataclass
class _ParsedHeader:
    title: Optional[str] = None
    artist: Optional[str] = None
    bpm: Optional[float] = None
    offset_ms: Optional[float] = None
    music: Optional[str] = None
    preview: Optional[float] = None


@dataclass
class _OpenChart:
    difficulty: gameplay_models.Difficulty
    level: int
    notes: List[gameplay_models.Note] = field(default_factory=list)


_CHAR_TO_DIRECTION: Dict[str, gameplay_models.Direction] = {
    "L": gameplay_models.Direction.LEFT,
    "D": gameplay_models.Direction.DOWN,
    "U": gameplay_models.Direction.UP,
    "R": gameplay_models.Direction.RIGHT,
}

_VALID_ROW_CHARS = {".", "L", "D", "U", "R"}

_VALID_MEASURE_LENGTHS = {4, 8, 12, 16, 24, 32, 48, 64, 96, 192}

_MIN_LEVEL = 1
_MAX_LEVEL = 20

_CHART_HEADER_PATTERN = re.compile(r"^//---\s*CHART:\s*(\w+)\s*\(Level\s*(\d+)\)\s*---$", re.IGNORECASE)


def _parse_js_float(value_text: str) -> Optional[float]:
    """Parse the longest leading decimal number, like a browser parseFloat."""
    match = re.match(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?Infinity)", value_text)
    if not match:
        return None
    number_text = match.group(1)
    if number_text.endswith("Infinity"):
        return -math.inf if number_text.startswith("-") else math.inf
    return float(number_text)


def normalize_difficulty(difficulty: str) -> Optional[gameplay_models.Difficulty]:
    difficulty_text = str(difficulty or "").strip()
    if not difficulty_text:
        return None
    label = difficulty_text[0].upper() + difficulty_text[1:].lower()
    for candidate in gameplay_models.Difficulty:
        if candidate.value == label:
            return candidate
    return None


def _parse_header_line(line_text: str) -> Optional[Tuple[str, str]]:
    colon_index = line_text.find(":")
    if colon_index == -1:
        return None
    key = line_text[1:colon_index].strip().upper()
    value = line_text[colon_index + 1:].strip()
    return key, value


def _parse_headers(lines: List[str]) -> Tuple[_ParsedHeader, List[gameplay_models.ParserError]]:
    header = _ParsedHeader()
    errors: List[gameplay_models.ParserError] = []

    for line_index, raw_line in enumerate(lines):
        line_text = raw_line.strip()
        if not line_text.startswith("#"):
            continue
        line_number = line_index + 1

        parsed = _parse_header_line(line_text)
        if parsed is None:
            errors.append(gameplay_models.ParserError(line=line_number, message=f"Invalid header format: {line_text}"))
            continue

        key, value = parsed
        if key == "TITLE":
            header.title = value
        elif key == "ARTIST":
            header.artist = value or "Unknown"
        elif key == "BPM":
            bpm_value = _parse_js_float(value)
            if bpm_value is None or not math.isfinite(bpm_value) or bpm_value <= 0.0:
                errors.append(
                    gameplay_models.ParserError(
                        line=line_number,
                        message=f"Invalid BPM: {value}. Must be a positive number.",
                    )
                )
            else:
                header.bpm = bpm_value
        elif key == "OFFSET":
            offset_value = _parse_js_float(value)
            if offset_value is None or not math.isfinite(offset_value):
                errors.append(gameplay_models.ParserError(line=line_number, message=f"Invalid offset: {value}"))
            else:
                # Seconds in the file, milliseconds in memory.
                header.offset_ms = offset_value * 1000.0
        elif key == "MUSIC":
            header.music = value
        elif key == "PREVIEW":
            preview_value = _parse_js_float(value)
            if preview_value is not None and math.isfinite(preview_value):
                header.preview = preview_value

    return header, errors


def _parse_chart_declaration(line_text: str) -> Optional[Tuple[gameplay_models.Difficulty, int]]:
    match = _CHART_HEADER_PATTERN.match(line_text)
    if not match:
        return None

    difficulty = normalize_difficulty(match.group(1))
    if difficulty is None:
        return None

    level = int(match.group(2))
    return difficulty, max(_MIN_LEVEL, min(_MAX_LEVEL, level))


def _validate_note_row(row_text: str, line_number: int) -> Optional[gameplay_models.ParserError]:
    if len(row_text) != 4:
        return gameplay_models.ParserError(
            line=line_number,
            message=f"Invalid row length: expected 4 characters, got {len(row_text)}",
        )
    for position, char in enumerate(row_text):
        if char not in _VALID_ROW_CHARS:
            return gameplay_models.ParserError(
                line=line_number,
                message=f"Invalid character '{char}' at position {position + 1}",
            )
    return None


def _row_directions(row_text: str) -> List[gameplay_models.Direction]:
    return [_CHAR_TO_DIRECTION[char] for char in row_text if char in _CHAR_TO_DIRECTION]


def _process_measure(
    measure_rows: List[str],
    *,
    measure_index: int,
    bpm: float,
    offset_ms: float,
    first_note_id: int,
    start_line: int,
) -> Tuple[List[gameplay_models.Note], List[gameplay_models.ParserError]]:
    notes: List[gameplay_models.Note] = []
    errors: List[gameplay_models.ParserError] = []

    row_count = len(measure_rows)
    if row_count not in _VALID_MEASURE_LENGTHS and (row_count < 1 or row_count > 192):
        errors.append(
            gameplay_models.ParserError(line=start_line, message=f"Unusual measure length: {row_count} rows")
        )

    beats_per_measure = 4.0
    note_id = int(first_note_id)
    for row_index, row_text in enumerate(measure_rows):
        directions = _row_directions(row_text)
        if not directions:
            continue

        beat_in_measure = (float(row_index) / float(row_count)) * beats_per_measure
        time_ms = timing.beat_to_ms(measure_index * beats_per_measure + beat_in_measure, bpm, offset_ms)
        for direction in directions:
            notes.append(
                gameplay_models.Note(
                    id=note_id,
                    time_ms=time_ms,
                    direction=direction,
                    kind=gameplay_models.NoteKind.TAP,
                )
            )
            note_id += 1

    return notes, errors


def _finalize_chart(open_chart: _OpenChart) -> gameplay_models.Chart:
    # Stable sort keeps id order for notes sharing a time.
    sorted_notes = sorted(open_chart.notes, key=lambda note: note.time_ms)
    return gameplay_models.Chart(
        difficulty=open_chart.difficulty,
        level=int(open_chart.level),
        notes=tuple(sorted_notes),
    )


def parse_stp_file(content: str, song_id: str) -> ParseResult:
    lines = re.split(r"\r?\n", str(content))
    errors: List[gameplay_models.ParserError] = []

    header, header_errors = _parse_headers(lines)
    errors.extend(header_errors)

    if not header.title:
        errors.append(gameplay_models.ParserError(line=0, message="Missing required header: TITLE"))
    if header.bpm is None:
        errors.append(gameplay_models.ParserError(line=0, message="Missing required header: BPM"))
    if not header.music:
        errors.append(gameplay_models.ParserError(line=0, message="Missing required header: MUSIC"))

    if not header.title or header.bpm is None or not header.music:
        return ParseResult(song=None, errors=errors)

    bpm = float(header.bpm)
    offset_ms = float(header.offset_ms) if header.offset_ms is not None else 0.0

    charts: List[gameplay_models.Chart] = []
    open_chart: Optional[_OpenChart] = None
    measure_rows: List[str] = []
    measure_start_line = 0
    measure_index = 0
    next_note_id = 0

    def flush_measure() -> None:
        nonlocal next_note_id
        if open_chart is None or not measure_rows:
            return
        measure_notes, measure_errors = _process_measure(
            measure_rows,
            measure_index=measure_index,
            bpm=bpm,
            offset_ms=offset_ms,
            first_note_id=next_note_id,
            start_line=measure_start_line,
        )
        open_chart.notes.extend(measure_notes)
        next_note_id += len(measure_notes)
        errors.extend(measure_errors)

    for line_index, raw_line in enumerate(lines):
        line_text = raw_line.strip()
        line_number = line_index + 1

        if not line_text:
            continue
        if line_text.startswith("#"):
            continue
        # Comments may appear anywhere, including inside a chart.
        if line_text.startswith("//") and "CHART:" not in line_text.upper():
            continue

        if line_text.startswith("//---"):
            if open_chart is not None:
                flush_measure()
                charts.append(_finalize_chart(open_chart))
                open_chart = None

            declaration = _parse_chart_declaration(line_text)
            if declaration is None:
                errors.append(
                    gameplay_models.ParserError(line=line_number, message=f"Invalid chart declaration: {line_text}")
                )
                continue

            difficulty, level = declaration
            open_chart = _OpenChart(difficulty=difficulty, level=level)
            measure_rows = []
            measure_start_line = line_number
            measure_index = 0
            next_note_id = 0
            continue

        if line_text == ",":
            flush_measure()
            measure_index += 1
            measure_rows = []
            measure_start_line = line_number
            continue

        if line_text.startswith("//"):
            continue
        if open_chart is None:
            continue

        row_error = _validate_note_row(line_text, line_number)
        if row_error is not None:
            errors.append(row_error)
            continue
        measure_rows.append(line_text)

    if open_chart is not None:
        flush_measure()
        charts.append(_finalize_chart(open_chart))

    if not charts:
        errors.append(gameplay_models.ParserError(line=0, message="No valid charts found in file"))
        return ParseResult(song=None, errors=errors)

    song = gameplay_models.Song(
        id=str(song_id),
        title=str(header.title),
        artist=header.artist if header.artist is not None else "Unknown",
        bpm=bpm,
        offset_ms=offset_ms,
        music_file=str(header.music),
        preview_start=float(header.preview) if header.preview is not None else 0.0,
        charts=tuple(charts),
    )
    return ParseResult(song=song, errors=errors)


def read_stp_file(file_path: Path, song_id: str) -> ParseResult:
    try:
        content = Path(file_path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise StpReadError(f"Chart file is not valid UTF-8: {file_path}") from exc
    except OSError as exc:
        raise StpReadError(f"Failed to read chart file: {file_path}") from exc
    return parse_stp_file(content, song_id)


def beat_to_time(beat: float, bpm: float, offset_ms: float = 0.0) -> float:
    return timing.beat_to_ms(beat, bpm, offset_ms)


def time_to_beat(time_ms: float, bpm: float, offset_ms: float = 0.0) -> float:
    return timing.ms_to_beat(time_ms, bpm, offset_ms)


def _run_unit_tests() -> None:
    text = "#TITLE:Test Song\n#BPM:120\n#MUSIC:song.mp3\n\n//--- CHART: Easy (Level 1) ---\nL...\n....\nLDUR\n....\n,\n"
    result = parse_stp_file(text, "test")
    assert result.song is not None, result.errors
    chart = result.song.charts[0]
    assert [note.time_ms for note in chart.notes] == [0.0, 1000.0, 1000.0, 1000.0, 1000.0]
    assert [note.id for note in chart.notes] == [0, 1, 2, 3, 4]

    missing = parse_stp_file("#TITLE:X\n#MUSIC:a.mp3\n", "x")
    assert missing.song is None
    assert any("BPM" in error.message for error in missing.errors)


if __name__ == "__main__":
    _run_unit_tests()
    print("stp_parser.py: ok")
