"""
stepchart.py

Command line entrypoint for the chart, judgment and scoring core.

Commands
- check <chart.stp>            Parse a chart file and report errors and chart summaries.
- autoplay [<chart.stp>|--demo] Replay a chart with scripted presses and print the results.
- songs                        List songs found in the configured songs directory.
- best <song_id> <difficulty>  Show the stored best score.

Every command prints one JSON document. Exit code 0 on success, 2 on failure.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import config
import demo_song
import gameplay_models
import judge
import note_scheduler
import score_store
import scoring
import song_library
import stp_parser

log = logging.getLogger(__name__)


class CommandError(Exception):
    pass


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _chart_summary(chart: gameplay_models.Chart) -> Dict[str, Any]:
    notes = chart.notes
    return {
        "difficulty": chart.difficulty.value,
        "level": int(chart.level),
        "note_count": len(notes),
        "first_note_ms": float(notes[0].time_ms) if notes else None,
        "last_note_ms": float(notes[-1].time_ms) if notes else None,
    }


def _song_summary(song: gameplay_models.Song) -> Dict[str, Any]:
    return {
        "id": song.id,
        "title": song.title,
        "artist": song.artist,
        "bpm": float(song.bpm),
        "offset_ms": float(song.offset_ms),
        "music_file": song.music_file,
        "preview_start": float(song.preview_start),
        "charts": [_chart_summary(chart) for chart in song.charts],
    }


def _errors_payload(errors: Sequence[gameplay_models.ParserError]) -> List[Dict[str, Any]]:
    return [{"line": int(error.line), "message": str(error.message)} for error in errors]


def _load_song_file(chart_path: Path, song_id: Optional[str]) -> stp_parser.ParseResult:
    resolved_song_id = song_id or chart_path.parent.name or chart_path.stem
    try:
        return stp_parser.read_stp_file(chart_path, resolved_song_id)
    except stp_parser.StpError as exc:
        raise CommandError(str(exc)) from exc


def _select_chart(song: gameplay_models.Song, difficulty_text: Optional[str]) -> gameplay_models.Chart:
    if not difficulty_text:
        return song.charts[0]
    difficulty = stp_parser.normalize_difficulty(difficulty_text)
    if difficulty is None:
        allowed = ", ".join(item.value for item in gameplay_models.Difficulty)
        raise CommandError(f"Unsupported difficulty: {difficulty_text!r}. Allowed: {allowed}")
    chart = song.chart_for(difficulty)
    if chart is None:
        raise CommandError(f"Song {song.id!r} has no {difficulty.value} chart")
    return chart


def autoplay_chart(
    chart: gameplay_models.Chart,
    *,
    press_offset_ms: float = 0.0,
    skip_every: int = 0,
    end_margin_ms: float = judge.DEFAULT_END_MARGIN_MS,
    health_deltas: Optional[config.HealthDeltas] = None,
) -> judge.JudgeEngine:
    """Replay `chart` with one press per note at note time + `press_offset_ms`.

    With `skip_every` > 0 every n-th note (1-based) is left unpressed and becomes a miss.
    """
    engine = judge.JudgeEngine(note_scheduler.NoteScheduler(chart), health_deltas)

    presses: List[gameplay_models.InputEvent] = []
    for index, note in enumerate(chart.notes):
        if skip_every > 0 and (index + 1) % skip_every == 0:
            continue
        presses.append(
            gameplay_models.InputEvent(
                direction=note.direction,
                timestamp_ms=float(note.time_ms) + float(press_offset_ms),
            )
        )
    presses.sort(key=lambda item: item.timestamp_ms)

    for press in presses:
        engine.update_for_time(press.timestamp_ms)
        engine.on_input_event(press)

    final_time_ms = float(chart.notes[-1].time_ms) if chart.notes else 0.0
    final_time_ms += float(end_margin_ms) + 1.0
    engine.update_for_time(final_time_ms)
    if not engine.is_finished(final_time_ms, end_margin_ms=end_margin_ms):
        log.warning("Autoplay ended with unjudged notes")
    return engine


def _command_check(parsed_args: argparse.Namespace, _app_config: config.AppConfig) -> int:
    result = _load_song_file(Path(parsed_args.chart_path), parsed_args.song_id)
    _print_json(
        {
            "ok": result.song is not None,
            "errors": _errors_payload(result.errors),
            "song": _song_summary(result.song) if result.song is not None else None,
        }
    )
    return 0 if result.song is not None else 2


def _command_autoplay(parsed_args: argparse.Namespace, app_config: config.AppConfig) -> int:
    if parsed_args.demo:
        song = demo_song.create_demo_song()
    else:
        if not parsed_args.chart_path:
            raise CommandError("autoplay needs a chart path or --demo")
        result = _load_song_file(Path(parsed_args.chart_path), parsed_args.song_id)
        if result.song is None:
            messages = "; ".join(error.message for error in result.errors)
            raise CommandError(f"Chart could not be parsed: {messages}")
        song = result.song

    chart = _select_chart(song, parsed_args.difficulty)
    engine = autoplay_chart(
        chart,
        press_offset_ms=float(parsed_args.press_offset_ms),
        skip_every=int(parsed_args.skip_every),
        end_margin_ms=float(app_config.gameplay.end_margin_ms),
        health_deltas=app_config.health,
    )
    results = engine.results(song)

    payload: Dict[str, Any] = {"ok": True, "results": scoring.results_to_dict(results)}
    if parsed_args.record:
        store = score_store.BestScoreStore(app_config.library.resolved_scores_path())
        try:
            store.load()
            payload["new_best"] = store.record(results)
            store.save()
        except score_store.ScoreStoreError as exc:
            raise CommandError(str(exc)) from exc
    _print_json(payload)
    return 0


def _command_songs(_parsed_args: argparse.Namespace, app_config: config.AppConfig) -> int:
    library = song_library.SongLibrary(app_config.library.resolved_songs_dir())
    songs = library.load_all_songs()
    _print_json(
        {
            "ok": True,
            "songs_dir": str(library.songs_dir()),
            "songs": [_song_summary(song) for song in songs],
        }
    )
    return 0


def _command_best(parsed_args: argparse.Namespace, app_config: config.AppConfig) -> int:
    difficulty = stp_parser.normalize_difficulty(parsed_args.difficulty)
    if difficulty is None:
        raise CommandError(f"Unsupported difficulty: {parsed_args.difficulty!r}")

    store = score_store.BestScoreStore(app_config.library.resolved_scores_path())
    try:
        store.load()
    except score_store.ScoreStoreError as exc:
        raise CommandError(str(exc)) from exc

    best = store.get_best(parsed_args.song_id, difficulty)
    _print_json({"ok": True, "best": dataclasses.asdict(best) if best is not None else None})
    return 0


def _build_argument_parser() -> argparse.ArgumentParser:
    argument_parser = argparse.ArgumentParser(description="Rhythm chart parser, judge and scorer")
    argument_parser.add_argument("--config", default=None, help="Path to a stepchart_config.json file.")
    argument_parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level.",
    )
    subparsers = argument_parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Parse a chart file and report errors.")
    check_parser.add_argument("chart_path")
    check_parser.add_argument("--song-id", default=None)
    check_parser.set_defaults(handler=_command_check)

    autoplay_parser = subparsers.add_parser("autoplay", help="Replay a chart with scripted presses.")
    autoplay_parser.add_argument("chart_path", nargs="?", default=None)
    autoplay_parser.add_argument("--demo", action="store_true", help="Use the built-in demo song.")
    autoplay_parser.add_argument("--song-id", default=None)
    autoplay_parser.add_argument("--difficulty", default=None)
    autoplay_parser.add_argument("--press-offset-ms", type=float, default=0.0, help="Signed offset of every press.")
    autoplay_parser.add_argument("--skip-every", type=int, default=0, help="Leave every n-th note unpressed.")
    autoplay_parser.add_argument("--record", action="store_true", help="Record the result in the best-score store.")
    autoplay_parser.set_defaults(handler=_command_autoplay)

    songs_parser = subparsers.add_parser("songs", help="List songs in the songs directory.")
    songs_parser.set_defaults(handler=_command_songs)

    best_parser = subparsers.add_parser("best", help="Show the stored best score.")
    best_parser.add_argument("song_id")
    best_parser.add_argument("difficulty")
    best_parser.set_defaults(handler=_command_best)

    return argument_parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parsed_args = _build_argument_parser().parse_args(argv)
    logging.basicConfig(
        level=parsed_args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config_path = Path(parsed_args.config) if parsed_args.config else None
        app_config, _resolved_path = config.load_config(config_path)
        return int(parsed_args.handler(parsed_args, app_config))
    except (CommandError, ValueError, OSError) as exception:
        _print_json({"ok": False, "error": str(exception)})
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
