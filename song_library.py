# -*- coding: utf-8 -*-
########################
# song_library.py
########################
# Purpose:
# - Locate chart files under the songs directory and load them into Song values.
#
# Design notes:
# - Directory layout is an interface contract: <songs_dir>/<song_id>/chart.stp
# - Song id order is deterministic (lexicographic by directory name).
# - A song that cannot be read or parsed is logged and skipped, never fatal for the library.
#
########################
# Interfaces:
# Public constants:
# - CHART_FILE_NAME = "chart.stp"
#
# Public classes:
# - class SongLibrary
#   - __init__(songs_dir: pathlib.Path)
#   - songs_dir() -> pathlib.Path
#   - chart_path(song_id: str) -> pathlib.Path
#   - list_song_ids() -> list[str]
#   - load_song(song_id: str) -> Optional[Song]
#   - load_all_songs() -> list[Song]
#
# Inputs:
# - songs_dir from config.LibraryConfig.
#
# Outputs:
# - Song values for the CLI and any song-select collaborator.
#
########################

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import gameplay_models
import stp_parser

log = logging.getLogger(__name__)

CHART_FILE_NAME = "chart.stp"


class SongLibrary:
    def __init__(self, songs_dir: Path) -> None:
        self._songs_dir = Path(songs_dir)

    def songs_dir(self) -> Path:
        return self._songs_dir

    def chart_path(self, song_id: str) -> Path:
        song_id_text = str(song_id or "").strip()
        if not song_id_text:
            raise ValueError("song_id must be a non-empty string")
        return self._songs_dir / song_id_text / CHART_FILE_NAME

    def list_song_ids(self) -> List[str]:
        if not self._songs_dir.is_dir():
            return []
        song_ids = [
            entry.name
            for entry in self._songs_dir.iterdir()
            if entry.is_dir() and (entry / CHART_FILE_NAME).is_file()
        ]
        return sorted(song_ids)

    def load_song(self, song_id: str) -> Optional[gameplay_models.Song]:
        chart_path = self.chart_path(song_id)
        try:
            result = stp_parser.read_stp_file(chart_path, song_id)
        except stp_parser.StpError as exc:
            log.error("Failed to load chart %s: %s", chart_path, exc)
            return None

        for error in result.errors:
            log.warning("%s line %d: %s", chart_path, error.line, error.message)

        if result.song is None:
            log.error("No playable song in %s", chart_path)
        return result.song

    def load_all_songs(self) -> List[gameplay_models.Song]:
        songs: List[gameplay_models.Song] = []
        for song_id in self.list_song_ids():
            song = self.load_song(song_id)
            if song is not None:
                songs.append(song)
        log.info("Loaded %d song(s) from %s", len(songs), self._songs_dir)
        return songs
