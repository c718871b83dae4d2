# -*- coding: utf-8 -*-
########################
# paths.py
########################
# Purpose:
# - Central filesystem path helpers.
# - Defines where songs, the best-score file and the user config live.
#
# Design notes:
# - Keep path derivation consistent across modules.
# - Return pathlib.Path only. Nothing here creates directories.
#
########################
# Interfaces:
# Public functions:
# - user_config_path() -> pathlib.Path
# - user_data_path() -> pathlib.Path
# - default_songs_dir() -> pathlib.Path
# - default_scores_path() -> pathlib.Path
#
# Inputs:
# - None (derived from the current working directory and platformdirs).
#
# Outputs:
# - Paths used by config.py, song_library.py and score_store.py.
#
########################

from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

APP_NAME = "stepchart"


def user_config_path() -> Path:
    return Path(user_config_dir(APP_NAME, appauthor=False))


def user_data_path() -> Path:
    return Path(user_data_dir(APP_NAME, appauthor=False))


def default_songs_dir() -> Path:
    """Return the songs root directory (not created automatically)."""
    return Path.cwd() / "songs"


def default_scores_path() -> Path:
    """Return the best-score file location (not created automatically)."""
    return user_data_path() / "best_scores.json"
