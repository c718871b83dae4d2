# -*- coding: utf-8 -*-
########################
# timing_model.py
########################
# Purpose:
# - Single source of truth for song time in gameplay.
# - Converts wall-clock timestamps (audio clock or fallback timer) into song time in milliseconds.
#
# Design notes:
# - Gameplay code must use TimingModel.song_time_ms and TimingModel.to_song_time_ms.
# - Keep this module pure and deterministic. The caller supplies every timestamp.
# - Song time is negative during the pre-roll, then 0 at the first beat offset origin.
# - The audio offset is a fixed user setting, not a latency estimate.
#
########################
# Interfaces:
# Public dataclasses:
# - TimingSnapshot(elapsed_ms: float, prep_time_ms: float, audio_offset_ms: float, song_time_ms: float)
#
# Public classes:
# - class TimingModel
#   - __init__(*, prep_time_ms: float = 3000.0, audio_offset_ms: float = 0.0)
#   - start(start_timestamp_ms: float) -> None
#   - set_audio_offset_ms(audio_offset_ms: float) -> None
#   - update_timestamp_ms(timestamp_ms: float) -> None
#   - to_song_time_ms(timestamp_ms: float) -> float
#   - song_time_ms() -> float
#   - snapshot() -> TimingSnapshot
#
# Inputs:
# - Timestamps from the enclosing frame loop and from buffered key events.
#
# Outputs:
# - Song time used by JudgeEngine.update_for_time and JudgeEngine.on_input_event.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import config


@dataclass(frozen=True)
class TimingSnapshot:
    elapsed_ms: float
    prep_time_ms: float
    audio_offset_ms: float
    song_time_ms: float


class TimingModel:
    def __init__(self, *, prep_time_ms: float = 3000.0, audio_offset_ms: float = 0.0) -> None:
        self._prep_time_ms = max(0.0, float(prep_time_ms))
        self._audio_offset_ms = float(audio_offset_ms)
        self._start_timestamp_ms: Optional[float] = None
        self._elapsed_ms = 0.0

    @classmethod
    def from_config(cls, gameplay_config: config.GameplayConfig) -> "TimingModel":
        return cls(
            prep_time_ms=float(gameplay_config.prep_time_ms),
            audio_offset_ms=float(gameplay_config.audio_offset_ms),
        )

    def start(self, start_timestamp_ms: float) -> None:
        self._start_timestamp_ms = float(start_timestamp_ms)
        self._elapsed_ms = 0.0

    def prep_time_ms(self) -> float:
        return float(self._prep_time_ms)

    def audio_offset_ms(self) -> float:
        return float(self._audio_offset_ms)

    def set_audio_offset_ms(self, audio_offset_ms: float) -> None:
        self._audio_offset_ms = float(audio_offset_ms)

    def update_timestamp_ms(self, timestamp_ms: float) -> None:
        if self._start_timestamp_ms is None:
            raise RuntimeError("TimingModel.start must be called before updating time")
        self._elapsed_ms = float(timestamp_ms) - self._start_timestamp_ms

    def to_song_time_ms(self, timestamp_ms: float) -> float:
        if self._start_timestamp_ms is None:
            raise RuntimeError("TimingModel.start must be called before converting timestamps")
        elapsed_ms = float(timestamp_ms) - self._start_timestamp_ms
        return elapsed_ms - self._prep_time_ms + self._audio_offset_ms

    def song_time_ms(self) -> float:
        return self._elapsed_ms - self._prep_time_ms + self._audio_offset_ms

    def snapshot(self) -> TimingSnapshot:
        return TimingSnapshot(
            elapsed_ms=float(self._elapsed_ms),
            prep_time_ms=self.prep_time_ms(),
            audio_offset_ms=self.audio_offset_ms(),
            song_time_ms=self.song_time_ms(),
        )


def _run_unit_tests() -> None:
    model = TimingModel(prep_time_ms=3000.0, audio_offset_ms=-20.0)
    model.start(10_000.0)
    assert model.song_time_ms() == -3020.0

    model.update_timestamp_ms(13_020.0)
    assert abs(model.song_time_ms()) < 1e-9
    assert abs(model.to_song_time_ms(13_520.0) - 500.0) < 1e-9

    snap = model.snapshot()
    assert snap.song_time_ms == model.song_time_ms()


if __name__ == "__main__":
    _run_unit_tests()
    print("timing_model.py: ok")
