"""Frame, second and beat conversions for a project's BPM grid."""

from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction

__all__ = [
    "GridConfig",
    "frame_to_second",
    "second_to_frame",
    "beat_to_second",
    "second_to_beat",
    "beat_to_frame",
    "beat_to_frame_int",
    "frame_to_beat",
    "max_frames_per_beat",
]


@dataclass(frozen=True)
class GridConfig:
    """
    Grid parameters read from the host project.

    Attributes:
        fps (Fraction): Exact project frame rate.
        bpm (float): Grid tempo in beats per minute.
        offset (float): Time of beat zero, in seconds.
    """

    fps: Fraction
    bpm: float
    offset: float = 0.0


def frame_to_second(grid: GridConfig, frame: float) -> float:
    return frame * grid.fps.denominator / grid.fps.numerator


def second_to_frame(grid: GridConfig, second: float) -> float:
    return second * grid.fps.numerator / grid.fps.denominator


def beat_to_second(grid: GridConfig, beat: float) -> float:
    return 60.0 * beat / grid.bpm + grid.offset


def second_to_beat(grid: GridConfig, second: float) -> float:
    return (second - grid.offset) * grid.bpm / 60.0


def beat_to_frame(grid: GridConfig, beat: float) -> float:
    return second_to_frame(grid, beat_to_second(grid, beat))


def beat_to_frame_int(grid: GridConfig, beat: float) -> int:
    """Return the first whole frame at or after ``beat``."""

    return math.ceil(beat_to_frame(grid, beat))


def frame_to_beat(grid: GridConfig, frame: float) -> float:
    return second_to_beat(grid, frame_to_second(grid, frame))


def max_frames_per_beat(grid: GridConfig) -> float:
    """Return the length of one beat in frames."""

    return 60.0 * float(grid.fps) / grid.bpm
