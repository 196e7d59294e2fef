"""Rich tables and JSON payloads describing detection and correction results."""

from __future__ import annotations

from typing import Any, Dict, Sequence

from rich.table import Table

from .grid import GridConfig, max_frames_per_beat
from .session import FixSummary
from .timing import (
    EndThenStartTiming,
    EndTiming,
    KeyframeTiming,
    OffbeatInfo,
    ProjectEndTiming,
    StartTiming,
    TimingType,
)

__all__ = ["describe_timing", "offbeat_table", "detection_payload", "fix_payload", "grid_payload"]


def describe_timing(timing: TimingType) -> str:
    """Return a human-readable description of the timing shape and its objects."""

    if isinstance(timing, StartTiming):
        return f"start of {timing.object_name}"
    if isinstance(timing, KeyframeTiming):
        return f"keyframe {timing.keyframe_index + 1} of {timing.object_name}"
    if isinstance(timing, EndTiming):
        return f"end of {timing.object_name}"
    if isinstance(timing, EndThenStartTiming):
        return f"{timing.left_name} → {timing.right_name}"
    if isinstance(timing, ProjectEndTiming):
        return "project end"
    raise TypeError(f"Unknown timing type: {timing!r}")


def offbeat_table(infos: Sequence[OffbeatInfo], *, title: str = "Offbeat points") -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Layer")
    table.add_column("Frame", justify="right")
    table.add_column("Offset", justify="right")
    table.add_column("Timing")
    for idx, info in enumerate(infos):
        offset_style = "red" if info.offset_frames > 0 else "green"
        table.add_row(
            str(idx),
            info.layer_name or "-",
            str(info.frame),
            f"[{offset_style}]{info.offset_frames:+d}[/]",
            describe_timing(info.timing),
        )
    return table


def grid_payload(grid: GridConfig) -> Dict[str, Any]:
    return {
        "fps": [grid.fps.numerator, grid.fps.denominator],
        "bpm": grid.bpm,
        "bpm_offset": grid.offset,
        "max_frames_per_beat": max_frames_per_beat(grid),
    }


def detection_payload(infos: Sequence[OffbeatInfo], *, distance: int, grid: GridConfig) -> Dict[str, Any]:
    return {
        "distance": distance,
        "grid": grid_payload(grid),
        "count": len(infos),
        "points": [info.to_json() for info in infos],
    }


def fix_payload(summary: FixSummary, *, dry_run: bool = False) -> Dict[str, Any]:
    return {
        "dry_run": dry_run,
        "fixed": [info.to_json() for info in summary.fixed],
        "skipped": [info.to_json() for info in summary.skipped],
        "handle_map": {str(old): new for old, new in summary.handle_map.as_dict().items()},
    }
