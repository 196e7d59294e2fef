"""Beat-grid offset detection over merged timing points."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from . import grid as grid_math
from .grid import GridConfig
from .timing import (
    EndThenStartTiming,
    EndTiming,
    FindTarget,
    KeyframeTiming,
    OffbeatInfo,
    ProjectEndTiming,
    StartTiming,
    TimingPoint,
    TimingType,
)

__all__ = ["adjusted_frame", "nearest_beat_frame", "landing_range", "find_offbeats"]

logger = logging.getLogger(__name__)


def adjusted_frame(timing: TimingType, frame: int) -> int:
    """Return the frame compared against the grid; ends are evaluated one frame later."""

    if isinstance(timing, (EndTiming, ProjectEndTiming)):
        return frame + 1
    if isinstance(timing, (StartTiming, KeyframeTiming, EndThenStartTiming)):
        return frame
    raise TypeError(f"Unknown timing type: {timing!r}")


def nearest_beat_frame(grid: GridConfig, frame: int) -> int:
    """Return the grid frame of the whole beat closest to ``frame``."""

    beat = round(grid_math.frame_to_beat(grid, frame))
    return grid_math.beat_to_frame_int(grid, beat)


def landing_range(timing: TimingType, target: int) -> Tuple[int, int]:
    """
    Return the first and last frame a boundary occupies once snapped to ``target``.

    Ends finish the frame before the grid frame. An EndThenStart covers both
    the left object's new last frame and the right object's new start.
    """

    if isinstance(timing, (EndTiming, ProjectEndTiming)):
        return target - 1, target - 1
    if isinstance(timing, EndThenStartTiming):
        return target - 1, target
    if isinstance(timing, (StartTiming, KeyframeTiming)):
        return target, target
    raise TypeError(f"Unknown timing type: {timing!r}")


def _blocked_by_neighbor(
    point: TimingPoint,
    target: int,
    lowest: int,
    previous: Optional[TimingPoint],
    previous_frame: int,
    following: Optional[TimingPoint],
) -> bool:
    if point.layer is None:
        return False
    if previous is not None and previous.layer == point.layer and previous_frame >= lowest:
        return True
    if following is not None and following.layer == point.layer and following.frame <= target:
        return True
    return False


def find_offbeats(
    points: Sequence[TimingPoint],
    find_target: FindTarget,
    distance: int,
    grid: GridConfig,
) -> List[OffbeatInfo]:
    """
    Select points that sit within ``distance`` frames of, but not on, a beat.

    A point is dropped when its snapped boundary would land on or before the
    previous point of its layer, on or after the next one, or before frame 0.
    When the previous point is itself selected, the later of its current and
    snapped positions is compared against, so a batch fixing both never
    collides.

    Parameters:
        points (Sequence[TimingPoint]): Merged points in timeline order.
        find_target (FindTarget): Timing shapes to consider.
        distance (int): Largest accepted absolute offset in frames.
        grid (GridConfig): Project grid.

    Returns:
        List[OffbeatInfo]: Correctable points in input order with signed offsets.
    """

    if distance < 0:
        raise ValueError("distance must be >= 0")

    result: List[OffbeatInfo] = []
    landed: Dict[int, int] = {}
    for idx, point in enumerate(points):
        if not find_target.includes(point.timing):
            continue

        frame = adjusted_frame(point.timing, point.frame)
        target = nearest_beat_frame(grid, frame)
        offset = frame - target
        if offset == 0 or abs(offset) > distance:
            continue

        lowest, highest = landing_range(point.timing, target)
        if lowest < 0:
            logger.debug(
                "Skipping %s at frame %d on %s: grid frame %d is before the timeline start",
                type(point.timing).__name__,
                point.frame,
                point.layer_name,
                target,
            )
            continue

        previous = points[idx - 1] if idx > 0 else None
        previous_frame = -1
        if previous is not None:
            previous_frame = max(previous.frame, landed.get(idx - 1, previous.frame))
        following = points[idx + 1] if idx + 1 < len(points) else None
        if _blocked_by_neighbor(point, target, lowest, previous, previous_frame, following):
            logger.debug(
                "Skipping %s at frame %d on %s: grid frame %d collides with a neighbour",
                type(point.timing).__name__,
                point.frame,
                point.layer_name,
                target,
            )
            continue

        landed[idx] = highest
        result.append(OffbeatInfo.from_point(point, offset))
    return result
