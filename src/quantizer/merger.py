"""Fusion of back-to-back object boundaries on the same layer."""

from __future__ import annotations

from typing import List, Sequence

from .timing import EndThenStartTiming, EndTiming, StartTiming, TimingPoint

__all__ = ["merge_adjacent"]


def merge_adjacent(points: Sequence[TimingPoint]) -> List[TimingPoint]:
    """
    Replace each End directly followed by a touching Start with one EndThenStart point.

    A Start merges with the previously emitted point when that point is an End on
    the same layer exactly one frame earlier. The merged point keeps the Start's
    frame, placement and handle, and records the left object's name and handle.
    """

    merged: List[TimingPoint] = []
    for point in points:
        if isinstance(point.timing, StartTiming) and merged:
            previous = merged[-1]
            if (
                isinstance(previous.timing, EndTiming)
                and previous.object is not None
                and previous.layer == point.layer
                and previous.frame + 1 == point.frame
            ):
                merged.pop()
                merged.append(
                    TimingPoint(
                        timing=EndThenStartTiming(
                            left_name=previous.timing.object_name,
                            left_handle=previous.object,
                            right_name=point.timing.object_name,
                        ),
                        frame=point.frame,
                        position=point.position,
                        layer_name=point.layer_name,
                        object=point.object,
                    )
                )
                continue
        merged.append(point)
    return merged
