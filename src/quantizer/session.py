"""Session object exposing detection, correction and navigation over a host timeline."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from . import grid as grid_math
from .corrector import fix_offbeat as _fix_offbeat
from .detector import find_offbeats
from .host import EditSection, TimelineHost
from .merger import merge_adjacent
from .remap import HandleRemap
from .scanner import ScanOptions, scan_timeline
from .timing import FindTarget, OffbeatInfo, ProjectEndTiming, TimingPoint

__all__ = ["FixSummary", "QuantizerSession", "collect_points"]

logger = logging.getLogger(__name__)


@dataclass
class FixSummary:
    """Outcome of a batch correction."""

    fixed: List[OffbeatInfo] = field(default_factory=list)
    skipped: List[OffbeatInfo] = field(default_factory=list)
    handle_map: HandleRemap = field(default_factory=HandleRemap)


def collect_points(
    section: EditSection,
    options: Optional[ScanOptions] = None,
    *,
    include_project_end: bool = False,
) -> List[TimingPoint]:
    """Scan and merge the timeline, appending the project end when requested."""

    points = merge_adjacent(scan_timeline(section, options))
    if include_project_end:
        project_end = section.get_project_end()
        if project_end is not None:
            points.append(
                TimingPoint(
                    timing=ProjectEndTiming(),
                    frame=project_end,
                    position=None,
                    layer_name="",
                    object=None,
                )
            )
    return points


class QuantizerSession:
    """
    Entry points for one host timeline.

    Every public call opens its own host edit section and threads it through the
    scanner, detector and corrector explicitly.
    """

    def __init__(self, host: TimelineHost, scan_options: Optional[ScanOptions] = None) -> None:
        self.host = host
        self.scan_options = scan_options or ScanOptions()

    def _detect(self, section: EditSection, find_target: FindTarget, distance: int) -> List[OffbeatInfo]:
        points = collect_points(section, self.scan_options, include_project_end=find_target.project_end)
        return find_offbeats(points, find_target, distance, section.grid)

    def find_offsync_objects(self, find_target: FindTarget, distance: int) -> List[OffbeatInfo]:
        """Return every correctable point for ``find_target`` within ``distance`` frames."""

        with self.host.edit_section() as section:
            result = self._detect(section, find_target, distance)
        logger.info("Detected %d offbeat points (distance=%d)", len(result), distance)
        return result

    def fix_offbeat(self, info: OffbeatInfo, handle_map: HandleRemap) -> None:
        """Correct a single point, recording reissued handles in ``handle_map``."""

        with self.host.edit_section() as section:
            _fix_offbeat(section, info, handle_map)

    def fix_all(
        self,
        infos: Sequence[OffbeatInfo],
        handle_map: Optional[HandleRemap] = None,
    ) -> FixSummary:
        """
        Correct ``infos`` in order inside one edit section.

        Each pending entry is re-resolved through the remap table right before it
        is fixed; entries whose object was removed are reported as skipped.
        Errors propagate after the already-applied corrections.
        """

        summary = FixSummary(handle_map=handle_map if handle_map is not None else HandleRemap())
        with self.host.edit_section() as section:
            for info in infos:
                current = summary.handle_map.resolve_info(info)
                if current is None:
                    logger.warning("Skipping point at frame %d: its object was removed", info.frame)
                    summary.skipped.append(info)
                    continue
                _fix_offbeat(section, current, summary.handle_map)
                summary.fixed.append(current)
        logger.info("Fixed %d points, skipped %d", len(summary.fixed), len(summary.skipped))
        return summary

    def select_next(
        self,
        find_target: FindTarget,
        distance: int,
        after: Optional[Tuple[int, int]] = None,
    ) -> Optional[OffbeatInfo]:
        """
        Move the cursor to the next offbeat point and focus its object.

        Points are ordered by ``(frame, layer)``; the first one strictly after
        ``after`` (a ``(layer, frame)`` cursor) is chosen, wrapping to the first
        point when none follows.
        """

        with self.host.edit_section() as section:
            candidates = self._detect(section, find_target, distance)
            if not candidates:
                return None
            ordered = sorted(candidates, key=_navigation_key)
            chosen = ordered[0]
            if after is not None:
                cursor_key = (after[1], after[0])
                for info in ordered:
                    if _navigation_key(info) > cursor_key:
                        chosen = info
                        break
            section.set_cursor(chosen.layer if chosen.layer is not None else 0, chosen.frame)
            if chosen.object is not None:
                section.focus_object(chosen.object)
        logger.info("Moved cursor to frame %d on %s", chosen.frame, chosen.layer_name or "project")
        return chosen

    def grid(self) -> grid_math.GridConfig:
        with self.host.edit_section() as section:
            return section.grid

    def max_frames_per_beat(self) -> float:
        return grid_math.max_frames_per_beat(self.grid())

    def clamp_distance(self, distance: int) -> int:
        """Bound ``distance`` to half a beat, beyond which the nearest beat is ambiguous."""

        limit = max(0, math.floor(self.max_frames_per_beat() / 2))
        if distance > limit:
            logger.warning("Distance %d exceeds half a beat; clamping to %d frames", distance, limit)
            return limit
        return distance


def _navigation_key(info: OffbeatInfo) -> Tuple[int, int]:
    return (info.frame, info.layer if info.layer is not None else -1)
