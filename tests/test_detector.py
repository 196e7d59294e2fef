from __future__ import annotations

from typing import List

import pytest

from src.quantizer.detector import adjusted_frame, find_offbeats, landing_range, nearest_beat_frame
from src.quantizer.host import ObjectHandle
from src.quantizer.merger import merge_adjacent
from src.quantizer.project import ProjectTimeline
from src.quantizer.scanner import scan_timeline
from src.quantizer.session import collect_points
from src.quantizer.timing import (
    EndThenStartTiming,
    EndTiming,
    FindTarget,
    KeyframeTiming,
    OffbeatInfo,
    ProjectEndTiming,
    StartTiming,
)
from tests.helpers.timeline_factory import build_timeline, grid, make_alias


def _detect(timeline: ProjectTimeline, distance: int, target: FindTarget | None = None) -> List[OffbeatInfo]:
    with timeline.edit_section() as section:
        points = merge_adjacent(scan_timeline(section))
        return find_offbeats(points, target or FindTarget(), distance, section.grid)


def test_end_points_are_evaluated_one_frame_later() -> None:
    assert adjusted_frame(EndTiming("x"), 14) == 15
    assert adjusted_frame(ProjectEndTiming(), 14) == 15
    assert adjusted_frame(StartTiming("x"), 14) == 14
    assert adjusted_frame(KeyframeTiming("x", 0), 14) == 14


def test_nearest_beat_frame() -> None:
    g = grid(30, 120.0)
    assert nearest_beat_frame(g, 17) == 15
    assert nearest_beat_frame(g, 23) == 30
    assert nearest_beat_frame(g, 0) == 0


def test_end_within_distance_is_reported() -> None:
    timeline = build_timeline([[(0, make_alias([0, 16], name="Clip"))]])

    infos = _detect(timeline, distance=2)

    assert len(infos) == 1
    info = infos[0]
    assert info.timing == EndTiming("Clip")
    assert info.frame == 16
    assert info.offset_frames == 2
    assert info.layer == 0


def test_offset_beyond_distance_is_ignored() -> None:
    timeline = build_timeline([[(0, make_alias([0, 16]))]])
    assert _detect(timeline, distance=1) == []


def test_offset_is_signed_and_within_bounds() -> None:
    timeline = build_timeline([[(0, make_alias([0, 14, 29], name="Clip"))]])

    infos = _detect(timeline, distance=2)

    assert [(type(i.timing), i.frame, i.offset_frames) for i in infos] == [(KeyframeTiming, 14, -1)]
    for info in infos:
        assert 0 < abs(info.offset_frames) <= 2


def test_find_target_filters_shapes() -> None:
    timeline = build_timeline([[(16, make_alias([0, 13, 20], name="Clip"))]])

    all_infos = _detect(timeline, distance=2)
    starts_only = _detect(timeline, distance=2, target=FindTarget(start=True, keyframe=False, end=False))

    assert {type(i.timing) for i in all_infos} == {StartTiming, KeyframeTiming}
    assert [type(i.timing) for i in starts_only] == [StartTiming]


def test_negative_distance_is_rejected() -> None:
    with pytest.raises(ValueError):
        find_offbeats([], FindTarget(), -1, grid())


def test_following_neighbor_on_grid_frame_blocks_correction() -> None:
    # 30fps at 90bpm puts beats every 20 frames.
    timeline = build_timeline(
        [[(0, make_alias([0, 18], name="A")), (20, make_alias([0, 10], name="B"))]],
        bpm=90.0,
    )
    assert _detect(timeline, distance=2) == []


def test_following_neighbor_past_grid_frame_allows_correction() -> None:
    timeline = build_timeline(
        [[(0, make_alias([0, 18], name="A")), (25, make_alias([0, 10], name="B"))]],
        bpm=90.0,
    )

    infos = _detect(timeline, distance=2)

    assert [(i.timing, i.offset_frames) for i in infos] == [(EndTiming("A"), -1)]


def test_neighbor_on_other_layer_does_not_block() -> None:
    timeline = build_timeline(
        [[(0, make_alias([0, 18], name="A"))], [(20, make_alias([0, 10], name="B"))]],
        bpm=90.0,
    )

    infos = _detect(timeline, distance=2)

    assert [(i.timing, i.offset_frames) for i in infos] == [(EndTiming("A"), -1)]


def test_previous_neighbor_at_or_past_grid_frame_blocks_correction() -> None:
    timeline = build_timeline(
        [[(0, make_alias([0, 21], name="A")), (23, make_alias([0, 10], name="B"))]],
        bpm=90.0,
    )

    infos = _detect(timeline, distance=3)

    assert [(i.timing, i.offset_frames) for i in infos] == [(EndTiming("A"), 2)]


def test_project_end_point_is_detected_when_requested() -> None:
    timeline = build_timeline([[(0, make_alias([0, 10]))]], length=47)
    target = FindTarget(start=False, keyframe=False, end=False, project_end=True)

    with timeline.edit_section() as section:
        points = collect_points(section, include_project_end=True)
        infos = find_offbeats(points, target, 2, section.grid)

    assert len(infos) == 1
    assert infos[0].timing == ProjectEndTiming()
    assert infos[0].frame == 46
    assert infos[0].offset_frames == 2
    assert infos[0].layer is None


def test_touching_neighbor_is_corrected_as_one_boundary() -> None:
    # An End at 18 next to a Start at 19 never moves alone; both shift together.
    timeline = build_timeline(
        [[(0, make_alias([0, 18], name="A")), (19, make_alias([0, 10], name="B"))]],
        bpm=90.0,
    )

    infos = _detect(timeline, distance=2)

    assert [(type(i.timing).__name__, i.frame, i.offset_frames) for i in infos] == [
        ("EndThenStartTiming", 19, -1)
    ]


def test_start_snapping_before_frame_zero_is_skipped() -> None:
    # With beat zero 0.05s before the timeline start its grid frame is -1.
    timeline = build_timeline([[(0, make_alias([0, 14], name="Clip"))]], bpm_offset=-0.05)

    infos = _detect(timeline, distance=2)

    assert [(type(i.timing), i.offset_frames) for i in infos] == [(EndTiming, 1)]


def test_end_landing_on_own_start_is_skipped() -> None:
    timeline = build_timeline(
        [
            [(14, make_alias([0, 2], name="Short"))],
            [(0, make_alias([0, 16], name="Clip"))],
        ]
    )

    infos = _detect(timeline, distance=2)

    assert [(i.timing, i.frame, i.offset_frames) for i in infos] == [
        (StartTiming("Short"), 14, -1),
        (EndTiming("Clip"), 16, 2),
    ]


def test_end_is_checked_against_snapped_previous_point() -> None:
    # The Start moves from 13 to 15; the End would land on 14, before it.
    timeline = build_timeline([[(13, make_alias([0, 3], name="Short"))]])

    infos = _detect(timeline, distance=2)

    assert [(i.timing, i.offset_frames) for i in infos] == [(StartTiming("Short"), -2)]


def test_landing_range() -> None:
    assert landing_range(EndTiming("x"), 15) == (14, 14)
    assert landing_range(ProjectEndTiming(), 15) == (14, 14)
    assert landing_range(StartTiming("x"), 15) == (15, 15)
    assert landing_range(EndThenStartTiming("a", ObjectHandle(1), "b"), 15) == (14, 15)
