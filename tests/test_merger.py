from __future__ import annotations

from typing import List, Sequence

from src.quantizer.merger import merge_adjacent
from src.quantizer.scanner import scan_timeline
from src.quantizer.timing import EndThenStartTiming, EndTiming, StartTiming, TimingPoint
from tests.helpers.timeline_factory import ObjectSpec, build_timeline, make_alias


def _scan(layers: Sequence[Sequence[ObjectSpec]]) -> List[TimingPoint]:
    timeline = build_timeline(layers)
    with timeline.edit_section() as section:
        return scan_timeline(section)


def test_touching_objects_merge_into_one_point() -> None:
    points = _scan([[(0, make_alias([0, 10], name="A")), (11, make_alias([0, 8], name="B"))]])

    merged = merge_adjacent(points)

    assert [type(p.timing) for p in merged] == [StartTiming, EndThenStartTiming, EndTiming]
    boundary = merged[1]
    assert boundary.frame == 11
    assert boundary.object == points[2].object
    assert boundary.timing == EndThenStartTiming(left_name="A", left_handle=points[1].object, right_name="B")
    assert boundary.position == points[2].position


def test_gap_between_objects_is_not_merged() -> None:
    points = _scan([[(0, make_alias([0, 10])), (12, make_alias([0, 8]))]])
    assert merge_adjacent(points) == points


def test_objects_on_different_layers_are_not_merged() -> None:
    points = _scan([[(0, make_alias([0, 10]))], [(11, make_alias([0, 8]))]])
    assert merge_adjacent(points) == points


def test_chain_of_three_objects() -> None:
    points = _scan(
        [[(0, make_alias([0, 4])), (5, make_alias([0, 4])), (10, make_alias([0, 4]))]]
    )

    merged = merge_adjacent(points)

    assert [(type(p.timing).__name__, p.frame) for p in merged] == [
        ("StartTiming", 0),
        ("EndThenStartTiming", 5),
        ("EndThenStartTiming", 10),
        ("EndTiming", 14),
    ]
