from __future__ import annotations

import logging

import pytest

from src.quantizer.errors import HostError
from src.quantizer.project import ProjectEditSection
from src.quantizer.remap import HandleRemap
from src.quantizer.session import QuantizerSession
from src.quantizer.timing import EndThenStartTiming, EndTiming, FindTarget, ProjectEndTiming, StartTiming
from tests.helpers.timeline_factory import build_timeline, layer_frames, make_alias


def test_fix_all_threads_reissued_handles() -> None:
    # Start and End of the same object are both off the grid.
    timeline = build_timeline([[(16, make_alias([0, 30], name="Pad"))]])
    session = QuantizerSession(timeline)

    infos = session.find_offsync_objects(FindTarget(), 2)
    assert [(type(i.timing), i.offset_frames) for i in infos] == [(StartTiming, 1), (EndTiming, 2)]

    summary = session.fix_all(infos)

    assert len(summary.fixed) == 2
    assert summary.skipped == []
    assert summary.fixed[1].object != infos[1].object
    assert summary.handle_map.resolve(infos[0].object) == timeline.layers[0].objects[0].handle
    assert layer_frames(timeline, 0) == [(15, "0,29")]
    assert session.find_offsync_objects(FindTarget(), 2) == []


def test_fix_all_skips_entries_whose_object_was_removed() -> None:
    timeline = build_timeline([[(0, make_alias([0, 16], name="Clip"))]])
    session = QuantizerSession(timeline)
    infos = session.find_offsync_objects(FindTarget(), 2)

    handle_map = HandleRemap()
    handle_map.mark_removed(infos[0].object)
    summary = session.fix_all(infos, handle_map)

    assert summary.fixed == []
    assert summary.skipped == infos
    assert layer_frames(timeline, 0) == [(0, "0,16")]


def test_fix_all_propagates_host_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    timeline = build_timeline([[(0, make_alias([0, 16], name="Clip"))]])
    session = QuantizerSession(timeline)
    infos = session.find_offsync_objects(FindTarget(), 2)

    def _reject(self: ProjectEditSection, alias: str, layer: int, start: int):
        raise HostError("rejected")

    monkeypatch.setattr(ProjectEditSection, "create_object_from_alias", _reject)
    handle_map = HandleRemap()

    with pytest.raises(HostError):
        session.fix_all(infos, handle_map)
    assert handle_map.resolve(infos[0].object) is None
    # the edit section was closed despite the failure
    with timeline.edit_section():
        pass


def test_fix_offbeat_single_point() -> None:
    timeline = build_timeline([[(0, make_alias([0, 16], name="Clip"))]])
    session = QuantizerSession(timeline)
    (info,) = session.find_offsync_objects(FindTarget(), 2)
    handle_map = HandleRemap()

    session.fix_offbeat(info, handle_map)

    assert len(handle_map) == 1
    assert layer_frames(timeline, 0) == [(0, "0,14")]


def test_project_end_is_fixed_through_session() -> None:
    timeline = build_timeline([[(0, make_alias([0, 10]))]], length=47)
    session = QuantizerSession(timeline)
    target = FindTarget(start=False, keyframe=False, end=False, project_end=True)

    infos = session.find_offsync_objects(target, 2)
    assert [i.timing for i in infos] == [ProjectEndTiming()]

    session.fix_all(infos)

    assert timeline.length == 45
    assert session.find_offsync_objects(target, 2) == []


def test_select_next_walks_points_and_wraps() -> None:
    timeline = build_timeline(
        [
            [(0, make_alias([0, 16], name="First"))],
            [(31, make_alias([0, 20], name="Second"))],
        ]
    )
    session = QuantizerSession(timeline)
    target = FindTarget()

    first = session.select_next(target, 2, after=(0, 0))
    assert first is not None and first.frame == 16
    assert timeline.cursor == (0, 16)
    assert timeline.focused == first.object

    second = session.select_next(target, 2, after=timeline.cursor)
    assert second is not None and second.frame == 31
    assert timeline.cursor == (1, 31)

    wrapped = session.select_next(target, 2, after=timeline.cursor)
    assert wrapped is not None and wrapped.frame == 16


def test_select_next_without_points_returns_none() -> None:
    timeline = build_timeline([[(0, make_alias([0, 14]))]])
    session = QuantizerSession(timeline)
    assert session.select_next(FindTarget(), 2) is None
    assert timeline.cursor == (0, 0)


def test_clamp_distance(caplog: pytest.LogCaptureFixture) -> None:
    session = QuantizerSession(build_timeline([]))
    assert session.max_frames_per_beat() == pytest.approx(15.0)
    assert session.clamp_distance(3) == 3
    with caplog.at_level(logging.WARNING):
        assert session.clamp_distance(10) == 7
    assert "clamping" in caplog.text


def test_fix_all_resolves_left_handle_of_chained_boundaries() -> None:
    # A|B and B|C both sit one frame late; the second boundary's left object
    # is reissued by the first fix.
    timeline = build_timeline(
        [
            [
                (0, make_alias([0, 15], name="A")),
                (16, make_alias([0, 14], name="B")),
                (31, make_alias([0, 10], name="C")),
            ]
        ]
    )
    session = QuantizerSession(timeline)
    infos = session.find_offsync_objects(FindTarget(), 2)
    assert [(type(i.timing), i.frame, i.offset_frames) for i in infos] == [
        (EndThenStartTiming, 16, 1),
        (EndThenStartTiming, 31, 1),
    ]

    summary = session.fix_all(infos)

    assert summary.skipped == []
    second = summary.fixed[1]
    assert isinstance(second.timing, EndThenStartTiming)
    assert second.timing.left_handle != infos[1].timing.left_handle
    assert layer_frames(timeline, 0) == [(0, "0,14"), (15, "0,14"), (30, "0,11")]
    assert session.find_offsync_objects(FindTarget(), 2) == []


def test_fix_all_keeps_object_when_beat_zero_precedes_timeline() -> None:
    timeline = build_timeline([[(0, make_alias([0, 14], name="Clip"))]], bpm_offset=-0.05)
    session = QuantizerSession(timeline)

    summary = session.fix_all(session.find_offsync_objects(FindTarget(), 2))

    assert [type(i.timing) for i in summary.fixed] == [EndTiming]
    assert layer_frames(timeline, 0) == [(0, "0,13")]


def test_fix_all_completes_when_short_object_neighbours_grid() -> None:
    timeline = build_timeline(
        [
            [(14, make_alias([0, 2], name="Short"))],
            [(0, make_alias([0, 16], name="Clip"))],
        ]
    )
    session = QuantizerSession(timeline)

    summary = session.fix_all(session.find_offsync_objects(FindTarget(), 2))

    assert len(summary.fixed) == 2
    assert layer_frames(timeline, 0) == [(15, "0,1")]
    assert layer_frames(timeline, 1) == [(0, "0,14")]
