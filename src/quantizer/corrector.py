"""Frame-array rewrites that snap offbeat timing points onto the grid."""

from __future__ import annotations

import logging
from typing import List, Sequence

from .alias import AliasTable, read_frames, with_frames
from .errors import HostError, QuantizerError
from .host import EditSection, ObjectHandle, ObjectPlacement
from .remap import HandleRemap
from .timing import (
    EndThenStartTiming,
    EndTiming,
    KeyframeTiming,
    OffbeatInfo,
    ProjectEndTiming,
    StartTiming,
)

__all__ = [
    "shift_start",
    "shift_end",
    "shift_keyframe",
    "fix_starting_gap",
    "fix_ending_gap",
    "fix_keyframe_gap",
    "fix_offbeat",
]

logger = logging.getLogger(__name__)


def shift_start(frames: Sequence[int], offset_frames: int) -> List[int]:
    """Push every marker after the start right by ``offset_frames`` (the object moves left)."""

    return [frames[0]] + [frame + offset_frames for frame in frames[1:]]


def shift_end(frames: Sequence[int], offset_frames: int) -> List[int]:
    shifted = list(frames)
    shifted[-1] -= offset_frames
    return shifted


def shift_keyframe(frames: Sequence[int], keyframe_index: int, offset_frames: int) -> List[int]:
    position = keyframe_index + 1
    if not 0 < position < len(frames) - 1:
        raise IndexError(f"keyframe {keyframe_index} out of range for {len(frames)} frames")
    shifted = list(frames)
    shifted[position] -= offset_frames
    return shifted


def fix_starting_gap(alias: AliasTable, offset_frames: int) -> AliasTable:
    return with_frames(alias, shift_start(read_frames(alias), offset_frames))


def fix_ending_gap(alias: AliasTable, offset_frames: int) -> AliasTable:
    return with_frames(alias, shift_end(read_frames(alias), offset_frames))


def fix_keyframe_gap(alias: AliasTable, keyframe_index: int, offset_frames: int) -> AliasTable:
    return with_frames(alias, shift_keyframe(read_frames(alias), keyframe_index, offset_frames))


def _replace_object(
    section: EditSection,
    handle: ObjectHandle,
    new_alias: AliasTable,
    placement: ObjectPlacement,
    handle_map: HandleRemap,
) -> ObjectHandle:
    section.delete_object(handle)
    try:
        new_handle = section.create_object_from_alias(new_alias.to_string(), placement.layer, placement.start)
    except QuantizerError:
        handle_map.mark_removed(handle)
        logger.error("Object %s was deleted but could not be recreated at %s", handle, placement)
        raise
    handle_map.record(handle, new_handle)
    logger.info(
        "Recreated object %s as %s at layer %d frame %d",
        handle,
        new_handle,
        placement.layer,
        placement.start,
    )
    return new_handle


def _fix_start(section: EditSection, handle: ObjectHandle, offset_frames: int, handle_map: HandleRemap) -> ObjectHandle:
    alias = AliasTable.parse(section.get_alias(handle))
    new_alias = fix_starting_gap(alias, offset_frames)
    current = section.get_placement(handle)
    placement = ObjectPlacement(layer=current.layer, start=current.start - offset_frames)
    if placement.start < 0:
        raise HostError(f"Object {handle} would start at negative frame {placement.start}")
    return _replace_object(section, handle, new_alias, placement, handle_map)


def _fix_end(section: EditSection, handle: ObjectHandle, offset_frames: int, handle_map: HandleRemap) -> ObjectHandle:
    alias = AliasTable.parse(section.get_alias(handle))
    new_alias = fix_ending_gap(alias, offset_frames)
    placement = section.get_placement(handle)
    return _replace_object(section, handle, new_alias, placement, handle_map)


def _fix_keyframe(
    section: EditSection,
    handle: ObjectHandle,
    keyframe_index: int,
    offset_frames: int,
    handle_map: HandleRemap,
) -> ObjectHandle:
    alias = AliasTable.parse(section.get_alias(handle))
    new_alias = fix_keyframe_gap(alias, keyframe_index, offset_frames)
    placement = section.get_placement(handle)
    return _replace_object(section, handle, new_alias, placement, handle_map)


def _require_handle(info: OffbeatInfo) -> ObjectHandle:
    if info.object is None:
        raise ValueError(f"{type(info.timing).__name__} point at frame {info.frame} has no object")
    return info.object


def fix_offbeat(section: EditSection, info: OffbeatInfo, handle_map: HandleRemap) -> None:
    """
    Snap one offbeat point onto the grid.

    Objects are rewritten by delete+recreate; every reissued handle is recorded
    in ``handle_map``. For EndThenStart the left object is fixed first and the
    right one second. The two steps are not atomic: when the second fails the
    first stays applied.

    Raises:
        DescriptorError: If a descriptor cannot be read or rewritten.
        HostError: If the host rejects a read, delete or create, or a start
            would move before frame 0.
    """

    timing = info.timing
    offset = info.offset_frames
    if isinstance(timing, StartTiming):
        _fix_start(section, _require_handle(info), offset, handle_map)
    elif isinstance(timing, EndTiming):
        _fix_end(section, _require_handle(info), offset, handle_map)
    elif isinstance(timing, KeyframeTiming):
        _fix_keyframe(section, _require_handle(info), timing.keyframe_index, offset, handle_map)
    elif isinstance(timing, EndThenStartTiming):
        _fix_end(section, timing.left_handle, offset, handle_map)
        _fix_start(section, _require_handle(info), offset, handle_map)
    elif isinstance(timing, ProjectEndTiming):
        new_end = info.frame - offset
        section.set_project_end(new_end)
        logger.info("Moved project end from frame %d to %d", info.frame, new_end)
    else:
        raise TypeError(f"Unknown timing type: {timing!r}")
