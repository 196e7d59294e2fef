"""Timeline walking and classification of object frame arrays into timing points."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .alias import OBJECT_TABLE, AliasTable, read_frames
from .errors import DescriptorError
from .host import EditSection
from .timing import EndTiming, KeyframeTiming, StartTiming, TimingPoint, TimingType

__all__ = [
    "FILTER_OBJECT_EFFECT",
    "ScanOptions",
    "get_object_name",
    "layer_display_name",
    "classify_frames",
    "scan_timeline",
]

logger = logging.getLogger(__name__)

FILTER_OBJECT_EFFECT = "フィルタオブジェクト"
EFFECT_NAME_KEY = "effect.name"


@dataclass(frozen=True)
class ScanOptions:
    """Naming rules applied while walking the timeline."""

    layer_name_template: str = "Layer {number}"
    wrapper_effect_names: Tuple[str, ...] = field(default=(FILTER_OBJECT_EFFECT,))


def _effect_name(object_table: AliasTable, index: str) -> str:
    sub_table = object_table.get_table(index)
    if sub_table is None:
        raise DescriptorError(f"{OBJECT_TABLE}.{index}", "table not found")
    name = sub_table.get_value(EFFECT_NAME_KEY)
    if name is None:
        raise DescriptorError(f"{OBJECT_TABLE}.{index}.{EFFECT_NAME_KEY}", "field not found")
    return name


def get_object_name(alias: AliasTable, options: ScanOptions | None = None) -> str:
    """
    Resolve an object's display name from its descriptor.

    Prefers ``Object.name``. Otherwise uses the first effect's name, unwrapping
    one level when that effect is a generic filter wrapper so the wrapped
    effect's name is reported instead.

    Raises:
        DescriptorError: If neither an explicit name nor the effect name is present.
    """

    opts = options or ScanOptions()
    object_table = alias.get_table(OBJECT_TABLE)
    if object_table is None:
        raise DescriptorError(OBJECT_TABLE, "table not found")
    explicit = object_table.get_value("name")
    if explicit is not None:
        return explicit

    effect_name = _effect_name(object_table, "0")
    if effect_name in opts.wrapper_effect_names:
        return _effect_name(object_table, "1")
    return effect_name


def layer_display_name(section: EditSection, layer: int, options: ScanOptions | None = None) -> str:
    opts = options or ScanOptions()
    name = section.layer_name(layer)
    if name:
        return name
    return opts.layer_name_template.format(number=layer + 1)


def classify_frames(frames: Sequence[int], object_name: str) -> List[Tuple[int, TimingType]]:
    """Pair each frame with its timing shape: first is Start, last is End, others Keyframe."""

    last = len(frames) - 1
    classified: List[Tuple[int, TimingType]] = []
    for idx, frame in enumerate(frames):
        timing: TimingType
        if idx == 0:
            timing = StartTiming(object_name=object_name)
        elif idx == last:
            timing = EndTiming(object_name=object_name)
        else:
            timing = KeyframeTiming(object_name=object_name, keyframe_index=idx - 1)
        classified.append((frame, timing))
    return classified


def scan_timeline(section: EditSection, options: ScanOptions | None = None) -> List[TimingPoint]:
    """
    Collect every timing point on the timeline in layer/object order.

    Parameters:
        section (EditSection): Open host edit section.
        options (ScanOptions | None): Naming rules; defaults apply when ``None``.

    Returns:
        List[TimingPoint]: Points with absolute frames, grouped by layer then object.

    Raises:
        DescriptorError: If any object's frame list or name cannot be read.
    """

    opts = options or ScanOptions()
    points: List[TimingPoint] = []
    object_count = 0
    for layer in section.layers():
        layer_name = layer_display_name(section, layer, opts)
        for position, handle in section.layer_objects(layer):
            alias = AliasTable.parse(section.get_alias(handle))
            frames = read_frames(alias)
            object_name = get_object_name(alias, opts)
            object_count += 1
            for frame, timing in classify_frames(frames, object_name):
                points.append(
                    TimingPoint(
                        timing=timing,
                        frame=position.start + frame,
                        position=position,
                        layer_name=layer_name,
                        object=handle,
                    )
                )
    logger.debug("Scanned %d objects into %d timing points", object_count, len(points))
    return points
