"""Timing shapes produced by the scanner and consumed by the detector and corrector."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Union

from .host import ObjectHandle, ObjectPlacement

__all__ = [
    "StartTiming",
    "KeyframeTiming",
    "EndTiming",
    "EndThenStartTiming",
    "ProjectEndTiming",
    "TimingType",
    "TimingPoint",
    "OffbeatInfo",
    "FindTarget",
    "timing_label",
]


@dataclass(frozen=True)
class StartTiming:
    object_name: str


@dataclass(frozen=True)
class KeyframeTiming:
    object_name: str
    keyframe_index: int


@dataclass(frozen=True)
class EndTiming:
    object_name: str


@dataclass(frozen=True)
class EndThenStartTiming:
    """End of ``left_handle`` immediately followed by the start of the point's own object."""

    left_name: str
    left_handle: ObjectHandle
    right_name: str


@dataclass(frozen=True)
class ProjectEndTiming:
    """Synthetic point anchored at the project's final frame."""


TimingType = Union[StartTiming, KeyframeTiming, EndTiming, EndThenStartTiming, ProjectEndTiming]


@dataclass(frozen=True)
class FindTarget:
    """Selection mask over timing shapes."""

    start: bool = True
    keyframe: bool = True
    end: bool = True
    project_end: bool = False

    def includes(self, timing: TimingType) -> bool:
        if isinstance(timing, StartTiming):
            return self.start
        if isinstance(timing, KeyframeTiming):
            return self.keyframe
        if isinstance(timing, EndTiming):
            return self.end
        if isinstance(timing, EndThenStartTiming):
            return self.start or self.end
        if isinstance(timing, ProjectEndTiming):
            return self.project_end
        raise TypeError(f"Unknown timing type: {timing!r}")


@dataclass(frozen=True)
class TimingPoint:
    """
    One timing marker on the timeline.

    Attributes:
        timing (TimingType): Shape of the marker.
        frame (int): Absolute frame of the marker.
        position (Optional[ObjectPlacement]): Placement of the owning object;
            ``None`` for the project end.
        layer_name (str): Display name of the owning layer.
        object (Optional[ObjectHandle]): Owning object; for EndThenStart, the right object.
    """

    timing: TimingType
    frame: int
    position: Optional[ObjectPlacement]
    layer_name: str
    object: Optional[ObjectHandle]

    @property
    def layer(self) -> Optional[int]:
        return self.position.layer if self.position is not None else None


@dataclass(frozen=True)
class OffbeatInfo:
    """A timing point whose distance to the nearest grid frame is correctable."""

    timing: TimingType
    frame: int
    offset_frames: int
    position: Optional[ObjectPlacement]
    layer_name: str
    object: Optional[ObjectHandle]

    @classmethod
    def from_point(cls, point: TimingPoint, offset_frames: int) -> "OffbeatInfo":
        return cls(
            timing=point.timing,
            frame=point.frame,
            offset_frames=offset_frames,
            position=point.position,
            layer_name=point.layer_name,
            object=point.object,
        )

    @property
    def layer(self) -> Optional[int]:
        return self.position.layer if self.position is not None else None

    def with_handles(
        self,
        object_handle: Optional[ObjectHandle],
        left_handle: Optional[ObjectHandle] = None,
    ) -> "OffbeatInfo":
        """Return a copy pointing at reissued handles."""

        timing = self.timing
        if isinstance(timing, EndThenStartTiming) and left_handle is not None:
            timing = replace(timing, left_handle=left_handle)
        return replace(self, object=object_handle, timing=timing)

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": timing_label(self.timing),
            "frame": self.frame,
            "offset_frames": self.offset_frames,
            "layer": self.layer,
            "layer_name": self.layer_name,
            "object": self.object.id if self.object is not None else None,
        }
        timing = self.timing
        if isinstance(timing, EndThenStartTiming):
            payload["object_name"] = timing.right_name
            payload["left_object_name"] = timing.left_name
            payload["left_object"] = timing.left_handle.id
        elif isinstance(timing, KeyframeTiming):
            payload["object_name"] = timing.object_name
            payload["keyframe_index"] = timing.keyframe_index
        elif isinstance(timing, (StartTiming, EndTiming)):
            payload["object_name"] = timing.object_name
        return payload


def timing_label(timing: TimingType) -> str:
    """Return a stable lowercase identifier for ``timing``."""

    if isinstance(timing, StartTiming):
        return "start"
    if isinstance(timing, KeyframeTiming):
        return "keyframe"
    if isinstance(timing, EndTiming):
        return "end"
    if isinstance(timing, EndThenStartTiming):
        return "end_then_start"
    if isinstance(timing, ProjectEndTiming):
        return "project_end"
    raise TypeError(f"Unknown timing type: {timing!r}")
