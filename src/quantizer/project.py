"""File-backed reference host: a timeline project stored as JSON."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .alias import AliasTable, read_frames
from .errors import EditSectionError, HostError, ObjectNotFoundError, QuantizerError
from .grid import GridConfig
from .host import ObjectHandle, ObjectPlacement

__all__ = ["PlacedObject", "Layer", "ProjectTimeline", "ProjectEditSection"]

logger = logging.getLogger(__name__)


@dataclass
class PlacedObject:
    handle: ObjectHandle
    start: int
    alias: str

    def end(self) -> int:
        frames = read_frames(AliasTable.parse(self.alias))
        return self.start + frames[-1]


@dataclass
class Layer:
    name: Optional[str] = None
    objects: List[PlacedObject] = field(default_factory=list)


def _as_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise HostError(f"{what} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise HostError(f"{what} must be an integer, got {value!r}") from exc


def _parse_fps(raw: Any) -> Fraction:
    if isinstance(raw, (list, tuple)):
        if len(raw) != 2 or not all(isinstance(v, int) and v > 0 for v in raw):
            raise HostError("fps must be a [numerator, denominator] pair of positive integers")
        return Fraction(raw[0], raw[1])
    if isinstance(raw, int) and not isinstance(raw, bool) and raw > 0:
        return Fraction(raw, 1)
    if isinstance(raw, str):
        try:
            value = Fraction(raw)
        except ValueError as exc:
            raise HostError(f"fps {raw!r} is not a rational number") from exc
        if value > 0:
            return value
    raise HostError(f"Unsupported fps value: {raw!r}")


class ProjectTimeline:
    """
    In-memory timeline implementing the host protocol.

    State is only reachable through :meth:`edit_section`; at most one section
    may be open at a time and ``revision`` counts closed sections.
    """

    def __init__(
        self,
        grid: GridConfig,
        layers: Optional[List[Layer]] = None,
        *,
        length: Optional[int] = None,
        cursor: Tuple[int, int] = (0, 0),
    ) -> None:
        self.grid = grid
        self.layers: List[Layer] = layers or []
        self.length = length
        self.cursor = cursor
        self.focused: Optional[ObjectHandle] = None
        self.revision = 0
        self._section_open = False
        self._next_id = 1
        for layer in self.layers:
            for obj in layer.objects:
                self._next_id = max(self._next_id, obj.handle.id + 1)

    def issue_handle(self) -> ObjectHandle:
        handle = ObjectHandle(self._next_id)
        self._next_id += 1
        return handle

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProjectTimeline":
        """Build a timeline from the decoded JSON project document."""

        try:
            bpm = float(data.get("bpm", 120.0))
            offset = float(data.get("bpm_offset", 0.0))
        except (TypeError, ValueError) as exc:
            raise HostError(f"Invalid grid parameters: {exc}") from exc
        if bpm <= 0:
            raise HostError("bpm must be > 0")
        grid = GridConfig(fps=_parse_fps(data.get("fps", [30, 1])), bpm=bpm, offset=offset)

        cursor_raw = data.get("cursor") or {}
        cursor = (
            _as_int(cursor_raw.get("layer", 0), "cursor.layer"),
            _as_int(cursor_raw.get("frame", 0), "cursor.frame"),
        )
        length_raw = data.get("length")
        timeline = cls(grid, length=_as_int(length_raw, "length") if length_raw is not None else None, cursor=cursor)

        for layer_raw in data.get("layers", []):
            layer = Layer(name=layer_raw.get("name") or None)
            for obj_raw in layer_raw.get("objects", []):
                if "alias" not in obj_raw or "start" not in obj_raw:
                    raise HostError("Each object needs 'start' and 'alias'")
                start = _as_int(obj_raw["start"], "start")
                if start < 0:
                    raise HostError(f"Object start must be >= 0, got {start}")
                layer.objects.append(
                    PlacedObject(handle=timeline.issue_handle(), start=start, alias=str(obj_raw["alias"]))
                )
            layer.objects.sort(key=lambda obj: obj.start)
            timeline.layers.append(layer)
        return timeline

    @classmethod
    def load(cls, path: Path | str) -> "ProjectTimeline":
        try:
            with open(path, encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise HostError(f"Project file {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise HostError(f"Project file {path} must contain a JSON object")
        timeline = cls.from_mapping(data)
        logger.debug("Loaded project %s with %d layers", path, len(timeline.layers))
        return timeline

    def to_mapping(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "fps": [self.grid.fps.numerator, self.grid.fps.denominator],
            "bpm": self.grid.bpm,
            "bpm_offset": self.grid.offset,
            "cursor": {"layer": self.cursor[0], "frame": self.cursor[1]},
            "layers": [
                {
                    "name": layer.name,
                    "objects": [{"start": obj.start, "alias": obj.alias} for obj in layer.objects],
                }
                for layer in self.layers
            ],
        }
        if self.length is not None:
            payload["length"] = self.length
        return payload

    def save(self, path: Path | str) -> None:
        Path(path).write_text(json.dumps(self.to_mapping(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.debug("Saved project to %s", path)

    @contextmanager
    def edit_section(self) -> Iterator["ProjectEditSection"]:
        if self._section_open:
            raise EditSectionError("An edit section is already open")
        self._section_open = True
        section = ProjectEditSection(self)
        try:
            yield section
        finally:
            section.closed = True
            self._section_open = False
            self.revision += 1


class ProjectEditSection:
    """Edit section over a :class:`ProjectTimeline`."""

    def __init__(self, timeline: ProjectTimeline) -> None:
        self._timeline = timeline
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            raise EditSectionError("Edit section is closed")

    def _locate(self, handle: ObjectHandle) -> Tuple[int, PlacedObject]:
        self._check_open()
        for index, layer in enumerate(self._timeline.layers):
            for obj in layer.objects:
                if obj.handle == handle:
                    return index, obj
        raise ObjectNotFoundError(f"Object {handle} not found")

    @property
    def grid(self) -> GridConfig:
        return self._timeline.grid

    def layers(self) -> Iterator[int]:
        self._check_open()
        return iter(range(len(self._timeline.layers)))

    def layer_name(self, layer: int) -> Optional[str]:
        self._check_open()
        return self._timeline.layers[layer].name

    def layer_objects(self, layer: int) -> Iterator[Tuple[ObjectPlacement, ObjectHandle]]:
        self._check_open()
        objects = list(self._timeline.layers[layer].objects)
        return iter((ObjectPlacement(layer=layer, start=obj.start), obj.handle) for obj in objects)

    def get_alias(self, handle: ObjectHandle) -> str:
        return self._locate(handle)[1].alias

    def get_placement(self, handle: ObjectHandle) -> ObjectPlacement:
        layer, obj = self._locate(handle)
        return ObjectPlacement(layer=layer, start=obj.start)

    def delete_object(self, handle: ObjectHandle) -> None:
        layer, obj = self._locate(handle)
        self._timeline.layers[layer].objects.remove(obj)
        if self._timeline.focused == handle:
            self._timeline.focused = None

    def create_object_from_alias(self, alias: str, layer: int, start: int) -> ObjectHandle:
        self._check_open()
        if start < 0:
            raise HostError(f"Cannot place an object at negative frame {start}")
        if layer < 0:
            raise HostError(f"Cannot place an object on negative layer {layer}")
        try:
            read_frames(AliasTable.parse(alias))
        except QuantizerError as exc:
            raise HostError(f"Rejected descriptor: {exc}") from exc
        while len(self._timeline.layers) <= layer:
            self._timeline.layers.append(Layer())
        handle = self._timeline.issue_handle()
        objects = self._timeline.layers[layer].objects
        objects.append(PlacedObject(handle=handle, start=start, alias=alias))
        objects.sort(key=lambda obj: obj.start)
        return handle

    def set_cursor(self, layer: int, frame: int) -> None:
        self._check_open()
        self._timeline.cursor = (layer, frame)

    def focus_object(self, handle: ObjectHandle) -> None:
        self._locate(handle)
        self._timeline.focused = handle

    def get_project_end(self) -> Optional[int]:
        self._check_open()
        if self._timeline.length is not None:
            return self._timeline.length - 1
        ends = [obj.end() for layer in self._timeline.layers for obj in layer.objects]
        return max(ends) if ends else None

    def set_project_end(self, frame: int) -> None:
        self._check_open()
        if frame < 0:
            raise HostError(f"Project end must be >= 0, got {frame}")
        self._timeline.length = frame + 1
