"""Builders for small in-memory and on-disk timelines used across the suite."""

from __future__ import annotations

import json
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from src.quantizer.grid import GridConfig
from src.quantizer.project import ProjectTimeline

ObjectSpec = Tuple[int, str]


def make_alias(
    frames: Sequence[int],
    *,
    name: Optional[str] = None,
    effect: str = "Text",
    wrapped: Optional[str] = None,
) -> str:
    """Return a descriptor string with ``frames`` and an effect chain."""

    lines = ["[Object]", "frame=" + ",".join(str(frame) for frame in frames)]
    if name is not None:
        lines.append(f"name={name}")
    lines += ["[Object.0]", f"effect.name={effect}", "size=34"]
    if wrapped is not None:
        lines += ["[Object.1]", f"effect.name={wrapped}"]
    return "\n".join(lines) + "\n"


def project_mapping(
    layers: Sequence[Sequence[ObjectSpec]],
    *,
    fps: Any = (30, 1),
    bpm: float = 120.0,
    bpm_offset: float = 0.0,
    length: Optional[int] = None,
    layer_names: Optional[Sequence[Optional[str]]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "fps": list(fps) if isinstance(fps, tuple) else fps,
        "bpm": bpm,
        "bpm_offset": bpm_offset,
        "layers": [
            {
                "name": layer_names[idx] if layer_names else None,
                "objects": [{"start": start, "alias": alias} for start, alias in objects],
            }
            for idx, objects in enumerate(layers)
        ],
    }
    if length is not None:
        payload["length"] = length
    return payload


def build_timeline(layers: Sequence[Sequence[ObjectSpec]], **kwargs: Any) -> ProjectTimeline:
    return ProjectTimeline.from_mapping(project_mapping(layers, **kwargs))


def write_project(path: Path, layers: Sequence[Sequence[ObjectSpec]], **kwargs: Any) -> Path:
    path.write_text(json.dumps(project_mapping(layers, **kwargs)), encoding="utf-8")
    return path


def grid(fps: int = 30, bpm: float = 120.0, offset: float = 0.0) -> GridConfig:
    return GridConfig(fps=Fraction(fps, 1), bpm=bpm, offset=offset)


def layer_frames(timeline: ProjectTimeline, layer: int) -> List[Tuple[int, str]]:
    """Return ``(start, frame list)`` for each object on ``layer``."""

    result: List[Tuple[int, str]] = []
    for obj in timeline.layers[layer].objects:
        frame_line = next(line for line in obj.alias.splitlines() if line.startswith("frame="))
        result.append((obj.start, frame_line.split("=", 1)[1]))
    return result
