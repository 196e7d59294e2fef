"""Protocols describing the host timeline consumed by the scanner and corrector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ContextManager, Iterable, Optional, Protocol, Tuple

from .grid import GridConfig

__all__ = [
    "ObjectHandle",
    "ObjectPlacement",
    "EditSection",
    "TimelineHost",
]


@dataclass(frozen=True)
class ObjectHandle:
    """Opaque identifier for a placed object; reissued on every delete+recreate."""

    id: int

    def __str__(self) -> str:
        return f"#{self.id}"


@dataclass(frozen=True)
class ObjectPlacement:
    """Layer index and absolute start frame of a placed object."""

    layer: int
    start: int


class EditSection(Protocol):
    """Reads and mutations available while a host edit section is open."""

    @property
    def grid(self) -> GridConfig:
        """Return the project's frame rate and BPM grid."""
        ...

    def layers(self) -> Iterable[int]:
        """Yield layer indices in timeline order."""
        ...

    def layer_name(self, layer: int) -> Optional[str]:
        """Return the layer's display name, or ``None`` when it has none."""
        ...

    def layer_objects(self, layer: int) -> Iterable[Tuple[ObjectPlacement, ObjectHandle]]:
        """Yield the objects on ``layer`` ordered by start frame."""
        ...

    def get_alias(self, handle: ObjectHandle) -> str:
        """Return the serialized descriptor of the object."""
        ...

    def get_placement(self, handle: ObjectHandle) -> ObjectPlacement:
        """Return the current placement of the object."""
        ...

    def delete_object(self, handle: ObjectHandle) -> None:
        """Remove the object; ``handle`` is invalid afterwards."""
        ...

    def create_object_from_alias(self, alias: str, layer: int, start: int) -> ObjectHandle:
        """Place a new object built from ``alias`` and return its handle."""
        ...

    def set_cursor(self, layer: int, frame: int) -> None:
        """Move the timeline cursor."""
        ...

    def focus_object(self, handle: ObjectHandle) -> None:
        """Select ``handle`` so the user can see it."""
        ...

    def get_project_end(self) -> Optional[int]:
        """Return the project's final frame, or ``None`` for an empty project."""
        ...

    def set_project_end(self, frame: int) -> None:
        """Move the project's final frame."""
        ...


class TimelineHost(Protocol):
    """Host application owning the timeline."""

    def edit_section(self) -> ContextManager[EditSection]:
        """Open the host's edit section; only one may be open at a time."""
        ...
