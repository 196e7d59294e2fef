"""Codec for sectioned object descriptors (``[Object]`` / ``[Object.0]`` tables)."""

from __future__ import annotations

import copy
from typing import Dict, Iterator, List, Optional, Sequence

from .errors import DescriptorError

__all__ = [
    "AliasTable",
    "OBJECT_TABLE",
    "FRAME_KEY",
    "parse_frames",
    "format_frames",
    "read_frames",
    "with_frames",
]

OBJECT_TABLE = "Object"
FRAME_KEY = "frame"


class AliasTable:
    """
    Ordered key/value table with nested sub-tables.

    A section header such as ``[Object.0]`` addresses the sub-table ``0`` of the
    table ``Object``. Keys may themselves contain dots (``effect.name``); only
    section headers introduce nesting. Insertion order is preserved so a
    parse/serialize cycle keeps every value and its position.
    """

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}
        self._tables: Dict[str, AliasTable] = {}

    @classmethod
    def parse(cls, text: str) -> "AliasTable":
        root = cls()
        current = root
        for lineno, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line:
                continue
            if line.startswith("[") and line.endswith("]"):
                header = line[1:-1].strip()
                if not header:
                    raise DescriptorError(f"line {lineno}", "empty section header")
                current = root.ensure_table(header.split("."))
                continue
            key, sep, value = line.partition("=")
            if not sep or not key.strip():
                raise DescriptorError(f"line {lineno}", f"expected key=value, got {raw_line!r}")
            current._values[key.strip()] = value.strip()
        return root

    def get_value(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def insert_value(self, key: str, value: str) -> None:
        self._values[key] = value

    def get_table(self, name: str) -> Optional["AliasTable"]:
        return self._tables.get(name)

    def ensure_table(self, path: Sequence[str]) -> "AliasTable":
        """Return the sub-table at ``path``, creating missing tables along the way."""

        table = self
        for segment in path:
            child = table._tables.get(segment)
            if child is None:
                child = AliasTable()
                table._tables[segment] = child
            table = child
        return table

    def copy(self) -> "AliasTable":
        return copy.deepcopy(self)

    def _iter_lines(self, prefix: List[str]) -> Iterator[str]:
        if prefix and (self._values or not self._tables):
            yield f"[{'.'.join(prefix)}]"
        for key, value in self._values.items():
            yield f"{key}={value}"
        for name, table in self._tables.items():
            yield from table._iter_lines(prefix + [name])

    def to_string(self) -> str:
        return "\n".join(self._iter_lines([])) + "\n"

    def __str__(self) -> str:
        return self.to_string()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AliasTable):
            return NotImplemented
        return self._values == other._values and self._tables == other._tables


def parse_frames(value: str) -> List[int]:
    """
    Parse a comma-joined frame list.

    Returns:
        List[int]: Non-negative, strictly increasing frames (at least two).

    Raises:
        DescriptorError: If the list is malformed or violates the ordering rules.
    """

    parts = [part.strip() for part in value.split(",")]
    try:
        frames = [int(part) for part in parts]
    except ValueError as exc:
        raise DescriptorError(FRAME_KEY, f"not an integer list: {value!r}") from exc
    if len(frames) < 2:
        raise DescriptorError(FRAME_KEY, f"expected at least two frames, got {value!r}")
    if frames[0] < 0:
        raise DescriptorError(FRAME_KEY, f"negative frame in {value!r}")
    for earlier, later in zip(frames, frames[1:]):
        if later <= earlier:
            raise DescriptorError(FRAME_KEY, f"frames must be strictly increasing: {value!r}")
    return frames


def format_frames(frames: Sequence[int]) -> str:
    return ",".join(str(frame) for frame in frames)


def _object_table(alias: AliasTable) -> AliasTable:
    table = alias.get_table(OBJECT_TABLE)
    if table is None:
        raise DescriptorError(OBJECT_TABLE, "table not found")
    return table


def read_frames(alias: AliasTable) -> List[int]:
    """Return the frame array stored in ``Object.frame``."""

    value = _object_table(alias).get_value(FRAME_KEY)
    if value is None:
        raise DescriptorError(f"{OBJECT_TABLE}.{FRAME_KEY}", "field not found")
    return parse_frames(value)


def with_frames(alias: AliasTable, frames: Sequence[int]) -> AliasTable:
    """Return a copy of ``alias`` whose ``Object.frame`` holds ``frames``."""

    value = format_frames(frames)
    parse_frames(value)
    new_alias = alias.copy()
    _object_table(new_alias).insert_value(FRAME_KEY, value)
    return new_alias
