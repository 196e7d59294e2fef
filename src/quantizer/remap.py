"""Old-to-new handle table threaded through a batch of corrections."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .host import ObjectHandle
from .timing import EndThenStartTiming, OffbeatInfo

__all__ = ["HandleRemap"]


class HandleRemap:
    """
    Records handles reissued by delete+recreate.

    Every mutated handle maps either to its replacement or to ``None`` when the
    object was deleted and not recreated. Lookups follow chains, so a handle
    corrected twice in one batch resolves to its latest replacement.
    """

    def __init__(self) -> None:
        self._entries: Dict[ObjectHandle, Optional[ObjectHandle]] = {}

    def record(self, old: ObjectHandle, new: ObjectHandle) -> None:
        self._entries[old] = new

    def mark_removed(self, old: ObjectHandle) -> None:
        self._entries[old] = None

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[ObjectHandle, Optional[ObjectHandle]]]:
        return iter(self._entries.items())

    def resolve(self, handle: ObjectHandle) -> Optional[ObjectHandle]:
        """Return the live handle for ``handle``, or ``None`` when it was removed."""

        current: Optional[ObjectHandle] = handle
        seen = set()
        while current is not None and current in self._entries:
            if current in seen:
                raise RuntimeError(f"Handle remap cycle detected at {current}")
            seen.add(current)
            current = self._entries[current]
        return current

    def resolve_info(self, info: OffbeatInfo) -> Optional[OffbeatInfo]:
        """
        Re-point ``info`` at live handles.

        Returns ``None`` when its primary object, or the left object of an
        EndThenStart point, has been removed.
        """

        primary = info.object
        if primary is not None:
            primary = self.resolve(primary)
            if primary is None:
                return None
        left: Optional[ObjectHandle] = None
        if isinstance(info.timing, EndThenStartTiming):
            left = self.resolve(info.timing.left_handle)
            if left is None:
                return None
        return info.with_handles(primary, left)

    def resolve_pending(self, infos: Iterable[OffbeatInfo]) -> List[OffbeatInfo]:
        """Resolve every pending entry, dropping those whose objects were removed."""

        resolved: List[OffbeatInfo] = []
        for info in infos:
            current = self.resolve_info(info)
            if current is not None:
                resolved.append(current)
        return resolved

    def as_dict(self) -> Dict[int, Optional[int]]:
        return {
            old.id: (new.id if new is not None else None)
            for old, new in self._entries.items()
        }
