"""Exception hierarchy for timeline scanning and beat-grid correction."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "QuantizerError",
    "DescriptorError",
    "HostError",
    "ObjectNotFoundError",
    "EditSectionError",
]


class QuantizerError(RuntimeError):
    """Base class for all detection and correction failures."""


@dataclass(slots=True)
class DescriptorError(QuantizerError):
    """Raised when an object descriptor lacks a required field or cannot be parsed."""

    field: str
    problem: str

    def __str__(self) -> str:
        return f"{self.field}: {self.problem}"


class HostError(QuantizerError):
    """Raised when the host timeline rejects a read or mutation."""


class ObjectNotFoundError(HostError):
    """Raised when a handle does not refer to a placed object."""


class EditSectionError(HostError):
    """Raised when an edit section is opened while another one is active."""
