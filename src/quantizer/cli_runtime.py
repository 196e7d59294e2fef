"""Console output helpers and the CLI-facing error type."""

from __future__ import annotations

import logging
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

__all__ = [
    "CLIAppError",
    "CliOutputManager",
    "configure_logging",
    "format_kv",
]


class CLIAppError(RuntimeError):
    """Raised when the CLI cannot complete its work."""

    def __init__(self, message: str, *, code: int = 1, rich_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.rich_message = rich_message or message


def _color_text(text: str, style: Optional[str]) -> str:
    if style:
        return f"[{style}]{text}[/]"
    return text


def format_kv(
    label: str,
    value: object,
    *,
    label_style: Optional[str] = "dim",
    value_style: Optional[str] = "bright_white",
    sep: str = "=",
) -> str:
    """
    Format a label/value pair as a single string with optional Rich styling.

    Parameters:
        label (str): The left-side label text.
        value (object): The right-side value; converted to string.
        label_style (Optional[str]): Rich style applied to the label, or ``None``.
        value_style (Optional[str]): Rich style applied to the value, or ``None``.
        sep (str): Separator placed between label and value.
    """
    label_text = escape(str(label))
    value_text = escape(str(value))
    return f"{_color_text(label_text, label_style)}{sep}{_color_text(value_text, value_style)}"


def configure_logging(level: str, *, console: Console | None = None) -> None:
    """Route ``logging`` through Rich at ``level``."""

    handler = RichHandler(console=console, show_time=False, show_path=False, markup=False)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


class CliOutputManager:
    """Small Rich presentation controller honouring quiet/verbose flags."""

    def __init__(
        self,
        *,
        quiet: bool,
        verbose: bool,
        no_color: bool,
        console: Console | None = None,
    ) -> None:
        self.quiet = quiet
        self.verbose = verbose and not quiet
        self.no_color = no_color
        self.console = console or Console(no_color=no_color, highlight=False)
        self._warnings: List[str] = []

    def warn(self, text: str) -> None:
        self._warnings.append(text)
        if not self.quiet:
            self.console.print(f"[yellow]{escape(text)}[/]")

    def get_warnings(self) -> List[str]:
        return list(self._warnings)

    def banner(self, text: str) -> None:
        if self.quiet:
            self.console.print(text)
            return
        self.console.print(f"[bold bright_cyan]{escape(text)}[/]")

    def section(self, title: str) -> None:
        if self.quiet:
            return
        self.console.print(f"[bold cyan]{title}[/]")

    def line(self, text: str) -> None:
        if self.quiet:
            return
        self.console.print(text)

    def verbose_line(self, text: str) -> None:
        if self.quiet or not self.verbose:
            return
        if not text:
            return
        self.console.print(f"[dim]{escape(text)}[/]")
