"""Console output abstraction.

This module provides a protocol for console output that can be implemented
by different backends (Rich for the terminal, mock for testing). Services
report progress through it instead of printing directly, which keeps them
testable and lets ``--debug`` toggle the diagnostic channel in one place.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

from rich.markup import escape

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()  # Green, positive message
    ERROR = auto()  # Red, error message
    WARNING = auto()  # Yellow, warning message
    INFO = auto()  # Cyan, informational
    DIM = auto()  # Dimmed/muted text
    BOLD = auto()  # Bold text
    HEADER = auto()  # Section header
    DEBUG = auto()  # Only shown with --debug

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Protocol for console output.

    Implementations can use Rich or capture output for testing.
    """

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        """Print a message with optional styling."""
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def debug(self, message: str) -> None:
        """Print a diagnostic message; silent unless debug output is enabled."""
        ...

    def header(self, message: str) -> None: ...

    def newline(self) -> None: ...

    def table(self, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Print rows as a table with the given column headers."""
        ...


class RichConsole:
    """Console implementation using the Rich library."""

    def __init__(self, *, debug: bool = False, stderr: bool = False) -> None:
        from rich.console import Console

        self._console = Console(stderr=stderr)
        self._debug = debug
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DIM: "dim",
            Style.BOLD: "bold",
            Style.HEADER: "blue bold",
            Style.DEBUG: "dim",
        }

    @property
    def debug_enabled(self) -> bool:
        return self._debug

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        if style == Style.DEBUG and not self._debug:
            return
        rich_style = self._style_map.get(style, "")
        if rich_style:
            self._console.print(message, style=rich_style, markup=False)
        else:
            self._console.print(message, markup=False)

    def success(self, message: str) -> None:
        self._console.print(f"[green]OK[/green] {escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[red bold]error:[/red bold] {escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]warning:[/yellow] {escape(message)}")

    def info(self, message: str) -> None:
        self._console.print(f"[cyan]info:[/cyan] {escape(message)}")

    def debug(self, message: str) -> None:
        if self._debug:
            self._console.print(f"[dim]debug: {escape(message)}[/dim]")

    def header(self, message: str) -> None:
        self._console.print(f"\n[blue bold]{escape(message)}[/blue bold]")

    def newline(self) -> None:
        self._console.print()

    def table(self, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        from rich import box
        from rich.table import Table

        t = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False)
        for col in columns:
            t.add_column(col.upper(), no_wrap=True)
        for row in rows:
            t.add_row(*row)
        self._console.print(t)


@dataclass
class OutputRecord:
    """A single output record for MockConsole."""

    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    """Factory for empty outputs list (helps type inference)."""
    return []


def _empty_tables() -> list[tuple[tuple[str, ...], list[tuple[str, ...]]]]:
    return []


@dataclass
class MockConsole:
    """Console implementation that captures output for testing.

    Debug messages are always captured so tests can assert on them.
    """

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)
    tables: list[tuple[tuple[str, ...], list[tuple[str, ...]]]] = field(
        default_factory=_empty_tables
    )

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def debug(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"debug: {message}", Style.DEBUG))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    def table(self, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        self.tables.append((tuple(columns), [tuple(r) for r in rows]))

    # Test helper methods

    def clear(self) -> None:
        """Clear all captured output."""
        self.outputs.clear()
        self.tables.clear()

    @property
    def messages(self) -> list[str]:
        """Get all output messages as a list of strings."""
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        """Get all output as a single newline-separated string."""
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def has_success(self) -> bool:
        return any(o.style == Style.SUCCESS for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        """Find all outputs containing a substring."""
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        """Count outputs with a specific style."""
        return sum(1 for o in self.outputs if o.style == style)
