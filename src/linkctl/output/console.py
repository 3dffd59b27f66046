"""Rich Console factory and theme for linkctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

LINK_THEME = Theme(
    {
        "link.ok": "bold green",
        "link.error": "bold red",
        "link.warning": "bold yellow",
        "link.op": "bold cyan",
        "link.key": "dim",
        "link.path": "dim",
        "link.target": "bold blue",
        "link.description": "italic",
        "link.kind.bracketed": "green",
        "link.kind.angle": "cyan",
        "link.kind.plain": "blue",
        "link.kind.radio-target": "magenta",
        "link.result.dedicated": "bold green",
        "link.result.fuzzy": "yellow",
        "link.result.created": "bold cyan",
        "link.result.sparse-tree": "magenta",
        "link.result.external": "blue",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=LINK_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_kind(kind: str) -> str:
    """Rich style name for a link kind (``bracketed``, ``plain`` ...)."""
    return f"link.kind.{kind}" if f"link.kind.{kind}" in LINK_THEME.styles else ""


def style_for_result(kind: str) -> str:
    """Rich style name for a resolution result kind."""
    return f"link.result.{kind}" if f"link.result.{kind}" in LINK_THEME.styles else ""
