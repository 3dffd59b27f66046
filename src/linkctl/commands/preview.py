"""Command: run link previews over a file."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkCommand, file_argument

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext


@click.command(
    cls=LinkCommand,
    examples="""\
  linkctl preview notes.org
  linkctl preview notes.org --include-described --batch-size 2
  linkctl -v preview notes.org""",
)
@file_argument
@click.option(
    "--include-described",
    is_flag=True,
    default=None,
    help="Preview links that carry a description too.",
)
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Previews per batch.")
@click.pass_obj
def preview(
    app: AppContext,
    file: Path,
    include_described: bool | None,
    batch_size: int | None,
) -> None:
    """Scan FILE for previewable links and run every batch."""
    from linkctl.services.preview import PreviewService

    app.emit(
        PreviewService(app.workspace).preview(
            file,
            include_described=include_described or None,
            batch_size=batch_size,
        )
    )
