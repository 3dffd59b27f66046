"""Command: list the links of a file."""

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
  linkctl parse notes.org
  linkctl parse notes.org --radio
  linkctl --json parse notes.org""",
)
@file_argument
@click.option("--radio", is_flag=True, help="Also report radio target occurrences.")
@click.pass_obj
def parse(app: AppContext, file: Path, radio: bool) -> None:
    """List every link in FILE in document order."""
    from linkctl.services.links import LinkService

    app.emit(LinkService(app.workspace).parse(file, radio=radio))
