"""Command: expand an abbreviated link."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkCommand

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext


@click.command(
    cls=LinkCommand,
    examples="""\
  linkctl expand "wiki:Org_mode"
  linkctl expand "gh::org/repo" --file notes.org""",
)
@click.argument("link")
@click.option(
    "--file",
    "file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also consult this file's #+LINK: abbreviations.",
)
@click.pass_obj
def expand(app: AppContext, link: str, file: Path | None) -> None:
    """Expand LINK using the configured abbreviation tables."""
    from linkctl.services.links import LinkService

    app.emit(LinkService(app.workspace).expand(link, path=file))
