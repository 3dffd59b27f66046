"""Command: open a link with its type's follow capability."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkCommand

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext


@click.command(
    "open",
    cls=LinkCommand,
    examples="""\
  linkctl open "https://orgmode.org"
  linkctl open "[[file:diagram.png]]"
  linkctl open "doi:10.1000/182" """,
)
@click.argument("link")
@click.pass_obj
def open_cmd(app: AppContext, link: str) -> None:
    """Open LINK with the desktop's default application."""
    from linkctl.services.links import LinkService

    app.emit(LinkService(app.workspace).open_link(link))
