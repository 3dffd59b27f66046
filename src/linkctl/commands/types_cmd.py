"""Command: list registered link types."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from linkctl.commands._base import LinkCommand

if TYPE_CHECKING:
    from linkctl.commands._context import AppContext


@click.command(
    "types",
    cls=LinkCommand,
    examples="""\
  linkctl types
  linkctl --json types""",
)
@click.pass_obj
def types_cmd(app: AppContext) -> None:
    """List link types and the capabilities each provides."""
    from linkctl.services.links import LinkService

    app.emit(LinkService(app.workspace).types())
