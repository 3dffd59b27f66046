"""Command: capture links into the store."""

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
  linkctl store notes.org
  linkctl store notes.org --insert 0
  linkctl -q store notes.org""",
)
@file_argument
@click.option(
    "--insert",
    "insert_index",
    type=click.IntRange(min=0),
    default=None,
    help="Afterwards, print stored entry N as a bracket link.",
)
@click.pass_obj
def store(app: AppContext, file: Path, insert_index: int | None) -> None:
    """Store every bracketed link of FILE, most recent first."""
    from linkctl.services.links import LinkService

    svc = LinkService(app.workspace)
    result = svc.store(file)
    if insert_index is None or not result.ok:
        app.emit(result)
        return
    app.emit(svc.insert(insert_index))
