"""Command: resolve an internal link search inside a file."""

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
  linkctl resolve notes.org "Project plan"
  linkctl resolve notes.org "*Project plan"
  linkctl resolve notes.org "#setup"
  linkctl resolve notes.org "(loop)"
  linkctl resolve notes.org "/TODO.*urgent/"
  linkctl --no-interact resolve notes.org "Missing heading" """,
)
@file_argument
@click.argument("search")
@click.option("--avoid", type=int, default=None, help="Skip fuzzy matches covering this offset.")
@click.option("--stealth", is_flag=True, default=None, help="Do not reveal the match.")
@click.pass_obj
def resolve(
    app: AppContext,
    file: Path,
    search: str,
    avoid: int | None,
    stealth: bool | None,
) -> None:
    """Find where SEARCH points inside FILE.

    SEARCH is what an internal link holds: a heading title, ``*heading``,
    ``#custom-id``, ``(coderef)``, ``/regexp/`` or free text.
    """
    from linkctl.services.links import LinkService

    svc = LinkService(app.workspace)
    app.emit(
        svc.resolve(
            file,
            search,
            avoid_pos=avoid,
            stealth=stealth or None,
            confirm_create=app.confirm_create,
        )
    )
