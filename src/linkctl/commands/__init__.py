"""Subcommand modules for linkctl.

Provides register_commands() which uses deferred imports to keep
``linkctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from linkctl.commands.expand import expand
    from linkctl.commands.open_cmd import open_cmd
    from linkctl.commands.parse import parse
    from linkctl.commands.preview import preview
    from linkctl.commands.resolve import resolve
    from linkctl.commands.store import store
    from linkctl.commands.types_cmd import types_cmd

    cli.add_command(parse)
    cli.add_command(resolve)
    cli.add_command(expand)
    cli.add_command(types_cmd)
    cli.add_command(preview)
    cli.add_command(store)
    cli.add_command(open_cmd)
