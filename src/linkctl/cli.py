"""Root CLI group for linkctl with global flags and command registration."""

from __future__ import annotations

import click

from linkctl import __version__
from linkctl.commands import register_commands
from linkctl.commands._base import LinkGroup
from linkctl.commands._context import AppContext
from linkctl.config.settings import LinkSettings


@click.group(
    cls=LinkGroup,
    invoke_without_command=True,
    examples="""\
  linkctl parse notes.org
  linkctl resolve notes.org "Project plan"
  linkctl --json types""",
)
@click.version_option(version=__version__, prog_name="linkctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("--no-interact", is_flag=True, help="Non-interactive mode (no prompts).")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    no_interact: bool,
    config_path: str | None,
) -> None:
    """linkctl — parse, resolve and preview Org-style links."""
    ctx.ensure_object(dict)
    settings = LinkSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        no_interact=no_interact,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
