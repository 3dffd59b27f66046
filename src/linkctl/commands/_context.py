"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy Workspace initialization and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from linkctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from linkctl.config.settings import LinkSettings
    from linkctl.infrastructure.workspace import Workspace
    from linkctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The workspace is lazily initialized on first use so ``--help`` and
    ``--version`` never trigger plugin discovery.
    """

    def __init__(self, settings: LinkSettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None

        from linkctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from linkctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def workspace(self) -> Workspace:
        """The workspace instance (created lazily on first access)."""
        if self._workspace is None:
            from linkctl.infrastructure.workspace import Workspace

            self._workspace = Workspace(self.settings)
        return self._workspace

    def confirm_create(self, search: str) -> bool:
        """Ask before appending a missing heading; never asks with --no-interact."""
        if self.settings.no_interact:
            return False
        return click.confirm(f"No heading matches {search!r}. Create it?", default=False, err=True)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # JSON carries warnings in the payload; human renderers print
            # them inline except in quiet mode.
            if settings.quiet and not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
