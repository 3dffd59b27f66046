"""Workspace — the single dependency injected into every service.

Owns the per-process wiring: a link type registry seeded with the built-in
types, the plugin manager (built-in launch plugin, entry points, local
plugins), the global abbreviation table and the link store. Documents are
loaded through it so each gets an expander with its own ``#+LINK:`` table.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from linkctl.domain.abbrev import AbbrevExpander, AbbrevTable
from linkctl.domain.registry import LinkTypeRegistry, new_registry
from linkctl.domain.resolver import ConfirmCreate, Resolver
from linkctl.domain.store import LinkStore
from linkctl.infrastructure.org_document import OrgDocument
from linkctl.plugins.builtins.launch import LaunchPlugin
from linkctl.plugins.manager import PluginManager

if TYPE_CHECKING:
    from linkctl.config.settings import LinkSettings

logger = logging.getLogger(__name__)


class Workspace:
    """Settings-driven wiring of registry, plugins, abbreviations and store.

    Parameters:
        settings: Resolved settings.
        registry: Registry to populate; a fresh one by default, so plugin
            types never leak into the process-wide ``LINK_TYPES``.
        launcher: Replaces the desktop launcher of the built-in plugin.
        load_plugins: Discover entry-point and local plugins. The built-in
            plugin is always loaded.
    """

    def __init__(
        self,
        settings: LinkSettings,
        *,
        registry: LinkTypeRegistry | None = None,
        launcher: Callable[..., None] | None = None,
        load_plugins: bool = True,
    ) -> None:
        self.settings = settings
        self.registry = registry if registry is not None else new_registry()
        self.plugins = PluginManager(self.registry)
        self.plugins.register_plugin(
            LaunchPlugin(root=settings.root, launcher=launcher),
            name="launch-builtin",
        )
        loaded = self.plugins.discover_and_load(
            local_dir=settings.plugin_dir if load_plugins else None,
            entry_points=load_plugins,
            disabled=settings.plugins.disabled,
        )
        logger.debug("Plugins loaded: %s", ", ".join(loaded))

        self.abbrevs = AbbrevExpander(
            AbbrevTable(settings.abbrev.links),
            functions=self.plugins.abbrev_functions(),
            safe_functions=settings.abbrev.safe_functions,
        )
        self.store = LinkStore(remove_on_insertion=settings.store.remove_on_insertion)

    def load_document(self, path: Path) -> OrgDocument:
        """Read *path* as a document; relative paths resolve against the root."""
        if not path.is_absolute() and not path.exists():
            path = self.settings.root / path
        return OrgDocument.from_path(path)

    def expander_for(self, document: OrgDocument) -> AbbrevExpander:
        """Expander consulting *document*'s ``#+LINK:`` table before the global one."""
        return self.abbrevs.with_local(document.link_abbrevs())

    def resolver_for(
        self,
        document: OrgDocument,
        *,
        confirm_create: ConfirmCreate | None = None,
    ) -> Resolver:
        search_hook: Any = self.plugins.search if self.plugins.has_search_hooks() else None
        return Resolver(
            document,
            search_hook=search_hook,
            exact_headline=self.settings.resolve.exact_headline,
            confirm_create=confirm_create,
        )
