"""Plugin discovery and loading.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus local directory discovery from ``.linkctl/plugins/``.
Capabilities: link types, abbreviation functions, the external search hook.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pluggy

from linkctl.domain.errors import ReservedTypeError
from linkctl.plugins.hookspecs import LinkctlHookSpec

if TYPE_CHECKING:
    from linkctl.domain.document import Document
    from linkctl.domain.registry import LinkTypeRegistry

PROJECT_NAME = "linkctl"
ENTRY_POINT_GROUP = "linkctl.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch.

    Link types returned by ``register_link_types`` are merged into
    *registry* when a plugin is loaded.
    """

    def __init__(self, registry: LinkTypeRegistry | None = None) -> None:
        if registry is None:
            from linkctl.domain.registry import LINK_TYPES

            registry = LINK_TYPES
        self.registry = registry
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(LinkctlHookSpec)
        self._loaded: bool = False

    def discover_and_load(
        self,
        *,
        local_dir: Path | None = None,
        entry_points: bool = True,
        disabled: list[str] | None = None,
    ) -> list[str]:
        """Discover plugins from entry points and an optional local directory.

        Uses pluggy's native setuptools entry_point discovery for the
        ``linkctl.plugins`` group, then scans *local_dir* (typically
        ``.linkctl/plugins/``) for single-file Python plugins. Entry points
        named in *disabled* are blocked. Link types of every registered
        plugin, built-ins included, are merged in registration order.

        Returns a list of loaded plugin names.
        """
        for name in disabled or []:
            self._pm.set_blocked(name)
        if entry_points:
            self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
            self._normalize_plugin_instances()
        if local_dir is not None:
            self._discover_local(local_dir)
        for name, plugin in self._ordered_plugins():
            self._register_plugin_link_types(plugin, name)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        if self._pm.register(plugin, name=resolved_name) is None:
            logger.debug("Plugin %s is blocked", resolved_name)
            return
        if self._loaded:
            self._register_plugin_link_types(plugin, resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        """Unregister a plugin instance."""
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [name for name, _ in self._ordered_plugins()]

    # ------------------------------------------------------------------
    # Hook dispatch
    # ------------------------------------------------------------------

    def search(self, search: str, document: Document) -> Any | None:
        """First non-None ``link_search`` result, or None.

        A failing plugin is logged and treated as not claiming the search.
        """
        try:
            return self._pm.hook.link_search(search=search, document=document)
        except Exception:
            logger.warning("link_search hook failed for %r", search, exc_info=True)
            return None

    def has_search_hooks(self) -> bool:
        return bool(self._pm.hook.link_search.get_hookimpls())

    def abbrev_functions(self) -> dict[str, Callable[[str | None], str]]:
        """Merge every plugin's ``register_abbrev_functions`` result."""
        merged: dict[str, Callable[[str | None], str]] = {}
        for plugin_name, plugin in self._ordered_plugins():
            functions = self._call_setup_hook(plugin, plugin_name, "register_abbrev_functions")
            if functions is None:
                continue
            for name, func in functions.items():
                if not callable(func):
                    logger.warning(
                        "Skipping non-callable abbreviation function %r from plugin %s",
                        name,
                        plugin_name,
                    )
                    continue
                merged[name] = func
        return merged

    # ------------------------------------------------------------------
    # Local directory discovery
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Scan *local_dir* for single-file Python plugins.

        Each ``*.py`` file (excluding ``_``-prefixed names) is loaded as a
        module. Classes inside the module that carry pluggy hookimpl-decorated
        methods are instantiated and registered.

        Errors are logged as warnings but never raised.
        """
        if not local_dir.is_dir():
            return

        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"linkctl_local_plugin_{py_file.stem}"
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    logger.warning("Could not create module spec for %s", py_file)
                    continue
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
            except Exception:
                logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
                sys.modules.pop(module_name, None)
                continue

            for _attr_name, obj in inspect.getmembers(module, inspect.isclass):
                if obj.__module__ != module_name:
                    continue  # imported
                if not self._has_hook_impls(obj):
                    continue
                try:
                    self._pm.register(obj(), name=module_name)
                    logger.debug("Loaded local plugin %s from %s", obj.__name__, py_file)
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin class %s from %s",
                        obj.__name__,
                        py_file,
                        exc_info=True,
                    )

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook dispatch
        against class objects leaves ``self`` unbound and fails at runtime.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue
            if not self._has_hook_impls(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue
            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)

    # ------------------------------------------------------------------
    # Setup hooks
    # ------------------------------------------------------------------

    def _register_plugin_link_types(self, plugin: object, plugin_name: str) -> None:
        """Merge the link types one plugin exposes into the registry."""
        type_map = self._call_setup_hook(plugin, plugin_name, "register_link_types")
        if type_map is None:
            return
        for type_name, capabilities in type_map.items():
            try:
                self.registry.register(type_name, capabilities)
            except (ReservedTypeError, TypeError, ValueError):
                logger.warning(
                    "Skipping link type %r from plugin %s",
                    type_name,
                    plugin_name,
                    exc_info=True,
                )

    @staticmethod
    def _call_setup_hook(plugin: object, plugin_name: str, hook_name: str) -> dict[str, Any] | None:
        hook = getattr(plugin, hook_name, None)
        if hook is None:
            return None
        try:
            result = hook()
        except Exception:
            logger.warning("Hook %s failed in plugin %s", hook_name, plugin_name, exc_info=True)
            return None
        if result is None:
            return None
        if not isinstance(result, dict):
            logger.warning("Plugin %s returned a non-dict from %s", plugin_name, hook_name)
            return None
        return result

    def _ordered_plugins(self) -> list[tuple[str, object]]:
        """Registered plugins in registration order; blocked names skipped."""
        return [(name, p) for name, p in self._pm.list_name_plugin() if p is not None]

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Check whether *cls* has any methods decorated with ``@hookimpl``.

        Pluggy's ``HookimplMarker("linkctl")`` sets a ``linkctl_impl``
        attribute on decorated methods.
        """
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, "linkctl_impl", None):
                return True
        return False
