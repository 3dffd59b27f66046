"""Link type registry — capability bundles keyed by link type name.

The registry publishes immutable snapshots: every mutation builds a new
type mapping and a new :class:`LinkGrammar`, then swaps both in with one
attribute assignment. Readers holding a snapshot never observe a partial
update.

INVARIANT: ``coderef``, ``custom-id``, ``fuzzy`` and ``radio`` are handled
by the resolver and can never be registered.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from linkctl.domain.errors import ReservedTypeError
from linkctl.domain.grammar import LinkGrammar
from linkctl.domain.types import RESERVED_TYPES, CapabilityKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkType:
    """A named capability bundle."""

    name: str
    capabilities: Mapping[CapabilityKind, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def get(self, kind: CapabilityKind | str) -> Any | None:
        return self.capabilities.get(CapabilityKind(kind))


@dataclass(frozen=True)
class RegistrySnapshot:
    """Consistent view of registered types and the grammar derived from them."""

    types: Mapping[str, LinkType]
    grammar: LinkGrammar


class LinkTypeRegistry:
    """Copy-on-write registry of link types.

    Single writer; any number of readers. ``register`` regenerates the angle
    and plain matchers before returning.
    """

    def __init__(self) -> None:
        self._snapshot = RegistrySnapshot(
            types=MappingProxyType({}),
            grammar=LinkGrammar.build(()),
        )

    def register(
        self,
        name: str,
        capabilities: Mapping[CapabilityKind | str, Any] | None = None,
    ) -> LinkType:
        """Register *name*, merging *capabilities* into any existing entry.

        Raises:
            ReservedTypeError: *name* is one of the internal link types.
            ValueError: empty name or unknown capability kind.
        """
        if name in RESERVED_TYPES:
            raise ReservedTypeError(name)
        if not name or ":" in name or any(c.isspace() for c in name):
            raise ValueError(f"Invalid link type name: {name!r}")

        incoming = {CapabilityKind(k): v for k, v in (capabilities or {}).items()}
        current = self._snapshot
        previous = current.types.get(name)
        merged = {**previous.capabilities, **incoming} if previous else incoming
        link_type = LinkType(name=name, capabilities=MappingProxyType(merged))

        types = dict(current.types)
        types[name] = link_type
        self._snapshot = RegistrySnapshot(
            types=MappingProxyType(types),
            grammar=LinkGrammar.build(types),
        )
        logger.debug(
            "%s link type %s (%d capabilities)",
            "Updated" if previous else "Registered",
            name,
            len(merged),
        )
        return link_type

    def get(self, name: str, kind: CapabilityKind | str) -> Any | None:
        """Return capability *kind* of type *name*, or None."""
        link_type = self._snapshot.types.get(name)
        if link_type is None:
            return None
        return link_type.get(kind)

    def get_type(self, name: str) -> LinkType | None:
        return self._snapshot.types.get(name)

    def list_types(self) -> list[str]:
        """Registered names, in insertion order."""
        return list(self._snapshot.types)

    def types_with(self, kind: CapabilityKind | str) -> list[LinkType]:
        """Registered types carrying capability *kind*, in insertion order."""
        wanted = CapabilityKind(kind)
        return [t for t in self._snapshot.types.values() if wanted in t.capabilities]

    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    @property
    def grammar(self) -> LinkGrammar:
        return self._snapshot.grammar

    def __contains__(self, name: object) -> bool:
        return name in self._snapshot.types

    def __len__(self) -> int:
        return len(self._snapshot.types)


LINK_TYPES = LinkTypeRegistry()


# ---------------------------------------------------------------------------
# Built-in link types
# ---------------------------------------------------------------------------


def _url_exporter(prefix: str) -> Callable[[str, str | None, str, Any], str | None]:
    """Export capability rendering ``prefix + path`` for common backends."""

    def export(path: str, description: str | None, backend: str, channel: Any) -> str | None:
        url = f"{prefix}{path}"
        desc = description or url
        if backend == "html":
            return f'<a href="{html.escape(url, quote=True)}">{html.escape(desc)}</a>'
        if backend == "md":
            return f"[{desc}]({url})"
        if backend == "latex":
            return f"\\href{{{url}}}{{{desc}}}"
        if backend == "ascii":
            return desc if description is None else f"{desc} <{url}>"
        return None

    return export


_WEB_SCHEMES = ("http", "https", "ftp", "mailto", "news")
_PLAIN_TYPES = ("file", "file+sys", "file+emacs", "id", "shell", "elisp", "help")


def register_builtin_types(registry: LinkTypeRegistry) -> None:
    """Populate *registry* with the standard link types.

    Only pure capabilities live here. Capabilities that reach outside the
    process (opening, previewing files) come from the built-in plugin.
    """
    for name in _PLAIN_TYPES:
        registry.register(name, {})
    for scheme in _WEB_SCHEMES:
        registry.register(scheme, {CapabilityKind.EXPORT: _url_exporter(f"{scheme}:")})
    registry.register("doi", {CapabilityKind.EXPORT: _url_exporter("https://doi.org/")})


def new_registry() -> LinkTypeRegistry:
    """A fresh registry holding only the built-in types."""
    registry = LinkTypeRegistry()
    register_builtin_types(registry)
    return registry


register_builtin_types(LINK_TYPES)
