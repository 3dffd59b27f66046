"""Pluggy hook specifications for linkctl extensions.

Two setup-time hooks let plugins contribute link types and abbreviation
functions. One resolution-time hook lets a plugin claim a search string
before the built-in cascade runs.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from linkctl.domain.document import Document

hookspec = pluggy.HookspecMarker("linkctl")


class LinkctlHookSpec:
    """Hook specifications for the linkctl plugin system."""

    @hookspec(firstresult=True)
    def link_search(self, search: str, document: Document) -> Any | None:
        """Claim *search* in *document*.

        Return anything but None to stop the cascade; the value is wrapped
        in an ``ExternalMatch`` result.
        """

    @hookspec
    def register_link_types(self) -> dict[str, dict[str, Any]] | None:
        """Return link type name -> capabilities mappings.

        Capability keys are :class:`~linkctl.domain.types.CapabilityKind`
        values. Existing types are merged, last write wins.
        """

    @hookspec
    def register_abbrev_functions(self) -> dict[str, Callable[[str | None], str]] | None:
        """Return name -> function mappings usable from ``%(name)`` templates.

        Functions still need to be listed in ``[abbrev] safe_functions`` or
        decorated with :func:`~linkctl.domain.abbrev.pure_expansion`.
        """
