"""Link store — most-recently-used list of captured links.

Set semantics on ``(target, description)``: storing a pair that is
already present moves it to the front instead of duplicating it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from linkctl.domain.grammar import make_link_string
from linkctl.domain.types import CapabilityKind, StoreOutcome

if TYPE_CHECKING:
    from linkctl.domain.registry import LinkTypeRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredLink:
    """A captured link target with its optional description."""

    target: str
    description: str | None = None

    def to_link_string(self) -> str:
        return make_link_string(self.target, self.description)


class LinkStore:
    """Ordered, deduplicating store; index 0 is the most recent link.

    Parameters:
        remove_on_insertion: Drop a link from the store once it has been
            inserted into a document via :meth:`insert_link`.
    """

    def __init__(self, *, remove_on_insertion: bool = True) -> None:
        self.remove_on_insertion = remove_on_insertion
        self._links: list[StoredLink] = []
        self._properties: dict[str, Any] = {}

    def add(self, target: str, description: str | None = None) -> StoreOutcome:
        """Store a link at the front."""
        link = StoredLink(target, description)
        if self._links and self._links[0] == link:
            logger.debug("Link already stored: %s", target)
            return StoreOutcome.ALREADY_FRONT
        if link in self._links:
            self._links.remove(link)
            self._links.insert(0, link)
            logger.debug("Link moved to front: %s", target)
            return StoreOutcome.MOVED
        self._links.insert(0, link)
        logger.debug("Stored: %s", target)
        return StoreOutcome.STORED

    def insert_link(self, index: int = 0) -> str:
        """Return the bracket link for entry *index*, honoring removal policy."""
        link = self._links[index]
        if self.remove_on_insertion:
            del self._links[index]
        return link.to_link_string()

    def remove(self, target: str, description: str | None = None) -> bool:
        link = StoredLink(target, description)
        if link in self._links:
            self._links.remove(link)
            return True
        return False

    def trim(self, max_size: int) -> int:
        """Keep the *max_size* most recent links. Returns how many were dropped."""
        if max_size <= 0 or len(self._links) <= max_size:
            return 0
        dropped = len(self._links) - max_size
        del self._links[max_size:]
        return dropped

    def clear(self) -> None:
        self._links.clear()

    @property
    def front(self) -> StoredLink | None:
        return self._links[0] if self._links else None

    def __iter__(self) -> Iterator[StoredLink]:
        return iter(list(self._links))

    def __len__(self) -> int:
        return len(self._links)

    def __getitem__(self, index: int) -> StoredLink:
        return self._links[index]

    # ------------------------------------------------------------------
    # Capture through ``store`` capabilities
    # ------------------------------------------------------------------

    def set_properties(self, **properties: Any) -> None:
        """Called by ``store`` capabilities to describe the link they found.

        ``link`` is the target; ``description`` is optional. Other keys are
        kept for the host.
        """
        self._properties.update(properties)

    @property
    def properties(self) -> dict[str, Any]:
        return dict(self._properties)

    def capture(
        self,
        registry: LinkTypeRegistry,
        *,
        interactive: bool = False,
    ) -> StoreOutcome | None:
        """Ask each ``store`` capability, in registry order, for a link.

        The first capability returning true must have called
        :meth:`set_properties` with a ``link``; that link is added. Returns
        None when no capability claimed the context.
        """
        self._properties = {}
        for link_type in registry.types_with(CapabilityKind.STORE):
            store_fn = link_type.get(CapabilityKind.STORE)
            if not store_fn(interactive):
                continue
            target = self._properties.get("link")
            if not target:
                logger.warning("Store capability of %s set no link", link_type.name)
                return None
            return self.add(target, self._properties.get("description"))
        return None
