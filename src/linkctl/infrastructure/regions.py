"""In-memory region host for the preview scheduler.

Handles are plain integers. Spans follow document edits: a span starting
at or after the end of a change is shifted by the change's delta. Spans
touching the change stay where they are; the scheduler releases them,
so attach the host after the scheduler has subscribed.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from linkctl.domain.document import Document

logger = logging.getLogger(__name__)


class InMemoryRegionHost:
    """Tracks preview regions without any display."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._spans: dict[int, tuple[int, int]] = {}
        self._previewed: set[int] = set()
        self.released: list[int] = []

    def create_region(self, beg: int, end: int) -> int:
        handle = next(self._ids)
        self._spans[handle] = (beg, end)
        return handle

    def release(self, handle: int) -> None:
        if self._spans.pop(handle, None) is None:
            logger.debug("Region %d already released", handle)
            return
        self._previewed.discard(handle)
        self.released.append(handle)

    def mark_previewed(self, handle: int) -> None:
        if handle in self._spans:
            self._previewed.add(handle)

    def is_previewed(self, handle: int) -> bool:
        return handle in self._previewed

    def span(self, handle: int) -> tuple[int, int] | None:
        return self._spans.get(handle)

    def regions_in(self, beg: int, end: int) -> list[int]:
        """Handles whose span intersects ``[beg, end)``.

        For an empty range (an insertion point) only spans strictly
        containing *beg* count.
        """
        return [h for h, (s, e) in self._spans.items() if s < end and e > beg]

    def attach(self, document: Document) -> None:
        document.add_change_observer(self.on_change)

    def on_change(self, beg: int, end: int, delta: int) -> None:
        for handle, (s, e) in list(self._spans.items()):
            if s >= end:
                self._spans[handle] = (s + delta, e + delta)

    def __len__(self) -> int:
        return len(self._spans)
