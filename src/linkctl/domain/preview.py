"""Preview scheduler — batched, cancellable link previews.

The scheduler owns no thread or timer. The host drives it: it calls
:meth:`PreviewScheduler.drain_one_batch` from its event loop, or supplies
a ``timer`` callable the scheduler uses to request a continuation after
``delay`` seconds of idle time.

Placement is abstracted as opaque region handles created by a
:class:`RegionHost`. The scheduler only needs handle identity and a way to
flag a handle as holding a valid preview.

Ordering: within a batch, tasks run in queue order. A new scan prepends its
tasks, so the most recently scanned region previews first.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from linkctl.domain.types import CapabilityKind, PreviewState

if TYPE_CHECKING:
    from linkctl.domain.document import Document
    from linkctl.domain.grammar import LinkToken
    from linkctl.domain.registry import LinkTypeRegistry

log = structlog.get_logger(__name__)

PreviewFn = Callable[[Hashable, str, "LinkToken"], Any]
Timer = Callable[[float, Callable[[], Any]], Any]


class RegionHost(Protocol):
    """Host capability for placing previews."""

    def create_region(self, beg: int, end: int) -> Hashable: ...

    def release(self, handle: Hashable) -> None: ...

    def mark_previewed(self, handle: Hashable) -> None: ...

    def regions_in(self, beg: int, end: int) -> Sequence[Hashable]: ...


@dataclass(frozen=True)
class PreviewTask:
    """One queued preview."""

    preview_fn: PreviewFn
    handle: Hashable
    path: str
    token: LinkToken


@dataclass
class BatchReport:
    """What one drain tick did."""

    succeeded: list[PreviewTask] = field(default_factory=list)
    failed: list[PreviewTask] = field(default_factory=list)
    remaining: int = 0

    @property
    def ran(self) -> int:
        return len(self.succeeded) + len(self.failed)


class PreviewScheduler:
    """Queue preview tasks for link regions and run them a few at a time.

    Parameters:
        document: Source of text; the scheduler subscribes to its changes.
        registry: Link type registry consulted for ``preview`` capabilities.
        regions: Host region-handle capability.
        batch_size: Tasks run per :meth:`drain_one_batch` call.
        delay: Idle seconds before a continuation batch.
        timer: Optional ``timer(delay, callback)`` used to request
            continuations. Without it the host polls :attr:`pending`.
        expand: Optional abbreviation expander applied while scanning.
    """

    def __init__(
        self,
        document: Document,
        registry: LinkTypeRegistry,
        regions: RegionHost,
        *,
        batch_size: int = 6,
        delay: float = 0.05,
        timer: Timer | None = None,
        expand: Callable[[str], str] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._registry = registry
        self._regions = regions
        self.batch_size = batch_size
        self.delay = delay
        self._timer = timer
        self._expand = expand
        self._queue: list[PreviewTask] = []
        self._previewed: dict[Hashable, PreviewTask] = {}
        self._continuation: Any = None
        self.state = PreviewState.IDLE
        self._doc: Document | None = None
        self.attach(document)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def previewed(self) -> list[Hashable]:
        return list(self._previewed)

    def schedule_region(self, beg: int, end: int, *, include_described: bool = False) -> int:
        """Queue previews for links starting in ``[beg, end)``.

        Links with a description are skipped unless *include_described*.
        Existing previews in the region are released first. Returns the
        number of tasks queued.
        """
        self.clear_region(beg, end)
        self.state = PreviewState.SCANNING
        grammar = self._registry.snapshot().grammar
        batch: list[PreviewTask] = []
        for token in grammar.iter_links(self._doc.text, beg, end, expand=self._expand):
            preview_fn = self._registry.get(token.type, CapabilityKind.PREVIEW)
            if preview_fn is None:
                continue
            if token.has_description and not include_described:
                continue
            handle = self._regions.create_region(token.start, token.end)
            batch.append(PreviewTask(preview_fn, handle, token.path, token))

        self._queue[:0] = batch
        self.state = PreviewState.QUEUED if self._queue else PreviewState.IDLE
        log.debug("preview.scheduled", beg=beg, end=end, queued=len(batch), pending=self.pending)
        return len(batch)

    def drain_one_batch(self) -> BatchReport:
        """Run up to ``batch_size`` queued previews.

        A preview returning a true value marks its handle previewed; false
        or an exception releases it. A continuation is requested from the
        timer only when tasks remain.
        """
        self._continuation = None
        report = BatchReport()
        if not self._queue:
            self.state = PreviewState.IDLE
            return report

        self.state = PreviewState.DRAINING
        batch = self._queue[: self.batch_size]
        del self._queue[: self.batch_size]
        for task in batch:
            if self._run(task):
                self._regions.mark_previewed(task.handle)
                self._previewed[task.handle] = task
                report.succeeded.append(task)
            else:
                self._regions.release(task.handle)
                report.failed.append(task)

        report.remaining = len(self._queue)
        if self._queue:
            self.state = PreviewState.QUEUED
            if self._timer is not None:
                self._continuation = self._timer(self.delay, self.drain_one_batch)
        else:
            self.state = PreviewState.IDLE
        return report

    def drain_all(self) -> list[BatchReport]:
        """Drain batch after batch until the queue is empty."""
        reports: list[BatchReport] = []
        while self._queue:
            reports.append(self.drain_one_batch())
        return reports

    def clear_region(self, beg: int, end: int) -> int:
        """Cancel queued tasks and release previews overlapping ``[beg, end)``.

        Returns the number of handles released.
        """
        hit = set(self._regions.regions_in(beg, end))
        if not hit:
            return 0
        released = 0
        kept: list[PreviewTask] = []
        for task in self._queue:
            if task.handle in hit:
                self._regions.release(task.handle)
                released += 1
            else:
                kept.append(task)
        self._queue = kept

        for handle in list(self._previewed):
            if handle in hit:
                self.invalidate(handle)
                released += 1
        if not self._queue and self.state is PreviewState.QUEUED:
            self.state = PreviewState.IDLE
        return released

    def invalidate(self, handle: Hashable) -> None:
        """Release one rendered preview."""
        if self._previewed.pop(handle, None) is not None:
            self._regions.release(handle)

    def attach(self, document: Document) -> None:
        """Follow *document*: scan its text and invalidate on its changes.

        Switching documents unsubscribes from the previous one and releases
        every queued or rendered preview made for it.
        """
        previous = self._doc
        if previous is document:
            return
        if previous is not None:
            previous.remove_change_observer(self.on_change)
            for task in self._queue:
                self._regions.release(task.handle)
            self._queue = []
            for handle in list(self._previewed):
                self.invalidate(handle)
            if self.state is PreviewState.QUEUED:
                self.state = PreviewState.IDLE
        self._doc = document
        document.add_change_observer(self.on_change)

    def on_change(self, beg: int, end: int, delta: int = 0) -> None:
        """Document mutation observer: previews touching the change go stale."""
        self.clear_region(beg, end)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self, task: PreviewTask) -> bool:
        try:
            return bool(task.preview_fn(task.handle, task.path, task.token))
        except Exception as exc:
            log.warning("preview.failed", path=task.path, link_type=task.token.type, error=str(exc))
            return False

