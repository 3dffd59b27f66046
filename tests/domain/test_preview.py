"""Tests for the batched preview scheduler."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from linkctl.domain.preview import PreviewScheduler
from linkctl.domain.registry import LinkTypeRegistry
from linkctl.domain.types import PreviewState
from linkctl.infrastructure.org_document import OrgDocument
from linkctl.infrastructure.regions import InMemoryRegionHost
from tests.conftest import RecordingPreview

LINE = "[[file:img{}.png]]\n"
LINE_LEN = len(LINE.format(0))


def _doc(count: int) -> OrgDocument:
    return OrgDocument("".join(LINE.format(i) for i in range(count)))


class _Harness:
    """Scheduler over *count* image links with a recording preview capability."""

    def __init__(
        self,
        registry: LinkTypeRegistry,
        count: int = 10,
        *,
        batch_size: int = 6,
        result: Any = True,
        timer: Callable[..., Any] | None = None,
        text: str | None = None,
    ) -> None:
        self.doc = OrgDocument(text) if text is not None else _doc(count)
        self.preview = RecordingPreview(result)
        registry.register("file", {"preview": self.preview})
        self.regions = InMemoryRegionHost()
        self.scheduler = PreviewScheduler(
            self.doc,
            registry,
            self.regions,
            batch_size=batch_size,
            timer=timer,
        )
        self.regions.attach(self.doc)

    def schedule_all(self, **kwargs: Any) -> int:
        return self.scheduler.schedule_region(0, len(self.doc.text), **kwargs)


class TestScheduling:
    def test_queues_previewable_links(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 4)
        assert h.schedule_all() == 4
        assert h.scheduler.pending == 4
        assert h.scheduler.state is PreviewState.QUEUED
        assert len(h.regions) == 4

    def test_types_without_preview_skipped(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, text="https://x.org and [[file:a.png]] and [[Heading]]\n")
        assert h.schedule_all() == 1

    def test_described_links_skipped_by_default(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, text="[[file:a.png][A]] [[file:b.png]]\n")
        assert h.schedule_all() == 1
        h.scheduler.drain_all()
        assert h.preview.calls == ["b.png"]

    def test_include_described(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, text="[[file:a.png][A]] [[file:b.png]]\n")
        assert h.schedule_all(include_described=True) == 2

    def test_rescanning_releases_old_handles(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 2)
        h.schedule_all()
        h.schedule_all()
        assert h.scheduler.pending == 2
        assert len(h.regions.released) == 2

    def test_invalid_batch_size(self, registry: LinkTypeRegistry) -> None:
        with pytest.raises(ValueError):
            PreviewScheduler(_doc(1), registry, InMemoryRegionHost(), batch_size=0)


class TestDraining:
    def test_ten_tasks_drain_six_then_four(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 10, batch_size=6)
        h.schedule_all()

        first = h.scheduler.drain_one_batch()
        assert first.ran == 6
        assert first.remaining == 4
        assert h.scheduler.state is PreviewState.QUEUED

        second = h.scheduler.drain_one_batch()
        assert second.ran == 4
        assert second.remaining == 0
        assert h.scheduler.state is PreviewState.IDLE

    def test_queue_order_within_batch(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 3)
        h.schedule_all()
        h.scheduler.drain_one_batch()
        assert h.preview.calls == ["img0.png", "img1.png", "img2.png"]

    def test_most_recent_scan_runs_first(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 8, batch_size=3)
        h.scheduler.schedule_region(0, 4 * LINE_LEN)
        h.scheduler.schedule_region(4 * LINE_LEN, 8 * LINE_LEN)
        h.scheduler.drain_one_batch()
        assert h.preview.calls == ["img4.png", "img5.png", "img6.png"]

    def test_success_marks_handle(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 2)
        h.schedule_all()
        report = h.scheduler.drain_one_batch()
        handles = [task.handle for task in report.succeeded]
        assert all(h.regions.is_previewed(handle) for handle in handles)
        assert h.scheduler.previewed == handles

    @pytest.mark.parametrize("result", [False, RuntimeError("boom")])
    def test_failure_releases_handle(self, registry: LinkTypeRegistry, result: Any) -> None:
        h = _Harness(registry, 2, result=result)
        h.schedule_all()
        report = h.scheduler.drain_one_batch()
        assert len(report.failed) == 2
        assert sorted(h.regions.released) == sorted(t.handle for t in report.failed)
        assert len(h.regions) == 0
        assert h.scheduler.previewed == []

    def test_drain_empty_queue(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 0)
        report = h.scheduler.drain_one_batch()
        assert report.ran == 0
        assert h.scheduler.state is PreviewState.IDLE

    def test_drain_all(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 7, batch_size=3)
        h.schedule_all()
        reports = h.scheduler.drain_all()
        assert [r.ran for r in reports] == [3, 3, 1]
        assert h.scheduler.pending == 0


class TestContinuation:
    def test_timer_requested_only_while_tasks_remain(self, registry: LinkTypeRegistry) -> None:
        requests: list[tuple[float, Any]] = []

        def timer(delay: float, callback: Callable[[], Any]) -> str:
            requests.append((delay, callback))
            return "token"

        h = _Harness(registry, 5, batch_size=3, timer=timer)
        h.scheduler.delay = 0.2
        h.schedule_all()

        h.scheduler.drain_one_batch()
        assert len(requests) == 1
        delay, callback = requests[0]
        assert delay == 0.2

        callback()
        assert len(requests) == 1
        assert h.scheduler.pending == 0


class TestCancellation:
    def test_clear_region_cancels_queued(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 4)
        h.schedule_all()
        assert h.scheduler.clear_region(0, LINE_LEN) == 1
        assert h.scheduler.pending == 3
        h.scheduler.drain_all()
        assert "img0.png" not in h.preview.calls

    def test_clear_region_releases_rendered(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 3)
        h.schedule_all()
        h.scheduler.drain_all()
        assert h.scheduler.clear_region(LINE_LEN, 3 * LINE_LEN) == 2
        assert len(h.scheduler.previewed) == 1

    def test_clear_empty_region(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 2)
        h.schedule_all()
        assert h.scheduler.clear_region(2 * LINE_LEN, 2 * LINE_LEN) == 0

    def test_invalidate_one(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 2)
        h.schedule_all()
        report = h.scheduler.drain_one_batch()
        handle = report.succeeded[0].handle
        h.scheduler.invalidate(handle)
        assert handle in h.regions.released
        assert handle not in h.scheduler.previewed


class TestInvalidationOnChange:
    def test_edit_inside_link_invalidates_it(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 3)
        h.schedule_all()
        report = h.scheduler.drain_all()[0]
        second = report.succeeded[1].handle

        h.doc.insert(LINE_LEN + 5, "x")

        assert second not in h.scheduler.previewed
        assert len(h.scheduler.previewed) == 2

    def test_insertion_at_boundary_keeps_previews(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 3)
        h.schedule_all()
        h.scheduler.drain_all()

        h.doc.insert(LINE_LEN, "new text\n")

        assert len(h.scheduler.previewed) == 3

    def test_deletion_releases_only_overlapping(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 3)
        h.schedule_all()
        report = h.scheduler.drain_all()[0]
        first, second, third = (t.handle for t in report.succeeded)

        h.doc.delete(0, LINE_LEN)

        assert h.scheduler.previewed == [second, third]
        assert h.regions.released == [first]
        assert h.regions.span(second) == (0, LINE_LEN - 1)

    def test_queued_task_cancelled_by_edit(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 2)
        h.schedule_all()
        h.doc.replace(2, 6, "FILE")
        assert h.scheduler.pending == 1


class TestAttach:
    def test_switching_documents_releases_old_previews(
        self, registry: LinkTypeRegistry
    ) -> None:
        h = _Harness(registry, 2)
        h.schedule_all()
        h.scheduler.drain_one_batch()
        old = list(h.scheduler.previewed)

        h.scheduler.attach(_doc(1))

        assert h.scheduler.previewed == []
        assert h.scheduler.pending == 0
        assert h.scheduler.state is PreviewState.IDLE
        assert h.regions.released == old

    def test_old_document_edits_ignored(self, registry: LinkTypeRegistry) -> None:
        h = _Harness(registry, 2)
        other = _doc(2)
        h.scheduler.attach(other)
        assert h.scheduler.schedule_region(0, len(other.text)) == 2
        h.scheduler.drain_all()

        h.doc.insert(5, "x")

        assert len(h.scheduler.previewed) == 2
        other.insert(5, "x")
        assert len(h.scheduler.previewed) == 1
