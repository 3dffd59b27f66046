"""Tests for the in-memory region host."""

from __future__ import annotations

from linkctl.infrastructure.org_document import OrgDocument
from linkctl.infrastructure.regions import InMemoryRegionHost


class TestRegionHost:
    def test_handles_are_distinct(self) -> None:
        host = InMemoryRegionHost()
        a = host.create_region(0, 5)
        b = host.create_region(0, 5)
        assert a != b
        assert len(host) == 2

    def test_mark_and_release(self) -> None:
        host = InMemoryRegionHost()
        handle = host.create_region(0, 5)
        host.mark_previewed(handle)
        assert host.is_previewed(handle)
        host.release(handle)
        assert not host.is_previewed(handle)
        assert host.span(handle) is None
        assert host.released == [handle]

    def test_double_release_recorded_once(self) -> None:
        host = InMemoryRegionHost()
        handle = host.create_region(0, 5)
        host.release(handle)
        host.release(handle)
        assert host.released == [handle]

    def test_mark_released_handle_ignored(self) -> None:
        host = InMemoryRegionHost()
        handle = host.create_region(0, 5)
        host.release(handle)
        host.mark_previewed(handle)
        assert not host.is_previewed(handle)

    def test_regions_in_overlap(self) -> None:
        host = InMemoryRegionHost()
        a = host.create_region(0, 5)
        b = host.create_region(5, 10)
        c = host.create_region(12, 20)
        assert host.regions_in(4, 6) == [a, b]
        assert host.regions_in(10, 12) == []
        assert host.regions_in(0, 100) == [a, b, c]

    def test_empty_range_needs_strict_containment(self) -> None:
        host = InMemoryRegionHost()
        a = host.create_region(0, 5)
        assert host.regions_in(0, 0) == []
        assert host.regions_in(5, 5) == []
        assert host.regions_in(3, 3) == [a]


class TestFollowsEdits:
    def test_spans_after_change_shift(self) -> None:
        doc = OrgDocument("0123456789" * 3)
        host = InMemoryRegionHost()
        before = host.create_region(0, 4)
        touching = host.create_region(8, 12)
        after = host.create_region(20, 25)
        host.attach(doc)

        doc.replace(10, 15, "")

        assert host.span(before) == (0, 4)
        assert host.span(touching) == (8, 12)
        assert host.span(after) == (15, 20)

    def test_insertion_shifts_spans_at_point(self) -> None:
        doc = OrgDocument("abcdef")
        host = InMemoryRegionHost()
        handle = host.create_region(3, 6)
        host.attach(doc)
        doc.insert(3, "XX")
        assert host.span(handle) == (5, 8)
