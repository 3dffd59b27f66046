"""Tests for the most-recently-used link store."""

from __future__ import annotations

from typing import Any

import pytest

from linkctl.domain.registry import LinkTypeRegistry
from linkctl.domain.store import LinkStore, StoredLink
from linkctl.domain.types import StoreOutcome


class TestAdd:
    def test_new_link_stored_at_front(self) -> None:
        store = LinkStore()
        assert store.add("a", "d") is StoreOutcome.STORED
        assert store.add("b") is StoreOutcome.STORED
        assert list(store) == [StoredLink("b"), StoredLink("a", "d")]

    def test_same_pair_at_front_not_duplicated(self) -> None:
        store = LinkStore()
        store.add("a", "d")
        assert store.add("a", "d") is StoreOutcome.ALREADY_FRONT
        assert len(store) == 1
        assert store.front == StoredLink("a", "d")

    def test_existing_pair_moved_to_front(self) -> None:
        store = LinkStore()
        store.add("a", "d")
        store.add("b", "d2")
        assert store.add("a", "d") is StoreOutcome.MOVED
        assert list(store) == [StoredLink("a", "d"), StoredLink("b", "d2")]

    def test_description_is_part_of_identity(self) -> None:
        store = LinkStore()
        store.add("a", "one")
        store.add("a", "two")
        assert len(store) == 2

    def test_front_of_empty_store(self) -> None:
        assert LinkStore().front is None


class TestInsertLink:
    def test_removes_by_default(self) -> None:
        store = LinkStore()
        store.add("a", "Alpha")
        assert store.insert_link() == "[[a][Alpha]]"
        assert len(store) == 0

    def test_keeps_when_policy_disabled(self) -> None:
        store = LinkStore(remove_on_insertion=False)
        store.add("a")
        store.add("b")
        assert store.insert_link(1) == "[[a]]"
        assert len(store) == 2

    def test_target_escaped(self) -> None:
        store = LinkStore()
        store.add("a]b")
        assert store.insert_link() == "[[a\\]b]]"

    def test_out_of_range(self) -> None:
        with pytest.raises(IndexError):
            LinkStore().insert_link(0)


class TestMaintenance:
    def test_remove(self) -> None:
        store = LinkStore()
        store.add("a", "d")
        assert store.remove("a") is False
        assert store.remove("a", "d") is True
        assert len(store) == 0

    def test_trim_keeps_most_recent(self) -> None:
        store = LinkStore()
        for target in "abcde":
            store.add(target)
        assert store.trim(2) == 3
        assert [link.target for link in store] == ["e", "d"]

    @pytest.mark.parametrize("size", [0, 10])
    def test_trim_noop(self, size: int) -> None:
        store = LinkStore()
        store.add("a")
        assert store.trim(size) == 0
        assert len(store) == 1

    def test_clear(self) -> None:
        store = LinkStore()
        store.add("a")
        store.clear()
        assert len(store) == 0

    def test_getitem(self) -> None:
        store = LinkStore()
        store.add("a")
        store.add("b")
        assert store[1] == StoredLink("a")


class TestCapture:
    def _registry_with(self, store: LinkStore, **behaviour: Any) -> LinkTypeRegistry:
        registry = LinkTypeRegistry()
        for name, claim in behaviour.items():

            def capture(interactive: bool, claim: Any = claim) -> bool:
                if claim is None:
                    return False
                if claim:
                    store.set_properties(**claim)
                return True

            registry.register(name, {"store": capture})
        return registry

    def test_first_claiming_capability_wins(self) -> None:
        store = LinkStore()
        registry = self._registry_with(
            store,
            skip=None,
            first={"link": "first:1", "description": "One", "extra": 1},
            second={"link": "second:2"},
        )
        assert store.capture(registry) is StoreOutcome.STORED
        assert list(store) == [StoredLink("first:1", "One")]
        assert store.properties["extra"] == 1

    def test_nobody_claims(self) -> None:
        store = LinkStore()
        assert store.capture(self._registry_with(store, skip=None)) is None
        assert len(store) == 0

    def test_claim_without_link(self) -> None:
        store = LinkStore()
        assert store.capture(self._registry_with(store, empty={})) is None
        assert len(store) == 0

    def test_interactive_flag_passed(self) -> None:
        seen: list[bool] = []
        registry = LinkTypeRegistry()
        registry.register("x", {"store": lambda interactive: seen.append(interactive) or False})
        LinkStore().capture(registry, interactive=True)
        assert seen == [True]
