"""Tests for DerivativesStore — atomic whole-tree updates."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from offshoot.core.store import DerivativesStore
from offshoot.models.files import StoredFile


def _file(id: str) -> StoredFile:
    return StoredFile(id=id, storage="store")


class TestDerivativesStore:
    def test_starts_empty(self):
        assert DerivativesStore().tree == {}

    def test_get(self):
        store = DerivativesStore({"a": {"b": _file("x")}})
        assert store.get(("a", "b")) == _file("x")
        assert store.get() == {"a": {"b": _file("x")}}
        assert store.get(("missing",)) is None

    def test_set_installs_and_returns(self):
        store = DerivativesStore()
        result = store.set(lambda current: {**current, "a": _file("a")})
        assert result == {"a": _file("a")}
        assert store.tree is result

    def test_set_notifies(self):
        seen = []
        store = DerivativesStore(on_change=seen.append)
        store.set(lambda _: {"a": _file("a")})
        assert seen == [{"a": _file("a")}]

    def test_load_does_not_notify(self):
        seen = []
        store = DerivativesStore(on_change=seen.append)
        store.load({"a": _file("a")})
        assert store.tree == {"a": _file("a")}
        assert seen == []

    def test_rejects_non_mapping(self):
        store = DerivativesStore()
        with pytest.raises(TypeError):
            store.set(lambda _: [_file("a")])
        assert store.tree == {}

    def test_failed_update_leaves_tree_untouched(self):
        store = DerivativesStore({"a": _file("a")})

        def update(current):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.set(update)
        assert store.tree == {"a": _file("a")}

    def test_concurrent_updates_are_serialized(self):
        store = DerivativesStore()
        count = 50
        barrier = threading.Barrier(count)

        def add(index: int) -> None:
            barrier.wait()
            store.set(lambda current: {**current, f"k{index}": _file(str(index))})

        with ThreadPoolExecutor(max_workers=count) as pool:
            list(pool.map(add, range(count)))

        assert len(store.tree) == count
        for index in range(count):
            assert store.tree[f"k{index}"] == _file(str(index))

    def test_update_sees_previous_commit(self):
        store = DerivativesStore()
        order = []

        def update(current):
            order.append(len(current))
            return {**current, str(len(current)): _file("x")}

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: store.set(update), range(20)))

        assert sorted(order) == list(range(20))
