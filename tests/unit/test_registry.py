"""Tests for the processor registry and storage resolver."""

from __future__ import annotations

from enum import Enum

import pytest

from offshoot.core.errors import UnregisteredProcessor
from offshoot.core.registry import Processor, ProcessorRegistry, StorageResolver


class Kind(str, Enum):
    THUMBS = "thumbs"


def _processor(original, **options):
    return {"copy": original}


class TestProcessorRegistry:
    def test_register_and_lookup(self):
        registry = ProcessorRegistry()
        registry.register("thumbs", _processor)
        assert registry.lookup("thumbs") is _processor
        assert "thumbs" in registry

    def test_decorator(self):
        registry = ProcessorRegistry()

        @registry.processor("thumbs")
        def thumbs(original, **options):
            return {}

        assert registry.lookup("thumbs") is thumbs
        assert registry.names() == ["thumbs"]

    def test_enum_names_are_normalized(self):
        registry = ProcessorRegistry()
        registry.register(Kind.THUMBS, _processor)
        assert registry.lookup("thumbs") is _processor
        assert Kind.THUMBS in registry

    def test_last_registration_wins(self):
        registry = ProcessorRegistry()
        registry.register("thumbs", _processor)

        def other(original, **options):
            return {}

        registry.register("thumbs", other)
        assert registry.lookup("thumbs") is other

    def test_unregistered(self):
        with pytest.raises(UnregisteredProcessor, match="not registered"):
            ProcessorRegistry().lookup("missing")

    def test_unregistered_is_key_error(self):
        with pytest.raises(KeyError):
            ProcessorRegistry().lookup("missing")

    def test_rejects_non_callables(self):
        with pytest.raises(TypeError):
            ProcessorRegistry().register("thumbs", "not a function")

    def test_processor_protocol(self):
        assert isinstance(_processor, Processor)


class TestStorageResolver:
    def test_fixed_key(self):
        assert StorageResolver("store").resolve(("thumb",)) == "store"

    def test_function(self):
        resolver = StorageResolver(lambda path: "thumbs" if path[0] == "thumb" else "store")
        assert resolver.resolve(("thumb",)) == "thumbs"
        assert resolver.resolve(("video", "hd")) == "store"

    def test_function_is_called_for_every_path(self):
        calls = []

        def rule(path):
            calls.append(path)
            return "store"

        resolver = StorageResolver(rule)
        resolver.resolve(("a",))
        resolver.resolve(("a",))
        assert calls == [("a",), ("a",)]

    @pytest.mark.parametrize("rule", [None, ""])
    def test_requires_rule(self, rule):
        with pytest.raises(ValueError):
            StorageResolver(rule)

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            StorageResolver(42)
