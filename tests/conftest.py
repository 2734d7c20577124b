"""Shared test fixtures for Offshoot."""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any, BinaryIO

import pytest

from offshoot.core.attacher import DerivativesAttacher
from offshoot.core.resource import ResourceType
from offshoot.models.files import StoredFile
from offshoot.storage import MemoryStorage


@pytest.fixture
def cache_storage() -> MemoryStorage:
    return MemoryStorage("cache")


@pytest.fixture
def store_storage() -> MemoryStorage:
    return MemoryStorage("store")


@pytest.fixture
def resource_type(cache_storage: MemoryStorage, store_storage: MemoryStorage) -> ResourceType:
    """Provide a ResourceType with in-memory cache and store backends."""
    return ResourceType(
        "photo",
        storages={"cache": cache_storage, "store": store_storage},
        store_key="store",
        cache_key="cache",
        versions_compatibility=False,
    )


@pytest.fixture
def writes() -> list[Any]:
    """Collects every record written through the attacher's on_write hook."""
    return []


@pytest.fixture
def attacher(resource_type: ResourceType, writes: list[Any]) -> DerivativesAttacher:
    """Provide an attacher whose writes are recorded in ``writes``."""
    return resource_type.attacher(on_write=writes.append)


@pytest.fixture
def make_raw_file(tmp_path: Path) -> Callable[..., BinaryIO]:
    """Factory fixture: write bytes to a local file and open it for reading."""
    counter = iter(range(1_000_000))

    def _factory(content: bytes = b"raw", suffix: str = ".jpg") -> BinaryIO:
        path = tmp_path / f"raw-{next(counter)}{suffix}"
        path.write_bytes(content)
        return path.open("rb")

    return _factory


@pytest.fixture
def make_stored_file(
    resource_type: ResourceType,
) -> Callable[..., StoredFile]:
    """Factory fixture: upload bytes straight into a backend."""

    def _factory(content: bytes = b"stored", storage: str = "store") -> StoredFile:
        return resource_type.upload(io.BytesIO(content), storage)

    return _factory
