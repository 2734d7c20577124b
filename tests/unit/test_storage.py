"""Tests for the reference storage backends."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from offshoot.core.errors import StorageDeleteRaceNotFound
from offshoot.storage import FileSystemStorage, MemoryStorage, Storage


@pytest.fixture(params=["memory", "filesystem"])
def storage(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryStorage("test")
    return FileSystemStorage(tmp_path / "files")


class TestStorageBackends:
    def test_implements_protocol(self, storage):
        assert isinstance(storage, Storage)

    def test_upload_and_open(self, storage):
        storage.upload(io.BytesIO(b"hello"), "abcdef.txt")
        with storage.open("abcdef.txt") as stream:
            assert stream.read() == b"hello"

    def test_exists(self, storage):
        assert storage.exists("abcdef") is False
        storage.upload(io.BytesIO(b"x"), "abcdef")
        assert storage.exists("abcdef") is True

    def test_delete(self, storage):
        storage.upload(io.BytesIO(b"x"), "abcdef")
        storage.delete("abcdef")
        assert storage.exists("abcdef") is False

    def test_delete_missing_raises_not_found(self, storage):
        with pytest.raises(StorageDeleteRaceNotFound):
            storage.delete("missing")

    def test_not_found_is_a_file_not_found_error(self, storage):
        with pytest.raises(FileNotFoundError):
            storage.delete("missing")

    def test_open_missing(self, storage):
        with pytest.raises(FileNotFoundError):
            storage.open("missing")

    def test_url(self, storage):
        storage.upload(io.BytesIO(b"x"), "abcdef")
        assert "abcdef" in storage.url("abcdef")


class TestFileSystemStorage:
    def test_layout(self, tmp_path: Path):
        storage = FileSystemStorage(tmp_path)
        storage.upload(io.BytesIO(b"data"), "abcdef.jpg")
        assert (tmp_path / "ab" / "cd" / "abcdef.jpg").read_bytes() == b"data"

    def test_metadata_sidecar(self, tmp_path: Path):
        storage = FileSystemStorage(tmp_path, write_metadata=True)
        storage.upload(io.BytesIO(b"data"), "abcdef.jpg", metadata={"size": 4})
        sidecar = tmp_path / "ab" / "cd" / "abcdef.jpg.json"
        assert json.loads(sidecar.read_text()) == {"size": 4}
        storage.delete("abcdef.jpg")
        assert not sidecar.exists()

    @pytest.mark.parametrize("location", ["", "../escape", "a/b", ".hidden"])
    def test_rejects_unsafe_locations(self, tmp_path: Path, location: str):
        with pytest.raises(ValueError):
            FileSystemStorage(tmp_path).exists(location)


class TestMemoryStorage:
    def test_len_and_read(self):
        storage = MemoryStorage()
        storage.upload(io.BytesIO(b"abc"), "one")
        assert len(storage) == 1
        assert storage.read("one") == b"abc"
