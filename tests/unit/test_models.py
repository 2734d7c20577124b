"""Tests for StoredFile — immutability, plain-data conversion, accessors."""

from __future__ import annotations

import pytest

from offshoot.core.errors import InvalidPath, MalformedPersistedData
from offshoot.models.files import StoredFile


class TestStoredFile:
    def test_to_data(self):
        file = StoredFile(id="a.jpg", storage="store", metadata={"size": 3})
        assert file.to_data() == {"id": "a.jpg", "storage": "store", "metadata": {"size": 3}}

    def test_from_data(self):
        file = StoredFile.from_data({"id": "a.jpg", "storage": "store"})
        assert file == StoredFile(id="a.jpg", storage="store", metadata={})

    def test_from_data_missing_storage(self):
        with pytest.raises(MalformedPersistedData):
            StoredFile.from_data({"id": "a.jpg"})

    def test_frozen(self):
        file = StoredFile(id="a", storage="store")
        with pytest.raises(Exception):
            file.id = "b"

    def test_equality_is_by_value(self):
        assert StoredFile(id="a", storage="s") == StoredFile(id="a", storage="s")
        assert StoredFile(id="a", storage="s") != StoredFile(id="a", storage="t")

    def test_metadata_accessors(self):
        file = StoredFile(
            id="abc.PNG",
            storage="store",
            metadata={"size": 10, "filename": "photo.png", "mime_type": "image/png"},
        )
        assert file.size == 10
        assert file.filename == "photo.png"
        assert file.mime_type == "image/png"
        assert file.extension == "png"
        assert file["size"] == 10

    def test_extension_from_filename(self):
        file = StoredFile(id="abc", storage="store", metadata={"filename": "clip.mp4"})
        assert file.extension == "mp4"

    def test_non_string_metadata_key_is_rejected(self):
        file = StoredFile(id="a", storage="store")
        with pytest.raises(InvalidPath, match="attacher"):
            file[0]
