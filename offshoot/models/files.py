"""Stored file model — the leaf of every resolved derivatives tree."""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from offshoot.core.errors import InvalidPath, MalformedPersistedData


class StoredFile(BaseModel):
    """An immutable handle to a file uploaded to a storage backend.

    ``id`` is the location inside the backend, ``storage`` is the key the
    backend is registered under on its resource type.

    Examples
    --------
    >>> thumb = StoredFile(id="a1b2.jpg", storage="store", metadata={"size": 42})
    >>> thumb.to_data()
    {'id': 'a1b2.jpg', 'storage': 'store', 'metadata': {'size': 42}}
    >>> thumb.size
    42
    """

    model_config = ConfigDict(frozen=True)

    id: str
    storage: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_data(cls, data: Mapping[Any, Any]) -> StoredFile:
        """Build a file from its plain-data form (string or enum keys)."""
        normalized = {str(getattr(key, "value", key)): value for key, value in data.items()}
        try:
            return cls.model_validate(
                {
                    "id": normalized.get("id"),
                    "storage": normalized.get("storage"),
                    "metadata": dict(normalized.get("metadata") or {}),
                }
            )
        except ValidationError as exc:
            raise MalformedPersistedData(f"invalid file data {dict(data)!r}: {exc}") from exc

    def to_data(self) -> dict[str, Any]:
        """Return the plain ``{"id", "storage", "metadata"}`` mapping."""
        return {"id": self.id, "storage": self.storage, "metadata": dict(self.metadata)}

    def __getitem__(self, key: str) -> Any:
        if not isinstance(key, str):
            raise InvalidPath(
                f"StoredFile metadata keys are strings, got {key!r}. Derivatives "
                "are addressed through the attacher, e.g. attacher.get('thumb')."
            )
        return self.metadata[key]

    @property
    def size(self) -> int | None:
        return self.metadata.get("size")

    @property
    def filename(self) -> str | None:
        return self.metadata.get("filename")

    @property
    def mime_type(self) -> str | None:
        return self.metadata.get("mime_type")

    @property
    def extension(self) -> str | None:
        ext = posixpath.splitext(self.id)[1] or posixpath.splitext(self.filename or "")[1]
        return ext[1:].lower() if ext else None
