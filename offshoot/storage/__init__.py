"""Storage protocol and reference backends.

Backends hold the bytes; offshoot only tracks which file lives where.
Every backend implements the ``Storage`` protocol below.
"""

from __future__ import annotations

from typing import IO, Any, Protocol, runtime_checkable

from offshoot.storage.memory import MemoryStorage
from offshoot.storage.filesystem import FileSystemStorage


@runtime_checkable
class Storage(Protocol):
    """Protocol that every storage backend must implement.

    ``delete`` must raise ``StorageDeleteRaceNotFound`` when the file is
    already gone; offshoot treats that as a successful delete.
    """

    def upload(self, io: IO[bytes], id: str, *, metadata: dict[str, Any] | None = None) -> None:
        ...

    def open(self, id: str) -> IO[bytes]:
        ...

    def exists(self, id: str) -> bool:
        ...

    def delete(self, id: str) -> None:
        ...

    def url(self, id: str, **options: Any) -> str:
        ...


__all__ = ["Storage", "MemoryStorage", "FileSystemStorage"]
