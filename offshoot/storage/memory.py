"""In-memory storage backend, mainly for tests and caches."""

from __future__ import annotations

import io as _io
import threading
from typing import IO, Any

from offshoot.core.errors import StorageDeleteRaceNotFound


class MemoryStorage:
    """Dict-backed storage. Safe to share between threads."""

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self._files: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def upload(self, io: IO[bytes], id: str, *, metadata: dict[str, Any] | None = None) -> None:
        data = io.read()
        with self._lock:
            self._files[id] = data

    def open(self, id: str) -> IO[bytes]:
        with self._lock:
            if id not in self._files:
                raise FileNotFoundError(f"{self.name}: file not found: {id}")
            return _io.BytesIO(self._files[id])

    def read(self, id: str) -> bytes:
        with self.open(id) as stream:
            return stream.read()

    def exists(self, id: str) -> bool:
        with self._lock:
            return id in self._files

    def delete(self, id: str) -> None:
        with self._lock:
            try:
                del self._files[id]
            except KeyError:
                raise StorageDeleteRaceNotFound(f"{self.name}: file not found: {id}") from None

    def url(self, id: str, **options: Any) -> str:
        return f"memory://{self.name}/{id}"

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __repr__(self) -> str:
        return f"MemoryStorage(name={self.name!r}, files={len(self)})"
