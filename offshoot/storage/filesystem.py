"""Directory-backed storage backend.

Storage layout: {base_path}/{id[0:2]}/{id[2:4]}/{id}
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import IO, Any

from offshoot.core.errors import StorageDeleteRaceNotFound


class FileSystemStorage:
    """Stores uploaded files under a base directory.

    Locations are fanned out into two levels of subdirectories so no single
    directory grows unbounded. Upload metadata can optionally be written as
    a JSON sidecar next to each file.

    Parameters
    ----------
    base_path:
        Root directory for stored files.  Created if missing.
    write_metadata:
        When ``True`` a ``{id}.json`` sidecar holds the upload metadata.
    """

    def __init__(self, base_path: Path | str, *, write_metadata: bool = False) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)
        self._write_metadata = write_metadata

    @property
    def base_path(self) -> Path:
        return self._base

    def _file_path(self, id: str) -> Path:
        """Compute the path for a location.

        Layout: {base}/{id[0:2]}/{id[2:4]}/{id}
        """
        if not id or "/" in id or "\\" in id or id.startswith("."):
            raise ValueError(f"invalid storage location: {id!r}")
        return self._base / id[:2] / id[2:4] / id

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upload(self, io: IO[bytes], id: str, *, metadata: dict[str, Any] | None = None) -> None:
        """Copy *io* into the store under *id*, overwriting any previous file."""
        path = self._file_path(id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as target:
            shutil.copyfileobj(io, target)
        if self._write_metadata:
            sidecar = path.with_name(f"{id}.json")
            sidecar.write_text(json.dumps(metadata or {}, sort_keys=True, default=str))

    def delete(self, id: str) -> None:
        """Delete the file at *id*; raises ``StorageDeleteRaceNotFound`` if absent."""
        path = self._file_path(id)
        try:
            path.unlink()
        except FileNotFoundError:
            raise StorageDeleteRaceNotFound(f"file not found: {id}") from None
        path.with_name(f"{id}.json").unlink(missing_ok=True)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def open(self, id: str) -> IO[bytes]:
        path = self._file_path(id)
        if not path.exists():
            raise FileNotFoundError(f"file not found: {id}")
        return path.open("rb")

    def exists(self, id: str) -> bool:
        return self._file_path(id).exists()

    def url(self, id: str, **options: Any) -> str:
        return self._file_path(id).resolve().as_uri()

    def path(self, id: str) -> Path:
        """Return the on-disk path for *id* (whether or not it exists)."""
        return self._file_path(id)
