"""Resource type — per-attachment-kind configuration shared by attachers.

A resource type bundles the storage backends, the processor registry, the
derivatives storage rule and the instrumentation hooks. It is configured
once at startup and then only read.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import shutil
import tempfile
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import IO, TYPE_CHECKING, Any, Callable, Optional

from offshoot.config import OffshootConfig, config
from offshoot.core.errors import DerivativesError, StorageDeleteRaceNotFound
from offshoot.core.instrumentation import Instrumenter, log_subscriber
from offshoot.core.paths import Path, format_path
from offshoot.core.registry import Processor, ProcessorRegistry, StorageResolver, StorageRule
from offshoot.core.serialization import from_plain_data
from offshoot.models.files import StoredFile

if TYPE_CHECKING:
    from offshoot.core.attacher import DerivativesAttacher
    from offshoot.storage import Storage

logger = logging.getLogger(__name__)

DefaultUrl = Callable[..., Optional[str]]


class ResourceType:
    """Configuration for one kind of attachment (e.g. a photo's image).

    Parameters
    ----------
    name:
        Human-readable name, used in logs and instrumentation events.
    storages:
        Storage backends keyed by storage key.
    store_key, cache_key:
        Keys of the permanent and temporary storage.  Default to
        ``config.default_storage`` and ``config.cache_storage``.
    derivatives_storage:
        Storage rule for derivatives — a storage key or a function of the
        derivative path.  Defaults to ``store_key``.
    default_url:
        Called as ``default_url(derivative=path, **options)`` when a
        derivative URL is requested for a missing derivative.
    settings:
        Configuration object to take defaults from.

    Examples
    --------
    >>> from offshoot.storage import MemoryStorage
    >>> photos = ResourceType(
    ...     "photo", storages={"cache": MemoryStorage(), "store": MemoryStorage()}
    ... )
    >>> @photos.derivatives_processor("thumbnails")
    ... def thumbnails(original, **options):
    ...     return {"small": original}
    >>> photos.resolve_storage(("small",))
    'store'
    """

    def __init__(
        self,
        name: str = "attachment",
        *,
        storages: Mapping[str, Storage] | None = None,
        store_key: str | None = None,
        cache_key: str | None = None,
        derivatives_storage: StorageRule | None = None,
        versions_compatibility: bool | None = None,
        log_processing: bool | None = None,
        delete_raw_files: bool | None = None,
        default_url: DefaultUrl | None = None,
        settings: OffshootConfig | None = None,
    ) -> None:
        settings = settings or config
        self.name = name
        self.storages: dict[str, Storage] = dict(storages or {})
        self.store_key = store_key or settings.default_storage
        self.cache_key = cache_key or settings.cache_storage
        self.versions_compatibility = (
            settings.versions_compatibility
            if versions_compatibility is None
            else versions_compatibility
        )
        self.delete_raw_files = (
            settings.delete_raw_files if delete_raw_files is None else delete_raw_files
        )
        self.default_url = default_url

        self.processors = ProcessorRegistry()
        self.storage_resolver = StorageResolver(derivatives_storage or self.store_key)
        self.instrumenter = Instrumenter()
        if log_processing is None:
            log_processing = settings.log_processing
        if log_processing:
            self.instrumenter.subscribe(log_subscriber)

    def __repr__(self) -> str:
        return f"ResourceType(name={self.name!r}, storages={sorted(self.storages)!r})"

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def derivatives_processor(
        self, name: Any, fn: Processor | None = None
    ) -> Any:
        """Register a processor, directly or as a decorator.

        ``photos.derivatives_processor("thumbs", fn)`` and
        ``@photos.derivatives_processor("thumbs")`` are equivalent.
        """
        if fn is not None:
            return self.processors.register(name, fn)
        return self.processors.processor(name)

    def derivatives_storage(self, rule: StorageRule | None = None) -> StorageRule:
        """Set the storage rule; usable as a decorator for function rules."""
        if rule is None:
            raise ValueError("storage key or function needs to be provided")
        self.storage_resolver.rule = rule
        return rule

    def resolve_storage(self, path: Path) -> str:
        return self.storage_resolver.resolve(path)

    def storage(self, key: str) -> Storage:
        try:
            return self.storages[key]
        except KeyError:
            raise DerivativesError(
                f"storage {key!r} isn't registered on {self.name!r} "
                f"(available: {', '.join(sorted(self.storages)) or 'none'})"
            ) from None

    def is_cached(self, file: StoredFile) -> bool:
        return file.storage == self.cache_key

    def is_stored(self, file: StoredFile) -> bool:
        return file.storage == self.store_key

    # ------------------------------------------------------------------
    # Storage operations
    # ------------------------------------------------------------------

    def upload(
        self,
        io: IO[bytes] | StoredFile,
        storage_key: str,
        *,
        derivative: Path | None = None,
        metadata: Mapping[str, Any] | None = None,
        location: str | None = None,
    ) -> StoredFile:
        """Upload *io* to the storage under *storage_key*.

        *io* may be a readable binary stream or an already uploaded
        ``StoredFile``, which is copied (keeping its metadata).
        """
        storage = self.storage(storage_key)

        if isinstance(io, StoredFile):
            with self.open(io) as stream:
                return self.upload(
                    stream,
                    storage_key,
                    derivative=derivative,
                    metadata={**io.metadata, **(metadata or {})},
                    location=location or generate_location(io.filename or io.id),
                )

        extracted = extract_metadata(io)
        merged = {**extracted, **(metadata or {})}
        location = location or generate_location(merged.get("filename"))
        storage.upload(io, location, metadata=merged)

        logger.debug(
            "Uploaded %s to %s as %s",
            format_path(derivative) if derivative is not None else "file",
            storage_key,
            location,
        )
        return StoredFile(id=location, storage=storage_key, metadata=merged)

    def open(self, file: StoredFile) -> IO[bytes]:
        return self.storage(file.storage).open(file.id)

    @contextmanager
    def download(self, file: StoredFile) -> Iterator[IO[bytes]]:
        """Yield a local temporary copy of *file*, removed on exit."""
        suffix = f".{file.extension}" if file.extension else ""
        with tempfile.NamedTemporaryFile(prefix="offshoot-", suffix=suffix) as copy:
            with self.open(file) as source:
                shutil.copyfileobj(source, copy)
            copy.flush()
            copy.seek(0)
            yield copy

    def exists(self, file: StoredFile) -> bool:
        return self.storage(file.storage).exists(file.id)

    def delete(self, file: StoredFile) -> bool:
        """Delete *file*; returns ``False`` if it was already gone."""
        try:
            self.storage(file.storage).delete(file.id)
        except StorageDeleteRaceNotFound:
            logger.debug("File %s already deleted from %s", file.id, file.storage)
            return False
        return True

    def url(self, file: StoredFile, **options: Any) -> str:
        return self.storage(file.storage).url(file.id, **options)

    # ------------------------------------------------------------------
    # Loading and attachers
    # ------------------------------------------------------------------

    def derivatives(self, data: Any) -> Any:
        """Convert persisted derivatives data into a derivatives tree."""
        return from_plain_data(data)

    def attacher(self, **kwargs: Any) -> DerivativesAttacher:
        from offshoot.core.attacher import DerivativesAttacher

        return DerivativesAttacher(self, **kwargs)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def extract_metadata(io: IO[bytes]) -> dict[str, Any]:
    """Collect filename, size and MIME type from a stream.

    Seekable streams are rewound to the start so they upload in full.
    """
    name = getattr(io, "name", None)
    filename = os.path.basename(os.fspath(name)) if isinstance(name, (str, os.PathLike)) else None

    size = None
    if io.seekable():
        size = io.seek(0, os.SEEK_END)
        io.seek(0)

    mime_type = mimetypes.guess_type(filename)[0] if filename else None
    return {"filename": filename, "size": size, "mime_type": mime_type}


def generate_location(filename: str | None = None) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    return f"{uuid.uuid4().hex}{ext}"
