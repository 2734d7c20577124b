"""DerivativesAttacher — the lifecycle coordinator for one attachment.

Holds the primary file and its derivatives tree, runs processors, uploads
raw files into the tree, promotes cached derivatives, deletes derivatives
and reacts to the primary file's lifecycle (change, promote, destroy).

Concurrency
-----------
All blocking storage I/O (download, upload, delete) happens outside the
tree lock.  Only the in-memory swap performed by ``set_derivatives`` is
done while holding it, so every multi-step mutation is a single
read-modify-write of the whole tree.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import IO, TYPE_CHECKING, Any, Callable, Optional, Protocol, runtime_checkable

from offshoot.core.errors import (
    DerivativesError,
    InvalidPath,
    MalformedPersistedData,
    ProcessorContractViolation,
)
from offshoot.core.paths import Key, Path, detach, format_path, normalize, path_from_args, resolve
from offshoot.core.serialization import (
    from_plain_data,
    record_data,
    parse_record,
    split_record,
    upgrade_legacy,
)
from offshoot.core.store import DerivativesStore, Tree, UpdateFn
from offshoot.core.tree import iter_leaves, map_tree
from offshoot.models.files import StoredFile

if TYPE_CHECKING:
    from offshoot.core.resource import ResourceType

logger = logging.getLogger(__name__)

RecordWriter = Callable[[Optional[dict[str, Any]]], None]

# default for delete_derivatives, distinct from an explicit None
_CURRENT = object()


@runtime_checkable
class TemporaryFile(Protocol):
    """A raw file backed by a local path that can be discarded after upload.

    Raw files matching this protocol are closed and unlinked once they
    have been uploaded (unless ``delete=False`` is passed).
    """

    name: Any

    def close(self) -> None:
        ...


class DerivativesAttacher:
    """Manages the primary file and derivatives of a single record.

    Parameters
    ----------
    resource_type:
        Shared configuration (storages, processors, storage rule).
    file:
        The currently attached primary file, if any.
    derivatives:
        Initial derivatives tree.
    on_write:
        Persistence hook; called with the serialized record (``data()``)
        whenever the attachment changes.

    Examples
    --------
    >>> attacher = photos.attacher()                       # doctest: +SKIP
    >>> attacher.attach(open("photo.jpg", "rb"))           # doctest: +SKIP
    >>> attacher.add_derivatives("thumbnails")             # doctest: +SKIP
    >>> attacher.get("small")                              # doctest: +SKIP
    StoredFile(id='...', storage='store', metadata={...})
    """

    def __init__(
        self,
        resource_type: ResourceType,
        *,
        file: StoredFile | None = None,
        derivatives: Mapping[Any, Any] | None = None,
        on_write: RecordWriter | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.file = file
        self._on_write = on_write
        self._store = DerivativesStore(derivatives, on_change=lambda _: self._write())

    def __repr__(self) -> str:
        return (
            f"DerivativesAttacher(resource={self.resource_type.name!r}, "
            f"file={self.file.id if self.file else None!r}, "
            f"derivatives={list(self.derivatives)!r})"
        )

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def derivatives(self) -> Tree:
        return self._store.tree

    def get(self, *path: Any) -> Any:
        """Return the primary file, or the derivative at *path*.

        >>> attacher.get("thumbnails", "large")   # doctest: +SKIP
        """
        if not path:
            return self.file
        return self.get_derivatives(*path)

    def get_derivatives(self, *path: Any) -> Any:
        """Return the derivatives tree, or the node at *path*.

        ``get_derivatives("a", "b")`` and ``get_derivatives(["a", "b"])``
        are equivalent.  Missing paths return ``None``.
        """
        if not path:
            return self.derivatives
        return self._store.get(path_from_args(path))

    def url(self, *path: Any, **options: Any) -> str | None:
        """Return the URL of the derivative at *path* (or of the primary file)."""
        if not path:
            return self.resource_type.url(self.file, **options) if self.file else None

        path = path_from_args(path)
        derivative = self._store.get(path)
        if isinstance(derivative, StoredFile):
            return self.resource_type.url(derivative, **options)
        if self.resource_type.default_url is not None:
            return self.resource_type.default_url(derivative=path, **options)
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_derivatives(self, update: UpdateFn) -> Tree:
        """Atomically replace the tree with ``update(current_tree)``.

        This is the only way derivatives change after loading; it also
        writes the record through ``on_write``.

        >>> attacher.set_derivatives(lambda current: {"thumb": stored})  # doctest: +SKIP
        """
        return self._store.set(update)

    def set_derivatives_value(self, tree: Mapping[Any, Any]) -> None:
        """Replace the tree directly, without writing the record.

        Raises ``TypeError`` unless *tree* is a mapping.
        """
        self._store.load(tree)

    def add_derivatives(
        self,
        files: Mapping[Any, Any] | str,
        *,
        processor_options: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> Tree:
        """Upload a raw tree (or a processor's output) and merge it in.

        New top-level keys replace existing ones; other existing keys are
        kept.  Returns only the newly uploaded subtree.
        """
        new_derivatives = self.upload_derivatives(
            files, processor_options=processor_options, **options
        )
        self.set_derivatives(lambda current: {**current, **new_derivatives})
        return new_derivatives

    def add_derivative(self, name: Any, file: Any, **options: Any) -> Any:
        """Upload a single raw file under *name* and return the stored file."""
        path = normalize(name)
        if len(path) != 1:
            raise InvalidPath(f"add_derivative takes a single key, got {format_path(path)}")
        key = path[0]
        return self.add_derivatives({key: file}, **options)[key]

    def create_derivatives(
        self, processor_name: str, original: IO[bytes] | None = None, **options: Any
    ) -> Tree:
        """Run a processor and add its output; options go to the processor."""
        files = self.process_derivatives(processor_name, original, **options)
        return self.add_derivatives(files)

    def remove_derivatives(self, *path: Any) -> Any:
        """Detach the node at *path* from the tree and return it.

        Storage is left untouched; pass the result to
        ``delete_derivatives`` to remove the files as well.
        """
        path = path_from_args(path)
        if not path:
            raise InvalidPath("remove_derivatives requires at least one key")
        if resolve(self.derivatives, path) is None:
            return None

        removed: list[Any] = []

        def update(current: Tree) -> Tree:
            removed.append(resolve(current, path))
            return detach(current, path)

        self.set_derivatives(update)
        return removed[0]

    remove_derivative = remove_derivatives

    # ------------------------------------------------------------------
    # Processing and uploading
    # ------------------------------------------------------------------

    def process_derivatives(
        self, processor_name: str, original: IO[bytes] | None = None, **options: Any
    ) -> Mapping[Any, Any]:
        """Call the named processor on *original* or on a copy of the file.

        When *original* is omitted the attached file is downloaded to a
        temporary file that is removed once the processor returns.
        """
        processor = self.resource_type.processors.lookup(processor_name)

        if original is not None:
            result = self._run_processor(processor_name, processor, original, options)
        else:
            if self.file is None:
                raise DerivativesError(
                    f"no file is attached to process with {processor_name!r}"
                )
            with self.resource_type.download(self.file) as copy:
                result = self._run_processor(processor_name, processor, copy, options)

        if not isinstance(result, Mapping):
            raise ProcessorContractViolation(
                f"expected derivatives processor {processor_name!r} to return a "
                f"mapping, got {result!r}"
            )
        return result

    def upload_derivatives(
        self,
        files: Mapping[Any, Any] | str,
        *,
        processor_options: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> Tree:
        """Upload every raw leaf of *files*, returning the stored tree.

        A string is taken as a processor name and processed first.  The
        tree is not installed; see ``add_derivatives``.
        """
        if isinstance(files, str):
            files = self.process_derivatives(files, **dict(processor_options or {}))
        if not isinstance(files, Mapping):
            raise ProcessorContractViolation(
                f"expected a mapping of derivatives to upload, got {files!r}"
            )
        return map_tree(
            files, lambda path, file: self.upload_derivative(path, file, **options)
        )

    def upload_derivative(
        self,
        path: Any,
        file: Any,
        *,
        storage: str | None = None,
        delete: bool | None = None,
        **options: Any,
    ) -> StoredFile:
        """Upload one raw file for the derivative at *path*.

        Local temporary files are closed and unlinked afterwards, on
        success and on failure, unless ``delete=False``.
        """
        path = normalize(path)
        storage = storage or self.resource_type.resolve_storage(path)
        if delete is None:
            delete = self.resource_type.delete_raw_files

        try:
            return self.resource_type.upload(file, storage, derivative=path, **options)
        finally:
            if delete and isinstance(file, TemporaryFile):
                _delete_file(file)

    def _run_processor(
        self,
        name: str,
        processor: Callable[..., Any],
        original: IO[bytes],
        options: Mapping[str, Any],
    ) -> Any:
        with self.resource_type.instrumenter.instrument(
            name, options, resource=self.resource_type.name
        ):
            return processor(original, **options)

    # ------------------------------------------------------------------
    # Promotion and deletion
    # ------------------------------------------------------------------

    def promote_derivatives(self, **options: Any) -> Tree:
        """Upload cached derivatives to permanent storage.

        Leaves already in permanent storage are left as they are.  The
        tree is only rewritten if something was promoted, and only
        leaves that are still unchanged at that point are replaced.
        """
        promoted: dict[Path, tuple[StoredFile, StoredFile]] = {}
        for path, derivative in iter_leaves(self.derivatives):
            if not isinstance(derivative, StoredFile) or not self.resource_type.is_cached(derivative):
                continue
            storage = options.get("storage") or self.resource_type.resolve_storage(path)
            # the storage rule may keep some derivatives in the cache
            if storage == derivative.storage:
                continue
            promoted[path] = (
                derivative,
                self.upload_derivative(path, derivative, **{**options, "storage": storage}),
            )

        if not promoted:
            return self.derivatives

        def update(current: Tree) -> Tree:
            def swap(path: Path, derivative: Any) -> Any:
                cached, stored = promoted.get(path, (None, None))
                return stored if cached is not None and cached == derivative else derivative

            return map_tree(current, swap)

        logger.info(
            "Promoting %d cached derivative(s) of %s: %s",
            len(promoted),
            self.resource_type.name,
            ", ".join(format_path(path) for path in promoted),
        )
        return self.set_derivatives(update)

    def delete_derivatives(self, derivatives: Any = _CURRENT) -> None:
        """Delete every file in *derivatives* (default: the current tree).

        Files that are already gone count as deleted, so this is safe to
        call repeatedly.  ``None``, such as the result of removing a missing
        path, deletes nothing.
        """
        if derivatives is _CURRENT:
            derivatives = self.derivatives
        if derivatives is None:
            return
        for path, derivative in iter_leaves(derivatives):
            if not isinstance(derivative, StoredFile):
                raise InvalidPath(
                    f"cannot delete {derivative!r} at {format_path(path)}: not a stored file"
                )
            self.resource_type.delete(derivative)

    # ------------------------------------------------------------------
    # Primary file lifecycle
    # ------------------------------------------------------------------

    def attach(self, io: IO[bytes], *, storage: str | None = None, **options: Any) -> StoredFile:
        """Upload *io* as the new primary file (to the cache by default)."""
        file = self.resource_type.upload(io, storage or self.resource_type.cache_key, **options)
        self.change(file)
        return file

    def change(self, file: StoredFile | None) -> None:
        """Replace the primary file; derivatives of the old one are dropped."""
        self.file = file
        self.set_derivatives(lambda _: {})

    def promote(self, *, background: bool = False, **options: Any) -> None:
        """Move a cached primary file to permanent storage.

        Derivatives are promoted too unless ``background`` is set, in which
        case the caller is expected to run ``promote_derivatives`` later.
        """
        if self.file is not None and self.resource_type.is_cached(self.file):
            self.file = self.resource_type.upload(
                self.file, self.resource_type.store_key, **options
            )
            self._write()
        if background:
            logger.debug("Skipping derivatives promotion for background processing")
            return
        self.promote_derivatives()

    def destroy(self, *, background: bool = False) -> None:
        """Delete the primary file and, unless ``background``, its derivatives."""
        if self.file is not None:
            self.resource_type.delete(self.file)
        if background:
            logger.debug("Skipping derivatives deletion for background processing")
            return
        self.delete_derivatives()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def data(self) -> dict[str, Any] | None:
        """Serialize the primary file and derivatives into one record."""
        return record_data(self.file, self.derivatives)

    def load_data(self, data: Any) -> None:
        """Load the primary file and derivatives from a persisted record."""
        record = parse_record(data)
        if self.resource_type.versions_compatibility:
            record = upgrade_legacy(record)

        file_data, derivatives_data = split_record(record)
        self.file = StoredFile.from_data(file_data) if file_data else None
        self.set_derivatives_value(_require_mapping(from_plain_data(derivatives_data)))

    def _write(self) -> None:
        if self._on_write is not None:
            self._on_write(self.data())


def _require_mapping(tree: Any) -> Mapping[Key, Any]:
    if not isinstance(tree, Mapping):
        raise MalformedPersistedData(f"expected derivatives to be a mapping, got {tree!r}")
    return tree


def _delete_file(file: TemporaryFile) -> None:
    """Close and unlink a local raw file, ignoring it if already gone."""
    file.close()
    if not isinstance(file.name, (str, os.PathLike)):
        return
    try:
        os.unlink(file.name)
    except FileNotFoundError:
        pass
