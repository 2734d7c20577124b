"""Processor registry and storage resolver.

Both are configured once per resource type, before any attacher uses
them, and are read-only afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import IO, Any, Callable, Protocol, Union, runtime_checkable

from offshoot.core.errors import UnregisteredProcessor
from offshoot.core.paths import Path, normalize_key

logger = logging.getLogger(__name__)


@runtime_checkable
class Processor(Protocol):
    """A function turning the primary file into a raw derivatives tree.

    The returned tree must be mapping-rooted; its leaves are file-like
    objects (or ``StoredFile`` instances) that will be uploaded.
    """

    def __call__(self, original: IO[bytes], **options: Any) -> Mapping[str, Any]:
        ...


StorageRule = Union[str, Callable[[Path], str]]


class ProcessorRegistry:
    """Maps processor names to processor functions.

    Examples
    --------
    >>> registry = ProcessorRegistry()
    >>> @registry.processor("thumbnails")
    ... def thumbnails(original, **options):
    ...     return {"small": original}
    >>> registry.lookup("thumbnails") is thumbnails
    True
    """

    def __init__(self) -> None:
        self._processors: dict[str, Processor] = {}

    def register(self, name: Any, fn: Processor) -> Processor:
        """Store *fn* under *name*.  Re-registering a name replaces it."""
        if not callable(fn):
            raise TypeError(f"processor {name!r} must be callable, got {fn!r}")
        key = str(normalize_key(name))
        if key in self._processors:
            logger.debug("Replacing derivatives processor %r", key)
        self._processors[key] = fn
        logger.debug("Registered derivatives processor %r", key)
        return fn

    def processor(self, name: Any) -> Callable[[Processor], Processor]:
        """Decorator form of ``register``."""

        def decorator(fn: Processor) -> Processor:
            return self.register(name, fn)

        return decorator

    def lookup(self, name: Any) -> Processor:
        """Return the processor for *name* or raise ``UnregisteredProcessor``."""
        key = str(normalize_key(name))
        try:
            return self._processors[key]
        except KeyError:
            raise UnregisteredProcessor(
                f"derivatives processor {key!r} not registered"
            ) from None

    def __contains__(self, name: object) -> bool:
        return str(getattr(name, "value", name)) in self._processors

    def names(self) -> list[str]:
        return list(self._processors)


class StorageResolver:
    """Maps a derivative path to the storage key it is uploaded to.

    The rule is either a fixed storage key or a function of the path.
    It is evaluated fresh for every upload.
    """

    def __init__(self, rule: StorageRule) -> None:
        self.rule = rule

    @property
    def rule(self) -> StorageRule:
        return self._rule

    @rule.setter
    def rule(self, rule: StorageRule) -> None:
        if not rule:
            raise ValueError("storage key or function needs to be provided")
        if not isinstance(rule, str) and not callable(rule):
            raise TypeError(f"storage rule must be a key or a function, got {rule!r}")
        self._rule = rule

    def resolve(self, path: Path) -> str:
        if isinstance(self._rule, str):
            return self._rule
        return self._rule(path)
