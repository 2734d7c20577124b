"""Atomic holder for one attachment's derivatives tree.

``set`` is the only way to change the tree once it is loaded: it runs the
update function and installs its result under a per-instance lock, so
concurrent callers see a linear history of whole-tree states. Update
functions must return a new tree rather than mutate the one they are
given, because readers access the current tree without the lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any, Callable, Optional

from offshoot.core.paths import Path, resolve

logger = logging.getLogger(__name__)

Tree = dict[Any, Any]
UpdateFn = Callable[[Tree], Mapping[Any, Any]]


class DerivativesStore:
    """Owns the current derivatives tree of a single attachment.

    Parameters
    ----------
    tree:
        Initial tree; defaults to the empty mapping.
    on_change:
        Called with the new tree after every successful ``set``, while
        the lock is still held.  Attachers use it to mark the owning
        record dirty.
    """

    def __init__(
        self,
        tree: Optional[Mapping[Any, Any]] = None,
        *,
        on_change: Optional[Callable[[Tree], None]] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._tree: Tree = _check_root(tree if tree is not None else {})
        self._on_change = on_change

    @property
    def tree(self) -> Tree:
        """The current tree.  Treat it as read-only."""
        return self._tree

    def get(self, path: Path = ()) -> Any:
        """Return the node at *path*; the empty path returns the whole tree."""
        if not path:
            return self._tree
        return resolve(self._tree, path)

    def set(self, update: UpdateFn) -> Tree:
        """Atomically replace the tree with ``update(current_tree)``."""
        with self._lock:
            new_tree = _check_root(update(self._tree))
            self._tree = new_tree
            if self._on_change is not None:
                self._on_change(new_tree)
        logger.debug("Derivatives tree updated (%d top-level keys)", len(new_tree))
        return new_tree

    def load(self, tree: Mapping[Any, Any]) -> None:
        """Install a freshly loaded tree without notifying ``on_change``."""
        with self._lock:
            self._tree = _check_root(tree)


def _check_root(tree: Any) -> Tree:
    if not isinstance(tree, Mapping):
        raise TypeError(f"expected derivatives to be a mapping, got {tree!r}")
    return tree if isinstance(tree, dict) else dict(tree)
