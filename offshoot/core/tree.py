"""Generic traversal over nested derivative trees.

A derivatives tree is built from three kinds of node:

* ``MAPPING`` — a mapping of key to subtree (rebuilt as a ``dict``),
* ``SEQUENCE`` — a list or tuple of subtrees (rebuilt as a ``list``),
* ``LEAF`` — anything else, or any node the caller's ``leaf`` predicate
  accepts.

``map_tree`` rebuilds the tree with every leaf replaced by
``transform(path, leaf)``; ``iter_leaves`` lazily yields ``(path, leaf)``
pairs without building anything. Loading persisted data, uploading raw
files, deleting, promoting and serializing are all expressed through
these two functions with different transforms and leaf predicates.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, Callable, Optional

from offshoot.core.paths import Key, Path, normalize_mapping_key

LeafPredicate = Callable[[Any], bool]
Transform = Callable[[Path, Any], Any]
KeyTransform = Callable[[Any], Key]


class NodeKind(str, Enum):
    """Tag assigned to every node visited by the traversal."""

    LEAF = "leaf"
    MAPPING = "mapping"
    SEQUENCE = "sequence"


def node_kind(node: Any, leaf: Optional[LeafPredicate] = None) -> NodeKind:
    """Classify *node*; the ``leaf`` predicate wins over structure."""
    if leaf is not None and leaf(node):
        return NodeKind.LEAF
    if isinstance(node, Mapping):
        return NodeKind.MAPPING
    if isinstance(node, (list, tuple)):
        return NodeKind.SEQUENCE
    return NodeKind.LEAF


def map_tree(
    tree: Any,
    transform: Transform,
    path: Path = (),
    *,
    leaf: Optional[LeafPredicate] = None,
    transform_keys: KeyTransform = normalize_mapping_key,
) -> Any:
    """Return a structurally identical tree with every leaf transformed.

    Mapping keys pass through ``transform_keys`` and are visited in their
    stored order; sequence elements are visited in index order.

    Examples
    --------
    >>> map_tree({"a": [1, 2]}, lambda path, value: (path, value))
    {'a': [(('a', 0), 1), (('a', 1), 2)]}
    """
    kind = node_kind(tree, leaf)
    if kind is NodeKind.MAPPING:
        result: dict[Key, Any] = {}
        for key, value in tree.items():
            key = transform_keys(key)
            result[key] = map_tree(
                value, transform, (*path, key),
                leaf=leaf, transform_keys=transform_keys,
            )
        return result
    if kind is NodeKind.SEQUENCE:
        return [
            map_tree(
                value, transform, (*path, index),
                leaf=leaf, transform_keys=transform_keys,
            )
            for index, value in enumerate(tree)
        ]
    return transform(path, tree)


def iter_leaves(
    tree: Any,
    path: Path = (),
    *,
    leaf: Optional[LeafPredicate] = None,
    transform_keys: KeyTransform = normalize_mapping_key,
) -> Iterator[tuple[Path, Any]]:
    """Lazily yield ``(path, leaf)`` pairs in traversal order."""
    kind = node_kind(tree, leaf)
    if kind is NodeKind.MAPPING:
        for key, value in tree.items():
            yield from iter_leaves(
                value, (*path, transform_keys(key)),
                leaf=leaf, transform_keys=transform_keys,
            )
    elif kind is NodeKind.SEQUENCE:
        for index, value in enumerate(tree):
            yield from iter_leaves(
                value, (*path, index),
                leaf=leaf, transform_keys=transform_keys,
            )
    else:
        yield path, tree
