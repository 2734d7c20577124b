"""Path addressing inside a derivatives tree.

A path is a tuple of keys. Mapping keys are strings, sequence keys are
non-negative integers. The empty tuple addresses the root.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Union

from offshoot.core.errors import InvalidPath

Key = Union[str, int]
Path = tuple[Key, ...]


def normalize_key(key: Any) -> Key:
    """Convert a key-like value into a canonical key.

    Strings stay strings, string-valued enum members become their value,
    bytes are decoded as UTF-8 and non-negative integers stay integers.
    """
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, str):
        return key
    if isinstance(key, bytes):
        return key.decode("utf-8")
    # bool is an int subclass, but True is never a meaningful index
    if isinstance(key, int) and not isinstance(key, bool):
        if key < 0:
            raise InvalidPath(f"negative index {key} is not a valid derivative key")
        return key
    raise InvalidPath(f"cannot use {key!r} as a derivative key")


def normalize_mapping_key(key: Any) -> str:
    """Like ``normalize_key``, but only string keys may name mapping entries."""
    key = normalize_key(key)
    if not isinstance(key, str):
        raise InvalidPath(f"mapping key {key!r} must be a string, integers only index lists")
    return key


def normalize(path: Any) -> Path:
    """Normalize a single key or a sequence of keys into a ``Path``.

    ``normalize("thumb")`` and ``normalize(["thumb"])`` both return
    ``("thumb",)``: a bare key is shorthand for a one-element path.
    """
    if isinstance(path, (str, bytes, int, Enum)):
        return (normalize_key(path),)
    if isinstance(path, Sequence):
        return tuple(normalize_key(key) for key in path)
    raise InvalidPath(f"cannot use {path!r} as a derivative path")


def path_from_args(args: Sequence[Any]) -> Path:
    """Build a path from ``*args`` call-site sugar.

    ``get("a", "b")`` and ``get(["a", "b"])`` address the same node.
    """
    if len(args) == 1 and isinstance(args[0], (list, tuple)):
        return normalize(args[0])
    return normalize(args)


def resolve(tree: Any, path: Path) -> Any:
    """Return the node at *path*, or ``None`` if any segment is missing."""
    node = tree
    for depth, key in enumerate(path):
        if isinstance(node, Mapping):
            if key not in node:
                return None
            node = node[key]
        elif isinstance(node, list):
            if not isinstance(key, int):
                raise InvalidPath(
                    f"cannot address list at {format_path(path[:depth])} with key {key!r}"
                )
            if key >= len(node):
                return None
            node = node[key]
        elif node is None:
            return None
        else:
            raise InvalidPath(
                f"cannot navigate into {type(node).__name__} at "
                f"{format_path(path[:depth])} (remaining path {format_path(path[depth:])})"
            )
    return node


def detach(tree: Mapping[Key, Any], path: Path) -> dict[Key, Any]:
    """Return a copy of *tree* without the node at *path*.

    Containers along the path are shallow-copied; *tree* itself is never
    mutated. A missing path returns an unchanged copy.
    """
    if not path:
        raise InvalidPath("cannot detach the root of a derivatives tree")
    return _detach(tree, path)


def _detach(node: Any, path: Path) -> Any:
    key, rest = path[0], path[1:]
    if isinstance(node, Mapping):
        copy = dict(node)
        if key not in copy:
            return copy
        if rest:
            copy[key] = _detach(copy[key], rest)
        else:
            del copy[key]
        return copy
    if isinstance(node, list):
        if not isinstance(key, int) or key >= len(node):
            return list(node)
        copy = list(node)
        if rest:
            copy[key] = _detach(copy[key], rest)
        else:
            del copy[key]
        return copy
    raise InvalidPath(f"cannot remove {format_path(path)} from a {type(node).__name__}")


def format_path(path: Path) -> str:
    """Render a path for log and error messages, e.g. ``gallery[0].thumb``."""
    if not path:
        return "<root>"
    parts: list[str] = []
    for key in path:
        if isinstance(key, int):
            parts.append(f"[{key}]")
        else:
            parts.append(f".{key}" if parts else key)
    return "".join(parts)
