"""Conversion between derivatives trees and persisted plain data.

Current record layout::

    {
        "id": "abc", "storage": "store", "metadata": {...},
        "derivatives": {
            "thumb": {"id": "t1", "storage": "store", "metadata": {}},
            "gallery": [{"id": "g1", "storage": "store", "metadata": {}}],
        },
    }

The ``derivatives`` key is omitted when there are no derivatives.

Two legacy layouts are recognised by ``detect_format`` and rewritten by
``upgrade_legacy``:

* ``FLAT`` — a single file record with metadata fields stored as
  siblings of ``id``/``storage``::

      {"id": "x", "storage": "store", "size": 1}
      # becomes
      {"id": "x", "storage": "store", "metadata": {"size": 1}, "derivatives": {}}

* ``VERSIONS`` — the primary file stored under the reserved ``original``
  key next to its derivatives::

      {"original": {"id": "x", ...}, "thumb": {"id": "t", ...}}
      # becomes
      {"id": "x", ..., "derivatives": {"thumb": {"id": "t", ...}}}
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

from offshoot.core.errors import MalformedPersistedData
from offshoot.core.tree import map_tree
from offshoot.models.files import StoredFile

DERIVATIVES_KEY = "derivatives"
ORIGINAL_KEY = "original"
FILE_FIELDS = ("id", "storage", "metadata")


class RecordFormat(str, Enum):
    """Layout of a persisted attachment record."""

    CURRENT = "current"
    FLAT = "flat"
    VERSIONS = "versions"


def _get(data: Mapping[Any, Any], key: str, default: Any = None) -> Any:
    """Look *key* up as a string, falling back to an enum member with that value."""
    if key in data:
        return data[key]
    for candidate, value in data.items():
        if getattr(candidate, "value", None) == key:
            return value
    return default


def _stringify_keys(data: Mapping[Any, Any]) -> dict[str, Any]:
    return {str(getattr(key, "value", key)): value for key, value in data.items()}


def is_file_data(value: Any) -> bool:
    """A mapping with a string ``id`` is a file, whatever else it contains."""
    return isinstance(value, Mapping) and isinstance(_get(value, "id"), str)


def parse_json(data: str | bytes) -> Any:
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        raise MalformedPersistedData(f"invalid JSON: {exc}") from exc


# ---------------------------------------------------------------------------
# Derivatives tree <-> plain data
# ---------------------------------------------------------------------------


def to_plain_data(tree: Any) -> Any:
    """Map every ``StoredFile`` leaf to its plain-data form.

    Mapping keys must be strings (or string enums), so the result is
    JSON-serializable and loads back into an equal tree.
    """
    return map_tree(
        tree,
        lambda _, file: file.to_data() if isinstance(file, StoredFile) else file,
    )


def from_plain_data(data: Any) -> Any:
    """Reconstruct a derivatives tree from plain data.

    Accepts a JSON string, or nested mappings/lists with string or enum
    keys. Leaves are recognised by shape (see ``is_file_data``), so any
    nesting of mappings and lists is reconstructed generically.
    """
    if isinstance(data, (str, bytes)):
        return from_plain_data(parse_json(data))
    if not isinstance(data, (Mapping, list, tuple)):
        raise MalformedPersistedData(f"cannot convert {data!r} to derivatives")
    return map_tree(data, _load_leaf, leaf=is_file_data)


def _load_leaf(path: Any, value: Any) -> Any:
    if is_file_data(value):
        return StoredFile.from_data(value)
    raise MalformedPersistedData(
        f"expected file data at {list(path)!r}, got {value!r}"
    )


# ---------------------------------------------------------------------------
# Whole attachment records
# ---------------------------------------------------------------------------


def record_data(file: StoredFile | None, derivatives: Mapping[Any, Any]) -> dict[str, Any] | None:
    """Serialize a primary file and its derivatives into one record.

    Returns ``None`` when there is neither a file nor any derivative.
    """
    result = file.to_data() if file is not None else None
    if derivatives:
        result = result or {}
        result[DERIVATIVES_KEY] = to_plain_data(derivatives)
    return result


def parse_record(data: Any) -> dict[str, Any]:
    """Normalize a persisted record into a string-keyed dict."""
    if data is None:
        return {}
    if isinstance(data, (str, bytes)):
        data = parse_json(data) if data else {}
        if data is None:
            return {}
    if not isinstance(data, Mapping):
        raise MalformedPersistedData(f"cannot load attachment record from {data!r}")
    return _stringify_keys(data)


def split_record(data: Any) -> tuple[dict[str, Any] | None, Any]:
    """Split a current-format record into ``(file_data, derivatives_data)``."""
    record = parse_record(data)
    derivatives = record.pop(DERIVATIVES_KEY, None) or {}
    return (record or None), derivatives


def detect_format(data: Mapping[str, Any]) -> RecordFormat:
    if DERIVATIVES_KEY in data:
        return RecordFormat.CURRENT
    if isinstance(data.get("id"), str):
        if set(data) <= set(FILE_FIELDS):
            return RecordFormat.CURRENT
        return RecordFormat.FLAT
    if not data:
        return RecordFormat.CURRENT
    return RecordFormat.VERSIONS


def upgrade_legacy(data: Any) -> dict[str, Any]:
    """Rewrite a legacy record into the current nested layout.

    Current-format records are returned unchanged (as a copy).
    """
    record = parse_record(data)
    layout = detect_format(record)
    if layout is RecordFormat.CURRENT:
        return record
    if layout is RecordFormat.FLAT:
        return {**_fold_metadata(record), DERIVATIVES_KEY: {}}

    original = record.pop(ORIGINAL_KEY, None) or {}
    if not isinstance(original, Mapping):
        raise MalformedPersistedData(f"cannot load original file from {original!r}")
    upgraded = _fold_metadata(_stringify_keys(original)) if original else {}
    upgraded[DERIVATIVES_KEY] = record
    return upgraded


def _fold_metadata(record: dict[str, Any]) -> dict[str, Any]:
    extra = {key: value for key, value in record.items() if key not in FILE_FIELDS}
    result = {key: record[key] for key in FILE_FIELDS if key in record}
    if extra or "metadata" in result:
        result["metadata"] = {**extra, **(result.get("metadata") or {})}
    return result
