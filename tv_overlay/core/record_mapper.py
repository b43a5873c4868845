"""Persistence boundary: typed aggregate <-> storage row.

The backend stores region sequences and free-form maps in text columns
holding JSON.  This module is the only place where that string form
exists; everything upstream works with ``TVInterface`` objects.

Decoding defaults mirror the backend: missing region columns become
empty sequences, missing ``breakpoints`` stays None and missing
``metadata`` becomes an empty map.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from tv_overlay.models.errors import MalformedInputError
from tv_overlay.models.interface import TVInterface

# Column name -> factory for the value used when the stored value is NULL.
JSON_COLUMNS: dict[str, Callable[[], Any]] = {
    "clickable_areas": list,
    "highlight_areas": list,
    "breakpoints": lambda: None,
    "metadata": dict,
}


def _decode(column: str, value: Any) -> Any:
    if value is None:
        return JSON_COLUMNS[column]()
    if not isinstance(value, (str, bytes)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedInputError(f"Column '{column}' holds invalid JSON: {exc}") from exc


def to_record(interface: TVInterface) -> dict[str, Any]:
    """Encode *interface* as a storage row.

    Region sequences are always encoded; ``breakpoints`` and
    ``metadata`` are encoded when present and stored as NULL otherwise.
    """
    record = interface.to_dict()
    for column in JSON_COLUMNS:
        value = record[column]
        record[column] = None if value is None else json.dumps(value, ensure_ascii=False)
    return record


def from_record(record: Mapping[str, Any]) -> TVInterface:
    """Decode a storage row (or an API response item) into a ``TVInterface``.

    Columns may hold JSON strings or already-decoded values; both are
    accepted.  Keys that are not part of the aggregate are ignored.

    Raises:
        MalformedInputError: If a JSON column cannot be decoded or the
            row lacks required fields.
    """
    if not isinstance(record, Mapping):
        raise MalformedInputError(
            f"Expected a storage record, got {type(record).__name__}"
        )
    decoded = dict(record)
    for column in JSON_COLUMNS:
        decoded[column] = _decode(column, record.get(column))
    return TVInterface.from_dict(decoded)
