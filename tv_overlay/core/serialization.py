"""Versioned export/import envelope for a single TV interface.

Envelope layout (snake_case keys, byte-compatible with files exported
by the support backend)::

    {
        "version": "1.0",
        "type": "tv_interface",
        "data": { ...interface without created_at/updated_at/is_active... },
        "exported_at": "2024-05-01T12:00:00.000Z"
    }

Import is the reverse: the envelope is checked, the embedded interface
gets a fresh id and a name suffix, and the result is validated exactly
like a newly created interface.  Region ids are carried through
unchanged unless re-minting is requested.

Pure functions only: no I/O, no logging.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from tv_overlay.config.settings import Settings, get_default_settings
from tv_overlay.core.ids import generate_area_id, generate_interface_id, utc_timestamp
from tv_overlay.core.validator import ensure_valid
from tv_overlay.models.errors import InvalidFormatError
from tv_overlay.models.interface import SERVICE_FIELDS, TVInterface

ENVELOPE_TYPE = "tv_interface"


def interface_from_payload(payload: Mapping[str, Any], interface_id: str) -> TVInterface:
    """Validate a raw payload and build the typed aggregate.

    Validation runs on the payload as given; ``name`` is trimmed only
    afterwards.

    Args:
        payload: JSON-decoded interface record.
        interface_id: Id to assign, overriding any ``id`` in *payload*.

    Returns:
        The new ``TVInterface`` (timestamps unset).

    Raises:
        ValidationFailure: If the payload breaks any rule.
        MalformedInputError: If the payload cannot be traversed.
    """
    ensure_valid(payload)
    record = dict(payload)
    record["id"] = interface_id
    record["name"] = record["name"].strip()
    record.pop("created_at", None)
    record.pop("updated_at", None)
    return TVInterface.from_dict(record)


def remint_area_ids(
    interface: TVInterface,
    id_factory: Callable[[], str] = generate_area_id,
) -> tuple[TVInterface, dict[str, str]]:
    """Give every region of *interface* a freshly generated id.

    Clickable and highlight ids are mapped independently, since the two
    sequences may legitimately reuse the same id.

    Args:
        interface: Source aggregate.
        id_factory: Zero-argument id generator.

    Returns:
        ``(new_interface, id_map)`` where ``id_map`` maps
        ``"clickable:<old>"`` / ``"highlight:<old>"`` to the new ids.
    """
    id_map: dict[str, str] = {}

    def _fresh(kind: str, old_id: str) -> str:
        key = f"{kind}:{old_id}"
        if key not in id_map:
            id_map[key] = id_factory()
        return id_map[key]

    clickable = tuple(
        replace(area, id=_fresh("clickable", area.id))
        for area in interface.clickable_areas
    )
    highlight = tuple(
        replace(area, id=_fresh("highlight", area.id))
        for area in interface.highlight_areas
    )
    return (
        replace(interface, clickable_areas=clickable, highlight_areas=highlight),
        id_map,
    )


def export_interface(
    interface: TVInterface,
    settings: Settings | None = None,
    exported_at: str | None = None,
) -> dict[str, Any]:
    """Wrap *interface* in a versioned export envelope.

    Args:
        interface: The aggregate to export.
        settings: Supplies the envelope version.  Defaults apply when
            omitted.
        exported_at: Override for the export timestamp.

    Returns:
        The envelope as a plain JSON-ready dictionary.
    """
    settings = settings or get_default_settings()
    data = interface.to_dict()
    for key in SERVICE_FIELDS:
        data.pop(key, None)
    return {
        "version": settings.export_version,
        "type": ENVELOPE_TYPE,
        "data": data,
        "exported_at": exported_at or utc_timestamp(),
    }


def import_interface(
    envelope: Any,
    settings: Settings | None = None,
    id_factory: Callable[[], str] = generate_interface_id,
    remint_region_ids: bool | None = None,
) -> TVInterface:
    """Build a new interface from an export envelope.

    The envelope ``version`` is not checked so that files written by
    newer exporters still load.

    Args:
        envelope: JSON-decoded envelope.
        settings: Supplies the name suffix and the re-mint default.
        id_factory: Generator for the new interface id.
        remint_region_ids: Re-mint region ids; None defers to
            ``settings.remint_region_ids_on_import``.

    Returns:
        A new ``TVInterface`` with a fresh id and suffixed name.

    Raises:
        InvalidFormatError: If ``data`` is missing or ``type`` is not
            ``"tv_interface"``.
        ValidationFailure: If the embedded interface is invalid.
    """
    settings = settings or get_default_settings()
    if (
        not isinstance(envelope, Mapping)
        or envelope.get("type") != ENVELOPE_TYPE
        or not isinstance(envelope.get("data"), Mapping)
    ):
        raise InvalidFormatError("Invalid import file format")

    payload = dict(envelope["data"])
    if isinstance(payload.get("name"), str):
        payload["name"] = payload["name"] + settings.import_name_suffix
    payload.pop("is_active", None)

    interface = interface_from_payload(payload, id_factory())

    if remint_region_ids is None:
        remint_region_ids = settings.remint_region_ids_on_import
    if remint_region_ids:
        interface, _ = remint_area_ids(interface)
    return interface


def dumps_envelope(envelope: Mapping[str, Any]) -> str:
    """Encode an envelope for download (UTF-8 safe, indented)."""
    return json.dumps(envelope, ensure_ascii=False, indent=2)


def loads_envelope(text: str | bytes) -> dict[str, Any]:
    """Decode an uploaded envelope file.

    Raises:
        InvalidFormatError: If *text* is not JSON or not an object.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidFormatError(f"Import file is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidFormatError("Import file must contain a JSON object")
    return data
