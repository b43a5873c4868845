"""Interface registry: lifecycle management and queries for TV interfaces.

The ``InterfaceRegistry`` keeps ``TVInterface`` aggregates in memory and
implements their lifecycle rules: creation through the validator,
whole-array replacement on update, duplication and import with fresh
identities, activation toggling, and deletion guarded by the number of
diagnostic steps that still reference an interface.

Collaborators are injected as plain callables:

* ``usage_counter(interface_id) -> int`` -- how many diagnostic steps
  reference the interface.  Deletion is refused while it is above zero.
* ``device_exists(device_id) -> bool`` -- whether a device model
  exists.  When given, an unknown ``device_id`` raises
  ``NotFoundError`` rather than a validation failure.

Writes are serialised with a lock; the last write wins.  There is no
optimistic concurrency check.

Typical usage::

    registry = InterfaceRegistry(usage_counter=steps.count_for_interface)
    home = registry.create({"name": "Home", "type": "home"})
    copy = registry.duplicate(home.id).interface
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from tv_overlay.config.settings import Settings, get_default_settings
from tv_overlay.core.ids import generate_interface_id, utc_timestamp
from tv_overlay.core.serialization import (
    export_interface,
    import_interface,
    interface_from_payload,
    remint_area_ids,
)
from tv_overlay.models.errors import (
    DeletionBlockedError,
    MalformedInputError,
    NotFoundError,
    ValidationFailure,
)
from tv_overlay.models.interface import MUTABLE_FIELDS, InterfaceType, TVInterface

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class Page:
    """One page of a filtered interface listing.

    Attributes:
        items: Interfaces on this page.
        total: Number of interfaces matching the filters.
        limit: Requested page size.
        offset: Index of the first item within the full result.
    """

    items: list[TVInterface] = field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0

    @property
    def has_more(self) -> bool:
        """True when further pages exist."""
        return self.offset + self.limit < self.total


@dataclass(frozen=True)
class DeleteCheck:
    """Whether an interface may be deleted, and why not.

    Attributes:
        can_delete: True when no diagnostic step references it.
        usage_count: Number of referencing diagnostic steps.
        reason: Explanation when deletion is refused, else None.
    """

    can_delete: bool
    usage_count: int = 0
    reason: str | None = None


@dataclass
class DuplicateResult:
    """Outcome of ``InterfaceRegistry.duplicate``.

    Attributes:
        interface: The newly stored copy.
        area_id_map: ``"clickable:<old>"`` / ``"highlight:<old>"`` keys
            mapped to the region ids minted for the copy.  Callers use
            it to rewrite any external reference to a region.
    """

    interface: TVInterface
    area_id_map: dict[str, str] = field(default_factory=dict)


def _coerce_type(value: InterfaceType | str) -> InterfaceType:
    if isinstance(value, InterfaceType):
        return value
    try:
        return InterfaceType(value)
    except ValueError:
        raise ValidationFailure(
            ["Type must be one of: " + ", ".join(InterfaceType.values())]
        ) from None


class InterfaceRegistry:
    """In-memory store of TV interfaces with lifecycle rules.

    Args:
        settings: Toolkit configuration (name suffixes, page size).
        usage_counter: Returns the number of diagnostic steps that
            reference an interface id.  Defaults to "never used".
        device_exists: Returns whether a device id exists.  When None,
            device references are not checked.
        id_factory: Generator for interface ids.
        clock: Returns the current ISO-8601 timestamp.
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        settings: Settings | None = None,
        usage_counter: Callable[[str], int] | None = None,
        device_exists: Callable[[str], bool] | None = None,
        id_factory: Callable[[], str] = generate_interface_id,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self._settings = settings or get_default_settings()
        self._usage_counter = usage_counter
        self._device_exists = device_exists
        self._id_factory = id_factory
        self._clock = clock
        self._interfaces: dict[str, TVInterface] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, payload: Mapping[str, Any]) -> TVInterface:
        """Validate *payload* and store it as a new interface.

        A non-blank ``id`` in the payload is honoured; otherwise a new
        one is generated.  ``name`` is trimmed after validation.

        Args:
            payload: JSON-decoded interface record.

        Returns:
            The stored ``TVInterface`` with timestamps set.

        Raises:
            ValidationFailure: If the payload breaks any rule or the
                requested id is already taken.
            MalformedInputError: If the payload cannot be traversed.
            NotFoundError: If ``device_id`` names an unknown device.
        """
        if not isinstance(payload, Mapping):
            raise MalformedInputError(
                f"Interface payload must be a record, got {type(payload).__name__}"
            )
        requested_id = payload.get("id")
        if isinstance(requested_id, str) and requested_id.strip():
            interface_id = requested_id
        else:
            interface_id = self._id_factory()

        interface = interface_from_payload(payload, interface_id)
        self._check_device(interface.device_id)
        now = self._clock()
        interface = replace(interface, created_at=now, updated_at=now)

        with self._lock:
            if interface_id in self._interfaces:
                raise ValidationFailure([f"Interface id '{interface_id}' already exists"])
            self._interfaces[interface_id] = interface

        logger.info(
            "Created interface %s (%s, %d clickable, %d highlight)",
            interface_id,
            interface.type.value,
            len(interface.clickable_areas),
            len(interface.highlight_areas),
        )
        return interface

    def update(self, interface_id: str, payload: Mapping[str, Any]) -> TVInterface:
        """Apply *payload* over the stored interface.

        Only keys in ``MUTABLE_FIELDS`` are taken from the payload;
        region arrays replace the stored sequences wholesale.  The
        merged candidate is validated as a whole, so an unknown ``type``
        (or any other violation) leaves the stored interface untouched.

        Args:
            interface_id: The interface to update.
            payload: Partial interface record.

        Returns:
            The updated ``TVInterface``.

        Raises:
            NotFoundError: If *interface_id* is unknown, or the new
                ``device_id`` names an unknown device.
            ValidationFailure: If the merged candidate is invalid.
            MalformedInputError: If the payload cannot be traversed.
        """
        current = self.require(interface_id)
        if not isinstance(payload, Mapping):
            raise MalformedInputError(
                f"Update payload must be a record, got {type(payload).__name__}"
            )

        candidate = current.to_dict()
        candidate.update({k: payload[k] for k in MUTABLE_FIELDS if k in payload})

        updated = interface_from_payload(candidate, interface_id)
        if updated.device_id != current.device_id:
            self._check_device(updated.device_id)
        updated = replace(
            updated,
            created_at=current.created_at,
            updated_at=self._clock(),
        )

        with self._lock:
            if interface_id not in self._interfaces:
                raise NotFoundError("interface", interface_id)
            self._interfaces[interface_id] = updated

        logger.info("Updated interface %s", interface_id)
        return updated

    def can_delete(self, interface_id: str) -> DeleteCheck:
        """Report whether *interface_id* may be deleted.

        Raises:
            NotFoundError: If *interface_id* is unknown.
        """
        self.require(interface_id)
        usage = self._usage_counter(interface_id) if self._usage_counter else 0
        if usage > 0:
            return DeleteCheck(
                can_delete=False,
                usage_count=usage,
                reason=f"Interface is used in {usage} diagnostic step(s)",
            )
        return DeleteCheck(can_delete=True)

    def remove(self, interface_id: str) -> TVInterface:
        """Delete an interface that no diagnostic step references.

        Returns:
            The removed ``TVInterface``.

        Raises:
            NotFoundError: If *interface_id* is unknown.
            DeletionBlockedError: If diagnostic steps reference it.
        """
        check = self.can_delete(interface_id)
        if not check.can_delete:
            logger.warning(
                "Refusing to delete interface %s: %s",
                interface_id,
                check.reason,
            )
            raise DeletionBlockedError(interface_id, check.usage_count)

        with self._lock:
            if interface_id not in self._interfaces:
                raise NotFoundError("interface", interface_id)
            removed = self._interfaces.pop(interface_id)

        logger.info("Deleted interface %s", interface_id)
        return removed

    def toggle_active(self, interface_id: str) -> TVInterface:
        """Flip ``is_active`` on an interface.

        Raises:
            NotFoundError: If *interface_id* is unknown.
        """
        with self._lock:
            current = self._interfaces.get(interface_id)
            if current is None:
                raise NotFoundError("interface", interface_id)
            toggled = replace(
                current,
                is_active=not current.is_active,
                updated_at=self._clock(),
            )
            self._interfaces[interface_id] = toggled

        logger.info(
            "Interface %s %s",
            interface_id,
            "activated" if toggled.is_active else "deactivated",
        )
        return toggled

    def duplicate(self, interface_id: str, name: str | None = None) -> DuplicateResult:
        """Store a copy of an interface under a new id.

        Every region of the copy gets a new id as well, so the copy
        never shares region identities with the original.

        Args:
            interface_id: The interface to copy.
            name: Name of the copy.  Defaults to the original name plus
                ``settings.copy_name_suffix``.

        Returns:
            The stored copy and the region id map.

        Raises:
            NotFoundError: If *interface_id* is unknown.
            ValidationFailure: If the copy's name is invalid (e.g. too
                long after adding the suffix).
        """
        original = self.require(interface_id)
        payload = original.to_dict()
        payload["name"] = name if name else original.name + self._settings.copy_name_suffix

        copy = interface_from_payload(payload, self._id_factory())
        copy, id_map = remint_area_ids(copy)
        result = DuplicateResult(interface=self._store_new(copy), area_id_map=id_map)

        logger.info("Duplicated interface %s as %s", interface_id, copy.id)
        return result

    def export(self, interface_id: str) -> dict[str, Any]:
        """Return the export envelope for an interface.

        Raises:
            NotFoundError: If *interface_id* is unknown.
        """
        return export_interface(self.require(interface_id), self._settings)

    def import_envelope(self, envelope: Any) -> TVInterface:
        """Create a new interface from an export envelope.

        Raises:
            InvalidFormatError: If the envelope is not a
                ``tv_interface`` export.
            ValidationFailure: If the embedded interface is invalid.
        """
        imported = import_interface(envelope, self._settings, self._id_factory)
        stored = self._store_new(imported)
        logger.info("Imported interface %s (%s)", stored.id, stored.name)
        return stored

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, interface_id: str) -> TVInterface | None:
        """Get an interface by id, or None if not found."""
        return self._interfaces.get(interface_id)

    def require(self, interface_id: str) -> TVInterface:
        """Get an interface by id.

        Raises:
            NotFoundError: If *interface_id* is unknown.
        """
        interface = self._interfaces.get(interface_id)
        if interface is None:
            raise NotFoundError("interface", interface_id)
        return interface

    def contains(self, interface_id: str) -> bool:
        return interface_id in self._interfaces

    def get_all(self) -> list[TVInterface]:
        """Return every interface in insertion order."""
        return list(self._interfaces.values())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_active(self) -> list[TVInterface]:
        return [i for i in self._interfaces.values() if i.is_active]

    def find_by_device(self, device_id: str) -> list[TVInterface]:
        """Active interfaces attached to *device_id*."""
        return [i for i in self.find_active() if i.device_id == device_id]

    def find_by_type(self, interface_type: InterfaceType | str) -> list[TVInterface]:
        """Active interfaces of the given type.

        Raises:
            ValidationFailure: If *interface_type* is not a known type.
        """
        wanted = _coerce_type(interface_type)
        return [i for i in self.find_active() if i.type is wanted]

    def search(self, query: str) -> list[TVInterface]:
        """Active interfaces whose name or description contains *query*.

        Matching is case-insensitive; results are sorted by name.
        """
        needle = query.strip().lower()
        hits = [
            i for i in self.find_active()
            if needle in i.name.lower() or needle in i.description.lower()
        ]
        hits.sort(key=lambda i: i.name)
        return hits

    def find_default_for_type(
        self,
        interface_type: InterfaceType | str,
    ) -> TVInterface | None:
        """The earliest-created active interface of a type, if any."""
        candidates = self.find_by_type(interface_type)
        if not candidates:
            return None
        return min(candidates, key=lambda i: i.created_at or "")

    def list(
        self,
        device_id: str | None = None,
        interface_type: InterfaceType | str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> Page:
        """Filter and paginate interfaces.

        A non-blank *search* first narrows to active interfaces matching
        the text (see ``search``); the other filters then apply on top.

        Args:
            device_id: Keep only interfaces attached to this device.
            interface_type: Keep only interfaces of this type.
            is_active: Keep only interfaces with this activation flag.
            search: Free-text query over name and description.
            limit: Page size; defaults to ``settings.default_page_size``.
            offset: Index of the first item to return.

        Returns:
            A ``Page`` with the matching slice and the total count.
        """
        limit = self._settings.default_page_size if limit is None else limit
        if search and search.strip():
            results = self.search(search)
        else:
            results = self.get_all()

        if device_id:
            results = [i for i in results if i.device_id == device_id]
        if interface_type is not None:
            wanted = _coerce_type(interface_type)
            results = [i for i in results if i.type is wanted]
        if is_active is not None:
            results = [i for i in results if i.is_active is is_active]

        return Page(
            items=results[offset:offset + limit],
            total=len(results),
            limit=limit,
            offset=offset,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_device(self, device_id: str | None) -> None:
        if device_id and self._device_exists is not None:
            if not self._device_exists(device_id):
                raise NotFoundError("device", device_id)

    def _store_new(self, interface: TVInterface) -> TVInterface:
        now = self._clock()
        stored = replace(interface, created_at=now, updated_at=now)
        with self._lock:
            self._interfaces[stored.id] = stored
        return stored

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def count(self) -> int:
        """Number of stored interfaces."""
        return len(self._interfaces)

    @property
    def interface_ids(self) -> list[str]:
        """Ids of all stored interfaces."""
        return list(self._interfaces.keys())

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._interfaces)

    def __contains__(self, interface_id: object) -> bool:
        """Support ``interface_id in registry`` syntax."""
        if not isinstance(interface_id, str):
            return False
        return interface_id in self._interfaces

    def __repr__(self) -> str:
        return f"InterfaceRegistry(count={self.count})"
