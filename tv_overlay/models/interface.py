"""TVInterface aggregate: one screenshot-backed screen definition.

A ``TVInterface`` owns its clickable and highlight region sequences.
Regions have no lifecycle of their own; every edit replaces the whole
sequence.  The optional ``device_id`` is a weak reference to a device
model and implies no ownership.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tv_overlay.models.errors import MalformedInputError
from tv_overlay.models.region import ClickableArea, HighlightArea

NAME_MAX_LENGTH: int = 255
DESCRIPTION_MAX_LENGTH: int = 2000


class InterfaceType(Enum):
    """Kind of TV screen an interface depicts.

    Values are compared case-sensitively against incoming payloads.
    """

    HOME = "home"
    SETTINGS = "settings"
    CHANNELS = "channels"
    APPS = "apps"
    GUIDE = "guide"
    NO_SIGNAL = "no-signal"
    ERROR = "error"
    CUSTOM = "custom"

    @classmethod
    def values(cls) -> list[str]:
        """Return the wire values in declaration order."""
        return [member.value for member in cls]


# Fields that a client may set on create or update.
MUTABLE_FIELDS: tuple[str, ...] = (
    "device_id",
    "name",
    "description",
    "type",
    "screenshot_url",
    "screenshot_data",
    "svg_overlay",
    "clickable_areas",
    "highlight_areas",
    "responsive",
    "breakpoints",
    "is_active",
    "metadata",
)

# Fields left out of export envelopes.
SERVICE_FIELDS: tuple[str, ...] = ("created_at", "updated_at", "is_active")


@dataclass(frozen=True)
class TVInterface:
    """Aggregate root for a single annotated TV screen.

    Attributes:
        id: Interface identifier.
        name: Display name, 1-255 characters after trimming.
        type: Screen kind.
        description: Free text, at most 2000 characters.
        device_id: Weak reference to a device model, or None.
        screenshot_url: URL of the backing screenshot.
        screenshot_data: Inline (base64) screenshot data.
        svg_overlay: Optional SVG markup drawn over the screenshot.
        clickable_areas: Clickable regions in z-order (last on top).
        highlight_areas: Highlight regions in draw order.
        responsive: Whether the overlay adapts to display size.
        breakpoints: Free-form responsive breakpoint map.
        is_active: Whether the interface is offered to customers.
        metadata: Free-form metadata map.
        created_at: ISO-8601 creation timestamp (server-assigned).
        updated_at: ISO-8601 last-update timestamp (server-assigned).
    """

    id: str
    name: str
    type: InterfaceType
    description: str = ""
    device_id: str | None = None
    screenshot_url: str | None = None
    screenshot_data: str | None = None
    svg_overlay: str | None = None
    clickable_areas: tuple[ClickableArea, ...] = field(default_factory=tuple)
    highlight_areas: tuple[HighlightArea, ...] = field(default_factory=tuple)
    responsive: bool = False
    breakpoints: dict[str, Any] | None = None
    is_active: bool = True
    metadata: dict[str, Any] | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the wire representation (snake_case keys).

        Free-form maps are deep-copied so callers cannot reach the
        stored values.
        """
        return {
            "id": self.id,
            "device_id": self.device_id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "screenshot_url": self.screenshot_url,
            "screenshot_data": self.screenshot_data,
            "svg_overlay": self.svg_overlay,
            "clickable_areas": [area.to_dict() for area in self.clickable_areas],
            "highlight_areas": [area.to_dict() for area in self.highlight_areas],
            "responsive": self.responsive,
            "breakpoints": copy.deepcopy(self.breakpoints),
            "is_active": self.is_active,
            "metadata": copy.deepcopy(self.metadata),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TVInterface:
        """Build an interface from already-decoded wire data.

        Unknown keys (``device``, ``usage_stats`` and the like added by
        the backend) are ignored.  ``breakpoints`` and ``metadata``
        are deep-copied.  The input is expected to have passed
        validation; this method only checks structure.

        Args:
            data: Mapping with at least ``id``, ``name`` and ``type``.

        Returns:
            A new ``TVInterface``.

        Raises:
            MalformedInputError: If required keys are missing or the
                region arrays are not lists of records.
        """
        if not isinstance(data, Mapping):
            raise MalformedInputError(
                f"Expected interface record, got {type(data).__name__}"
            )
        clickable = data.get("clickable_areas") or []
        highlight = data.get("highlight_areas") or []
        if not isinstance(clickable, list) or not isinstance(highlight, list):
            raise MalformedInputError("Region sequences must be arrays")
        try:
            return cls(
                id=data["id"],
                name=data["name"],
                type=InterfaceType(data["type"]),
                description=data.get("description") or "",
                device_id=data.get("device_id"),
                screenshot_url=data.get("screenshot_url"),
                screenshot_data=data.get("screenshot_data"),
                svg_overlay=data.get("svg_overlay"),
                clickable_areas=tuple(ClickableArea.from_dict(a) for a in clickable),
                highlight_areas=tuple(HighlightArea.from_dict(a) for a in highlight),
                responsive=bool(data.get("responsive", False)),
                breakpoints=copy.deepcopy(data.get("breakpoints")),
                is_active=bool(data.get("is_active", True)),
                metadata=copy.deepcopy(data.get("metadata")),
                created_at=data.get("created_at"),
                updated_at=data.get("updated_at"),
            )
        except (KeyError, ValueError) as exc:
            raise MalformedInputError(f"Invalid interface record: {exc!r}") from exc
