"""Region model: clickable and highlight areas on an interface screenshot.

A ``ClickableArea`` marks a spot that triggers an action when the
customer clicks it on the simulated TV screen.  A ``HighlightArea`` is a
coloured (optionally animated) overlay that draws attention to part of
the screen and carries no action.

Regions are immutable value records.  Editing a region means building a
new one; the owning ``TVInterface`` replaces its region sequence as a
whole.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tv_overlay.models.errors import MalformedInputError
from tv_overlay.models.geometry import Position, Shape, Size


class Animation(Enum):
    """Animation applied to a highlight area.

    Attributes:
        PULSE: Opacity swells and fades.
        GLOW: Gentle brightness oscillation.
        BLINK: Hard on/off toggling.
        NONE: Static overlay.
    """

    PULSE = "pulse"
    GLOW = "glow"
    BLINK = "blink"
    NONE = "none"


@dataclass(frozen=True)
class ClickableArea:
    """A region that triggers an action when clicked.

    Attributes:
        id: Identifier, unique among the interface's clickable areas.
        name: Human-readable label (e.g. ``"Live TV"``).
        position: Top-left corner in canvas space.
        size: Width and height in canvas space.
        action: Free-form action token (e.g. ``"navigate"``).
        shape: Outline type.  Circles and polygons are treated as their
            bounding box for overlap purposes.
        coordinates: Flattened ``x, y`` pairs, used only when
            ``shape`` is ``Shape.POLYGON``.
    """

    id: str
    name: str
    position: Position
    size: Size
    action: str
    shape: Shape = Shape.RECTANGLE
    coordinates: tuple[float, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the wire representation (snake_case keys)."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "position": self.position.to_dict(),
            "size": self.size.to_dict(),
            "shape": self.shape.value,
            "action": self.action,
        }
        if self.coordinates is not None:
            data["coordinates"] = list(self.coordinates)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClickableArea:
        """Build a clickable area from its wire representation.

        Args:
            data: Mapping with at least ``id``, ``name``, ``position``,
                ``size`` and ``action``.

        Returns:
            A new ``ClickableArea``.

        Raises:
            MalformedInputError: If a required key is missing or a
                nested value has the wrong structure.
        """
        record = _require_record(data, "clickable area")
        try:
            coordinates = record.get("coordinates")
            return cls(
                id=record["id"],
                name=record["name"],
                position=_position_from(record["position"]),
                size=_size_from(record["size"]),
                action=record["action"],
                shape=Shape(record.get("shape") or Shape.RECTANGLE.value),
                coordinates=tuple(coordinates) if coordinates is not None else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedInputError(f"Invalid clickable area: {exc!r}") from exc


@dataclass(frozen=True)
class HighlightArea:
    """A coloured overlay drawn over part of the screenshot.

    Attributes:
        id: Identifier, unique among the interface's highlight areas.
        name: Human-readable label.
        position: Top-left corner in canvas space.
        size: Width and height in canvas space.
        color: CSS-style colour string, usually ``#rrggbb``.
        opacity: Fill opacity in ``[0, 1]``.
        animation: Animation style.
        duration: Animation period in milliseconds, or None for the
            renderer default.
    """

    id: str
    name: str
    position: Position
    size: Size
    color: str
    opacity: float
    animation: Animation = Animation.NONE
    duration: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the wire representation (snake_case keys)."""
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "position": self.position.to_dict(),
            "size": self.size.to_dict(),
            "color": self.color,
            "opacity": self.opacity,
            "animation": self.animation.value,
        }
        if self.duration is not None:
            data["duration"] = self.duration
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HighlightArea:
        """Build a highlight area from its wire representation.

        Raises:
            MalformedInputError: If a required key is missing or a
                nested value has the wrong structure.
        """
        record = _require_record(data, "highlight area")
        try:
            return cls(
                id=record["id"],
                name=record["name"],
                position=_position_from(record["position"]),
                size=_size_from(record["size"]),
                color=record["color"],
                opacity=record["opacity"],
                animation=Animation(record.get("animation") or Animation.NONE.value),
                duration=record.get("duration"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedInputError(f"Invalid highlight area: {exc!r}") from exc


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _require_record(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise MalformedInputError(
            f"Expected {what} to be a record, got {type(data).__name__}"
        )
    return data


def _position_from(data: Any) -> Position:
    record = _require_record(data, "position")
    return Position(x=record["x"], y=record["y"])


def _size_from(data: Any) -> Size:
    record = _require_record(data, "size")
    return Size(width=record["width"], height=record["height"])
