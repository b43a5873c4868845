"""Geometry value types for overlay regions.

All coordinates live in canvas space: the origin ``(0, 0)`` is the
top-left corner of the screenshot and values grow right and down.
Units are canvas pixels but may be fractional after rescaling.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Shape(Enum):
    """Outline of a clickable area.

    Attributes:
        RECTANGLE: Axis-aligned box given by position and size.
        CIRCLE: Ellipse inscribed in the position/size box.
        POLYGON: Free-form outline given by flattened coordinates.
    """

    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    POLYGON = "polygon"


@dataclass(frozen=True)
class Position:
    """Top-left corner of a region.

    Attributes:
        x: Horizontal offset from the canvas origin.
        y: Vertical offset from the canvas origin.
    """

    x: float
    y: float

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Size:
    """Extent of a region.

    Attributes:
        width: Horizontal extent.
        height: Vertical extent.
    """

    width: float
    height: float

    def to_dict(self) -> dict[str, Any]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class Extent:
    """Resolution of a canvas, screenshot, or display.

    Attributes:
        width: Horizontal resolution (must be > 0).
        height: Vertical resolution (must be > 0).
    """

    width: float
    height: float

    def __post_init__(self) -> None:
        """Validate that both dimensions are positive."""
        if self.width <= 0:
            raise ValueError(f"Extent width must be > 0, got {self.width}")
        if self.height <= 0:
            raise ValueError(f"Extent height must be > 0, got {self.height}")


@dataclass(frozen=True)
class Box:
    """Axis-aligned bounding box given by its four edges.

    Attributes:
        left: X-coordinate of the left edge.
        top: Y-coordinate of the top edge.
        right: X-coordinate of the right edge.
        bottom: Y-coordinate of the bottom edge.
    """

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        """Horizontal extent of the box."""
        return self.right - self.left

    @property
    def height(self) -> float:
        """Vertical extent of the box."""
        return self.bottom - self.top

    def area(self) -> float:
        """Return ``width * height``."""
        return self.width * self.height

    def contains_point(self, px: float, py: float) -> bool:
        """Check whether a point lies inside (or on the edge of) this box.

        Args:
            px: X-coordinate of the point.
            py: Y-coordinate of the point.

        Returns:
            True if the point is within the box bounds.
        """
        return self.left <= px <= self.right and self.top <= py <= self.bottom

    def intersects(self, other: Box) -> bool:
        """Check whether this box shares interior area with another.

        Touching edges alone do not count, and a box with zero area
        never intersects anything.

        Args:
            other: The box to test against.

        Returns:
            True if the interiors overlap.
        """
        if self.area() <= 0 or other.area() <= 0:
            return False
        return (
            self.left < other.right
            and other.left < self.right
            and self.top < other.bottom
            and other.top < self.bottom
        )
