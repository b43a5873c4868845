"""Overlap and hit-testing for overlay regions.

Two consumers drive this module: the editor, which flags regions that
overlap each other, and runtime click dispatch, which maps a click on
the simulated screen to the clickable area underneath it.

Z-order equals sequence order: the area listed last is drawn on top and
wins when several areas contain the same point.

Shape handling:

* Rectangles and circles are compared through their axis-aligned
  bounding boxes (no true circular intersection).
* Polygons never overlap anything, but they are hit-tested through
  their bounding box.

Pure functions only: no I/O, no logging, no shared state.
"""

from __future__ import annotations

from collections.abc import Sequence

from tv_overlay.core.geometry import to_axis_aligned_box
from tv_overlay.models.geometry import Position, Shape
from tv_overlay.models.region import ClickableArea, HighlightArea

Area = ClickableArea | HighlightArea


def _is_polygon(area: Area) -> bool:
    return isinstance(area, ClickableArea) and area.shape is Shape.POLYGON


def overlaps(a: Area, b: Area) -> bool:
    """Check whether two regions overlap with nonzero area.

    Touching edges do not count.  The relation is symmetric.

    Args:
        a: First region.
        b: Second region.

    Returns:
        True if the bounding boxes share interior area and neither
        region is a polygon.
    """
    if _is_polygon(a) or _is_polygon(b):
        return False
    return to_axis_aligned_box(a).intersects(to_axis_aligned_box(b))


def find_overlaps(areas: Sequence[Area]) -> list[tuple[str, str]]:
    """Return the ids of every overlapping pair in *areas*.

    Pairs are reported as ``(earlier_id, later_id)`` in index order.
    This is an all-pairs scan and costs O(n^2).

    Args:
        areas: Regions in sequence order.

    Returns:
        A list of id pairs (may be empty).
    """
    pairs: list[tuple[str, str]] = []
    for i, first in enumerate(areas):
        for second in areas[i + 1:]:
            if overlaps(first, second):
                pairs.append((first.id, second.id))
    return pairs


def hits_at(point: Position, areas: Sequence[ClickableArea]) -> list[ClickableArea]:
    """Return every area containing *point*, top-most first.

    Containment is inclusive of edges.
    """
    return [
        area for area in reversed(areas)
        if to_axis_aligned_box(area).contains_point(point.x, point.y)
    ]


def hit_test(point: Position, areas: Sequence[ClickableArea]) -> ClickableArea | None:
    """Find the clickable area that receives a click at *point*.

    Args:
        point: Click location in the same space as the areas.
        areas: Clickable areas in z-order (last is on top).

    Returns:
        The containing area with the highest index, or None when no
        area contains the point.
    """
    for area in reversed(areas):
        if to_axis_aligned_box(area).contains_point(point.x, point.y):
            return area
    return None
