"""Coordinate conversion between canvas spaces.

Regions are authored on the editor's working canvas (800x450 by
default) but displayed over screenshots and screens of other
resolutions.  The helpers here map points and whole regions between
two ``Extent`` values by independent linear scaling on each axis, so
the ratios ``x / width`` and ``y / height`` are preserved.

Pure functions only: no I/O, no logging, no shared state.

Typical usage::

    from tv_overlay.core.geometry import map_area, to_axis_aligned_box
    from tv_overlay.models.geometry import Extent

    box = to_axis_aligned_box(area)
    scaled = map_area(area, Extent(800, 450), Extent(1920, 1080))
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import TypeVar

import numpy as np
from numpy.typing import NDArray

from tv_overlay.models.geometry import Box, Extent, Position, Size
from tv_overlay.models.region import ClickableArea, HighlightArea

AreaT = TypeVar("AreaT", ClickableArea, HighlightArea)


def to_axis_aligned_box(area: ClickableArea | HighlightArea) -> Box:
    """Return the axis-aligned box covering *area*.

    Circles are approximated by their bounding box.  Polygons are
    reported through their position/size box as well; the overlap
    engine decides separately whether polygons take part.

    Args:
        area: A clickable or highlight area.

    Returns:
        The ``Box`` spanning ``position`` to ``position + size``.
    """
    left = area.position.x
    top = area.position.y
    return Box(
        left=left,
        top=top,
        right=left + area.size.width,
        bottom=top + area.size.height,
    )


def scale_factors(source: Extent, target: Extent) -> tuple[float, float]:
    """Return ``(sx, sy)`` that map *source* coordinates onto *target*."""
    return (target.width / source.width, target.height / source.height)


def map_coordinates(point: Position, source: Extent, target: Extent) -> Position:
    """Linearly rescale a point from one canvas resolution to another.

    Args:
        point: Point in *source* space.
        source: Resolution the point was authored in.
        target: Resolution to map into.

    Returns:
        The corresponding point in *target* space.
    """
    sx, sy = scale_factors(source, target)
    return Position(x=point.x * sx, y=point.y * sy)


def map_size(size: Size, source: Extent, target: Extent) -> Size:
    """Rescale a size between resolutions."""
    sx, sy = scale_factors(source, target)
    return Size(width=size.width * sx, height=size.height * sy)


def polygon_points(coordinates: Sequence[float]) -> NDArray[np.float64]:
    """Reshape flattened ``x, y`` coordinates into an ``(n, 2)`` array.

    Args:
        coordinates: Flat sequence ``[x0, y0, x1, y1, ...]``.

    Returns:
        A float64 array with one row per point.

    Raises:
        ValueError: If the sequence has an odd number of values.
    """
    flat = np.asarray(coordinates, dtype=np.float64)
    if flat.size % 2:
        raise ValueError(
            f"Polygon coordinates must come in x,y pairs, got {flat.size} values"
        )
    return flat.reshape(-1, 2)


def map_polygon(
    coordinates: Sequence[float],
    source: Extent,
    target: Extent,
) -> tuple[float, ...]:
    """Rescale flattened polygon coordinates between resolutions."""
    points = polygon_points(coordinates)
    scaled = points * np.array(scale_factors(source, target), dtype=np.float64)
    return tuple(float(v) for v in scaled.ravel())


def map_area(area: AreaT, source: Extent, target: Extent) -> AreaT:
    """Return a copy of *area* rescaled from *source* to *target*.

    Position, size and (for polygons) coordinates are all mapped; every
    other field is carried over unchanged.
    """
    mapped = replace(
        area,
        position=map_coordinates(area.position, source, target),
        size=map_size(area.size, source, target),
    )
    if isinstance(mapped, ClickableArea) and mapped.coordinates is not None:
        mapped = replace(
            mapped,
            coordinates=map_polygon(mapped.coordinates, source, target),
        )
    return mapped
