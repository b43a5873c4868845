"""Overlay preview renderer.

Draws an interface's regions over a screenshot frame so authors can see
what the customer will see:

* Highlight areas are filled with their colour and alpha-blended using
  ``opacity`` scaled by the animation intensity at ``elapsed_ms``.
* Clickable areas are outlined according to their shape (rectangle,
  ellipse inscribed in the box, or polygon).

Region coordinates are authored on the editor canvas and are rescaled
to the frame's resolution before drawing.  Frames are OpenCV-style BGR
``uint8`` arrays of shape ``(H, W, 3)``; the input frame is never
modified.

Typical usage::

    from tv_overlay.core.overlay_renderer import encode_png, load_image, render_overlay

    frame = load_image("home.png")
    preview = render_overlay(frame, interface, elapsed_ms=250)
    Path("preview.png").write_bytes(encode_png(preview))
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path

import cv2
import numpy as np
from numpy.typing import NDArray

from tv_overlay.config.settings import Settings, get_default_settings
from tv_overlay.core.geometry import map_area, polygon_points
from tv_overlay.models.geometry import Extent, Shape
from tv_overlay.models.interface import TVInterface
from tv_overlay.models.region import Animation, ClickableArea, HighlightArea

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


# ---------------------------------------------------------------------------
# Colour & animation helpers
# ---------------------------------------------------------------------------


def parse_color(color: str) -> tuple[int, int, int]:
    """Convert ``#rgb`` or ``#rrggbb`` into an OpenCV BGR tuple.

    Raises:
        ValueError: If *color* is not a hex colour.
    """
    match = _HEX_COLOR.match(color.strip())
    if match is None:
        raise ValueError(f"Unsupported colour {color!r}; expected #rgb or #rrggbb")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
    return (b, g, r)


def animation_intensity(
    animation: Animation,
    elapsed_ms: float,
    period_ms: float,
) -> float:
    """Return the opacity multiplier in ``[0, 1]`` at *elapsed_ms*.

    Every animation starts at full intensity when ``elapsed_ms`` is 0.

    Args:
        animation: Animation style of the highlight.
        elapsed_ms: Time since the highlight appeared.
        period_ms: Length of one animation cycle (must be > 0).

    Returns:
        ``1.0`` for static highlights; a periodic value otherwise.
    """
    if animation is Animation.NONE:
        return 1.0
    phase = (elapsed_ms % period_ms) / period_ms
    wave = math.cos(2.0 * math.pi * phase)
    if animation is Animation.PULSE:
        return 0.5 + 0.5 * wave
    if animation is Animation.GLOW:
        return 0.75 + 0.25 * wave
    return 1.0 if phase < 0.5 else 0.0


# ---------------------------------------------------------------------------
# Frame helpers
# ---------------------------------------------------------------------------


def blank_frame(extent: Extent, fill: tuple[int, int, int] = (0, 0, 0)) -> NDArray[np.uint8]:
    """Return a solid BGR frame of the given resolution."""
    frame = np.zeros((int(extent.height), int(extent.width), 3), dtype=np.uint8)
    frame[:] = fill
    return frame


def load_image(path: str | Path) -> NDArray[np.uint8]:
    """Read a screenshot from disk as a BGR frame.

    Raises:
        FileNotFoundError: If OpenCV cannot read the file.
    """
    frame = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if frame is None:
        raise FileNotFoundError(f"Cannot read image: {path}")
    return frame


def encode_png(frame: NDArray[np.uint8]) -> bytes:
    """Encode a BGR frame to PNG bytes.

    Raises:
        RuntimeError: If OpenCV fails to encode the frame.
    """
    success, buffer = cv2.imencode(".png", frame)
    if not success:
        raise RuntimeError("cv2.imencode failed to encode frame as PNG")
    return bytes(buffer)


def _corners(area: ClickableArea | HighlightArea) -> tuple[tuple[int, int], tuple[int, int]]:
    left = int(round(area.position.x))
    top = int(round(area.position.y))
    right = int(round(area.position.x + area.size.width))
    bottom = int(round(area.position.y + area.size.height))
    return (left, top), (right, bottom)


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------


def _draw_highlight(
    frame: NDArray[np.uint8],
    area: HighlightArea,
    elapsed_ms: float,
    default_period_ms: float,
) -> NDArray[np.uint8]:
    period = area.duration if area.duration else default_period_ms
    alpha = area.opacity * animation_intensity(area.animation, elapsed_ms, period)
    if alpha <= 0.0:
        return frame
    layer = frame.copy()
    top_left, bottom_right = _corners(area)
    cv2.rectangle(layer, top_left, bottom_right, parse_color(area.color), thickness=-1)
    return cv2.addWeighted(layer, alpha, frame, 1.0 - alpha, 0.0)


def _draw_clickable(
    frame: NDArray[np.uint8],
    area: ClickableArea,
    color: tuple[int, int, int],
    thickness: int,
) -> None:
    if area.shape is Shape.POLYGON and area.coordinates:
        points = np.rint(polygon_points(area.coordinates)).astype(np.int32)
        cv2.polylines(frame, [points.reshape(-1, 1, 2)], True, color, thickness)
    elif area.shape is Shape.CIRCLE:
        center = (
            int(round(area.position.x + area.size.width / 2)),
            int(round(area.position.y + area.size.height / 2)),
        )
        axes = (int(round(area.size.width / 2)), int(round(area.size.height / 2)))
        cv2.ellipse(frame, center, axes, 0, 0, 360, color, thickness)
    else:
        top_left, bottom_right = _corners(area)
        cv2.rectangle(frame, top_left, bottom_right, color, thickness)


def render_overlay(
    frame: NDArray[np.uint8],
    interface: TVInterface,
    settings: Settings | None = None,
    *,
    source_extent: Extent | None = None,
    elapsed_ms: float = 0.0,
    show_clickable: bool = True,
) -> NDArray[np.uint8]:
    """Draw *interface*'s regions over a copy of *frame*.

    Args:
        frame: BGR ``uint8`` screenshot of shape ``(H, W, 3)``.
        interface: The interface whose regions are drawn.
        settings: Supplies the editor canvas size, outline style and
            default animation period.
        source_extent: Resolution the regions were authored in;
            defaults to the editor canvas from *settings*.
        elapsed_ms: Animation clock for highlight areas.
        show_clickable: Whether to outline clickable areas.

    Returns:
        A new frame with the overlay applied.

    Raises:
        ValueError: If *frame* is not a 3-channel image, or a highlight
            colour cannot be parsed.
    """
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) frame, got shape {frame.shape}")
    settings = settings or get_default_settings()
    source = source_extent or Extent(settings.canvas_width, settings.canvas_height)
    target = Extent(frame.shape[1], frame.shape[0])

    out = frame.copy()
    for area in interface.highlight_areas:
        out = _draw_highlight(
            out,
            map_area(area, source, target),
            elapsed_ms,
            settings.animation_period_ms,
        )

    if show_clickable:
        outline = parse_color(settings.outline_color)
        for area in interface.clickable_areas:
            _draw_clickable(out, map_area(area, source, target), outline,
                            settings.outline_thickness)

    logger.debug(
        "Rendered %d highlight / %d clickable area(s) for %s at %dx%d",
        len(interface.highlight_areas),
        len(interface.clickable_areas) if show_clickable else 0,
        interface.id,
        target.width,
        target.height,
    )
    return out
