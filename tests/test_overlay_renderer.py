"""Unit tests for tv_overlay.core.overlay_renderer.

Uses synthetic numpy frames; PNG encoding is checked through an
OpenCV decode round trip.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import cv2
import numpy as np
import pytest

from tv_overlay.config.settings import Settings
from tv_overlay.core.overlay_renderer import (
    animation_intensity,
    blank_frame,
    encode_png,
    load_image,
    parse_color,
    render_overlay,
)
from tv_overlay.core.serialization import interface_from_payload
from tv_overlay.models.geometry import Extent
from tv_overlay.models.interface import TVInterface
from tv_overlay.models.region import Animation

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _make_interface(
    clickable: list[dict[str, Any]] | None = None,
    highlight: list[dict[str, Any]] | None = None,
) -> TVInterface:
    return interface_from_payload(
        {
            "name": "Home",
            "type": "home",
            "clickable_areas": clickable or [],
            "highlight_areas": highlight or [],
        },
        "tv_interface_1",
    )


def _highlight(**overrides: Any) -> dict[str, Any]:
    area: dict[str, Any] = {
        "id": "h1",
        "name": "Focus",
        "position": {"x": 10, "y": 10},
        "size": {"width": 20, "height": 20},
        "color": "#ff0000",
        "opacity": 1.0,
    }
    area.update(overrides)
    return area


def _clickable(**overrides: Any) -> dict[str, Any]:
    area: dict[str, Any] = {
        "id": "a1",
        "name": "Live TV",
        "position": {"x": 40, "y": 40},
        "size": {"width": 30, "height": 20},
        "action": "navigate",
    }
    area.update(overrides)
    return area


SMALL = Settings(canvas_width=100, canvas_height=100, outline_color="#00ff00", outline_thickness=1)


# ==================================================================
# Helpers under test
# ==================================================================


class TestParseColor:
    def test_six_digit(self) -> None:
        assert parse_color("#3b82f6") == (0xF6, 0x82, 0x3B)

    def test_three_digit(self) -> None:
        assert parse_color("#f00") == (0, 0, 255)

    def test_without_hash(self) -> None:
        assert parse_color("00ff00") == (0, 255, 0)

    @pytest.mark.parametrize("value", ["red", "#12345", "rgb(1,2,3)", ""])
    def test_unsupported(self, value: str) -> None:
        with pytest.raises(ValueError, match="Unsupported colour"):
            parse_color(value)


class TestAnimationIntensity:
    @pytest.mark.parametrize("animation", list(Animation))
    def test_full_intensity_at_start(self, animation: Animation) -> None:
        assert animation_intensity(animation, 0.0, 1000.0) == pytest.approx(1.0)

    def test_none_is_static(self) -> None:
        assert animation_intensity(Animation.NONE, 333.0, 1000.0) == 1.0

    def test_pulse_fades_to_zero_mid_period(self) -> None:
        assert animation_intensity(Animation.PULSE, 500.0, 1000.0) == pytest.approx(0.0)

    def test_glow_stays_above_half(self) -> None:
        assert animation_intensity(Animation.GLOW, 500.0, 1000.0) == pytest.approx(0.5)

    def test_blink_toggles(self) -> None:
        assert animation_intensity(Animation.BLINK, 250.0, 1000.0) == 1.0
        assert animation_intensity(Animation.BLINK, 750.0, 1000.0) == 0.0

    def test_periodic(self) -> None:
        assert animation_intensity(Animation.PULSE, 1250.0, 1000.0) == pytest.approx(
            animation_intensity(Animation.PULSE, 250.0, 1000.0)
        )


class TestFrameHelpers:
    def test_blank_frame_shape_and_fill(self) -> None:
        frame = blank_frame(Extent(40, 30), fill=(1, 2, 3))
        assert frame.shape == (30, 40, 3)
        assert frame.dtype == np.uint8
        assert tuple(frame[0, 0]) == (1, 2, 3)

    def test_encode_png_round_trip(self) -> None:
        frame = blank_frame(Extent(8, 6), fill=(10, 20, 30))
        data = encode_png(frame)
        assert data[:8] == b"\x89PNG\r\n\x1a\n"
        decoded = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        np.testing.assert_array_equal(decoded, frame)

    def test_load_image(self, tmp_path: Path) -> None:
        path = tmp_path / "shot.png"
        path.write_bytes(encode_png(blank_frame(Extent(5, 4), fill=(0, 0, 255))))
        frame = load_image(path)
        assert frame.shape == (4, 5, 3)

    def test_load_missing_image(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "missing.png")


# ==================================================================
# render_overlay
# ==================================================================


class TestRenderOverlay:
    def test_input_frame_not_modified(self) -> None:
        frame = blank_frame(Extent(100, 100))
        render_overlay(frame, _make_interface([_clickable()], [_highlight()]), SMALL)
        assert not frame.any()

    def test_opaque_highlight_fills_region(self) -> None:
        frame = blank_frame(Extent(100, 100))
        out = render_overlay(frame, _make_interface(highlight=[_highlight()]), SMALL)
        assert tuple(out[20, 20]) == (0, 0, 255)
        assert tuple(out[50, 50]) == (0, 0, 0)

    def test_half_opacity_blends(self) -> None:
        frame = blank_frame(Extent(100, 100))
        out = render_overlay(frame, _make_interface(highlight=[_highlight(opacity=0.5)]), SMALL)
        assert abs(int(out[20, 20, 2]) - 128) <= 1

    def test_zero_opacity_draws_nothing(self) -> None:
        frame = blank_frame(Extent(100, 100))
        out = render_overlay(frame, _make_interface(highlight=[_highlight(opacity=0)]), SMALL)
        assert not out.any()

    def test_blink_off_phase_draws_nothing(self) -> None:
        frame = blank_frame(Extent(100, 100))
        interface = _make_interface(highlight=[_highlight(animation="blink", duration=1000)])
        out = render_overlay(frame, interface, SMALL, elapsed_ms=750)
        assert not out.any()

    def test_clickable_outline(self) -> None:
        frame = blank_frame(Extent(100, 100))
        out = render_overlay(frame, _make_interface([_clickable()]), SMALL)
        assert tuple(out[40, 40]) == (0, 255, 0)
        assert tuple(out[50, 55]) == (0, 0, 0)

    def test_hide_clickable(self) -> None:
        frame = blank_frame(Extent(100, 100))
        out = render_overlay(frame, _make_interface([_clickable()]), SMALL, show_clickable=False)
        assert not out.any()

    def test_polygon_and_circle_outlines(self) -> None:
        frame = blank_frame(Extent(100, 100))
        interface = _make_interface(
            [
                _clickable(shape="polygon", coordinates=[5, 5, 30, 5, 5, 30]),
                _clickable(id="a2", shape="circle", position={"x": 60, "y": 60}),
            ]
        )
        out = render_overlay(frame, interface, SMALL)
        assert tuple(out[5, 15]) == (0, 255, 0)
        assert out[60:81, 60:91].any()

    def test_regions_rescaled_to_frame(self) -> None:
        frame = blank_frame(Extent(200, 200))
        out = render_overlay(frame, _make_interface(highlight=[_highlight()]), SMALL)
        assert tuple(out[40, 40]) == (0, 0, 255)
        assert tuple(out[15, 15]) == (0, 0, 0)

    def test_explicit_source_extent(self) -> None:
        frame = blank_frame(Extent(100, 100))
        out = render_overlay(
            frame,
            _make_interface(highlight=[_highlight()]),
            SMALL,
            source_extent=Extent(50, 50),
        )
        assert tuple(out[40, 40]) == (0, 0, 255)

    def test_rejects_grayscale_frame(self) -> None:
        with pytest.raises(ValueError, match="frame"):
            render_overlay(np.zeros((10, 10), dtype=np.uint8), _make_interface(), SMALL)
