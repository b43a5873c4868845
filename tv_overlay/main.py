"""Command-line entry point for the TV overlay toolkit.

Works on JSON files holding either a bare interface record or an export
envelope, so authors can check and preview overlays without the web
admin.

Typical usage::

    python -m tv_overlay.main validate home.json
    python -m tv_overlay.main export home.json -o home.export.json
    python -m tv_overlay.main import home.export.json -o home.copy.json
    python -m tv_overlay.main hit-test home.json 120 80
    python -m tv_overlay.main overlaps home.json
    python -m tv_overlay.main render home.json --screenshot home.png -o preview.png
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from tv_overlay.config.settings import Settings, get_default_settings
from tv_overlay.core.geometry import map_coordinates
from tv_overlay.core.ids import generate_interface_id
from tv_overlay.core.overlap import find_overlaps, hit_test
from tv_overlay.core.overlay_renderer import (
    blank_frame,
    encode_png,
    load_image,
    render_overlay,
)
from tv_overlay.core.serialization import (
    ENVELOPE_TYPE,
    dumps_envelope,
    export_interface,
    import_interface,
    interface_from_payload,
    loads_envelope,
)
from tv_overlay.core.validator import validate_interface
from tv_overlay.models.errors import OverlayError, ValidationFailure
from tv_overlay.models.geometry import Extent, Position
from tv_overlay.models.interface import TVInterface

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def _read_json(path: str) -> dict[str, Any]:
    return loads_envelope(Path(path).read_text(encoding="utf-8"))


def _unwrap(document: dict[str, Any]) -> dict[str, Any]:
    """Return the interface record from a bare record or an envelope."""
    if document.get("type") == ENVELOPE_TYPE and isinstance(document.get("data"), dict):
        return document["data"]
    return document


def _load_interface(path: str) -> TVInterface:
    record = _unwrap(_read_json(path))
    interface_id = record.get("id") or generate_interface_id()
    return interface_from_payload(record, interface_id)


def _write_text(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        logger.info("Wrote %s", output)
    else:
        print(text)


def _parse_extent(value: str) -> Extent:
    try:
        width, height = value.lower().split("x", 1)
        return Extent(float(width), float(height))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"expected WIDTHxHEIGHT, got {value!r}"
        ) from exc


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_validate(args: argparse.Namespace, settings: Settings) -> int:
    violations = validate_interface(_unwrap(_read_json(args.file)))
    if not violations:
        print(f"{args.file}: OK")
        return 0
    for message in violations:
        print(f"{args.file}: {message}")
    return 1


def _cmd_export(args: argparse.Namespace, settings: Settings) -> int:
    envelope = export_interface(_load_interface(args.file), settings)
    _write_text(dumps_envelope(envelope), args.output)
    return 0


def _cmd_import(args: argparse.Namespace, settings: Settings) -> int:
    interface = import_interface(_read_json(args.file), settings)
    _write_text(json.dumps(interface.to_dict(), ensure_ascii=False, indent=2), args.output)
    return 0


def _cmd_hit_test(args: argparse.Namespace, settings: Settings) -> int:
    interface = _load_interface(args.file)
    point = Position(args.x, args.y)
    if args.display is not None:
        canvas = Extent(settings.canvas_width, settings.canvas_height)
        point = map_coordinates(point, args.display, canvas)

    hit = hit_test(point, interface.clickable_areas)
    if hit is None:
        print(f"No clickable area at ({point.x:g}, {point.y:g})")
        return 1
    print(f"{hit.id}\t{hit.name}\t{hit.action}")
    return 0


def _cmd_overlaps(args: argparse.Namespace, settings: Settings) -> int:
    interface = _load_interface(args.file)
    pairs = [("clickable", a, b) for a, b in find_overlaps(interface.clickable_areas)]
    pairs += [("highlight", a, b) for a, b in find_overlaps(interface.highlight_areas)]
    for kind, first, second in pairs:
        print(f"{kind}\t{first}\t{second}")
    if not pairs:
        print("No overlapping areas")
    return 0


def _cmd_render(args: argparse.Namespace, settings: Settings) -> int:
    interface = _load_interface(args.file)
    if args.screenshot:
        frame = load_image(args.screenshot)
    else:
        frame = blank_frame(Extent(settings.canvas_width, settings.canvas_height))
    preview = render_overlay(
        frame,
        interface,
        settings,
        elapsed_ms=args.elapsed_ms,
        show_clickable=not args.no_clickable,
    )
    Path(args.output).write_bytes(encode_png(preview))
    logger.info("Wrote preview %s (%dx%d)", args.output, frame.shape[1], frame.shape[0])
    return 0


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the ``tv-overlay`` argument parser."""
    parser = argparse.ArgumentParser(
        prog="tv-overlay",
        description="Validate, export, import and preview TV interface overlays.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("validate", help="Report every violation in an interface file.")
    p.add_argument("file")
    p.set_defaults(handler=_cmd_validate)

    p = sub.add_parser("export", help="Wrap an interface in an export envelope.")
    p.add_argument("file")
    p.add_argument("--output", "-o", default=None)
    p.set_defaults(handler=_cmd_export)

    p = sub.add_parser("import", help="Create a new interface from an export envelope.")
    p.add_argument("file")
    p.add_argument("--output", "-o", default=None)
    p.set_defaults(handler=_cmd_import)

    p = sub.add_parser("hit-test", help="Find the clickable area under a point.")
    p.add_argument("file")
    p.add_argument("x", type=float)
    p.add_argument("y", type=float)
    p.add_argument(
        "--display",
        type=_parse_extent,
        default=None,
        help="Resolution the point is given in (e.g. 1920x1080).  "
        "Defaults to the editor canvas.",
    )
    p.set_defaults(handler=_cmd_hit_test)

    p = sub.add_parser("overlaps", help="List overlapping region pairs.")
    p.add_argument("file")
    p.set_defaults(handler=_cmd_overlaps)

    p = sub.add_parser("render", help="Draw the overlay over a screenshot.")
    p.add_argument("file")
    p.add_argument("--screenshot", "-s", default=None)
    p.add_argument("--output", "-o", required=True)
    p.add_argument("--elapsed-ms", type=float, default=0.0)
    p.add_argument("--no-clickable", action="store_true")
    p.set_defaults(handler=_cmd_render)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments, run the command, and return the exit code."""
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    settings = get_default_settings()
    try:
        return args.handler(args, settings)
    except ValidationFailure as exc:
        for message in exc.violations:
            logger.error("%s", message)
        return 1
    except (OverlayError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
