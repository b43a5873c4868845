"""Structural validation of TV interface payloads.

The validator turns a raw, JSON-decoded payload into an ordered list of
human-readable violations.  An empty list means the payload is valid.

Rules are declared as ``Rule(message, check)`` tables and evaluated in
a fixed order:

1. Top-level fields: name, type, description, device_id.
2. Region array shapes: ``clickable_areas`` then ``highlight_areas``.
3. Every clickable area in index order, then every highlight area in
   index order.  Element messages carry a 1-based index, e.g.
   ``"Clickable area 2: action is required"``.

Recoverable problems (missing field, wrong type, out-of-range number)
always become violations.  Only a payload that cannot be traversed at
all -- the payload itself, or an element of a region array, is not a
record -- raises ``MalformedInputError``.

The validator never normalises input.  ``name`` is checked as given;
callers trim it *after* validation succeeds (see
``InterfaceRegistry.create``).

This module depends only on ``tv_overlay.models`` and the standard
library and never logs.

Typical usage::

    from tv_overlay.core.validator import validate_interface

    violations = validate_interface(payload)
    if violations:
        raise ValidationFailure(violations)
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from tv_overlay.models.errors import MalformedInputError, ValidationFailure
from tv_overlay.models.geometry import Shape
from tv_overlay.models.interface import (
    DESCRIPTION_MAX_LENGTH,
    NAME_MAX_LENGTH,
    InterfaceType,
)
from tv_overlay.models.region import Animation

CLICKABLE_LABEL = "Clickable area"
HIGHLIGHT_LABEL = "Highlight area"

MIN_POLYGON_POINTS = 3


@dataclass(frozen=True)
class Rule:
    """A single validation rule.

    Attributes:
        message: Violation text reported when ``check`` fails.  Element
            rules are prefixed with ``"<label> <index>: "`` at
            evaluation time.
        check: Predicate over the record under test; returns True when
            the record satisfies the rule.  Must not raise for any
            record-shaped input.
    """

    message: str
    check: Callable[[Mapping[str, Any]], bool]


# ---------------------------------------------------------------------------
# Predicate helpers
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    """True for finite ints and floats; booleans are not numbers.

    Ints too large for a float (JSON allows any digit count) are not
    numbers either.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _is_blank_free(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _absent(record: Mapping[str, Any], key: str) -> bool:
    return record.get(key) is None


def _numeric_pair(record: Mapping[str, Any], key: str, a: str, b: str) -> bool:
    value = record.get(key)
    return (
        isinstance(value, Mapping)
        and _is_number(value.get(a))
        and _is_number(value.get(b))
    )


def _has_position(record: Mapping[str, Any]) -> bool:
    return _numeric_pair(record, "position", "x", "y")


def _has_size(record: Mapping[str, Any]) -> bool:
    return _numeric_pair(record, "size", "width", "height")


def _position_in_canvas(record: Mapping[str, Any]) -> bool:
    if not _has_position(record):
        return True  # reported by the presence rule
    position = record["position"]
    return position["x"] >= 0 and position["y"] >= 0


def _size_positive(record: Mapping[str, Any]) -> bool:
    if not _has_size(record):
        return True  # reported by the presence rule
    size = record["size"]
    return size["width"] > 0 and size["height"] > 0


def _number_list(value: Any) -> bool:
    return isinstance(value, list) and all(_is_number(v) for v in value)


def _polygon_complete(record: Mapping[str, Any]) -> bool:
    if record.get("shape") != Shape.POLYGON.value:
        return True
    coordinates = record.get("coordinates")
    if coordinates is None:
        return False
    if not _number_list(coordinates):
        return True  # reported by the coordinates rule
    return len(coordinates) % 2 == 0 and len(coordinates) >= 2 * MIN_POLYGON_POINTS


def _one_of(key: str, allowed: list[str]) -> Callable[[Mapping[str, Any]], bool]:
    def check(record: Mapping[str, Any]) -> bool:
        value = record.get(key)
        return value is None or (isinstance(value, str) and value in allowed)

    return check


def _opacity_in_range(record: Mapping[str, Any]) -> bool:
    value = record.get("opacity")
    return _is_number(value) and 0 <= value <= 1


def _duration_non_negative(record: Mapping[str, Any]) -> bool:
    value = record.get("duration")
    return value is None or (_is_number(value) and value >= 0)


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

INTERFACE_RULES: tuple[Rule, ...] = (
    Rule(
        "Name is required",
        lambda r: _is_blank_free(r.get("name")),
    ),
    Rule(
        f"Name must not exceed {NAME_MAX_LENGTH} characters",
        lambda r: not isinstance(r.get("name"), str) or len(r["name"]) <= NAME_MAX_LENGTH,
    ),
    Rule(
        "Type must be one of: " + ", ".join(InterfaceType.values()),
        lambda r: isinstance(r.get("type"), str) and r["type"] in InterfaceType.values(),
    ),
    Rule(
        "Description must be a string",
        lambda r: _absent(r, "description") or isinstance(r["description"], str),
    ),
    Rule(
        f"Description must not exceed {DESCRIPTION_MAX_LENGTH} characters",
        lambda r: (
            not isinstance(r.get("description"), str)
            or len(r["description"]) <= DESCRIPTION_MAX_LENGTH
        ),
    ),
    Rule(
        "Device ID must be a string",
        lambda r: _absent(r, "device_id") or isinstance(r["device_id"], str),
    ),
    Rule(
        "Clickable areas must be an array",
        lambda r: _absent(r, "clickable_areas") or isinstance(r["clickable_areas"], list),
    ),
    Rule(
        "Highlight areas must be an array",
        lambda r: _absent(r, "highlight_areas") or isinstance(r["highlight_areas"], list),
    ),
)

_COMMON_AREA_RULES: tuple[Rule, ...] = (
    Rule("id is required", lambda r: _is_blank_free(r.get("id"))),
    Rule("name is required", lambda r: _is_blank_free(r.get("name"))),
    Rule("position must contain numeric x and y", _has_position),
    Rule("position coordinates must be non-negative", _position_in_canvas),
    Rule("size must contain numeric width and height", _has_size),
    Rule("size width and height must be positive", _size_positive),
)

CLICKABLE_AREA_RULES: tuple[Rule, ...] = _COMMON_AREA_RULES + (
    Rule("action is required", lambda r: _is_blank_free(r.get("action"))),
    Rule(
        "shape must be one of: " + ", ".join(s.value for s in Shape),
        _one_of("shape", [s.value for s in Shape]),
    ),
    Rule(
        "coordinates must be an array of numbers",
        lambda r: _absent(r, "coordinates") or _number_list(r["coordinates"]),
    ),
    Rule(
        f"polygon requires at least {MIN_POLYGON_POINTS} coordinate pairs",
        _polygon_complete,
    ),
)

HIGHLIGHT_AREA_RULES: tuple[Rule, ...] = _COMMON_AREA_RULES + (
    Rule("color is required", lambda r: _is_blank_free(r.get("color"))),
    Rule("opacity must be a number between 0 and 1", _opacity_in_range),
    Rule(
        "animation must be one of: " + ", ".join(a.value for a in Animation),
        _one_of("animation", [a.value for a in Animation]),
    ),
    Rule("duration must be a non-negative number", _duration_non_negative),
)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _require_record(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedInputError(
            f"{what} must be a record, got {type(value).__name__}"
        )
    return value


def _apply(rules: tuple[Rule, ...], record: Mapping[str, Any]) -> list[str]:
    return [rule.message for rule in rules if not rule.check(record)]


def _validate_areas(
    areas: Any,
    rules: tuple[Rule, ...],
    label: str,
) -> list[str]:
    if not isinstance(areas, list):
        raise MalformedInputError(
            f"{label}s must be an array, got {type(areas).__name__}"
        )
    violations: list[str] = []
    seen_ids: set[str] = set()
    for index, area in enumerate(areas, start=1):
        record = _require_record(area, f"{label} {index}")
        violations.extend(
            f"{label} {index}: {message}" for message in _apply(rules, record)
        )
        area_id = record.get("id")
        if _is_blank_free(area_id):
            if area_id in seen_ids:
                violations.append(f"{label} {index}: duplicate id '{area_id}'")
            seen_ids.add(area_id)
    return violations


def validate_clickable_areas(areas: Any) -> list[str]:
    """Validate a bare list of clickable-area records.

    Args:
        areas: JSON-decoded list of clickable areas.

    Returns:
        Ordered violations; empty when every area is valid.

    Raises:
        MalformedInputError: If *areas* is not a list or an element is
            not a record.
    """
    return _validate_areas(areas, CLICKABLE_AREA_RULES, CLICKABLE_LABEL)


def validate_highlight_areas(areas: Any) -> list[str]:
    """Validate a bare list of highlight-area records.

    Raises:
        MalformedInputError: If *areas* is not a list or an element is
            not a record.
    """
    return _validate_areas(areas, HIGHLIGHT_AREA_RULES, HIGHLIGHT_LABEL)


def validate_interface(payload: Any) -> list[str]:
    """Validate a candidate TV interface payload.

    Args:
        payload: JSON-decoded interface record.

    Returns:
        Ordered violations; empty when the payload is valid.

    Raises:
        MalformedInputError: If *payload* or any region array element
            is not a record.
    """
    record = _require_record(payload, "Interface payload")
    violations = _apply(INTERFACE_RULES, record)

    clickable = record.get("clickable_areas")
    if isinstance(clickable, list):
        violations.extend(validate_clickable_areas(clickable))

    highlight = record.get("highlight_areas")
    if isinstance(highlight, list):
        violations.extend(validate_highlight_areas(highlight))

    return violations


def ensure_valid(payload: Any) -> None:
    """Raise ``ValidationFailure`` if *payload* has any violation.

    Raises:
        ValidationFailure: Carrying the full ordered violation list.
        MalformedInputError: If *payload* cannot be traversed.
    """
    violations = validate_interface(payload)
    if violations:
        raise ValidationFailure(violations)
