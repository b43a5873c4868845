"""Identifier and timestamp helpers.

Ids follow the backend's ``<prefix>_<epoch-ms>_<9 base36 chars>`` shape
so that records minted here are indistinguishable from server-minted
ones.
"""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

INTERFACE_ID_PREFIX = "tv_interface"
AREA_ID_PREFIX = "area"


def generate_id(prefix: str) -> str:
    """Return a new unique id with the given prefix."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"{prefix}_{millis}_{suffix}"


def generate_interface_id() -> str:
    return generate_id(INTERFACE_ID_PREFIX)


def generate_area_id() -> str:
    return generate_id(AREA_ID_PREFIX)


def utc_timestamp(moment: datetime | None = None) -> str:
    """Format *moment* (default: now) as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = moment or datetime.now(timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
