"""Exception taxonomy for the overlay toolkit.

Every error raised by ``tv_overlay`` derives from ``OverlayError`` so
callers can catch the whole family in one place and translate it into
whatever their transport needs (an HTTP status, a CLI exit code, a form
message).

* ``ValidationFailure`` -- user data is traversable but breaks one or
  more rules.  Carries the complete ordered violation list.
* ``MalformedInputError`` -- the payload cannot be traversed at all
  (not a record, or an array element that is not a record).
* ``InvalidFormatError`` -- an import envelope failed its ``type`` /
  ``data`` check, or the file is not JSON.
* ``NotFoundError`` -- a referenced interface or device does not exist.
* ``DeletionBlockedError`` -- an interface is still referenced by
  diagnostic steps.
* ``ApiError`` -- the backend answered with an unexpected status.
"""

from __future__ import annotations


class OverlayError(Exception):
    """Base class for every toolkit error."""


class ValidationFailure(OverlayError):
    """A payload was rejected by one or more validation rules.

    Attributes:
        violations: Human-readable messages in evaluation order.  The
            list is never truncated so a form can be fixed in one pass.
    """

    def __init__(self, violations: list[str]) -> None:
        self.violations: list[str] = list(violations)
        super().__init__("Validation failed: " + "; ".join(self.violations))


class MalformedInputError(OverlayError):
    """The payload's structure cannot be traversed."""


class InvalidFormatError(OverlayError):
    """An import envelope is not a ``tv_interface`` export."""


class NotFoundError(OverlayError):
    """A referenced entity does not exist.

    Attributes:
        kind: Entity kind, e.g. ``"interface"`` or ``"device"``.
        entity_id: The id that was looked up.
    """

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} '{entity_id}' not found")


class DeletionBlockedError(OverlayError):
    """Deletion refused because diagnostic steps still reference the interface.

    Attributes:
        interface_id: The interface that could not be deleted.
        usage_count: Number of diagnostic steps referencing it.
    """

    def __init__(self, interface_id: str, usage_count: int) -> None:
        self.interface_id = interface_id
        self.usage_count = usage_count
        super().__init__(
            f"Interface '{interface_id}' is used in {usage_count} diagnostic step(s)"
        )


class ApiError(OverlayError):
    """The backend returned an error status the client cannot map.

    Attributes:
        status_code: HTTP status, or 0 when no response was received.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        self.status_code = status_code
        super().__init__(message)
