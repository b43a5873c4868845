"""Synchronous client for the support backend's TV interface REST API.

Wraps the ``/tv-interfaces`` endpoints of the backend and converts
between its JSON envelopes (``{"success": ..., "data": ...}``) and typed
``TVInterface`` objects.  HTTP statuses are mapped back into the
toolkit's error taxonomy:

* 404 -> ``NotFoundError``
* 400 -> ``ValidationFailure`` carrying the server's message
* other non-2xx -> ``ApiError``

Transient failures (5xx and transport errors) are retried with
exponential back-off as configured in ``Settings``.  Payloads are
validated locally before create/update so that obviously broken forms
never reach the network.

Typical usage::

    from tv_overlay.config.settings import get_default_settings
    from tv_overlay.core.api_client import OverlayApiClient

    with OverlayApiClient(get_default_settings()) as client:
        home = client.create_interface({"name": "Home", "type": "home"})
        envelope = client.export_interface(home.id)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from tv_overlay.config.settings import Settings, get_default_settings
from tv_overlay.core.interface_registry import Page
from tv_overlay.core.record_mapper import from_record
from tv_overlay.core.serialization import ENVELOPE_TYPE
from tv_overlay.core.validator import ensure_valid
from tv_overlay.models.errors import (
    ApiError,
    InvalidFormatError,
    NotFoundError,
    ValidationFailure,
)
from tv_overlay.models.interface import InterfaceType, TVInterface

logger = logging.getLogger(__name__)

_RESOURCE = "/tv-interfaces"


class OverlayApiClient:
    """HTTP client for TV interface CRUD, export and import.

    Args:
        settings: Supplies the base URL, timeout and retry policy.
        base_url: Overrides ``settings.api_base_url``.
        transport: Optional ``httpx`` transport, e.g.
            ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        base_url: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_default_settings()
        self._client = httpx.Client(
            base_url=(base_url or self._settings.api_base_url).rstrip("/"),
            timeout=httpx.Timeout(self._settings.api_timeout_seconds, connect=10.0),
            headers={"accept": "application/json"},
            transport=transport,
        )

    # -- Context management -----------------------------------------

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    def __enter__(self) -> OverlayApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- Listing & lookup -------------------------------------------

    def list_interfaces(
        self,
        device_id: str | None = None,
        interface_type: str | None = None,
        search: str | None = None,
        is_active: bool | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Page:
        """Fetch one page of interfaces matching the filters.

        Returns:
            A ``Page`` built from the response's ``pagination`` block.
            When the backend omits it, the page spans exactly the
            returned items.
        """
        params: dict[str, str] = {}
        for key, value in (
            ("device_id", device_id),
            ("type", interface_type),
            ("search", search),
            ("limit", limit),
            ("offset", offset),
        ):
            if value not in (None, ""):
                params[key] = str(value)
        if is_active is not None:
            params["is_active"] = "true" if is_active else "false"

        body = self._request("GET", _RESOURCE, params=params)
        items = [from_record(item) for item in body.get("data") or []]
        pagination = body.get("pagination")
        if not isinstance(pagination, Mapping):
            pagination = {}
        return Page(
            items=items,
            total=int(pagination.get("total", len(items))),
            limit=int(pagination.get("limit", limit if limit is not None else len(items))),
            offset=int(pagination.get("offset", offset or 0)),
        )

    def get_interface(self, interface_id: str) -> TVInterface:
        """Fetch a single interface.

        Raises:
            NotFoundError: If the backend does not know *interface_id*.
        """
        body = self._request("GET", f"{_RESOURCE}/{interface_id}", kind="interface",
                             entity_id=interface_id)
        return from_record(body["data"])

    def get_by_device(self, device_id: str) -> list[TVInterface]:
        """Fetch the active interfaces of a device.

        Raises:
            NotFoundError: If the device does not exist.
        """
        body = self._request("GET", f"{_RESOURCE}/device/{device_id}", kind="device",
                             entity_id=device_id)
        return [from_record(item) for item in body.get("data") or []]

    def get_by_type(self, interface_type: InterfaceType | str) -> list[TVInterface]:
        """Fetch the active interfaces of a type."""
        value = interface_type.value if isinstance(interface_type, InterfaceType) else interface_type
        body = self._request("GET", f"{_RESOURCE}/type/{value}")
        return [from_record(item) for item in body.get("data") or []]

    # -- Mutations ----------------------------------------------------

    def create_interface(self, payload: Mapping[str, Any]) -> TVInterface:
        """Validate *payload* locally, then create it on the backend.

        Raises:
            ValidationFailure: From local validation or a 400 response.
        """
        ensure_valid(payload)
        body = self._request("POST", _RESOURCE, json=dict(payload))
        return from_record(body["data"])

    def update_interface(
        self,
        interface_id: str,
        payload: Mapping[str, Any],
    ) -> TVInterface:
        """Validate and send a full interface update.

        Raises:
            ValidationFailure: From local validation or a 400 response.
            NotFoundError: If the backend does not know *interface_id*.
        """
        ensure_valid(payload)
        body = self._request("PUT", f"{_RESOURCE}/{interface_id}", json=dict(payload),
                             kind="interface", entity_id=interface_id)
        return from_record(body["data"])

    def delete_interface(self, interface_id: str) -> None:
        """Delete an interface.

        The backend answers 400 while diagnostic steps reference the
        interface; that surfaces as ``ValidationFailure``.
        """
        self._request("DELETE", f"{_RESOURCE}/{interface_id}", kind="interface",
                      entity_id=interface_id)

    def duplicate_interface(self, interface_id: str, name: str | None = None) -> TVInterface:
        body = self._request("POST", f"{_RESOURCE}/{interface_id}/duplicate",
                             json={"name": name}, kind="interface", entity_id=interface_id)
        return from_record(body["data"])

    def toggle_status(self, interface_id: str) -> TVInterface:
        body = self._request("PATCH", f"{_RESOURCE}/{interface_id}/toggle",
                             kind="interface", entity_id=interface_id)
        return from_record(body["data"])

    # -- Export / import ----------------------------------------------

    def export_interface(self, interface_id: str) -> dict[str, Any]:
        """Download the export envelope of an interface.

        The backend's export endpoint answers an unknown id with 500,
        so the interface is looked up first.

        Raises:
            NotFoundError: If the backend does not know *interface_id*.
        """
        self.get_interface(interface_id)
        return self._request("GET", f"{_RESOURCE}/{interface_id}/export",
                             kind="interface", entity_id=interface_id)

    def import_interface(self, envelope: Mapping[str, Any]) -> TVInterface:
        """Upload an export envelope and return the created interface.

        Raises:
            InvalidFormatError: If the envelope fails the local
                ``type`` / ``data`` check.
        """
        if envelope.get("type") != ENVELOPE_TYPE or not isinstance(envelope.get("data"), Mapping):
            raise InvalidFormatError("Invalid import file format")
        body = self._request("POST", f"{_RESOURCE}/import", json=dict(envelope))
        return from_record(body["data"])

    # -- Transport ----------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        kind: str = "resource",
        entity_id: str = "",
    ) -> dict[str, Any]:
        """Send a request with retries and map the response.

        Returns:
            The decoded JSON body of a 2xx response.
        """
        retries = max(1, self._settings.api_max_retries)
        last_error = ""
        last_status = 0
        for attempt in range(retries):
            try:
                response = self._client.request(method, path, params=params, json=json)
            except httpx.HTTPError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning(
                    "API %s %s: attempt %d/%d error: %s",
                    method, path, attempt + 1, retries, last_error,
                )
            else:
                if response.is_success:
                    return response.json()
                if response.status_code < 500:
                    self._raise_for_client_error(response, kind, entity_id)
                last_status = response.status_code
                last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                logger.warning(
                    "API %s %s: attempt %d/%d failed: %s",
                    method, path, attempt + 1, retries, last_error,
                )

            if attempt < retries - 1:
                time.sleep(self._settings.api_backoff_base_seconds * (2**attempt))

        raise ApiError(
            f"{method} {path} failed after {retries} attempt(s): {last_error}",
            status_code=last_status,
        )

    @staticmethod
    def _raise_for_client_error(
        response: httpx.Response,
        kind: str,
        entity_id: str,
    ) -> None:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = str(body.get("message") or body.get("error") or response.text[:200])

        if response.status_code == 404:
            raise NotFoundError(kind, entity_id)
        if response.status_code == 400:
            raise ValidationFailure([message])
        raise ApiError(
            f"HTTP {response.status_code}: {message}",
            status_code=response.status_code,
        )
