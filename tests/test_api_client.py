"""Unit tests for tv_overlay.core.api_client.OverlayApiClient.

All HTTP traffic goes through ``httpx.MockTransport`` handlers, so no
network access is needed.  Back-off delays are set to zero.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import patch

import httpx
import pytest

from tv_overlay.config.settings import Settings
from tv_overlay.core.api_client import OverlayApiClient
from tv_overlay.models.errors import (
    ApiError,
    InvalidFormatError,
    NotFoundError,
    ValidationFailure,
)
from tv_overlay.models.interface import InterfaceType

BASE_URL = "http://backend.test/api"

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _make_settings(**overrides: Any) -> Settings:
    """Return Settings with zero back-off so retry tests run instantly."""
    defaults: dict[str, Any] = {
        "api_base_url": BASE_URL,
        "api_max_retries": 3,
        "api_backoff_base_seconds": 0.0,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _make_row(interface_id: str = "tv_interface_1", **overrides: Any) -> dict[str, Any]:
    """A backend row as returned by the REST API (JSON columns as strings)."""
    row: dict[str, Any] = {
        "id": interface_id,
        "device_id": "device_1",
        "name": "Home",
        "description": "",
        "type": "home",
        "clickable_areas": json.dumps(
            [
                {
                    "id": "a1",
                    "name": "Live TV",
                    "position": {"x": 20, "y": 20},
                    "size": {"width": 200, "height": 120},
                    "action": "navigate",
                }
            ]
        ),
        "highlight_areas": "[]",
        "responsive": False,
        "breakpoints": None,
        "is_active": True,
        "metadata": None,
        "created_at": "2024-01-01T00:00:00.000Z",
        "updated_at": "2024-01-01T00:00:00.000Z",
        "device": {"id": "device_1", "name": "Model X"},
    }
    row.update(overrides)
    return row


def _ok(data: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json={"success": True, "data": data})


def _make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    **settings_overrides: Any,
) -> OverlayApiClient:
    return OverlayApiClient(
        _make_settings(**settings_overrides),
        transport=httpx.MockTransport(handler),
    )


class _Recorder:
    """Transport handler that records requests and replays responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]


# ==================================================================
# Reads
# ==================================================================


class TestReads:
    def test_get_interface_decodes_row(self) -> None:
        recorder = _Recorder(_ok(_make_row()))
        with _make_client(recorder) as client:
            interface = client.get_interface("tv_interface_1")

        assert interface.id == "tv_interface_1"
        assert interface.clickable_areas[0].name == "Live TV"
        assert interface.metadata == {}
        assert recorder.requests[0].url.path == "/api/tv-interfaces/tv_interface_1"
        assert recorder.requests[0].headers["accept"] == "application/json"

    def test_list_sends_filters(self) -> None:
        recorder = _Recorder(_ok([_make_row("i1"), _make_row("i2", name="Apps", type="apps")]))
        with _make_client(recorder) as client:
            page = client.list_interfaces(
                device_id="device_1",
                interface_type="home",
                search="",
                is_active=False,
                limit=10,
                offset=20,
            )

        assert [i.id for i in page.items] == ["i1", "i2"]
        assert page.total == 2
        assert page.limit == 10
        assert page.offset == 20
        params = recorder.requests[0].url.params
        assert params["device_id"] == "device_1"
        assert params["type"] == "home"
        assert params["is_active"] == "false"
        assert params["limit"] == "10"
        assert params["offset"] == "20"

    def test_list_reads_pagination_block(self) -> None:
        body = {
            "success": True,
            "data": [_make_row("i1"), _make_row("i2", name="Apps", type="apps")],
            "pagination": {"total": 5, "limit": 2, "offset": 0, "hasMore": True},
        }
        recorder = _Recorder(httpx.Response(200, json=body))
        with _make_client(recorder) as client:
            page = client.list_interfaces(limit=2)

        assert len(page.items) == 2
        assert page.total == 5
        assert page.limit == 2
        assert page.offset == 0
        assert page.has_more

    def test_list_last_page_has_no_more(self) -> None:
        body = {
            "success": True,
            "data": [_make_row("i5")],
            "pagination": {"total": 5, "limit": 2, "offset": 4, "hasMore": False},
        }
        recorder = _Recorder(httpx.Response(200, json=body))
        with _make_client(recorder) as client:
            page = client.list_interfaces(limit=2, offset=4)

        assert [i.id for i in page.items] == ["i5"]
        assert not page.has_more

    def test_list_without_pagination_spans_items(self) -> None:
        recorder = _Recorder(_ok([_make_row("i1")]))
        with _make_client(recorder) as client:
            page = client.list_interfaces()

        assert page.total == 1
        assert page.limit == 1
        assert page.offset == 0
        assert not page.has_more
        assert "search" not in params

    def test_get_by_device_unknown_device(self) -> None:
        recorder = _Recorder(httpx.Response(404, json={"success": False, "message": "Device not found"}))
        with _make_client(recorder) as client:
            with pytest.raises(NotFoundError) as exc_info:
                client.get_by_device("device_9")
        assert exc_info.value.kind == "device"
        assert exc_info.value.entity_id == "device_9"

    def test_get_by_type_accepts_enum(self) -> None:
        recorder = _Recorder(_ok([]))
        with _make_client(recorder) as client:
            assert client.get_by_type(InterfaceType.NO_SIGNAL) == []
        assert recorder.requests[0].url.path == "/api/tv-interfaces/type/no-signal"

    def test_not_found(self) -> None:
        recorder = _Recorder(httpx.Response(404, json={"success": False, "error": "not found"}))
        with _make_client(recorder) as client:
            with pytest.raises(NotFoundError, match="Interface 'missing' not found"):
                client.get_interface("missing")


# ==================================================================
# Mutations
# ==================================================================


class TestMutations:
    def test_create_validates_locally(self) -> None:
        recorder = _Recorder(_ok(_make_row(), 201))
        with _make_client(recorder) as client:
            with pytest.raises(ValidationFailure) as exc_info:
                client.create_interface({"name": "", "type": "bogus"})
        assert len(exc_info.value.violations) == 2
        assert recorder.requests == []

    def test_create_posts_payload(self) -> None:
        recorder = _Recorder(_ok(_make_row(), 201))
        with _make_client(recorder) as client:
            interface = client.create_interface({"name": "Home", "type": "home"})

        assert interface.name == "Home"
        request = recorder.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"name": "Home", "type": "home"}

    def test_update_uses_put(self) -> None:
        recorder = _Recorder(_ok(_make_row(description="New")))
        with _make_client(recorder) as client:
            interface = client.update_interface(
                "tv_interface_1", {"name": "Home", "type": "home", "description": "New"}
            )
        assert interface.description == "New"
        assert recorder.requests[0].method == "PUT"

    def test_server_validation_message_surfaced(self) -> None:
        recorder = _Recorder(
            httpx.Response(400, json={"success": False, "message": "Name is required"})
        )
        with _make_client(recorder) as client:
            with pytest.raises(ValidationFailure) as exc_info:
                client.create_interface({"name": "Home", "type": "home"})
        assert exc_info.value.violations == ["Name is required"]

    def test_delete_blocked_is_validation_failure(self) -> None:
        recorder = _Recorder(
            httpx.Response(
                400,
                json={"success": False, "error": "Interface is used in 2 diagnostic step(s)"},
            )
        )
        with _make_client(recorder) as client:
            with pytest.raises(ValidationFailure, match="2 diagnostic step"):
                client.delete_interface("tv_interface_1")

    def test_delete_success(self) -> None:
        recorder = _Recorder(httpx.Response(200, json={"success": True, "message": "deleted"}))
        with _make_client(recorder) as client:
            client.delete_interface("tv_interface_1")
        assert recorder.requests[0].method == "DELETE"

    def test_duplicate_sends_name(self) -> None:
        recorder = _Recorder(_ok(_make_row("tv_interface_2", name="Home v2"), 201))
        with _make_client(recorder) as client:
            copy = client.duplicate_interface("tv_interface_1", "Home v2")
        assert copy.name == "Home v2"
        assert recorder.requests[0].url.path.endswith("/tv_interface_1/duplicate")
        assert json.loads(recorder.requests[0].content) == {"name": "Home v2"}

    def test_toggle_uses_patch(self) -> None:
        recorder = _Recorder(_ok(_make_row(is_active=False)))
        with _make_client(recorder) as client:
            assert client.toggle_status("tv_interface_1").is_active is False
        assert recorder.requests[0].method == "PATCH"


# ==================================================================
# Export / import
# ==================================================================


class TestExportImport:
    def test_export_returns_envelope(self) -> None:
        envelope = {"version": "1.0", "type": "tv_interface", "data": {"name": "Home"}}
        recorder = _Recorder(_ok(_make_row()), httpx.Response(200, json=envelope))
        with _make_client(recorder) as client:
            assert client.export_interface("tv_interface_1") == envelope
        assert [r.url.path for r in recorder.requests] == [
            "/api/tv-interfaces/tv_interface_1",
            "/api/tv-interfaces/tv_interface_1/export",
        ]

    def test_export_unknown_id_is_not_found(self) -> None:
        recorder = _Recorder(httpx.Response(404, json={"success": False, "error": "not found"}))
        with _make_client(recorder) as client:
            with pytest.raises(NotFoundError, match="Interface 'missing' not found"):
                client.export_interface("missing")
        assert len(recorder.requests) == 1

    def test_import_rejects_bad_envelope_locally(self) -> None:
        recorder = _Recorder(_ok(_make_row()))
        with _make_client(recorder) as client:
            with pytest.raises(InvalidFormatError):
                client.import_interface({"type": "device", "data": {}})
        assert recorder.requests == []

    def test_import_posts_envelope(self) -> None:
        recorder = _Recorder(_ok(_make_row("tv_interface_9", name="Home (imported)"), 201))
        envelope = {"version": "1.0", "type": "tv_interface", "data": {"name": "Home", "type": "home"}}
        with _make_client(recorder) as client:
            imported = client.import_interface(envelope)
        assert imported.name == "Home (imported)"
        assert recorder.requests[0].url.path == "/api/tv-interfaces/import"


# ==================================================================
# Retries
# ==================================================================


class TestRetries:
    def test_retries_server_errors_then_succeeds(self) -> None:
        recorder = _Recorder(
            httpx.Response(503, text="unavailable"),
            httpx.Response(500, text="boom"),
            _ok(_make_row()),
        )
        with _make_client(recorder) as client:
            assert client.get_interface("tv_interface_1").id == "tv_interface_1"
        assert len(recorder.requests) == 3

    def test_gives_up_after_max_retries(self) -> None:
        recorder = _Recorder(httpx.Response(502, text="bad gateway"))
        with _make_client(recorder, api_max_retries=2) as client:
            with pytest.raises(ApiError) as exc_info:
                client.get_interface("tv_interface_1")
        assert exc_info.value.status_code == 502
        assert len(recorder.requests) == 2

    def test_transport_error_retried(self) -> None:
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return _ok(_make_row())

        with _make_client(handler) as client:
            assert client.get_interface("tv_interface_1").name == "Home"
        assert len(calls) == 2

    def test_client_errors_not_retried(self) -> None:
        recorder = _Recorder(httpx.Response(409, json={"success": False, "error": "conflict"}))
        with _make_client(recorder) as client:
            with pytest.raises(ApiError) as exc_info:
                client.get_interface("tv_interface_1")
        assert exc_info.value.status_code == 409
        assert len(recorder.requests) == 1

    def test_backoff_is_exponential(self) -> None:
        recorder = _Recorder(httpx.Response(500, text="boom"))
        with _make_client(recorder, api_backoff_base_seconds=0.5) as client:
            with patch("tv_overlay.core.api_client.time.sleep") as mock_sleep:
                with pytest.raises(ApiError):
                    client.get_interface("tv_interface_1")
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]
