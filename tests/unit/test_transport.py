"""
Unit tests for the HTTP transport.

Tests cover:
- Status envelope decoding
- Query parameters and raw POST bodies
- Transport failures mapped to TransportError
"""

import httpx
import pytest

from hpce_sdk.errors import TransportError
from hpce_sdk.transport import StoreTransport, base_url


def make_transport(handler) -> StoreTransport:
    return StoreTransport(httpx.Client(transport=httpx.MockTransport(handler)))


class TestStoreTransport:
    """Tests for StoreTransport."""

    def test_get_decodes_status(self):
        def handler(request):
            assert request.url.path == "/itemsize"
            return httpx.Response(200, json={"status": 0, "min": 0, "max": 99})

        response = make_transport(handler).get("http://engine:3000", "/itemsize")

        assert response.ok
        assert response.data["max"] == 99

    def test_get_sends_params(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json={"status": 0, "id": 3})

        make_transport(handler).get(
            "http://engine:3000", "/convert_type", params={"name": "Big Movie", "class": "object"}
        )

        assert seen == {"name": "Big Movie", "class": "object"}

    def test_post_sends_raw_body(self):
        seen = {}

        def handler(request):
            seen["body"] = request.content.decode()
            seen["method"] = request.method
            return httpx.Response(200, json={"status": 0})

        make_transport(handler).post("http://seg0:4000", "/load_data", "[triple(subject(1,2),object(3,4))]")

        assert seen == {"method": "POST", "body": "[triple(subject(1,2),object(3,4))]"}

    def test_non_zero_status_is_not_ok(self):
        response = make_transport(lambda r: httpx.Response(200, json={"status": 3})).get(
            "http://engine:3000", "/save"
        )
        assert not response.ok
        assert response.status == 3

    def test_missing_status_is_failure(self):
        response = make_transport(lambda r: httpx.Response(200, json={})).get(
            "http://engine:3000", "/save"
        )
        assert response.status == -1
        assert not response.ok

    def test_http_error_raises(self):
        transport = make_transport(lambda r: httpx.Response(500, text="boom"))

        with pytest.raises(TransportError) as exc_info:
            transport.get("http://engine:3000", "/segments")
        assert exc_info.value.url == "http://engine:3000/segments"

    def test_connection_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError):
            make_transport(handler).post("http://seg0:4000", "/load_data", "[]")

    def test_invalid_json_raises(self):
        transport = make_transport(lambda r: httpx.Response(200, text="not json"))

        with pytest.raises(TransportError):
            transport.get("http://engine:3000", "/segments")

    def test_non_object_body_raises(self):
        transport = make_transport(lambda r: httpx.Response(200, json=[1, 2]))

        with pytest.raises(TransportError):
            transport.get("http://engine:3000", "/segments")


def test_base_url():
    assert base_url("seg0", 4000) == "http://seg0:4000"
