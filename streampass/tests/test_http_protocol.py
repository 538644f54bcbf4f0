"""Tests for the HTTP streaming protocol client."""

import httpx
import pytest

from streampass.core.errors import FlowNotFoundError, StreamingProtocolError
from streampass.features.streams.http_client import HttpStreamingProtocol


def make_protocol(handler):
    client = httpx.Client(base_url="http://gateway.test", transport=httpx.MockTransport(handler))
    return HttpStreamingProtocol(client=client)


def test_get_flow_parses_decimal_rate():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        return httpx.Response(200, json={"flow_rate": str(3 * 10**30)})

    flow = make_protocol(handler).get_flow("fDAIx", "user1", "streampass")

    assert seen["path"] == "/v1/flows/fDAIx/user1/streampass"
    assert flow.flow_rate == 3 * 10**30
    assert flow.exists


def test_get_flow_missing_is_zero_rate():
    flow = make_protocol(lambda request: httpx.Response(404)).get_flow("fDAIx", "user1", "streampass")

    assert flow.flow_rate == 0
    assert not flow.exists


def test_get_flow_server_error_raises():
    protocol = make_protocol(lambda request: httpx.Response(500))

    with pytest.raises(StreamingProtocolError):
        protocol.get_flow("fDAIx", "user1", "streampass")


def test_get_flow_malformed_payload_raises():
    protocol = make_protocol(lambda request: httpx.Response(200, json={"rate": 1}))

    with pytest.raises(StreamingProtocolError):
        protocol.get_flow("fDAIx", "user1", "streampass")


def test_transport_failure_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    protocol = make_protocol(handler)

    with pytest.raises(StreamingProtocolError):
        protocol.get_flow("fDAIx", "user1", "streampass")
    with pytest.raises(StreamingProtocolError):
        protocol.delete_flow("fDAIx", "user1", "streampass")


def test_delete_flow_sends_delete():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        return httpx.Response(204)

    make_protocol(handler).delete_flow("fDAIx", "user1", "streampass")

    assert seen == {"method": "DELETE", "path": "/v1/flows/fDAIx/user1/streampass"}


def test_delete_missing_flow_raises_not_found():
    protocol = make_protocol(lambda request: httpx.Response(404))

    with pytest.raises(FlowNotFoundError):
        protocol.delete_flow("fDAIx", "user1", "streampass")


def test_missing_base_url_rejected(monkeypatch):
    from streampass.core.config import settings

    monkeypatch.setattr(settings, "STREAM_PROTOCOL_URL", None)

    with pytest.raises(StreamingProtocolError):
        HttpStreamingProtocol()
