import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from lora_connector.connctd import ConnctdClient
from lora_connector.decoders.ldds75 import LDDS75Decoder
from lora_connector.errors import PlatformError

BASE_URL = "https://connectors.example.com/api/v1/"


def _run(handler, call):
    async def go():
        client = ConnctdClient(BASE_URL, transport=httpx.MockTransport(handler))
        try:
            return await call(client)
        finally:
            await client.aclose()

    return asyncio.run(go())


def test_create_thing_posts_camel_case_thing():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "thing-42"})

    thing_id = _run(handler, lambda c: c.create_thing("tok", LDDS75Decoder().describe([])))

    assert thing_id == "thing-42"
    assert seen["method"] == "POST"
    assert seen["url"] == BASE_URL + "connectorhub/callback/instances/things"
    assert seen["auth"] == "Bearer tok"
    thing = seen["body"]["thing"]
    assert thing["mainComponentId"] == "waterlevel"
    assert thing["displayType"] == "SENSOR"
    assert "id" not in thing


def test_update_property_value_puts_value_and_timestamp():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(204)

    ts = datetime(2021, 8, 15, 12, 6, 41, tzinfo=timezone.utc)
    _run(handler, lambda c: c.update_property_value("tok", "thing-1", "battery", "voltage", "3.336000", ts))

    assert seen["method"] == "PUT"
    assert seen["path"] == "/api/v1/connectorhub/callback/instances/things/thing-1/components/battery/properties/voltage"
    assert seen["body"] == {"value": "3.336000", "lastUpdate": "2021-08-15T12:06:41+00:00"}


def test_unexpected_status_is_platform_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "bad_request", "description": "invalid thing"})

    with pytest.raises(PlatformError, match="invalid thing"):
        _run(handler, lambda c: c.create_thing("tok", LDDS75Decoder().describe([])))


def test_missing_thing_id_is_platform_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={})

    with pytest.raises(PlatformError):
        _run(handler, lambda c: c.create_thing("tok", LDDS75Decoder().describe([])))


def test_transport_failure_is_platform_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    ts = datetime.now(timezone.utc)
    with pytest.raises(PlatformError):
        _run(handler, lambda c: c.update_property_value("tok", "t", "c", "p", "1", ts))
