from __future__ import annotations

import json

import httpx
import pytest
from pydantic import ValidationError

from idpsync.core.errors import ErrorKind, GatewayProtocolError, GatewayTransportError, classify
from idpsync.gateway.client import IdpGatewayClient
from idpsync.schemas.gateway import ForwardMessage, GatewayAuth, MessagePayload, PollFilter

BASE_URL = "https://gateway.test/GLGW/GWServices_v1/RestMessages.svc/"
AUTH = GatewayAuth(access_id="70000934", password="secret")


def _client(handler) -> IdpGatewayClient:
    return IdpGatewayClient(timeout=5.0, transport=httpx.MockTransport(handler))


def test_return_messages_request_and_parsing() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "ErrorID": 0,
                "More": True,
                "NextStartID": 37730178,
                "NextStartUTC": "2024-03-15 12:10:04",
                "Messages": [
                    {
                        "ID": 37730177,
                        "MobileID": "01174907SKYFDA4",
                        "MessageUTC": "2024-03-15 12:10:00",
                        "ReceiveUTC": "2024-03-15 12:10:03",
                        "SIN": 0,
                        "Payload": {"Name": "replyPosition", "SIN": 0, "MIN": 72, "Fields": []},
                    }
                ],
            },
        )

    client = _client(handler)
    response = client.get_return_messages(AUTH, PollFilter(start_message_id=37730170), BASE_URL)
    client.close()

    [request] = seen
    assert request.url.path.endswith("/RestMessages.svc/get_return_messages.json/")
    assert request.url.params["access_id"] == "70000934"
    assert request.url.params["from_id"] == "37730170"
    assert "start_utc" not in request.url.params
    assert request.url.params["include_raw_payload"] == "true"

    assert response.more is True
    assert response.next_start_id == 37730178
    [message] = response.messages
    assert (message.sin, message.min) == (0, 72)
    assert message.message_utc.tzinfo is not None


def test_forward_statuses_require_time_cursor() -> None:
    client = _client(lambda request: httpx.Response(200, json={"ErrorID": 0}))
    with pytest.raises(ValueError):
        client.get_forward_statuses(AUTH, PollFilter(start_message_id=1), BASE_URL)
    client.close()


def test_submit_messages_posts_wire_payload() -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"ErrorID": 0, "Submissions": [{"ForwardMessageID": 501}]})

    client = _client(handler)
    message = ForwardMessage(
        destination_id="01174907SKYFDA4",
        payload=MessagePayload(name="getLocation", sin=0, min=72, is_forward=True),
    )
    response = client.submit_messages(AUTH, [message], BASE_URL)
    client.close()

    assert bodies[0]["accessID"] == "70000934"
    assert bodies[0]["messages"][0]["Payload"]["MIN"] == 72
    assert response.submissions[0].forward_message_id == 501


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [
        (503, GatewayTransportError),
        (429, GatewayTransportError),
        (404, GatewayProtocolError),
    ],
)
def test_http_errors_are_classified(status_code, expected) -> None:
    client = _client(lambda request: httpx.Response(status_code, text="nope"))
    with pytest.raises(expected) as excinfo:
        client.get_return_messages(AUTH, PollFilter(start_time_utc="2024-03-15 00:00:00"), BASE_URL)
    client.close()

    assert excinfo.value.status_code == status_code


def test_connection_failure_is_transport() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(GatewayTransportError) as excinfo:
        client.get_return_messages(AUTH, PollFilter(start_time_utc="2024-03-15 00:00:00"), BASE_URL)
    client.close()

    assert classify(excinfo.value) is ErrorKind.TRANSPORT


def test_malformed_body_is_fatal() -> None:
    client = _client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(GatewayProtocolError) as excinfo:
        client.get_return_messages(AUTH, PollFilter(start_time_utc="2024-03-15 00:00:00"), BASE_URL)
    client.close()

    assert classify(excinfo.value) is ErrorKind.FATAL
    assert classify(RuntimeError("boom")) is ErrorKind.FATAL


def test_error_descriptions_are_cached_per_gateway() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json=[{"ID": 100, "Name": "ERR_INVALID_ACCESS_ID"}])

    client = _client(handler)
    assert client.describe_error(100, BASE_URL) == "ERR_INVALID_ACCESS_ID"
    assert client.describe_error(7, BASE_URL) == "ERROR_7"
    client.close()

    assert len(calls) == 1
    assert calls[0].endswith("/get_errors.json/")


def test_error_description_falls_back_when_catalog_unavailable() -> None:
    client = _client(lambda request: httpx.Response(500))
    assert client.describe_error(100, BASE_URL) == "ERROR_100"
    client.close()


def test_forward_message_rejects_values_outside_byte_range() -> None:
    with pytest.raises(ValidationError):
        ForwardMessage(destination_id="01174907SKYFDA4", raw_payload=[128, 3, 300])
