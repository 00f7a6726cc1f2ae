"""Tests for the Graph client against a mocked HTTP transport."""

import json
from datetime import date, time

import httpx
import pytest

from leavedesk.integrations.graph import (GraphClient, GraphError,
                                          GraphNotConfigured, GraphSettings)

SETTINGS = GraphSettings(tenant_id="tenant", client_id="client", client_secret="secret")


class Recorder:
    """Routes requests to canned responses and keeps what was sent."""

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/oauth2/v2.0/token"):
            return httpx.Response(200, json={"access_token": "token-1", "expires_in": 3600})
        key = (request.method, request.url.path)
        status, body = self.routes.get(key, (404, None))
        return httpx.Response(status, json=body) if body is not None else httpx.Response(status)

    def calls(self, method: str, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.endswith(suffix)]


def _client(routes: dict) -> tuple[GraphClient, Recorder]:
    recorder = Recorder(routes)
    return GraphClient(SETTINGS, transport=httpx.MockTransport(recorder)), recorder


@pytest.mark.asyncio
async def test_token_is_cached_between_calls():
    client, recorder = _client({("GET", "/v1.0/users/u1/manager"): (200, {"id": "m1", "mail": "m@example.com"})})
    assert (await client.get_user_manager("u1"))["id"] == "m1"
    await client.get_user_manager("u1")
    assert len(recorder.calls("POST", "/token")) == 1
    assert recorder.calls("GET", "/manager")[0].headers["Authorization"] == "Bearer token-1"
    await client.aclose()


@pytest.mark.asyncio
async def test_missing_resource_is_none():
    client, _ = _client({})
    assert await client.get_user_manager("nobody") is None
    assert await client.get_direct_reports("nobody") == []
    await client.aclose()


@pytest.mark.asyncio
async def test_server_error_raises():
    client, _ = _client({("PATCH", "/v1.0/users/u1/mailboxSettings"): (503, {"error": "busy"})})
    with pytest.raises(GraphError) as exc_info:
        await client.set_automatic_replies("u1", {"status": "disabled"})
    assert exc_info.value.status_code == 503
    await client.aclose()


@pytest.mark.asyncio
async def test_unconfigured_client_refuses():
    client = GraphClient(GraphSettings(tenant_id="", client_id="", client_secret=""))
    with pytest.raises(GraphNotConfigured):
        await client.get_user_manager("u1")


@pytest.mark.asyncio
async def test_all_day_event_ends_after_last_day():
    client, recorder = _client({("POST", "/v1.0/users/u1/calendar/events"): (201, {"id": "ev"})})
    await client.create_calendar_event(
        "u1", subject="Urlaub", body="<p>weg</p>", start=date(2024, 6, 10), end=date(2024, 6, 12), is_all_day=True
    )
    event = json.loads(recorder.calls("POST", "/calendar/events")[0].content)
    assert event["start"] == {"dateTime": "2024-06-10T00:00:00", "timeZone": "Europe/Berlin"}
    assert event["end"]["dateTime"] == "2024-06-13T00:00:00"
    assert event["showAs"] == "oof"
    assert event["isAllDay"] is True
    await client.aclose()


@pytest.mark.asyncio
async def test_chat_message_opens_chat_then_posts():
    client, recorder = _client({
        ("POST", "/v1.0/chats"): (201, {"id": "chat-9"}),
        ("POST", "/v1.0/chats/chat-9/messages"): (201, {"id": "msg"}),
    })
    assert await client.send_chat_message("u1", "<p>Hallo</p>") == "chat-9"
    opened = json.loads(recorder.calls("POST", "/chats")[0].content)
    assert opened["chatType"] == "oneOnOne"
    message = json.loads(recorder.calls("POST", "/messages")[0].content)
    assert message["body"]["content"] == "<p>Hallo</p>"
    await client.aclose()


@pytest.mark.asyncio
async def test_chat_without_id_raises():
    client, _ = _client({("POST", "/v1.0/chats"): (201, {})})
    with pytest.raises(GraphError):
        await client.send_chat_message("u1", "<p>Hallo</p>")
    await client.aclose()


@pytest.mark.asyncio
async def test_timed_event_uses_given_hours():
    client, recorder = _client({("POST", "/v1.0/users/u1/calendar/events"): (201, {"id": "ev"})})
    await client.create_calendar_event(
        "u1",
        subject="Urlaub",
        body="",
        start=date(2024, 6, 10),
        end=date(2024, 6, 10),
        is_all_day=False,
        start_time=time(8, 0),
        end_time=time(12, 0),
    )
    event = json.loads(recorder.calls("POST", "/calendar/events")[0].content)
    assert event["start"]["dateTime"] == "2024-06-10T08:00:00"
    assert event["end"]["dateTime"] == "2024-06-10T12:00:00"
    assert event["isAllDay"] is False
    await client.aclose()
