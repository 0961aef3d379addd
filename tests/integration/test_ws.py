"""
Integration tests for the real-time WebSocket endpoint.

These run synchronously through starlette's TestClient; async work such as
schema setup and publishing goes through the client's portal so it runs on
the same event loop as the application.
"""

import uuid

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from messaging_service.schemas.realtime import (
    RealtimeEvent,
    RealtimeEventType,
    conversation_topic,
    user_conversations_topic,
    user_notifications_topic,
)

from tests.conftest import create_schema, drop_schema
from tests.utils.auth import USER_A, USER_B, USER_C, auth_headers, create_user_token

API = "/api/v1"


@pytest.fixture
def live_client(app_overrides):
    with TestClient(app_overrides) as client:
        client.portal.call(create_schema)
        yield client
        client.portal.call(drop_schema)


def _connect(client, user_id):
    return client.websocket_connect(f"{API}/ws/events?token={create_user_token(user_id)}")


def _start_conversation(client, sender, recipient) -> str:
    response = client.post(
        f"{API}/conversations",
        json={"recipients": [str(recipient)], "content": "Morning"},
        headers=auth_headers(sender),
    )
    assert response.status_code == 201
    return response.json()["conversation"]["id"]


def test_rejects_missing_or_invalid_token(live_client):
    with pytest.raises(WebSocketDisconnect) as missing:
        with live_client.websocket_connect(f"{API}/ws/events"):
            pass
    assert missing.value.code == 1008

    with pytest.raises(WebSocketDisconnect) as invalid:
        with live_client.websocket_connect(f"{API}/ws/events?token=not-a-jwt"):
            pass
    assert invalid.value.code == 1008


def test_subscribes_to_user_topics(live_client, channel):
    with _connect(live_client, USER_A) as ws:
        frame = ws.receive_json()
        assert frame == {
            "type": "subscribed",
            "topics": sorted([user_conversations_topic(USER_A), user_notifications_topic(USER_A)]),
        }
        assert channel.subscriber_count(user_conversations_topic(USER_A)) == 1

    assert channel.subscriber_count(user_conversations_topic(USER_A)) == 0
    assert channel.subscriber_count(user_notifications_topic(USER_A)) == 0


def test_accepts_token_in_header(live_client):
    with live_client.websocket_connect(f"{API}/ws/events", headers=auth_headers(USER_B)) as ws:
        assert ws.receive_json()["type"] == "subscribed"


def test_ping_and_bad_frames(live_client):
    with _connect(live_client, USER_A) as ws:
        ws.receive_json()

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}

        ws.send_text("{not json")
        assert ws.receive_json()["code"] == "bad_frame"

        ws.send_json({"type": "shout"})
        assert ws.receive_json()["code"] == "bad_frame"

        ws.send_json({"type": "watch"})
        assert ws.receive_json()["code"] == "bad_frame"


def test_forwards_published_events(live_client, channel):
    with _connect(live_client, USER_A) as ws:
        ws.receive_json()
        row_id = uuid.uuid4()
        event = RealtimeEvent(
            topic=user_notifications_topic(USER_A),
            event=RealtimeEventType.NOTIFICATION_CREATED,
            table="notifications",
            row_id=row_id,
        )

        ws.portal.call(channel.publish, event)

        frame = ws.receive_json()
        assert frame["type"] == "event"
        assert frame["data"]["event"] == "notification.created"
        assert frame["data"]["row_id"] == str(row_id)


def test_new_message_reaches_recipient(live_client):
    with _connect(live_client, USER_B) as ws:
        ws.receive_json()

        conversation_id = _start_conversation(live_client, USER_A, USER_B)

        frame = ws.receive_json()
        assert frame["type"] == "event"
        assert frame["data"]["event"] == "message.created"
        assert frame["data"]["conversation_id"] == conversation_id
        assert frame["data"]["topic"] == user_conversations_topic(USER_B)


def test_watch_and_unwatch_conversation(live_client, channel):
    conversation_id = _start_conversation(live_client, USER_A, USER_B)
    topic = conversation_topic(uuid.UUID(conversation_id))

    with _connect(live_client, USER_B) as ws:
        ws.receive_json()

        ws.send_json({"type": "watch", "conversation_id": conversation_id})
        assert ws.receive_json() == {"type": "watching", "conversation_id": conversation_id}
        assert channel.subscriber_count(topic) == 1

        ws.send_json({"type": "unwatch", "conversation_id": conversation_id})
        assert ws.receive_json() == {"type": "unwatched", "conversation_id": conversation_id}
        assert channel.subscriber_count(topic) == 0


def test_cannot_watch_foreign_conversation(live_client, channel):
    conversation_id = _start_conversation(live_client, USER_A, USER_B)

    with _connect(live_client, USER_C) as ws:
        ws.receive_json()

        ws.send_json({"type": "watch", "conversation_id": conversation_id})
        frame = ws.receive_json()

        assert frame["type"] == "error"
        assert frame["code"] == "conversation_not_found"
        assert channel.subscriber_count(conversation_topic(uuid.UUID(conversation_id))) == 0
