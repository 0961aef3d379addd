"""
Unit tests for the task that forwards channel events onto a WebSocket.
"""

import asyncio
import uuid

import pytest

from messaging_service.routers.ws_router import _forward_events, _stop_forwarder
from messaging_service.schemas.realtime import (
    RealtimeEvent,
    RealtimeEventType,
    user_notifications_topic,
)
from messaging_service.services.realtime import InMemoryRealtimeChannel

from tests.utils.auth import USER_A


class RecordingWebSocket:
    def __init__(self, error: Exception = None):
        self.sent = []
        self.error = error

    async def send_json(self, data):
        if self.error is not None:
            raise self.error
        self.sent.append(data)


def _event() -> RealtimeEvent:
    return RealtimeEvent(
        topic=user_notifications_topic(USER_A),
        event=RealtimeEventType.NOTIFICATION_CREATED,
        table="notifications",
        row_id=uuid.uuid4(),
    )


@pytest.mark.asyncio
async def test_stop_forwarder_waits_for_idle_task():
    channel = InMemoryRealtimeChannel()
    subscription = await channel.subscribe([user_notifications_topic(USER_A)])
    websocket = RecordingWebSocket()
    forwarder = asyncio.create_task(_forward_events(websocket, subscription))

    await channel.publish(_event())
    await asyncio.sleep(0)
    await _stop_forwarder(forwarder)

    assert forwarder.done()
    assert forwarder.cancelled()
    assert [frame["type"] for frame in websocket.sent] == ["event"]


@pytest.mark.asyncio
async def test_stop_forwarder_absorbs_send_failure():
    """A forwarder that died on an unexpected send error is reaped without raising."""
    channel = InMemoryRealtimeChannel()
    subscription = await channel.subscribe([user_notifications_topic(USER_A)])
    forwarder = asyncio.create_task(
        _forward_events(RecordingWebSocket(error=ValueError("not serializable")), subscription)
    )

    await channel.publish(_event())
    await asyncio.wait([forwarder])
    assert isinstance(forwarder.exception(), ValueError)

    await _stop_forwarder(forwarder)
    assert forwarder.done()


@pytest.mark.asyncio
async def test_forwarder_ends_when_socket_closes():
    channel = InMemoryRealtimeChannel()
    subscription = await channel.subscribe([user_notifications_topic(USER_A)])
    forwarder = asyncio.create_task(
        _forward_events(RecordingWebSocket(error=RuntimeError("socket closed")), subscription)
    )

    await channel.publish(_event())
    await asyncio.wait_for(forwarder, timeout=1.0)

    await _stop_forwarder(forwarder)
    assert not forwarder.cancelled()
