from __future__ import annotations

import asyncio
import json
from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .. import crud
from ..db import get_session_factory
from ..exceptions import MessagingError
from ..logging_config import logger
from ..schemas.realtime import (
    conversation_topic,
    user_conversations_topic,
    user_notifications_topic,
)
from ..security import AuthError, decode_any_jwt, parse_bearer
from ..services.realtime import RealtimeChannel, Subscription, get_realtime_channel

ws_router = APIRouter(prefix="/ws", tags=["WebSocket"])

POLICY_VIOLATION = 1008


def _authenticate(websocket: WebSocket) -> UUID | None:
    token = parse_bearer(websocket.headers, websocket.query_params)
    if not token:
        return None
    try:
        claims = decode_any_jwt(token)
        return UUID(str(claims["sub"]))
    except (AuthError, KeyError, ValueError) as e:
        logger.info(f"WebSocket authentication failed: {e}")
        return None


async def _forward_events(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        event = await subscription.get()
        try:
            await websocket.send_json({"type": "event", "data": event.model_dump(mode="json")})
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"Stopped forwarding to subscription {subscription.id}: {e}")
            return


async def _stop_forwarder(forwarder: asyncio.Task) -> None:
    """Cancel the forwarding task and wait for it to finish."""
    forwarder.cancel()
    await asyncio.wait([forwarder])
    if not forwarder.cancelled() and forwarder.exception() is not None:
        logger.warning(f"Event forwarder failed: {forwarder.exception()!r}")


async def _handle_frame(
    websocket: WebSocket,
    channel: RealtimeChannel,
    subscription: Subscription,
    session_factory: async_sessionmaker[AsyncSession],
    user_id: UUID,
    raw: str,
) -> None:
    try:
        frame = json.loads(raw)
        frame_type = frame["type"]
    except (ValueError, KeyError, TypeError):
        await websocket.send_json({"type": "error", "code": "bad_frame", "detail": "Malformed frame"})
        return

    if frame_type == "ping":
        await websocket.send_json({"type": "pong"})
        return

    if frame_type not in ("watch", "unwatch"):
        await websocket.send_json(
            {"type": "error", "code": "bad_frame", "detail": f"Unknown frame type '{frame_type}'"}
        )
        return

    try:
        conversation_id = UUID(str(frame["conversation_id"]))
    except (KeyError, ValueError):
        await websocket.send_json(
            {"type": "error", "code": "bad_frame", "detail": "conversation_id is required"}
        )
        return

    topic = conversation_topic(conversation_id)
    if frame_type == "unwatch":
        await channel.remove_topics(subscription, [topic])
        await websocket.send_json({"type": "unwatched", "conversation_id": str(conversation_id)})
        return

    try:
        async with session_factory() as db:
            await crud.get_conversation_for_participant(db, conversation_id, user_id)
    except MessagingError as e:
        await websocket.send_json({"type": "error", "code": e.code, "detail": e.detail})
        return

    await channel.add_topics(subscription, [topic])
    await websocket.send_json({"type": "watching", "conversation_id": str(conversation_id)})


@ws_router.websocket("/events")
async def events_websocket(
    websocket: WebSocket,
    channel: RealtimeChannel = Depends(get_realtime_channel),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """
    Live "something changed" signals for the authenticated user.

    The connection is subscribed to the user's conversation-list and
    notification topics; clients may also watch an open conversation.
    Events are re-fetch signals delivered at most once.
    """
    # Enforce JWT auth before accepting the connection
    user_id = _authenticate(websocket)
    if user_id is None:
        await websocket.close(code=POLICY_VIOLATION)
        return

    await websocket.accept()
    subscription = await channel.subscribe(
        [user_conversations_topic(user_id), user_notifications_topic(user_id)]
    )
    forwarder = None
    try:
        await websocket.send_json({"type": "subscribed", "topics": sorted(subscription.topics)})
        forwarder = asyncio.create_task(_forward_events(websocket, subscription))
        while True:
            raw = await websocket.receive_text()
            await _handle_frame(websocket, channel, subscription, session_factory, user_id, raw)
    except WebSocketDisconnect:
        logger.info(f"WebSocket for user {user_id} disconnected")
    finally:
        if forwarder is not None:
            await _stop_forwarder(forwarder)
        await channel.unsubscribe(subscription)
