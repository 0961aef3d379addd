"""
Real-time propagation channel.

Publishers emit typed ``RealtimeEvent`` signals on named topics; the channel
delivers each event only to subscribers of that topic. Delivery is
best-effort and at-most-once: a slow subscriber whose queue is full loses
the event, and a client that reconnects gets no backfill. Clients recover
by re-fetching state.

Two backends:
- ``InMemoryRealtimeChannel`` fans out inside one process.
- ``RedisRealtimeChannel`` relays through Redis pub/sub so every worker
  process sees every event.
"""

import asyncio
from collections import defaultdict
from typing import Dict, Iterable, Optional, Set
from uuid import uuid4

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from ..config import RealtimeBackend, settings
from ..logging_config import logger
from ..schemas.realtime import RealtimeEvent


class Subscription:
    """One client's view of the channel: a topic set and a bounded queue."""

    def __init__(self, topics: Iterable[str], max_queue: int):
        self.id = uuid4().hex
        self.topics: Set[str] = set(topics)
        self.queue: "asyncio.Queue[RealtimeEvent]" = asyncio.Queue(maxsize=max_queue)
        self.dropped = 0

    def offer(self, event: RealtimeEvent) -> bool:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                f"Realtime subscriber {self.id} queue full, dropped {event.event.value} on {event.topic}"
            )
            return False
        return True

    async def get(self) -> RealtimeEvent:
        return await self.queue.get()


class RealtimeChannel:
    """Interface shared by the channel backends."""

    async def subscribe(self, topics: Iterable[str]) -> Subscription:
        raise NotImplementedError

    async def add_topics(self, subscription: Subscription, topics: Iterable[str]) -> None:
        raise NotImplementedError

    async def remove_topics(self, subscription: Subscription, topics: Iterable[str]) -> None:
        raise NotImplementedError

    async def unsubscribe(self, subscription: Subscription) -> None:
        raise NotImplementedError

    async def publish(self, event: RealtimeEvent) -> int:
        raise NotImplementedError

    def subscriber_count(self, topic: str) -> int:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class InMemoryRealtimeChannel(RealtimeChannel):
    def __init__(self, max_queue: int = 100):
        self.max_queue = max_queue
        self._subscribers: Dict[str, Set[Subscription]] = defaultdict(set)

    async def subscribe(self, topics: Iterable[str]) -> Subscription:
        subscription = Subscription(topics, self.max_queue)
        for topic in subscription.topics:
            self._subscribers[topic].add(subscription)
        logger.debug(f"Subscription {subscription.id} opened on {sorted(subscription.topics)}")
        return subscription

    async def add_topics(self, subscription: Subscription, topics: Iterable[str]) -> None:
        for topic in topics:
            subscription.topics.add(topic)
            self._subscribers[topic].add(subscription)

    async def remove_topics(self, subscription: Subscription, topics: Iterable[str]) -> None:
        for topic in topics:
            subscription.topics.discard(topic)
            self._detach(topic, subscription)

    async def unsubscribe(self, subscription: Subscription) -> None:
        for topic in list(subscription.topics):
            self._detach(topic, subscription)
        subscription.topics.clear()
        logger.debug(f"Subscription {subscription.id} closed")

    def _detach(self, topic: str, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(topic)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[topic]

    async def publish(self, event: RealtimeEvent) -> int:
        delivered = 0
        for subscription in list(self._subscribers.get(event.topic, ())):
            if subscription.offer(event):
                delivered += 1
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def close(self) -> None:
        self._subscribers.clear()


class RedisRealtimeChannel(RealtimeChannel):
    """
    Relays events through Redis pub/sub. Each process keeps one pub/sub
    connection, subscribed to the union of its local subscribers' topics,
    and fans incoming events out through an in-memory hub.

    Topics whose Redis subscribe failed stay in ``_pending`` and are retried
    on the next subscribe call and from the listener loop.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        max_queue: int = 100,
        client: Optional[redis.Redis] = None,
        retry_delay: float = 1.0,
    ):
        self._redis = client if client is not None else redis.from_url(url, decode_responses=True)
        self._pubsub = self._redis.pubsub()
        self._local = InMemoryRealtimeChannel(max_queue)
        self._topic_refs: Dict[str, int] = defaultdict(int)
        self._pending: Set[str] = set()
        self._retry_delay = retry_delay
        self._listener: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    async def subscribe(self, topics: Iterable[str]) -> Subscription:
        subscription = await self._local.subscribe(topics)
        await self._retain(subscription.topics)
        return subscription

    async def add_topics(self, subscription: Subscription, topics: Iterable[str]) -> None:
        new_topics = set(topics) - subscription.topics
        await self._local.add_topics(subscription, new_topics)
        await self._retain(new_topics)

    async def remove_topics(self, subscription: Subscription, topics: Iterable[str]) -> None:
        held = set(topics) & subscription.topics
        await self._local.remove_topics(subscription, held)
        await self._release(held)

    async def unsubscribe(self, subscription: Subscription) -> None:
        held = set(subscription.topics)
        await self._local.unsubscribe(subscription)
        await self._release(held)

    async def publish(self, event: RealtimeEvent) -> int:
        try:
            return await self._redis.publish(event.topic, event.model_dump_json())
        except (RedisError, OSError) as e:
            logger.warning(f"Realtime publish to {event.topic} failed, live update skipped: {e}")
            return 0

    def subscriber_count(self, topic: str) -> int:
        return self._local.subscriber_count(topic)

    async def _retain(self, topics: Iterable[str]) -> None:
        async with self._lock:
            for topic in topics:
                if self._topic_refs[topic] == 0:
                    self._pending.add(topic)
                self._topic_refs[topic] += 1
            await self._subscribe_pending()
            self._ensure_listener()

    async def _subscribe_pending(self) -> bool:
        """Subscribe every pending topic; caller holds ``_lock``."""
        if not self._pending:
            return True
        topics = sorted(self._pending)
        try:
            await self._pubsub.subscribe(*topics)
        except (RedisError, OSError) as e:
            logger.warning(f"Realtime subscribe to {topics} failed, retrying later: {e}")
            return False
        self._pending.difference_update(topics)
        return True

    async def _release(self, topics: Iterable[str]) -> None:
        async with self._lock:
            stale = []
            for topic in topics:
                self._topic_refs[topic] -= 1
                if self._topic_refs[topic] > 0:
                    continue
                del self._topic_refs[topic]
                if topic in self._pending:
                    self._pending.discard(topic)
                else:
                    stale.append(topic)
            if stale:
                try:
                    await self._pubsub.unsubscribe(*stale)
                except (RedisError, OSError) as e:
                    logger.warning(f"Realtime unsubscribe from {stale} failed: {e}")

    def _ensure_listener(self) -> None:
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self._listen())

    async def _listen(self) -> None:
        while True:
            if self._pending:
                async with self._lock:
                    subscribed = await self._subscribe_pending()
                if not subscribed:
                    await asyncio.sleep(self._retry_delay)
                    continue
            if self._pubsub.connection is None:
                # nothing has subscribed successfully yet
                await asyncio.sleep(self._retry_delay)
                continue
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=1.0
                )
            except (RedisError, OSError, RuntimeError) as e:
                logger.warning(f"Realtime listener lost Redis connection: {e}")
                await asyncio.sleep(self._retry_delay)
                continue
            if not message or message.get("type") != "message":
                continue
            try:
                event = RealtimeEvent.model_validate_json(message["data"])
            except ValidationError as e:
                logger.warning(f"Ignoring malformed realtime event: {e}")
                continue
            await self._local.publish(event)

    async def close(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Realtime listener exited with error: {e}")
            self._listener = None
        await self._local.close()
        self._topic_refs.clear()
        self._pending.clear()
        try:
            await self._pubsub.aclose()
            await self._redis.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Closing Redis realtime connection failed: {e}")


_channel: Optional[RealtimeChannel] = None


def build_realtime_channel() -> RealtimeChannel:
    if settings.REALTIME_BACKEND == RealtimeBackend.REDIS:
        if not settings.REDIS_URL:
            raise ValueError("MESSAGING_SERVICE_REDIS_URL is required for the redis realtime backend")
        logger.info("Using Redis realtime channel")
        return RedisRealtimeChannel(settings.REDIS_URL, settings.REALTIME_QUEUE_SIZE)
    logger.info("Using in-memory realtime channel")
    return InMemoryRealtimeChannel(settings.REALTIME_QUEUE_SIZE)


def get_realtime_channel() -> RealtimeChannel:
    """FastAPI dependency returning the process-wide channel."""
    global _channel
    if _channel is None:
        _channel = build_realtime_channel()
    return _channel


async def close_realtime_channel() -> None:
    global _channel
    if _channel is not None:
        await _channel.close()
        _channel = None
