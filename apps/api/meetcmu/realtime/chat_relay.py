"""In-process fan-out of new chat messages to open sockets.

Each socket subscribes with its own asyncio queue, bound to the loop that
serves it. Publishers usually run on worker threads (sync routes), so the
hand-over goes through ``loop.call_soon_threadsafe``.
"""
from __future__ import annotations

import asyncio
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


@dataclass(eq=False)
class Subscription:
    event_id: uuid.UUID
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)

    async def get(self) -> dict[str, Any] | None:
        return await self.queue.get()

    def close(self) -> None:
        """Wake the consumer with a ``None`` sentinel."""
        self.loop.call_soon_threadsafe(self.queue.put_nowait, None)


class ChatRelay:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[uuid.UUID, set[Subscription]] = defaultdict(set)

    def subscribe(self, event_id: uuid.UUID) -> Subscription:
        sub = Subscription(event_id=event_id, loop=asyncio.get_running_loop())
        with self._lock:
            self._subscribers[event_id].add(sub)
        logger.debug("chat_subscribed", event_id=str(event_id))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subscribers.get(sub.event_id)
            if subs is None:
                return
            subs.discard(sub)
            if not subs:
                del self._subscribers[sub.event_id]
        logger.debug("chat_unsubscribed", event_id=str(sub.event_id))

    def subscriber_count(self, event_id: uuid.UUID) -> int:
        with self._lock:
            return len(self._subscribers.get(event_id, ()))

    def publish(self, event_id: uuid.UUID, payload: dict[str, Any]) -> int:
        with self._lock:
            subs = list(self._subscribers.get(event_id, ()))

        delivered = 0
        for sub in subs:
            try:
                sub.loop.call_soon_threadsafe(sub.queue.put_nowait, payload)
                delivered += 1
            except RuntimeError:
                # Loop already closed; the socket is gone.
                self.unsubscribe(sub)
        return delivered


chat_relay = ChatRelay()
