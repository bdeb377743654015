"""
Order Service — message broker contract

The event bus hands every published event to a broker for out-of-process
delivery. Without REDIS_URL the NullBroker only logs; with it, events go
to the `order_events` Redis Pub/Sub channel.

Redis Pub/Sub is fire-and-forget: subscribers that are down miss events.
The in-process event log stays the source of truth for replay.
"""

import json
import logging
from typing import TYPE_CHECKING, Protocol

import redis.asyncio as aioredis

if TYPE_CHECKING:
    from .event_bus import Event

logger = logging.getLogger(__name__)

ORDER_EVENTS_CHANNEL = "order_events"


class MessageBroker(Protocol):
    async def publish(self, event: "Event") -> None: ...


class NullBroker:
    async def publish(self, event: "Event") -> None:
        logger.info(
            "Message broker integration not configured. Event %s (%s) kept in the local queue.",
            event.id,
            event.name,
        )


class RedisBroker:
    def __init__(self, redis: aioredis.Redis, channel: str = ORDER_EVENTS_CHANNEL) -> None:
        self.redis = redis
        self.channel = channel

    async def publish(self, event: "Event") -> None:
        await self.redis.publish(
            self.channel,
            json.dumps(
                {
                    "event_type": event.name,
                    "event_id": event.id,
                    "sequence": event.sequence,
                    "data": event.payload,
                },
                default=str,
            ),
        )
