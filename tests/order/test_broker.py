"""Tests for the message broker adapters."""

import json
import logging
from unittest.mock import AsyncMock

import pytest
from order_service.broker import ORDER_EVENTS_CHANNEL, NullBroker, RedisBroker
from order_service.event_bus import EventBus


@pytest.mark.asyncio
async def test_redis_broker_publishes_json_to_channel():
    redis = AsyncMock()
    bus = EventBus(broker=RedisBroker(redis))

    event = await bus.publish("order.created", {"order_id": "o-1"})

    redis.publish.assert_awaited_once()
    channel, message = redis.publish.await_args.args
    assert channel == ORDER_EVENTS_CHANNEL
    assert json.loads(message) == {
        "event_type": "order.created",
        "event_id": event.id,
        "sequence": 1,
        "data": {"order_id": "o-1"},
    }


@pytest.mark.asyncio
async def test_redis_outage_keeps_event_in_log():
    redis = AsyncMock()
    redis.publish.side_effect = ConnectionError("redis down")
    bus = EventBus(broker=RedisBroker(redis))

    event = await bus.publish("order.created", {})

    assert bus.drain() == [event]


@pytest.mark.asyncio
async def test_null_broker_only_logs(caplog):
    bus = EventBus(broker=NullBroker())
    with caplog.at_level(logging.INFO, logger="order_service.broker"):
        await bus.publish("order.created", {})
    assert "not configured" in caplog.text
