"""Redis pub/sub sink — forwards every domain event to the notification layer.

Each event is published twice: on the global channel and on a per-account
channel ("<channel>:account:<id>") when the event concerns a single account,
so the WebSocket gateway can subscribe per connected user.
"""

import json
import logging

import redis.asyncio as aioredis

from src.nb_events.emitter import EventEmitter
from src.nb_events.events import DomainEvent

logger = logging.getLogger(__name__)


class RedisEventSink:
    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    def attach(self, emitter: EventEmitter) -> None:
        emitter.subscribe("*", self.handle)

    def detach(self, emitter: EventEmitter) -> None:
        emitter.unsubscribe("*", self.handle)

    async def handle(self, event: DomainEvent) -> None:
        payload = event.to_payload()
        message = json.dumps(payload, default=str)
        await self._redis.publish(self._channel, message)
        account_id = payload["data"].get("account_id")
        if account_id:
            await self._redis.publish(f"{self._channel}:account:{account_id}", message)
        logger.debug("Forwarded %s to redis channel %s", event.name, self._channel)
