"""EventEmitter — fire-and-forget fan-out of domain events.

publish() is synchronous from the caller's point of view: it only schedules
delivery. Handlers run in background tasks; a failing handler is logged and
never propagates to the publisher, so a lost notification can never roll back
a committed ledger or bet change.

Example:
    emitter = EventEmitter()
    emitter.subscribe("balance.*", push_to_websocket)
    emitter.publish(BalanceChanged(...))
"""

import asyncio
import fnmatch
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from src.nb_events.events import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], Awaitable[None] | None]


class EventEmitter:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = {}
        self._background_tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, pattern: str, handler: Handler) -> None:
        """Register a sync or async handler for event names matching pattern."""
        handlers = self._subscribers.setdefault(pattern, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, pattern: str, handler: Handler) -> None:
        handlers = self._subscribers.get(pattern)
        if not handlers or handler not in handlers:
            return
        handlers.remove(handler)
        if not handlers:
            del self._subscribers[pattern]

    def publish(self, event: DomainEvent) -> None:
        handlers = [
            h
            for pattern, hs in self._subscribers.items()
            if fnmatch.fnmatchcase(event.name, pattern)
            for h in hs
        ]
        if not handlers:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running loop, dropping event %s", event.name)
            return
        task = loop.create_task(self._deliver(event, handlers))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    def publish_all(self, events: list[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight deliveries (shutdown hook and tests)."""
        if not self._background_tasks:
            return
        pending = list(self._background_tasks)
        await asyncio.wait_for(
            asyncio.gather(*pending, return_exceptions=True), timeout=timeout
        )

    async def _deliver(self, event: DomainEvent, handlers: list[Handler]) -> None:
        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception(
                    "Event handler %s failed for %s",
                    getattr(handler, "__name__", repr(handler)),
                    event.name,
                )


# Process-wide emitter; the app lifespan attaches sinks to it.
event_emitter = EventEmitter()
