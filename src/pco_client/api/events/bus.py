"""Client-scoped publish/subscribe for lifecycle events.

Handlers run synchronously, in registration order, inside ``emit``. A
handler that returns a coroutine has it scheduled as a task on the running
loop. A failing handler is logged and never stops delivery to the others.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from pco_client.logging import get_logger

from .schemas import BaseEvent, EventKind

logger = get_logger(__name__)

EventHandler = Callable[[Any], Awaitable[None] | None]


class EventBus:
    """Typed event registry owned by one client.

    Usage:
        bus = EventBus()
        bus.on(EventKind.RATE_LIMIT, lambda event: print(event.retry_after))
        bus.emit(RateLimitEvent(endpoint="/people"))
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[EventHandler]] = {}
        self._handler_tasks: set[asyncio.Task[Any]] = set()  # Prevent task GC

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------
    def on(self, kind: EventKind | str, handler: EventHandler) -> None:
        """Register ``handler`` for ``kind``. Registering twice is a no-op."""
        handlers = self._handlers.setdefault(EventKind(kind), [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, kind: EventKind | str, handler: EventHandler) -> bool:
        """Remove ``handler`` from ``kind``.

        Returns:
            True if the handler was registered
        """
        handlers = self._handlers.get(EventKind(kind))
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self._handlers[EventKind(kind)]
        return True

    def remove_all_listeners(self, kind: EventKind | str | None = None) -> None:
        """Remove every handler for ``kind``, or for all kinds when omitted."""
        if kind is None:
            self._handlers.clear()
        else:
            self._handlers.pop(EventKind(kind), None)

    def listener_count(self, kind: EventKind | str) -> int:
        """Number of handlers registered for ``kind``."""
        return len(self._handlers.get(EventKind(kind), []))

    def event_types(self) -> list[EventKind]:
        """Kinds that currently have at least one handler."""
        return [kind for kind, handlers in self._handlers.items() if handlers]

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------
    def emit(self, event: BaseEvent) -> None:
        """Deliver ``event`` to every handler registered for its kind."""
        kind = EventKind(event.kind)  # type: ignore[attr-defined]
        # Copy so handlers may unregister themselves mid-delivery
        for handler in list(self._handlers.get(kind, [])):
            try:
                result = handler(event)
            except Exception as e:
                logger.error("Event handler for {} failed: {}", kind.value, e)
                continue

            if asyncio.iscoroutine(result):
                self._schedule(kind, result)

    def _schedule(self, kind: EventKind, coro: Any) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("No running loop for async {} handler; skipped", kind.value)
            return

        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)
        task.add_done_callback(lambda t: self._log_task_failure(kind, t))

    @staticmethod
    def _log_task_failure(kind: EventKind, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Async event handler for {} failed: {}", kind.value, error)

    async def drain(self) -> None:
        """Wait for scheduled async handlers to finish."""
        if self._handler_tasks:
            await asyncio.gather(*list(self._handler_tasks), return_exceptions=True)
