"""Client-scoped lifecycle events."""

from .bus import EventBus, EventHandler
from .schemas import (
    AuthFailureEvent,
    AuthRefreshEvent,
    BaseEvent,
    ErrorEvent,
    Event,
    EventKind,
    RateLimitEvent,
    RequestCompleteEvent,
    RequestStartEvent,
)

__all__ = [
    "AuthFailureEvent",
    "AuthRefreshEvent",
    "BaseEvent",
    "ErrorEvent",
    "Event",
    "EventBus",
    "EventHandler",
    "EventKind",
    "RateLimitEvent",
    "RequestCompleteEvent",
    "RequestStartEvent",
]
