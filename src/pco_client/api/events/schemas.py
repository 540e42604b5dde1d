"""Event records published on a client's event bus."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class EventKind(StrEnum):
    """Lifecycle events a client publishes."""

    ERROR = "error"
    AUTH_FAILURE = "auth-failure"
    AUTH_REFRESH = "auth-refresh"
    REQUEST_START = "request-start"
    REQUEST_COMPLETE = "request-complete"
    RATE_LIMIT = "rate-limit"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class BaseEvent(BaseModel):
    """Fields shared by every event record."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    timestamp: datetime = Field(default_factory=_utc_now)
    request_id: str | None = None


class RequestStartEvent(BaseEvent):
    """An attempt is about to be sent."""

    kind: Literal[EventKind.REQUEST_START] = EventKind.REQUEST_START
    method: str
    endpoint: str
    attempt: int = 1


class RequestCompleteEvent(BaseEvent):
    """A logical request reached its final outcome.

    ``status`` is 0 when the last attempt failed at the transport.
    """

    kind: Literal[EventKind.REQUEST_COMPLETE] = EventKind.REQUEST_COMPLETE
    method: str
    endpoint: str
    status: int
    duration: float = Field(ge=0, description="Seconds since the first attempt")
    attempts: int = 1


class RateLimitEvent(BaseEvent):
    """The server answered 429."""

    kind: Literal[EventKind.RATE_LIMIT] = EventKind.RATE_LIMIT
    endpoint: str
    limit: int | None = None
    count: int | None = None
    period: int | None = None
    retry_after: float | None = None


class ErrorEvent(BaseEvent):
    """A request failed for good."""

    kind: Literal[EventKind.ERROR] = EventKind.ERROR
    error: Any
    method: str | None = None
    endpoint: str | None = None


class AuthFailureEvent(BaseEvent):
    """Authentication failed and could not be recovered by refresh."""

    kind: Literal[EventKind.AUTH_FAILURE] = EventKind.AUTH_FAILURE
    error: Any
    endpoint: str | None = None


class AuthRefreshEvent(BaseEvent):
    """OAuth tokens were refreshed."""

    kind: Literal[EventKind.AUTH_REFRESH] = EventKind.AUTH_REFRESH
    version: int


Event = Annotated[
    RequestStartEvent
    | RequestCompleteEvent
    | RateLimitEvent
    | ErrorEvent
    | AuthFailureEvent
    | AuthRefreshEvent,
    Field(discriminator="kind"),
]
