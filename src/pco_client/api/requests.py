"""Request and response records passed through the dispatcher."""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field, replace
from typing import Any, Self

import httpx

_request_counter = itertools.count(1)


def new_request_id() -> str:
    """Generate a request id of the form ``req_<epoch_ms>_<counter>``."""
    return f"req_{int(time.time() * 1000)}_{next(_request_counter)}"


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical API call.

    Every attempt of the call (retries, the resend after a token refresh)
    shares ``request_id``. ``endpoint`` is a path relative to the client's
    base URL or an absolute URL.
    """

    method: str
    endpoint: str
    params: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None
    request_id: str = field(default_factory=new_request_id)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())

    @property
    def operation(self) -> str:
        """Metrics key, e.g. ``"GET /people"``."""
        return f"{self.method} {self.endpoint}"

    def follow(self, url: str) -> Self:
        """Descriptor for a follow-up page at ``url``.

        Keeps method, endpoint and headers. Query parameters carried by
        ``url`` override those of this descriptor; a key repeated in ``url``
        becomes a list so every value is sent again. A new request id is
        generated.
        """
        query = httpx.URL(url).params
        overrides: dict[str, Any] = {}
        for key in query.keys():
            values = query.get_list(key)
            overrides[key] = values[0] if len(values) == 1 else values
        return replace(
            self,
            params={**self.params, **overrides},
            request_id=new_request_id(),
        )


@dataclass
class ApiResponse:
    """A successful response.

    ``data`` is the parsed JSON body, or None for empty bodies.
    """

    status: int
    data: Any
    headers: httpx.Headers
    request_id: str
    duration: float = 0.0
    attempts: int = 1

    @property
    def resources(self) -> list[dict[str, Any]]:
        """The JSON:API ``data`` member as a list of resources."""
        if not isinstance(self.data, dict):
            return []
        data = self.data.get("data")
        if data is None:
            return []
        if isinstance(data, list):
            return data
        return [data]

    @property
    def meta(self) -> dict[str, Any]:
        if isinstance(self.data, dict) and isinstance(self.data.get("meta"), dict):
            return self.data["meta"]
        return {}

    @property
    def links(self) -> dict[str, Any]:
        if isinstance(self.data, dict) and isinstance(self.data.get("links"), dict):
            return self.data["links"]
        return {}
