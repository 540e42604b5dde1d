"""PCO client exceptions.

Every failure a caller can observe from the access layer is a
``PcoClientError``. HTTP-level failures are ``PcoApiError`` instances that
carry the JSON:API error list and the rate limit snapshot at failure time.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Self

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

if TYPE_CHECKING:
    from .rate_limit.schemas import RateLimitSnapshot


class Classification(StrEnum):
    """Outcome class of one request attempt."""

    SUCCESS = "success"
    TRANSIENT_NETWORK = "transient_network"
    RATE_LIMITED = "rate_limited"
    AUTH_EXPIRED = "auth_expired"
    SERVER_FAULT = "server_fault"
    CLIENT_FAULT = "client_fault"

    @property
    def retryable(self) -> bool:
        """Whether the retry scheduler may schedule another attempt."""
        return self in (
            Classification.TRANSIENT_NETWORK,
            Classification.RATE_LIMITED,
            Classification.SERVER_FAULT,
        )


class ApiErrorObject(BaseModel):
    """One entry of a JSON:API ``errors`` array."""

    model_config = ConfigDict(extra="allow", frozen=True)

    status: str = ""
    title: str = ""
    detail: Any = None


class PcoClientError(Exception):
    """Base exception for PCO client errors."""

    pass


class ConfigurationError(PcoClientError):
    """Raised when the client cannot be built from the given configuration."""

    pass


class PaginationError(PcoClientError):
    """Raised when a pagination cursor is misused (e.g. consumed twice)."""

    pass


class TokenRefreshError(PcoClientError):
    """Raised when an OAuth refresh flight fails."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class PcoApiError(PcoClientError):
    """A failed request, with the server's structured error list."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        status_text: str = "",
        errors: list[ApiErrorObject] | None = None,
        rate_limit: RateLimitSnapshot | None = None,
        request_id: str | None = None,
        classification: Classification = Classification.CLIENT_FAULT,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.status_text = status_text
        self.errors: list[ApiErrorObject] = list(errors or [])
        self.rate_limit = rate_limit
        self.request_id = request_id
        self.classification = classification

    @property
    def retryable(self) -> bool:
        """Whether this failure class is retryable in principle."""
        return self.classification.retryable

    @classmethod
    def from_response(
        cls,
        response: httpx.Response,
        *,
        classification: Classification,
        rate_limit: RateLimitSnapshot | None = None,
        request_id: str | None = None,
    ) -> PcoApiError:
        """Build the matching error subclass from a non-2xx response.

        The message joins each error's ``detail`` (or ``title``); with no
        structured errors it falls back to the status text.
        """
        status = response.status_code
        status_text = response.reason_phrase or ""
        errors = parse_error_objects(response)

        if errors:
            message = "; ".join(
                str(e.detail) if e.detail is not None else (e.title or "Unknown error")
                for e in errors
            )
        else:
            message = status_text or f"HTTP {status}"

        error_cls = _error_class_for(status, classification)
        return error_cls(
            message,
            status=status,
            status_text=status_text,
            errors=errors,
            rate_limit=rate_limit,
            request_id=request_id,
            classification=classification,
        )

    def to_dict(self) -> dict[str, Any]:
        """Export as a plain dictionary (for logging and batch reports)."""
        return {
            "message": str(self),
            "status": self.status,
            "status_text": self.status_text,
            "classification": self.classification.value,
            "request_id": self.request_id,
            "errors": [e.model_dump(exclude_none=True) for e in self.errors],
        }


class PcoAuthenticationError(PcoApiError):
    """Raised when authentication fails (401, or a failed token refresh)."""

    pass


class PcoNotFoundError(PcoApiError):
    """Raised when a resource is not found (404)."""

    pass


class PcoValidationError(PcoApiError):
    """Raised when the server rejects the request payload (400/422)."""

    pass


class PcoRetryableError(PcoApiError):
    """Base class for failures the dispatcher retries before surfacing.

    Callers only see these once the retry budget is exhausted.
    """

    pass


class PcoRateLimitError(PcoRetryableError):
    """Raised when rate limiting (429) outlasts the retry budget."""

    @property
    def retry_after(self) -> float | None:
        """Server-provided wait hint in seconds, if known."""
        if self.rate_limit is None:
            return None
        return self.rate_limit.retry_after


class PcoServerError(PcoRetryableError):
    """Raised when the server keeps failing (5xx)."""

    pass


class PcoNetworkError(PcoRetryableError):
    """Raised when the transport keeps failing (timeouts, connection errors)."""

    @classmethod
    def from_transport_error(
        cls,
        error: httpx.TransportError,
        *,
        rate_limit: RateLimitSnapshot | None = None,
        request_id: str | None = None,
    ) -> Self:
        """Wrap an httpx transport failure (reported with status 0)."""
        kind = "timed out" if isinstance(error, httpx.TimeoutException) else "failed"
        return cls(
            f"Request {kind}: {error}",
            status=0,
            status_text=type(error).__name__,
            rate_limit=rate_limit,
            request_id=request_id,
            classification=Classification.TRANSIENT_NETWORK,
        )


def parse_error_objects(response: httpx.Response) -> list[ApiErrorObject]:
    """Read the JSON:API ``errors`` array from a response body.

    Bodies that are not JSON, or that carry no list of error objects,
    produce an empty list.
    """
    try:
        payload = response.json()
    except ValueError:
        return []

    raw = payload.get("errors") if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        return []

    errors: list[ApiErrorObject] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            normalized = {
                **item,
                "status": str(item.get("status", "")),
                "title": str(item.get("title", "")),
            }
            errors.append(ApiErrorObject.model_validate(normalized))
        except ValidationError:
            continue
    return errors


def _error_class_for(status: int, classification: Classification) -> type[PcoApiError]:
    if classification is Classification.RATE_LIMITED or status == 429:
        return PcoRateLimitError
    if classification is Classification.SERVER_FAULT or status >= 500:
        return PcoServerError
    if status == 401 or classification is Classification.AUTH_EXPIRED:
        return PcoAuthenticationError
    if status == 404:
        return PcoNotFoundError
    if status in (400, 422):
        return PcoValidationError
    return PcoApiError
