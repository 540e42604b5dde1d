"""Tests for the PCO error model."""

import httpx
import pytest

from pco_client.api.exceptions import (
    Classification,
    PcoApiError,
    PcoAuthenticationError,
    PcoClientError,
    PcoNetworkError,
    PcoNotFoundError,
    PcoRateLimitError,
    PcoRetryableError,
    PcoServerError,
    PcoValidationError,
    parse_error_objects,
)
from pco_client.api.rate_limit import RateLimitSnapshot
from tests.fixtures import ERROR_NOT_FOUND, ERROR_RATE_LIMITED, ERROR_VALIDATION, make_error_body


class TestFromResponse:
    """Tests for building errors from responses."""

    @pytest.mark.parametrize(
        ("status", "classification", "expected"),
        [
            (401, Classification.CLIENT_FAULT, PcoAuthenticationError),
            (404, Classification.CLIENT_FAULT, PcoNotFoundError),
            (400, Classification.CLIENT_FAULT, PcoValidationError),
            (422, Classification.CLIENT_FAULT, PcoValidationError),
            (403, Classification.CLIENT_FAULT, PcoApiError),
            (429, Classification.RATE_LIMITED, PcoRateLimitError),
            (502, Classification.SERVER_FAULT, PcoServerError),
        ],
    )
    def test_subclass_by_status(
        self, status: int, classification: Classification, expected: type
    ) -> None:
        """The subclass matches the status."""
        error = PcoApiError.from_response(
            httpx.Response(status), classification=classification
        )
        assert type(error) is expected
        assert error.status == status

    def test_message_joins_details(self) -> None:
        """Details are joined with '; '."""
        error = PcoApiError.from_response(
            httpx.Response(422, json=ERROR_VALIDATION),
            classification=Classification.CLIENT_FAULT,
            request_id="req_1_1",
        )
        assert str(error) == "First name can't be blank; Birthdate is invalid"
        assert error.request_id == "req_1_1"

    def test_title_used_without_detail(self) -> None:
        """An error without detail contributes its title."""
        body = make_error_body({"status": "403", "title": "Forbidden"})
        error = PcoApiError.from_response(
            httpx.Response(403, json=body), classification=Classification.CLIENT_FAULT
        )
        assert str(error) == "Forbidden"
        assert error.errors[0].detail is None

    def test_rate_limit_attached(self) -> None:
        """The snapshot at failure time travels with the error."""
        snapshot = RateLimitSnapshot(limit=100, count=118, retry_after=2.0)
        error = PcoApiError.from_response(
            httpx.Response(429, json=ERROR_RATE_LIMITED),
            classification=Classification.RATE_LIMITED,
            rate_limit=snapshot,
        )
        assert isinstance(error, PcoRateLimitError)
        assert error.retry_after == 2.0
        assert error.rate_limit is snapshot

    def test_hierarchy(self) -> None:
        """Retry-exhausted classes share a base; all are client errors."""
        assert issubclass(PcoRateLimitError, PcoRetryableError)
        assert issubclass(PcoServerError, PcoRetryableError)
        assert issubclass(PcoNetworkError, PcoRetryableError)
        assert issubclass(PcoRetryableError, PcoApiError)
        assert issubclass(PcoApiError, PcoClientError)

    def test_to_dict(self) -> None:
        """Errors export to a plain dict."""
        error = PcoApiError.from_response(
            httpx.Response(404, json=ERROR_NOT_FOUND),
            classification=Classification.CLIENT_FAULT,
        )
        data = error.to_dict()

        assert data["status"] == 404
        assert data["status_text"] == "Not Found"
        assert data["classification"] == "client_fault"
        assert data["errors"][0]["detail"] == "Person 999 does not exist"


class TestParseErrorObjects:
    """Tests for reading the errors array."""

    def test_non_json_body(self) -> None:
        """A non-JSON body yields no errors."""
        assert parse_error_objects(httpx.Response(500, text="<html>oops</html>")) == []

    def test_errors_not_a_list(self) -> None:
        """A malformed errors member yields no errors."""
        assert parse_error_objects(httpx.Response(400, json={"errors": "bad"})) == []

    def test_numeric_status_normalized(self) -> None:
        """Numeric status codes are stored as strings; extra keys kept."""
        response = httpx.Response(
            422, json={"errors": [{"status": 422, "title": "Invalid", "code": "blank"}]}
        )
        errors = parse_error_objects(response)

        assert errors[0].status == "422"
        assert errors[0].model_dump()["code"] == "blank"

    def test_skips_non_dict_entries(self) -> None:
        """Non-object entries are ignored."""
        response = httpx.Response(400, json={"errors": ["oops", {"title": "Bad"}]})
        errors = parse_error_objects(response)

        assert [e.title for e in errors] == ["Bad"]


class TestNetworkError:
    """Tests for wrapping transport failures."""

    def test_timeout(self) -> None:
        """Timeouts are reported with status 0."""
        error = PcoNetworkError.from_transport_error(httpx.ReadTimeout("slow"), request_id="r")

        assert error.status == 0
        assert "timed out" in str(error)
        assert error.classification is Classification.TRANSIENT_NETWORK
        assert error.retryable is True

    def test_connect_error(self) -> None:
        """Connection failures keep the error type as status text."""
        error = PcoNetworkError.from_transport_error(httpx.ConnectError("refused"))

        assert error.status_text == "ConnectError"
        assert "failed" in str(error)
