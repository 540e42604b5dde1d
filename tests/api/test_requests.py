"""Tests for request descriptors and responses."""

import re

import httpx

from pco_client.api.requests import ApiResponse, RequestDescriptor, new_request_id


class TestRequestDescriptor:
    """Tests for RequestDescriptor."""

    def test_request_id_format(self) -> None:
        """Ids look like req_<epoch_ms>_<counter>."""
        assert re.fullmatch(r"req_\d{13}_\d+", new_request_id())

    def test_request_ids_unique(self) -> None:
        """Each descriptor gets its own id."""
        ids = {RequestDescriptor("GET", "/people").request_id for _ in range(50)}
        assert len(ids) == 50

    def test_method_upper_cased(self) -> None:
        """Methods are normalized."""
        assert RequestDescriptor("get", "/people").method == "GET"
        assert RequestDescriptor("get", "/people").operation == "GET /people"

    def test_follow_overlays_query(self) -> None:
        """follow() keeps endpoint and headers and overlays next-link params."""
        first = RequestDescriptor(
            "GET",
            "/people",
            params={"per_page": 25, "where[status]": "active"},
            headers={"X-Trace": "1"},
        )
        nxt = first.follow(
            "https://api.planningcenteronline.com/people/v2/people?offset=25&per_page=25"
        )

        assert nxt.endpoint == "/people"
        assert nxt.headers == {"X-Trace": "1"}
        assert nxt.params == {"per_page": "25", "where[status]": "active", "offset": "25"}
        assert nxt.request_id != first.request_id

    def test_follow_keeps_repeated_params(self) -> None:
        """A key repeated in the next link keeps all of its values."""
        first = RequestDescriptor("GET", "/people", params={"include": "emails"})
        nxt = first.follow("/people/v2/people?include=emails&include=addresses&offset=25")

        assert nxt.params == {"include": ["emails", "addresses"], "offset": "25"}

        request = httpx.Request("GET", "https://example.test/people", params=nxt.params)
        assert request.url.params.get_list("include") == ["emails", "addresses"]


class TestApiResponse:
    """Tests for ApiResponse accessors."""

    def test_collection(self) -> None:
        """List data, meta and links are exposed."""
        response = ApiResponse(
            status=200,
            data={"data": [{"id": "1"}], "meta": {"total_count": 1}, "links": {"next": None}},
            headers=httpx.Headers(),
            request_id="req_1_1",
        )
        assert response.resources == [{"id": "1"}]
        assert response.meta == {"total_count": 1}
        assert response.links == {"next": None}

    def test_empty(self) -> None:
        """No body means no resources."""
        response = ApiResponse(status=204, data=None, headers=httpx.Headers(), request_id="r")
        assert response.resources == []
        assert response.meta == {}
