"""Link-driven pagination over JSON:API collections.

PCO collection responses carry ``links.next`` while more pages remain. The
cursor follows that link until it disappears, either eagerly (``collect``)
or lazily (``async for page in cursor``).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pco_client.api.exceptions import PaginationError
from pco_client.api.requests import RequestDescriptor
from pco_client.config import PaginationConfig
from pco_client.logging import get_logger

if TYPE_CHECKING:
    from pco_client.api.dispatcher import RequestDispatcher, Sleep

logger = get_logger(__name__)

# Called after each page with (items fetched so far, total count)
ProgressCallback = Callable[[int, int], None]


@dataclass
class Page:
    """One fetched page."""

    number: int
    items: list[dict[str, Any]]
    meta: dict[str, Any] = field(default_factory=dict)
    links: dict[str, Any] = field(default_factory=dict)

    @property
    def next_url(self) -> str | None:
        """The ``links.next`` URL, or None on the last page."""
        next_link = self.links.get("next")
        if isinstance(next_link, dict):
            next_link = next_link.get("href")
        return next_link or None

    @property
    def total_count(self) -> int | None:
        """``meta.total_count`` as an int, if reported and numeric.

        Numeric strings and floats are coerced; anything else is None.
        """
        total = self.meta.get("total_count")
        if total is None or isinstance(total, bool):
            return None
        if isinstance(total, int):
            return total
        try:
            return int(float(total))
        except (TypeError, ValueError, OverflowError):
            return None


@dataclass
class PaginationResult:
    """Outcome of an eager traversal."""

    items: list[dict[str, Any]]
    total_count: int
    pages_fetched: int
    duration: float


@dataclass
class PageState:
    """Traversal bookkeeping."""

    descriptor: RequestDescriptor | None
    pages_fetched: int = 0
    items_fetched: int = 0
    total_count: int | None = None


class PaginationCursor:
    """Walks a paginated collection by following ``links.next``.

    A cursor can be consumed once. Breaking out of ``async for`` stops
    further requests.

    Usage:
        cursor = client.paginate("/people", {"where[status]": "active"})
        async for page in cursor:
            for person in page.items:
                ...

        result = await client.paginate("/people").collect()
        print(result.total_count, result.pages_fetched)
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        template: RequestDescriptor,
        *,
        config: PaginationConfig | None = None,
        per_page: int | None = None,
        max_pages: int | None = None,
        on_progress: ProgressCallback | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the cursor.

        Args:
            dispatcher: Dispatcher every page request goes through
            template: GET descriptor for the first page
            config: Pagination defaults
            per_page: Items per page (overrides config)
            max_pages: Page cap (overrides config)
            on_progress: Called after each page
            sleep: Awaitable sleep used for the inter-page delay
        """
        config = config or PaginationConfig()
        self._dispatcher = dispatcher
        self._per_page = per_page or config.per_page
        self._max_pages = max_pages or config.max_pages
        self._page_delay = config.page_delay_ms / 1000
        self._on_progress = on_progress
        self._sleep = sleep
        self._consumed = False

        params = dict(template.params)
        params.setdefault("per_page", self._per_page)
        first = RequestDescriptor(
            method=template.method,
            endpoint=template.endpoint,
            params=params,
            body=template.body,
            headers=template.headers,
            timeout=template.timeout,
            request_id=template.request_id,
        )
        self._state = PageState(descriptor=first)

    @property
    def pages_fetched(self) -> int:
        return self._state.pages_fetched

    @property
    def exhausted(self) -> bool:
        """Whether no further page will be requested."""
        return self._state.descriptor is None or self._state.pages_fetched >= self._max_pages

    def _claim(self) -> None:
        if self._consumed:
            raise PaginationError("Pagination cursor has already been consumed")
        self._consumed = True

    async def __aiter__(self) -> AsyncIterator[Page]:
        self._claim()
        state = self._state

        while not self.exhausted:
            descriptor = state.descriptor
            assert descriptor is not None
            if state.pages_fetched > 0 and self._page_delay > 0:
                await self._sleep(self._page_delay)

            response = await self._dispatcher.execute(descriptor)
            page = Page(
                number=state.pages_fetched + 1,
                items=response.resources,
                meta=response.meta,
                links=response.links,
            )

            state.pages_fetched = page.number
            state.items_fetched += len(page.items)
            if page.total_count is not None:
                state.total_count = page.total_count
            next_url = page.next_url
            state.descriptor = descriptor.follow(next_url) if next_url else None

            if state.descriptor is not None and state.pages_fetched >= self._max_pages:
                logger.warning(
                    "Stopped {} after {} pages (max_pages reached)",
                    descriptor.endpoint,
                    self._max_pages,
                )

            self._report_progress()
            yield page

    def _report_progress(self) -> None:
        if self._on_progress is None:
            return
        state = self._state
        total = state.total_count if state.total_count is not None else state.items_fetched
        try:
            self._on_progress(state.items_fetched, total)
        except Exception as e:
            logger.error("Pagination progress callback failed: {}", e)

    async def items(self) -> AsyncIterator[dict[str, Any]]:
        """Yield individual resources across all pages."""
        async for page in self:
            for item in page.items:
                yield item

    async def collect(self) -> PaginationResult:
        """Fetch every page and return the combined result."""
        started = time.perf_counter()
        items: list[dict[str, Any]] = []
        async for page in self:
            items.extend(page.items)

        total = self._state.total_count
        return PaginationResult(
            items=items,
            total_count=total if total is not None else len(items),
            pages_fetched=self._state.pages_fetched,
            duration=time.perf_counter() - started,
        )
