"""Batch executor for independent PCO operations.

Every operation is attempted regardless of how its siblings fare, each
through the dispatcher's full retry policy. Concurrency is bounded by a
semaphore and results keep the input order.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from pco_client.api.exceptions import PcoApiError
from pco_client.config import BatchConfig
from pco_client.logging import LogContext, get_logger

from .operations import BatchOperation, parse_operation

if TYPE_CHECKING:
    from pco_client.api.dispatcher import RequestDispatcher

logger = get_logger(__name__)

_batch_counter = itertools.count(1)


@dataclass
class BatchResult:
    """Outcome of one operation.

    ``operation`` is the raw dict when the input failed validation.
    """

    index: int
    operation: BatchOperation | dict[str, Any]
    success: bool
    data: Any = None
    error: Exception | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "index": self.index,
            "operation": (
                dict(self.operation)
                if isinstance(self.operation, dict)
                else self.operation.model_dump()
            ),
            "success": self.success,
        }
        if self.data is not None:
            result["data"] = self.data
        if self.error is not None:
            if isinstance(self.error, PcoApiError):
                result["error"] = self.error.to_dict()
            else:
                result["error"] = {"message": str(self.error)}
        return result


@dataclass
class BatchReport:
    """Summary of a batch, with one result per operation in input order."""

    total: int
    successful: int
    failed: int
    success_rate: float
    duration: float
    results: list[BatchResult] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "success_rate": self.success_rate,
            "duration": self.duration,
            "results": [r.to_dict() for r in self.results],
        }


OperationCallback = Callable[[BatchResult], Any]


class BatchExecutor:
    """Runs batches of operations through a dispatcher.

    Usage:
        executor = BatchExecutor(dispatcher)
        report = await executor.execute([
            CreateOperation(endpoint="/people", type="Person", attributes={...}),
            DeleteOperation(endpoint="/people/1"),
        ])
        print(f"{report.successful}/{report.total} succeeded")
    """

    def __init__(self, dispatcher: RequestDispatcher, config: BatchConfig | None = None) -> None:
        """Initialize the batch executor.

        Args:
            dispatcher: Dispatcher each operation's request goes through
            config: Batch defaults (max_concurrency)
        """
        self._dispatcher = dispatcher
        self._config = config or BatchConfig()

    async def execute(
        self,
        operations: Sequence[BatchOperation | dict[str, Any]],
        *,
        max_concurrency: int | None = None,
        on_operation_complete: OperationCallback | None = None,
    ) -> BatchReport:
        """Execute all operations.

        Args:
            operations: Operation models or dicts tagged with ``action``
            max_concurrency: In-flight cap (default from BatchConfig)
            on_operation_complete: Called as each operation settles

        Returns:
            BatchReport with results in input order
        """
        limit = self._config.max_concurrency if max_concurrency is None else max_concurrency
        if limit < 1:
            raise ValueError("max_concurrency must be at least 1")

        total = len(operations)
        if total == 0:
            return BatchReport(total=0, successful=0, failed=0, success_rate=1.0, duration=0.0)

        semaphore = asyncio.Semaphore(limit)
        slots: list[BatchResult | None] = [None] * total

        async def run(index: int, operation: BatchOperation | dict[str, Any]) -> None:
            async with semaphore:
                result = await self._execute_one(index, operation)
            slots[index] = result
            self._notify(on_operation_complete, result)

        started = time.perf_counter()
        with LogContext(batch_id=f"batch_{next(_batch_counter)}"):
            await asyncio.gather(*(run(i, op) for i, op in enumerate(operations)))
        duration = time.perf_counter() - started

        results = [r for r in slots if r is not None]
        successful = sum(1 for r in results if r.success)
        failed = total - successful
        report = BatchReport(
            total=total,
            successful=successful,
            failed=failed,
            success_rate=successful / total,
            duration=duration,
            results=results,
        )

        logger.info(
            "Batch complete: {}/{} succeeded in {:.2f}s",
            successful,
            total,
            duration,
        )
        return report

    async def _execute_one(
        self, index: int, raw: BatchOperation | dict[str, Any]
    ) -> BatchResult:
        try:
            operation = parse_operation(raw)
        except ValidationError as e:
            logger.warning("Batch operation {} is invalid: {}", index, e)
            return BatchResult(index=index, operation=raw, success=False, error=e)

        try:
            response = await self._dispatcher.execute(operation.to_request())
        except Exception as e:
            logger.warning("Batch operation {} ({}) failed: {}", index, operation.action, e)
            return BatchResult(index=index, operation=operation, success=False, error=e)
        return BatchResult(index=index, operation=operation, success=True, data=response.data)

    @staticmethod
    def _notify(callback: OperationCallback | None, result: BatchResult) -> None:
        if callback is None:
            return
        try:
            callback(result)
        except Exception as e:
            logger.error("Batch completion callback failed: {}", e)
