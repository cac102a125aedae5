"""
Bounded-concurrency batch runner.

Items are processed in batches of `concurrency` with a short pause between
batches. A failing item is recorded in `errors` and never cancels its
siblings.
"""

import asyncio
from collections.abc import Awaitable, Callable, Hashable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from intromatch.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")


@dataclass(slots=True)
class BatchItemError:
    key: str
    error: str
    error_type: str


@dataclass(slots=True)
class BatchResult(Generic[K, R]):
    results: dict[K, R] = field(default_factory=dict)
    errors: list[BatchItemError] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errors)


async def run_in_batches(
    items: Sequence[K],
    worker: Callable[[K], Awaitable[R]],
    concurrency: int = 5,
    delay_seconds: float = 0.2,
    operation: str = "batch",
) -> BatchResult[K, R]:
    """
    Run `worker` over `items` with bounded parallelism.

    Args:
        items: Keys to process; each is passed to `worker`
        worker: Coroutine function producing one result per key
        concurrency: Maximum in-flight calls (also the batch size)
        delay_seconds: Pause between consecutive batches
        operation: Name used in log events

    Returns:
        BatchResult with successful results keyed by item and per-item errors
    """
    concurrency = max(1, concurrency)
    outcome: BatchResult[K, R] = BatchResult()
    batches = [items[i : i + concurrency] for i in range(0, len(items), concurrency)]

    logger.debug(
        "Processing items in batches",
        operation=operation,
        total_items=len(items),
        batch_count=len(batches),
        batch_size=concurrency,
    )

    for batch_num, batch in enumerate(batches, 1):
        results = await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)

        for item, result in zip(batch, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Batch item failed",
                    operation=operation,
                    item=str(item),
                    error=str(result),
                    error_type=type(result).__name__,
                )
                outcome.errors.append(BatchItemError(str(item), str(result), type(result).__name__))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcome.results[item] = result

        # Small delay between batches to stay under external rate limits
        if batch_num < len(batches) and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

    logger.info(
        "Batch processing complete",
        operation=operation,
        succeeded=len(outcome.results),
        failed=len(outcome.errors),
    )
    return outcome
