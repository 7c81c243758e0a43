"""
Batched Worker Pool

Runs an I/O-bound function over many items on a fixed ThreadPoolExecutor.
Items are submitted in batches of `batch_size`; a batch fully completes
(success or recorded failure) before the next one starts, and the runner
pauses `delay` seconds between batches to stay under external rate limits.

Used for embedding passages and for the LLM extraction fallback.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchOutcome(Generic[T, R]):
    """Result of one work item. Exactly one of result/error is meaningful."""
    index: int
    item: T
    result: Optional[R] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_in_batches(
    items: Sequence[T],
    fn: Callable[[T], R],
    batch_size: int,
    delay: float = 0.5,
    sleep: Callable[[float], Any] = time.sleep,
    label: str = "items",
) -> List[BatchOutcome]:
    """
    Apply `fn` to every item with bounded concurrency.

    Args:
        items: Work items; their position becomes BatchOutcome.index
        fn: Function called once per item on a worker thread
        batch_size: Pool size and number of items in flight per batch
        delay: Pause between batches in seconds
        sleep: Injected for tests
        label: Name used in log messages

    Returns:
        One BatchOutcome per item, in completion order. Callers sort by index
        when order matters.
    """
    batch_size = max(1, batch_size)
    total = len(items)
    if total == 0:
        return []

    total_batches = (total + batch_size - 1) // batch_size
    outcomes: List[BatchOutcome] = []

    with ThreadPoolExecutor(max_workers=min(batch_size, total)) as executor:
        for batch_num, start in enumerate(range(0, total, batch_size), 1):
            batch = items[start:start + batch_size]
            logger.info(f"Processing {label} batch {batch_num}/{total_batches}")

            futures = {
                executor.submit(fn, item): (start + offset, item)
                for offset, item in enumerate(batch)
            }
            for future in as_completed(futures):
                index, item = futures[future]
                try:
                    outcomes.append(BatchOutcome(index=index, item=item, result=future.result()))
                except Exception as e:
                    logger.warning(f"{label} #{index} failed: {e}")
                    outcomes.append(BatchOutcome(index=index, item=item, error=str(e) or type(e).__name__))

            if start + batch_size < total and delay > 0:
                sleep(delay)

    return outcomes
