"""
Scatter/gather helper shared by the metric, system and server fan-out levels.

Each call gets its own thread pool sized to the number of items, so nested
levels never wait on workers held by their parent. Bounding the number of
remote calls is the invoker's job, not this module's.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Iterable, List, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(
    fn: Callable[[T], Optional[R]],
    items: Iterable[T],
    deadline: Optional[float] = None,
    name: str = "fanout",
) -> List[R]:
    """Run fn on every item concurrently and return the non-None results.

    Results come back in completion order. Without a deadline this blocks
    until every task finished. With one (a time.monotonic() value), tasks
    still running when it passes are abandoned and left out of the result.
    A task that raises is logged and contributes nothing.
    """
    items = list(items)
    if not items:
        return []

    executor = ThreadPoolExecutor(max_workers=len(items), thread_name_prefix=name)
    futures = [executor.submit(fn, item) for item in items]

    timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
    done, pending = wait(futures, timeout=timeout)

    if pending:
        log.warning("%s: deadline passed, abandoning %d of %d tasks", name, len(pending), len(futures))
        executor.shutdown(wait=False, cancel_futures=True)
    else:
        executor.shutdown(wait=True)

    results: List[R] = []
    for future in done:
        try:
            result = future.result()
        except Exception:
            log.exception("%s: task failed", name)
            continue
        if result is not None:
            results.append(result)
    return results
