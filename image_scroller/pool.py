"""Bounded worker pool with drain-fully-then-decide failure handling.

Every work item is attempted before the outcome is judged. Failures, whether
reported through an :class:`~image_scroller.models.OpResult` or raised by the
operation, are collected and returned in a :class:`PoolOutcome`; callers
decide how to escalate them once the pool has drained.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from time import perf_counter
from typing import Callable, List, Optional, Sequence, Tuple

from image_scroller.models import FrameFailure, OpResult, PoolOutcome
from image_scroller.progress import describe_progress, progress_interval

DEFAULT_PROGRESS_UPDATES = 20

WorkOperation = Callable[[int], OpResult]


class FailureLog:
    """Append-only failure collection shared by concurrent workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._failures: List[FrameFailure] = []

    def record(self, failure: FrameFailure) -> None:
        with self._lock:
            self._failures.append(failure)

    def __len__(self) -> int:
        with self._lock:
            return len(self._failures)

    @property
    def first(self) -> Optional[FrameFailure]:
        with self._lock:
            return self._failures[0] if self._failures else None

    def snapshot(self) -> Tuple[FrameFailure, ...]:
        """Return the failures ordered by work item index."""
        with self._lock:
            return tuple(sorted(self._failures, key=lambda failure: failure.index))


class ProgressCounter:
    """Monotonic completion counter that logs at a bounded frequency."""

    def __init__(
        self,
        total: int,
        *,
        label: str,
        logger: logging.Logger,
        updates: int = DEFAULT_PROGRESS_UPDATES,
    ) -> None:
        self.total = total
        self.label = label
        self.logger = logger
        self.interval = progress_interval(total, updates)
        self._lock = threading.Lock()
        self._completed = 0
        self._started = perf_counter()

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def increment(self) -> int:
        with self._lock:
            self._completed += 1
            completed = self._completed
        if completed % self.interval == 0 or completed == self.total:
            self._report(completed)
        return completed

    def _report(self, completed: int) -> None:
        elapsed = perf_counter() - self._started
        self.logger.info("%s progress: %s", self.label, describe_progress(completed, self.total, elapsed))


def run_pool(
    items: Sequence[int],
    operation: WorkOperation,
    *,
    workers: int,
    logger: logging.Logger,
    label: str = "Work",
    progress_updates: int = DEFAULT_PROGRESS_UPDATES,
) -> PoolOutcome:
    """Run ``operation`` for every item with at most ``workers`` in flight.

    ``workers == 1`` runs in the calling thread, in item order.
    """
    if workers < 1:
        raise ValueError(f"Worker count must be >= 1, got {workers}")

    total = len(items)
    failures = FailureLog()
    progress = ProgressCounter(total, label=label, logger=logger, updates=progress_updates)

    def attempt(item: int) -> None:
        try:
            result = operation(item)
        except Exception as exc:  # noqa: BLE001
            logger.debug("%s item %s raised", label, item, exc_info=True)
            result = OpResult.failure("exception", f"{type(exc).__name__}: {exc}")
        if result.ok:
            progress.increment()
        else:
            failures.record(FrameFailure(index=item, message=result.describe()))

    if total == 0:
        return PoolOutcome(attempted=0, succeeded=0)

    if workers == 1:
        for item in items:
            attempt(item)
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(attempt, item) for item in items]
            for future in as_completed(futures):
                future.result()

    outcome = PoolOutcome(
        attempted=total,
        succeeded=progress.completed,
        failures=failures.snapshot(),
        first_failure=failures.first,
    )
    if outcome.failures:
        logger.warning(
            "%s finished with %s of %s items failed",
            label,
            outcome.failed_count,
            total,
        )
    return outcome


__all__ = ["FailureLog", "ProgressCounter", "WorkOperation", "run_pool"]
