"""Fan-out stage runner and stage gate.

A stage dispatches one task per item to the worker pool, waits for all of
them, and reports outcomes in the order of the input items regardless of
which worker finished first. A task that raises affects its own item
only: it is reported as ``StageOutcome.FAULT`` while sibling tasks keep
running. :func:`gate` then decides whether the pipeline may continue.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.exceptions import StageGateError

from .worker_pool import TaskFailure, WorkerContext, WorkerPool

logger = logging.getLogger(__name__)


class StageOutcome(str, Enum):
    """Status of one item after one stage."""

    OK = "ok"
    TOO_FEW_FIELDS = "too-few-fields"
    TOO_MANY_FIELDS = "too-many-fields"
    MISSING_ARTIFACT = "missing-artifact"
    FAULT = "fault"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RunReport:
    """Ordered ``(item, outcome)`` pairs for one stage."""

    stage: str
    entries: tuple[tuple[str, Any], ...]
    success: Any = StageOutcome.OK

    @property
    def items(self) -> tuple[str, ...]:
        return tuple(item for item, _ in self.entries)

    @property
    def outcomes(self) -> tuple[Any, ...]:
        return tuple(outcome for _, outcome in self.entries)

    @property
    def failed_items(self) -> tuple[str, ...]:
        """Items whose outcome is not the success value, in input order."""
        return tuple(item for item, outcome in self.entries if outcome != self.success)

    @property
    def ok(self) -> bool:
        return not self.failed_items

    def counts(self) -> dict[str, int]:
        """Number of items per outcome value."""
        return dict(Counter(str(outcome) for outcome in self.outcomes))


def _dispatch(pool: WorkerPool, task: Callable[[Any, WorkerContext], Any], item: Any) -> Future | None:
    try:
        return pool.submit(task, item)
    except Exception as exc:
        logger.error("Task for %s could not be dispatched: %s", item, exc)
        return None


def _collect(item: Any, future: Future | None, fault_outcome: Any) -> Any:
    if future is None:
        return fault_outcome
    try:
        result = future.result()
    except Exception as exc:
        logger.error("Task for %s could not be collected: %s", item, exc)
        return fault_outcome
    if isinstance(result, TaskFailure):
        logger.error("Task for %s failed: %s", item, result.describe())
        if result.traceback:
            logger.debug("Traceback for %s:\n%s", item, result.traceback)
        return fault_outcome
    return result


def run_stage(
    pool: WorkerPool,
    items: Sequence[Any],
    task: Callable[[Any, WorkerContext], Any],
    *,
    fault_outcome: Any = StageOutcome.FAULT,
) -> list[Any]:
    """Run ``task`` once per item and return the outcomes in item order.

    Parameters
    ----------
    pool : WorkerPool
        Pool that executes the tasks.
    items : Sequence[Any]
        Work items; each one is dispatched exactly once.
    task : Callable[[Any, WorkerContext], Any]
        Called as ``task(item, context)`` inside a worker.
    fault_outcome : Any
        Outcome recorded for an item whose task raised or could not be
        dispatched.

    Returns
    -------
    list[Any]
        ``len(items)`` outcomes; ``outcomes[i]`` belongs to ``items[i]``.

    Notes
    -----
    This call is a full barrier: it returns only once every dispatched
    task has finished. Individual tasks have no timeout.
    """
    futures = [(item, _dispatch(pool, task, item)) for item in items]
    return [_collect(item, future, fault_outcome) for item, future in futures]


def gate(report: RunReport, location: str) -> None:
    """Abort the pipeline if any item of ``report`` did not succeed.

    Raises
    ------
    StageGateError
        Naming every failed item, in input order, and ``location``.
    """
    failed = report.failed_items
    if failed:
        logger.error(
            "Stage %r failed for %d of %d items: %s",
            report.stage,
            len(failed),
            len(report.entries),
            ", ".join(failed),
        )
        raise StageGateError(report.stage, failed, location)
    logger.info("Stage %r passed for all %d items", report.stage, len(report.entries))
