"""Bounded worker pool with a read-only broadcast context.

The pool wraps a :mod:`concurrent.futures` executor. Values registered
with :meth:`WorkerPool.broadcast` are frozen into a :class:`WorkerContext`
when the first task is dispatched; the executor is created at that moment
with the complete context, so no task can observe a partial broadcast.
Every task receives the context as an explicit argument.

Process workers (the default) get their own copy of the context once, at
start-up, through the executor initializer. Thread workers share a single
deep copy. Each task then works on its own snapshot of that copy, so a
task that mutates the dataset cannot affect a sibling item. An optional
initialization hook runs once per worker context, never per task.

Examples
--------
>>> pool = WorkerPool(2, kind="thread")
>>> pool.broadcast({"x": 1}, "dataset")
>>> pool.submit(lambda item, ctx: ctx["dataset"]["x"] + item, 1).result()
2
>>> pool.teardown()
"""

from __future__ import annotations

import copy
import logging
import traceback
from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from src.config import WORKER_KINDS
from src.exceptions import ConfigurationError, PoolStateError

from .settings import detect_worker_count

logger = logging.getLogger(__name__)

# Set once per process worker by ``_init_process_worker``.
_PROCESS_CONTEXT: WorkerContext | None = None


class WorkerContext(Mapping[str, Any]):
    """Read-only mapping of broadcast values, passed to every task."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values = dict(values)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"WorkerContext({sorted(self._values)})"

    def __reduce__(self):
        return (WorkerContext, (self._values,))

    def snapshot(self) -> WorkerContext:
        """Return a deep copy that a single task may use freely."""
        return WorkerContext(copy.deepcopy(self._values))


@dataclass(frozen=True)
class TaskFailure:
    """Picklable record of a task that raised inside a worker."""

    item: Any
    error_type: str
    message: str
    traceback: str = ""

    def describe(self) -> str:
        return f"{self.error_type}: {self.message}"


def execute_task(
    task: Callable[[Any, WorkerContext], Any], item: Any, context: WorkerContext
) -> Any:
    """Run ``task(item, context)``, turning an exception into a :class:`TaskFailure`.

    The task receives its own snapshot of ``context``, so whatever it
    mutates inside the broadcast values is invisible to every other task.
    """
    try:
        return task(item, context.snapshot())
    except Exception as exc:
        return TaskFailure(
            item=item,
            error_type=type(exc).__name__,
            message=str(exc),
            traceback=traceback.format_exc(),
        )


def _init_process_worker(
    context: WorkerContext, hook: Callable[[WorkerContext], None] | None
) -> None:
    global _PROCESS_CONTEXT
    _PROCESS_CONTEXT = context
    if hook is not None:
        hook(context)


def _execute_in_process(task: Callable[[Any, WorkerContext], Any], item: Any) -> Any:
    if _PROCESS_CONTEXT is None:
        raise PoolStateError("Process worker started without a broadcast context")
    return execute_task(task, item, _PROCESS_CONTEXT)


class WorkerPool:
    """A fixed number of parallel execution contexts.

    Parameters
    ----------
    n_workers : int | None
        Number of contexts. Defaults to the hardware concurrency and is
        capped by it.
    kind : str
        ``"process"`` or ``"thread"``.
    initializer : Callable[[WorkerContext], None] | None
        Hook run once in every worker context at start-up. In process mode
        it must be picklable (a module-level function).

    Notes
    -----
    Call :meth:`teardown` exactly once, after the last stage or on abort.
    The pool is also usable as a context manager.
    """

    def __init__(
        self,
        n_workers: int | None = None,
        *,
        kind: str = "process",
        initializer: Callable[[WorkerContext], None] | None = None,
    ) -> None:
        if kind not in WORKER_KINDS:
            raise ConfigurationError(f"Unknown worker kind {kind!r}")
        available = detect_worker_count()
        requested = available if n_workers is None else int(n_workers)
        if requested < 1:
            raise ConfigurationError(f"n_workers must be at least 1, got {requested}")
        self.n_workers = min(requested, available)
        self.kind = kind
        self._initializer = initializer
        self._pending: dict[str, Any] = {}
        self._context: WorkerContext | None = None
        self._executor: Executor | None = None
        self._closed = False

    @property
    def started(self) -> bool:
        return self._executor is not None

    @property
    def context(self) -> WorkerContext:
        """The frozen context; only available once the pool has started."""
        if self._context is None:
            raise PoolStateError("Worker pool has not started yet")
        return self._context

    def broadcast(self, value: Any, name: str) -> None:
        """Make a copy of ``value`` available to every worker under ``name``.

        Raises
        ------
        PoolStateError
            If a task has already been dispatched or the pool is torn down.
        """
        if self._closed:
            raise PoolStateError("Cannot broadcast to a torn down worker pool")
        if self.started:
            raise PoolStateError(
                f"Cannot broadcast {name!r} after tasks have been dispatched"
            )
        self._pending[name] = copy.deepcopy(value)

    def _ensure_started(self) -> Executor:
        if self._closed:
            raise PoolStateError("Worker pool has been torn down")
        if self._executor is None:
            self._context = WorkerContext(self._pending)
            if self.kind == "process":
                self._executor = ProcessPoolExecutor(
                    max_workers=self.n_workers,
                    initializer=_init_process_worker,
                    initargs=(self._context, self._initializer),
                )
            elif self._initializer is not None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.n_workers,
                    thread_name_prefix="profile-worker",
                    initializer=self._initializer,
                    initargs=(self._context,),
                )
            else:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.n_workers, thread_name_prefix="profile-worker"
                )
            logger.info(
                "Started %s worker pool with %d workers (context: %s)",
                self.kind,
                self.n_workers,
                ", ".join(sorted(self._context)) or "empty",
            )
        return self._executor

    def submit(self, task: Callable[[Any, WorkerContext], Any], item: Any) -> Future:
        """Dispatch ``task(item, context)`` to the pool.

        The returned future resolves to the task's result, or to a
        :class:`TaskFailure` if the task raised.
        """
        executor = self._ensure_started()
        if self.kind == "process":
            return executor.submit(_execute_in_process, task, item)
        return executor.submit(execute_task, task, item, self._context)

    def teardown(self) -> None:
        """Wait for running tasks and release every worker context.

        Raises
        ------
        PoolStateError
            If the pool was already torn down.
        """
        if self._closed:
            raise PoolStateError("Worker pool torn down twice")
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            logger.info("Worker pool shut down")
        self._executor = None

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if not self._closed:
            self.teardown()
