"""
Parallel execution context and dispatch handles.

The context owns a thread pool with an explicit acquire/release lifecycle.
It is created once by the caller and passed to the sampler; nothing here is
process-global.

A dispatch returns a SimulationHandle immediately. The handle resolves when
every lane chunk has been written. Each dispatch is tagged with a generation
number; a later dispatch on the same sampler supersedes it, and reading a
superseded handle raises StaleReadback instead of returning its data.
There is no cancellation: a superseded dispatch still runs to completion and
its result is discarded.
"""

import asyncio
import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional

from shocksim.errors import ExecutionContextUnavailable, StaleReadback
from shocksim.models import SampleEnsemble


logger = logging.getLogger(__name__)


class ExecutionContext:
    """
    Thread pool used to run lane chunks.

    Parameters
    ----------
    max_workers : int, optional
        Number of worker threads. Defaults to os.cpu_count().
    name : str
        Thread name prefix.

    Usage
    -----
    ```python
    with ExecutionContext(max_workers=4) as context:
        sampler = select_sampler(context)
        ensemble = sampler.dispatch(output, weights).result()
    ```
    """

    def __init__(self, max_workers: Optional[int] = None, name: str = "shocksim-lanes") -> None:
        self.max_workers = max_workers if max_workers is not None else (os.cpu_count() or 1)
        self.name = name
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    @property
    def acquired(self) -> bool:
        return self._executor is not None

    def acquire(self) -> "ExecutionContext":
        """
        Create the worker pool. Idempotent.

        Raises
        ------
        ExecutionContextUnavailable
            If the pool cannot be created.
        """
        with self._lock:
            if self._executor is None:
                try:
                    self._executor = ThreadPoolExecutor(
                        max_workers=self.max_workers,
                        thread_name_prefix=self.name,
                    )
                except (ValueError, RuntimeError) as exc:
                    raise ExecutionContextUnavailable(
                        f"Could not create a {self.max_workers}-worker pool: {exc}"
                    ) from exc
                logger.info("Execution context acquired (%d workers)", self.max_workers)
        return self

    def release(self, wait: bool = True) -> None:
        """Shut the pool down. In-flight chunks are allowed to finish."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
            logger.info("Execution context released")

    def submit(self, fn: Callable, *args) -> Future:
        """
        Schedule ``fn(*args)`` on the pool.

        Raises
        ------
        ExecutionContextUnavailable
            If the context is not acquired or has been shut down.
        """
        executor = self._executor
        if executor is None:
            raise ExecutionContextUnavailable("Execution context is not acquired")
        try:
            return executor.submit(fn, *args)
        except RuntimeError as exc:
            raise ExecutionContextUnavailable(f"Execution context rejected work: {exc}") from exc

    @classmethod
    def detect(cls, max_workers: Optional[int] = None) -> bool:
        """True if a pool of the requested size can be acquired here."""
        context = cls(max_workers=max_workers)
        try:
            context.acquire()
        except ExecutionContextUnavailable as exc:
            logger.warning("Parallel execution unavailable: %s", exc)
            return False
        context.release()
        return True

    def __enter__(self) -> "ExecutionContext":
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"ExecutionContext(max_workers={self.max_workers}, acquired={self.acquired})"


def gather(futures: List[Future], finalize: Callable[[], SampleEnsemble]) -> Future:
    """
    Single future resolved once every future in ``futures`` is done.

    Resolves to ``finalize()`` if all succeeded, otherwise to the first
    failure in submission order.
    """
    combined: Future = Future()
    combined.set_running_or_notify_cancel()
    if not futures:
        combined.set_result(finalize())
        return combined

    remaining = [len(futures)]
    lock = threading.Lock()

    def _on_done(_: Future) -> None:
        with lock:
            remaining[0] -= 1
            if remaining[0] > 0:
                return
        for future in futures:
            if future.cancelled():
                combined.set_exception(
                    ExecutionContextUnavailable("Lane chunk was cancelled before running")
                )
                return
            error = future.exception()
            if error is not None:
                combined.set_exception(error)
                return
        try:
            combined.set_result(finalize())
        except Exception as exc:
            combined.set_exception(exc)

    for future in futures:
        future.add_done_callback(_on_done)
    return combined


class GenerationCounter:
    """Monotonic dispatch counter shared by a sampler and its handles."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def advance(self, value: int) -> None:
        with self._lock:
            self._value = max(self._value, value)

    @property
    def current(self) -> int:
        with self._lock:
            return self._value


class SimulationHandle:
    """
    Completion handle for one dispatch.

    Attributes
    ----------
    generation : int
        Dispatch generation number.
    seed : int
        Session seed used by the dispatch.
    """

    def __init__(self, future: Future, generation: int, seed: int, counter: GenerationCounter) -> None:
        self._future = future
        self.generation = generation
        self.seed = seed
        self._counter = counter

    @property
    def stale(self) -> bool:
        """True once a later dispatch has been issued on the same sampler."""
        return self._counter.current != self.generation

    def done(self) -> bool:
        return self._future.done()

    def add_done_callback(self, fn: Callable[["SimulationHandle"], None]) -> None:
        self._future.add_done_callback(lambda _: fn(self))

    def result(self, timeout: Optional[float] = None) -> SampleEnsemble:
        """
        Wait for the dispatch and return its ensemble.

        Raises
        ------
        StaleReadback
            If a later dispatch superseded this one.
        concurrent.futures.TimeoutError
            If ``timeout`` elapses first.
        """
        ensemble = self._future.result(timeout=timeout)
        current = self._counter.current
        if current != self.generation:
            logger.warning(
                "Discarding stale readback of generation %d (current %d)",
                self.generation, current,
            )
            raise StaleReadback(self.generation, current)
        return ensemble

    def __await__(self):
        return self._await_result().__await__()

    async def _await_result(self) -> SampleEnsemble:
        await asyncio.wrap_future(self._future)
        return self.result()

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"SimulationHandle(generation={self.generation}, {state})"
