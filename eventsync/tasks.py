from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskQueue:
    """Runs posted callables one at a time, in order, on a single thread.

    Either the owner drains it from its own loop (``drain``), or ``start``
    hands it to a background worker thread. Feed callbacks and write
    reconciliations are always routed through here so no two of them touch
    the collection at once.
    """

    def __init__(self) -> None:
        self._tasks: queue.Queue[Callable[[], None]] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    def post(self, task: Callable[[], None]) -> None:
        self._tasks.put(task)

    def pending(self) -> int:
        return self._tasks.qsize()

    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def on_worker(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def call(self, fn: Callable[[], T]) -> T:
        """Run ``fn`` on the queue's thread and wait for its result."""
        if not self.running() or self.on_worker():
            return fn()
        future: Future[T] = Future()

        def _task() -> None:
            try:
                future.set_result(fn())
            except BaseException as exc:
                future.set_exception(exc)

        self.post(_task)
        return future.result()

    def drain(self, limit: int | None = None) -> int:
        ran = 0
        while limit is None or ran < limit:
            try:
                task = self._tasks.get_nowait()
            except queue.Empty:
                break
            self._run(task)
            ran += 1
        return ran

    def start(self) -> None:
        if self._thread is not None:
            if not self._stop.is_set():
                return
            # A previous stop timed out; the old worker must exit first.
            self._thread.join()
            self._thread = None
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="eventsync-tasks", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop.set()
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("task worker still busy after %.1fs", timeout)
            return
        self._thread = None

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                task = self._tasks.get(timeout=0.1)
            except queue.Empty:
                continue
            self._run(task)

    def _run(self, task: Callable[[], None]) -> None:
        try:
            task()
        except Exception as exc:
            logger.exception("queued task failed", exc_info=exc)


class InlineExecutor(Executor):
    """Executor that runs each submitted call immediately in the caller's thread."""

    def __init__(self) -> None:
        self._shutdown = False

    def submit(self, fn: Callable[..., T], /, *args: Any, **kwargs: Any) -> Future[T]:
        if self._shutdown:
            raise RuntimeError("cannot schedule new futures after shutdown")
        future: Future[T] = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        self._shutdown = True
