"""
Background dispatch channel.

Audit and analytics writes (points ledger events, shortlink click accounting)
must never delay or fail the request that triggered them. Callers hand the
work to a BackgroundDispatcher and return immediately; the dispatcher runs it
on a small thread pool and logs any failure to its own logger.

The channel is bounded: once `max_pending` tasks are queued or running, new
submissions are dropped (and logged) instead of growing memory without limit.
Delivery is best-effort; a dropped or failed task is lost unless retried by
the caller.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional, Set

logger = logging.getLogger("tradapi.background")


class BackgroundDispatcher:
    """Bounded fire-and-forget task channel"""

    def __init__(
        self,
        max_workers: int = 4,
        max_pending: int = 1000,
        thread_name_prefix: str = "tradapi-bg",
    ):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._slots = threading.BoundedSemaphore(max_pending)
        self._lock = threading.Lock()
        self._pending: Set[Future] = set()
        self._closed = False

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, task_name: str, fn: Callable[..., Any], *args, **kwargs) -> bool:
        """
        Queue `fn(*args, **kwargs)` without waiting for it.

        Returns:
            bool: True if the task was queued, False if it was dropped
        """
        if self._closed:
            logger.warning(f"[Dispatcher] Dropped {task_name}: dispatcher is closed")
            return False

        if not self._slots.acquire(blocking=False):
            logger.warning(f"[Dispatcher] Dropped {task_name}: channel full")
            return False

        try:
            future = self._executor.submit(self._run, task_name, fn, args, kwargs)
        except RuntimeError as e:
            # executor shut down between the closed check and submit
            self._slots.release()
            logger.warning(f"[Dispatcher] Dropped {task_name}: {e}")
            return False

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._release)
        return True

    def _run(self, task_name: str, fn: Callable[..., Any], args, kwargs) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception(f"[Dispatcher] Background task {task_name} failed")

    def _release(self, future: Future) -> None:
        self._slots.release()
        with self._lock:
            self._pending.discard(future)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every task queued so far has finished.

        Returns:
            bool: True if nothing is left pending
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                snapshot = list(self._pending)
            if not snapshot:
                return True
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            done, _ = wait(snapshot, timeout=remaining)
            if len(done) == len(snapshot):
                # done callbacks run just after waiters wake up
                time.sleep(0.001)

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait_for_tasks)
        logger.info("[Dispatcher] Shut down")
