"""
Background worker pool for detached, non-blocking work.

Submitting returns immediately. A task's outcome is only observable
through the runner's error channel (log + optional callback), never
through the code that submitted it.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Any, Callable, Optional, Set

from client_icons.core.config import Config

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str, BaseException], None]


class BackgroundTaskRunner:
    def __init__(self, max_workers: int = None, on_error: Optional[ErrorCallback] = None):
        self.max_workers = max_workers or Config.auto_assign.WORKER_THREADS
        self.on_error = on_error
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="icon-walk"
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        logger.info(f"Started background runner with {self.max_workers} workers.")

    def submit(self, name: str, func: Callable[..., Any], *args, **kwargs) -> None:
        """Schedule func(*args, **kwargs); never raises what the task raises."""
        future = self._executor.submit(self._run, name, func, args, kwargs)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(lambda f: self._on_done(name, f))
        logger.debug(f"Task submitted: {name}")

    def _run(self, name: str, func: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        # Errors are reported before the future completes, so waiters see them
        try:
            func(*args, **kwargs)
        except Exception as error:
            logger.error(f"Task failed in background runner: {name}: {error}", exc_info=True)
            if self.on_error is not None:
                try:
                    self.on_error(name, error)
                except Exception:
                    logger.exception(f"Error callback failed for task {name}")

    def _on_done(self, name: str, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            logger.warning(f"Task cancelled before it ran: {name}")

    def _unfinished(self) -> Set[Future]:
        with self._lock:
            return {f for f in self._pending if not f.done()}

    @property
    def pending_count(self) -> int:
        return len(self._unfinished())

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every task submitted so far has finished.

        Returns:
            True if all finished within the timeout
        """
        pending = self._unfinished()
        if not pending:
            return True
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)
        logger.info("Background runner stopped.")
