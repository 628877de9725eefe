"""Fire-and-forget runner for memory generators."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """
    Runs generator passes off the reply path.

    Every task is wrapped so that its failure is logged and never reaches
    the caller that scheduled it.
    """

    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="memory-bg"
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    def submit(self, name: str, fn: Callable[..., Any], *args) -> Optional[Future]:
        try:
            future = self._executor.submit(self._run, name, fn, *args)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Background task {name} not scheduled: {e}")
            return None

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for scheduled tasks to finish.

        Returns:
            True when nothing is left running
        """
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_tasks: bool = True):
        self._executor.shutdown(wait=wait_for_tasks)

    def _forget(self, future: Future):
        with self._lock:
            self._pending.discard(future)

    @staticmethod
    def _run(name: str, fn: Callable[..., Any], *args) -> Any:
        try:
            return fn(*args)
        except Exception as e:
            logger.exception(f"Background task {name} failed: {e}")
            return None
