"""
Isolation Wrappers

Run a triggered interruptor so that its failures, or a hang, cannot
stop the ticker driving it. Every failure is turned into a reported
result and the wrapper always returns normally.

Author: PulseQueue Project
License: MIT
"""

import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from .base import Interruptor, TriggerResult, execute
from ..errors import ChildExecutionError, ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ErrorReporter = Callable[[TriggerResult], None]

DEFAULT_TIMEOUT = 30.0


class IsolationWrapper(ABC):
    """Execution boundary between the clock and the work."""

    def __init__(self, error_reporter: Optional[ErrorReporter] = None):
        self.error_reporter = error_reporter

    @abstractmethod
    def _run(self, target: Interruptor) -> TriggerResult:
        """Execute target and return its captured result."""

    def run(self, target: Interruptor) -> TriggerResult:
        """
        Trigger ``target`` inside the isolation boundary.

        Args:
            target: Interruptor to fire

        Returns:
            TriggerResult describing the outcome (never raises)
        """
        result = self._run(target)
        if not result.success:
            self._report(result)
        return result

    def _report(self, result: TriggerResult):
        if self.error_reporter is None:
            return
        try:
            self.error_reporter(result)
        except Exception as e:
            logger.error(f"Error reporter failed for '{result.name}': {e}")


class InlineWrapper(IsolationWrapper):
    """Runs the target on the caller's thread with failure capture only."""

    def _run(self, target: Interruptor) -> TriggerResult:
        return execute(target)


class ThreadWrapper(IsolationWrapper):
    """
    Runs each firing on a daemon worker thread.

    The caller waits at most ``timeout`` seconds. A target still running
    after that is reported as timed out and left to finish on its own
    thread; the next pulse is not held up by it. While that thread is
    alive the target is not started again: further firings fail fast
    with a "still running" result, so one target never has more than
    one worker.
    """

    def __init__(self, timeout: Optional[float] = DEFAULT_TIMEOUT, error_reporter: Optional[ErrorReporter] = None):
        super().__init__(error_reporter)
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"Wrapper timeout must be positive, got {timeout}")
        self.timeout = timeout
        self._in_flight: Dict[str, threading.Thread] = {}
        self._lock = threading.Lock()

    def is_busy(self, name: str) -> bool:
        """True while an abandoned worker for ``name`` is still running."""
        with self._lock:
            thread = self._in_flight.get(name)
            return thread is not None and thread.is_alive()

    def _run(self, target: Interruptor) -> TriggerResult:
        name = getattr(target, 'name', repr(target))
        outcome: Dict[str, TriggerResult] = {}

        def worker():
            outcome['result'] = execute(target, name)

        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        with self._lock:
            previous = self._in_flight.get(name)
            if previous is not None and previous.is_alive():
                logger.warning(f"Interruptor '{name}' still running from an earlier firing, skipping")
                return TriggerResult(
                    name=name,
                    success=False,
                    started_at=started_at,
                    error=ChildExecutionError(name, RuntimeError("still running from an earlier firing"))
                )
            thread = threading.Thread(target=worker, name=f"interruptor-{name}", daemon=True)
            self._in_flight[name] = thread
            thread.start()

        thread.join(self.timeout)

        if thread.is_alive():
            logger.error(f"Interruptor '{name}' still running after {self.timeout}s, abandoning")
            return TriggerResult(
                name=name,
                success=False,
                started_at=started_at,
                duration=time.monotonic() - start,
                error=ChildExecutionError(name, TimeoutError(f"timed out after {self.timeout}s")),
                timed_out=True
            )

        with self._lock:
            if self._in_flight.get(name) is thread:
                del self._in_flight[name]
        return outcome['result']


WRAPPERS = {
    'thread': ThreadWrapper,
    'process': ThreadWrapper,
    'inline': InlineWrapper,
}


def create_wrapper(
    kind: str = 'thread',
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    error_reporter: Optional[ErrorReporter] = None
) -> IsolationWrapper:
    """
    Build a wrapper by configured name.

    ``process`` is accepted as an alias of ``thread``.
    """
    wrapper_cls = WRAPPERS.get(str(kind).lower())
    if wrapper_cls is None:
        supported = ", ".join(sorted(WRAPPERS))
        raise ConfigurationError(f"Unknown wrapper '{kind}'. Supported: {supported}")

    if wrapper_cls is ThreadWrapper:
        return ThreadWrapper(timeout=timeout, error_reporter=error_reporter)
    return wrapper_cls(error_reporter=error_reporter)
