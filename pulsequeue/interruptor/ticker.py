"""
Ticker

Counts pulses and fires its target once every ``threshold`` pulses.

Author: PulseQueue Project
License: MIT
"""

import threading
from typing import Optional

from .base import Interruptor, TriggerResult
from .isolation import IsolationWrapper, ThreadWrapper
from ..errors import ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class Ticker(Interruptor):
    """
    Pulse counter driving a single target.

    ``tick()`` never raises because of the target: the wrapper captures
    whatever the target does, so the heartbeat survives a bad job.
    """

    def __init__(
        self,
        target: Interruptor,
        threshold: int = 1,
        wrapper: Optional[IsolationWrapper] = None,
        name: str = "ticker"
    ):
        """
        Initialize ticker.

        Args:
            target: Interruptor fired when the threshold is reached
            threshold: Pulses required per firing (must be >= 1)
            wrapper: Isolation wrapper (defaults to a ThreadWrapper)
            name: Identifier used in logs and results
        """
        if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold <= 0:
            raise ConfigurationError(f"Ticker '{name}' threshold must be a positive integer, got {threshold!r}")
        if target is None:
            raise ConfigurationError(f"Ticker '{name}' has no target")

        self.name = name
        self.target = target
        self.wrapper = wrapper or ThreadWrapper()
        self._threshold = threshold
        self._counter = 0
        self._lock = threading.Lock()

        logger.debug(f"Ticker '{name}' initialized (threshold={threshold}, target={target!r})")

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def counter(self) -> int:
        return self._counter

    def tick(self) -> Optional[TriggerResult]:
        """
        Register one pulse.

        Returns:
            The target's TriggerResult when this pulse fired it, else None
        """
        with self._lock:
            self._counter += 1
            if self._counter < self._threshold:
                return None
            self._counter = 0

        logger.debug(f"Ticker '{self.name}' firing {self.target!r}")
        result = self.wrapper.run(self.target)

        if not result.success:
            logger.warning(f"Ticker '{self.name}' target '{result.name}' failed: {result.error}")

        return result

    def trigger(self) -> Optional[TriggerResult]:
        return self.tick()

    def reset(self):
        """Drop any pulses counted towards the next firing."""
        with self._lock:
            self._counter = 0
