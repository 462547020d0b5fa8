"""
Error Types

Exception hierarchy shared by the scheduler tree and queue provisioning.

Author: PulseQueue Project
License: MIT
"""

from typing import Optional


class PulseQueueError(Exception):
    """Base class for all PulseQueue errors."""


class ConfigurationError(PulseQueueError, ValueError):
    """
    Invalid or incomplete configuration.

    Raised at construction or provisioning time and never retried.
    """


class UnknownInterruptorError(ConfigurationError):
    """No interruptor or callback is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown interruptor '{name}'")
        self.name = name


class ProvisioningTimeoutError(PulseQueueError, TimeoutError):
    """Dead-letter queue address could not be resolved in time."""

    def __init__(self, queue_name: str, elapsed: float, last_error: Optional[BaseException] = None):
        super().__init__(
            f"Dead-letter queue '{queue_name}' not resolvable after {elapsed:.1f}s"
        )
        self.queue_name = queue_name
        self.elapsed = elapsed
        self.last_error = last_error


class ChildExecutionError(PulseQueueError):
    """
    A triggered target failed.

    Never raised out of tick() or trigger(); carried inside results and
    handed to error reporters instead.
    """

    def __init__(self, name: str, cause: BaseException):
        super().__init__(f"Interruptor '{name}' failed: {cause!r}")
        self.name = name
        self.cause = cause
