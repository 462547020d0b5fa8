"""
Interruptor Base Types

The trigger capability shared by tickers, multiplexers and leaf jobs,
plus the result objects that carry the outcome of each firing.

Author: PulseQueue Project
License: MIT
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from ..errors import ChildExecutionError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class Interruptor(ABC):
    """
    Anything that can be triggered.

    Subclasses set ``name`` so failures can be reported against the
    configured identifier.
    """

    name: str = "interruptor"

    @abstractmethod
    def trigger(self) -> Any:
        """Run once. May raise; callers are responsible for isolation."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


@dataclass
class TriggerResult:
    """Outcome of triggering a single interruptor."""
    name: str
    success: bool
    started_at: datetime
    duration: float = 0.0
    value: Any = None
    error: Optional[ChildExecutionError] = None
    timed_out: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'name': self.name,
            'success': self.success,
            'started_at': self.started_at.isoformat(),
            'duration': round(self.duration, 6),
            'timed_out': self.timed_out,
            'error': repr(self.error.cause) if self.error else None,
            'value': _plain(self.value)
        }


@dataclass
class DispatchReport:
    """Per-child results of one multiplexer dispatch, in declared order."""
    name: str
    results: List[TriggerResult] = field(default_factory=list)
    skipped: bool = False

    @property
    def failures(self) -> List[TriggerResult]:
        return [r for r in self.results if not r.success]

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'skipped': self.skipped,
            'results': [r.to_dict() for r in self.results]
        }


def _plain(value: Any) -> Any:
    """JSON-safe copy of ``value``; anything unknown at any depth becomes its repr."""
    if hasattr(value, 'to_dict'):
        value = value.to_dict()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return repr(value)


def execute(interruptor: Interruptor, name: Optional[str] = None) -> TriggerResult:
    """
    Trigger ``interruptor`` and capture the outcome.

    Exceptions are converted to a failed ``TriggerResult`` holding a
    ``ChildExecutionError``; nothing propagates.
    """
    name = name or getattr(interruptor, 'name', repr(interruptor))
    started_at = datetime.now(timezone.utc)
    start = time.monotonic()

    try:
        value = interruptor.trigger()
    except Exception as e:
        duration = time.monotonic() - start
        logger.error(f"Interruptor '{name}' failed after {duration:.3f}s: {e}", exc_info=True)
        return TriggerResult(
            name=name,
            success=False,
            started_at=started_at,
            duration=duration,
            error=ChildExecutionError(name, e)
        )

    return TriggerResult(
        name=name,
        success=True,
        started_at=started_at,
        duration=time.monotonic() - start,
        value=value
    )


class CallbackInterruptor(Interruptor):
    """Leaf job wrapping a plain callable."""

    def __init__(self, name: str, callback: Callable[[], Any]):
        if not callable(callback):
            raise TypeError(f"Callback for '{name}' is not callable: {callback!r}")
        self.name = name
        self.callback = callback

    def trigger(self) -> Any:
        return self.callback()
