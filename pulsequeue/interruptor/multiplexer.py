"""
Multiplexers

Fan-out dispatchers over an ordered list of child interruptors, and the
time-gated variant used to derive coarser cadences from a fast ticker.

Author: PulseQueue Project
License: MIT
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Union

from .base import DispatchReport, Interruptor, TriggerResult, execute
from .isolation import ErrorReporter
from ..errors import ChildExecutionError, ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ChildRef = Union[Interruptor, str]
Resolver = Callable[[str], Interruptor]


class Multiplexer(Interruptor):
    """
    Triggers every child in declared order.

    Children given by name are resolved on first dispatch and memoized,
    so a multiplexer may name interruptors that are declared later or
    that refer back to it.
    """

    def __init__(
        self,
        children: Sequence[ChildRef] = (),
        resolver: Optional[Resolver] = None,
        name: str = "multiplexer",
        error_reporter: Optional[ErrorReporter] = None
    ):
        """
        Initialize multiplexer.

        Args:
            children: Interruptors or identifiers, in dispatch order
            resolver: Maps an identifier to an Interruptor (required for names)
            name: Identifier used in logs and reports
            error_reporter: Receives each failed child result
        """
        self.name = name
        self._children = tuple(children)
        self._resolver = resolver
        self._resolved: Dict[int, Interruptor] = {}
        self.error_reporter = error_reporter

        for child in self._children:
            if isinstance(child, str):
                if resolver is None:
                    raise ConfigurationError(
                        f"Multiplexer '{name}' names child '{child}' but has no resolver"
                    )
            elif not isinstance(child, Interruptor):
                raise ConfigurationError(f"Multiplexer '{name}' child is not an Interruptor: {child!r}")

    @property
    def children(self) -> tuple:
        return self._children

    def _child_name(self, child: ChildRef) -> str:
        return child if isinstance(child, str) else getattr(child, 'name', repr(child))

    def _resolve(self, index: int) -> Interruptor:
        child = self._children[index]
        if not isinstance(child, str):
            return child
        if index not in self._resolved:
            self._resolved[index] = self._resolver(child)
        return self._resolved[index]

    def dispatch(self) -> DispatchReport:
        """Trigger each child once, isolating failures per child."""
        report = DispatchReport(name=self.name)

        for index, child in enumerate(self._children):
            child_name = self._child_name(child)
            try:
                interruptor = self._resolve(index)
            except Exception as e:
                logger.error(f"Multiplexer '{self.name}' cannot resolve child '{child_name}': {e}")
                result = TriggerResult(
                    name=child_name,
                    success=False,
                    started_at=datetime.now(timezone.utc),
                    error=ChildExecutionError(child_name, e)
                )
            else:
                result = execute(interruptor, child_name)

            report.results.append(result)
            if not result.success:
                self._report(result)

        if report.failures:
            logger.warning(
                f"Multiplexer '{self.name}': {len(report.failures)}/{len(report.results)} children failed"
            )
        return report

    def _report(self, result: TriggerResult):
        if self.error_reporter is None:
            return
        try:
            self.error_reporter(result)
        except Exception as e:
            logger.error(f"Error reporter failed for '{result.name}': {e}")

    def trigger(self) -> DispatchReport:
        return self.dispatch()


class Granularity(str, Enum):
    """
    Top-of-unit gates for cron multiplexers.

    Gates compare the wall clock at dispatch time against second 0 of
    the unit; no state is kept between calls. A pulse that lands late
    (second 1 after a slow tick or a loaded host) skips that period
    entirely, and two pulses inside the same zero second both pass.
    Drivers must fire once per second with sub-second jitter for every
    period to dispatch exactly once.
    """
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    def matches(self, now: datetime) -> bool:
        if self is Granularity.SECOND:
            return True
        if now.second != 0:
            return False
        if self is Granularity.MINUTE:
            return True
        if now.minute != 0:
            return False
        if self is Granularity.HOUR:
            return True
        return now.hour == 0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CronMultiplexer(Multiplexer):
    """
    Multiplexer that only dispatches when the clock matches its granularity.

    A false gate is a plain no-op: no child is touched and the returned
    report is flagged as skipped.
    """

    def __init__(
        self,
        children: Sequence[ChildRef] = (),
        granularity: Union[Granularity, str, Callable[[datetime], bool]] = Granularity.MINUTE,
        resolver: Optional[Resolver] = None,
        name: str = "cron_multiplexer",
        clock: Callable[[], datetime] = utc_now,
        error_reporter: Optional[ErrorReporter] = None
    ):
        super().__init__(children, resolver=resolver, name=name, error_reporter=error_reporter)

        if callable(granularity) and not isinstance(granularity, Granularity):
            self._predicate = granularity
            self.granularity = None
        else:
            try:
                self.granularity = Granularity(granularity)
            except ValueError:
                raise ConfigurationError(
                    f"Cron multiplexer '{name}' has unknown granularity '{granularity}'"
                ) from None
            self._predicate = self.granularity.matches

        self.clock = clock

    def is_due(self, now: Optional[datetime] = None) -> bool:
        return bool(self._predicate(now or self.clock()))

    def trigger(self) -> DispatchReport:
        if not self.is_due():
            return DispatchReport(name=self.name, skipped=True)
        return self.dispatch()
