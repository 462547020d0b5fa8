"""
Unit Tests for Multiplexers

Tests ordered fan-out, per-child failure isolation, lazy child
resolution and the cron gate.

Author: PulseQueue Project
License: MIT
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import Mock

from pulsequeue.errors import ConfigurationError
from pulsequeue.interruptor import CallbackInterruptor, CronMultiplexer, Granularity, Multiplexer


def at(hour=12, minute=30, second=0):
    return datetime(2024, 5, 17, hour, minute, second, tzinfo=timezone.utc)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def abc(calls):
    """Children A, B, C where B always fails."""
    def b():
        calls.append("B")
        raise RuntimeError("B always fails")

    return [
        CallbackInterruptor("A", lambda: calls.append("A")),
        CallbackInterruptor("B", b),
        CallbackInterruptor("C", lambda: calls.append("C")),
    ]


class TestMultiplexer:
    """Test suite for Multiplexer."""

    def test_failing_child_does_not_stop_siblings(self, abc, calls):
        """A and C run exactly once each, in order, despite B failing."""
        report = Multiplexer(abc).trigger()

        assert calls == ["A", "B", "C"]
        assert [r.name for r in report.results] == ["A", "B", "C"]
        assert [r.success for r in report.results] == [True, False, True]
        assert [r.name for r in report.failures] == ["B"]
        assert report.succeeded is False

    def test_repeated_triggers_keep_order(self, abc, calls):
        mux = Multiplexer(abc)

        mux.trigger()
        mux.trigger()

        assert calls == ["A", "B", "C", "A", "B", "C"]

    def test_error_reporter_receives_failures(self, abc):
        reporter = Mock()
        Multiplexer(abc, error_reporter=reporter).trigger()

        reporter.assert_called_once()
        assert reporter.call_args[0][0].name == "B"

    def test_named_children_resolved_lazily_and_memoized(self, calls):
        """Resolver is only consulted on first dispatch, once per child."""
        children = {
            "first": CallbackInterruptor("first", lambda: calls.append("first")),
            "second": CallbackInterruptor("second", lambda: calls.append("second")),
        }
        resolver = Mock(side_effect=lambda name: children[name])

        mux = Multiplexer(["first", "second"], resolver=resolver)
        assert resolver.call_count == 0

        mux.trigger()
        mux.trigger()

        assert resolver.call_count == 2
        assert calls == ["first", "second", "first", "second"]

    def test_unresolvable_child_is_isolated(self, calls):
        """A child that cannot be resolved fails alone."""
        def resolver(name):
            if name == "missing":
                raise ConfigurationError("Unknown interruptor 'missing'")
            return CallbackInterruptor(name, lambda: calls.append(name))

        report = Multiplexer(["missing", "present"], resolver=resolver).trigger()

        assert calls == ["present"]
        assert report.results[0].success is False
        assert report.results[1].success is True

    def test_named_child_without_resolver_rejected(self):
        with pytest.raises(ConfigurationError):
            Multiplexer(["orphan"])

    def test_non_interruptor_child_rejected(self):
        with pytest.raises(ConfigurationError):
            Multiplexer([object()])

    def test_empty_multiplexer(self):
        report = Multiplexer().trigger()

        assert report.results == []
        assert report.succeeded is True


class TestCronMultiplexer:
    """Test suite for CronMultiplexer."""

    def test_false_gate_invokes_nothing(self, abc, calls):
        """Off-granularity triggers are no-ops whatever the children do."""
        mux = CronMultiplexer(abc, granularity="minute", clock=lambda: at(second=17))

        report = mux.trigger()

        assert calls == []
        assert report.skipped is True
        assert report.results == []

    def test_true_gate_dispatches_like_multiplexer(self, abc, calls):
        mux = CronMultiplexer(abc, granularity=Granularity.MINUTE, clock=lambda: at(second=0))

        report = mux.trigger()

        assert calls == ["A", "B", "C"]
        assert report.skipped is False
        assert len(report.failures) == 1

    def test_custom_predicate(self, calls):
        child = CallbackInterruptor("even", lambda: calls.append("even"))
        mux = CronMultiplexer(
            [child],
            granularity=lambda now: now.second % 2 == 0,
            clock=lambda: at(second=4)
        )

        mux.trigger()

        assert calls == ["even"]

    def test_unknown_granularity_rejected(self):
        with pytest.raises(ConfigurationError, match="granularity"):
            CronMultiplexer([], granularity="fortnight")

    @pytest.mark.parametrize("granularity,moment,expected", [
        (Granularity.SECOND, at(second=31), True),
        (Granularity.MINUTE, at(minute=5, second=0), True),
        (Granularity.MINUTE, at(minute=5, second=1), False),
        (Granularity.HOUR, at(minute=0, second=0), True),
        (Granularity.HOUR, at(minute=1, second=0), False),
        (Granularity.DAY, at(hour=0, minute=0, second=0), True),
        (Granularity.DAY, at(hour=3, minute=0, second=0), False),
    ])
    def test_granularity_matches(self, granularity, moment, expected):
        assert granularity.matches(moment) is expected

    def test_late_pulse_skips_the_period(self):
        """The gate is stateless: a pulse landing at second 1 misses the minute."""
        moments = iter([at(minute=4, second=59), at(minute=5, second=1), at(minute=5, second=2)])
        calls = []
        mux = CronMultiplexer(
            [CallbackInterruptor("job", lambda: calls.append(1))],
            granularity="minute",
            clock=lambda: next(moments)
        )

        reports = [mux.trigger() for _ in range(3)]

        assert calls == []
        assert all(r.skipped for r in reports)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
