"""
Shared Test Fixtures

In-memory queue service and a manual clock for deterministic
provisioning tests.

Author: PulseQueue Project
License: MIT
"""

import pytest
from typing import Any, Dict, List, Optional

from pulsequeue.queues.service import QueueService


class FakeQueueService(QueueService):
    """
    In-memory QueueService.

    ``hidden_lookups`` makes the first N address lookups fail, like a
    freshly created queue that the service does not report yet.
    """

    def __init__(self, hidden_lookups: int = 0, never_visible: bool = False):
        self.queues: Dict[str, str] = {}
        self.hidden_lookups = hidden_lookups
        self.never_visible = never_visible
        self.create_calls: List[str] = []
        self.list_calls = 0
        self.lookups = 0

    def list_queues(self) -> List[str]:
        self.list_calls += 1
        return list(self.queues)

    def create_queue(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> None:
        self.create_calls.append(name)
        self.queues.setdefault(name, f"arn:aws:sqs:us-east-1:123456789012:{name}")

    def resolve_address(self, name: str) -> str:
        self.lookups += 1
        if self.never_visible or name not in self.queues or self.lookups <= self.hidden_lookups:
            raise RuntimeError(f"AWS.SimpleQueueService.NonExistentQueue: {name}")
        return self.queues[name]


class ManualClock:
    """Clock advanced only by its own sleep()."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_service():
    """Queue service with immediately visible queues."""
    return FakeQueueService()


@pytest.fixture
def make_service():
    """Factory for services with delayed or missing visibility."""
    return FakeQueueService


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def client_config():
    return {"region_name": "us-east-1"}
