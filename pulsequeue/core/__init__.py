"""
PulseQueue Core Module

Registry, builders and the orchestrator tying the scheduler tree to the
managed queues.

Author: PulseQueue Project
License: MIT
"""

from .orchestrator import Orchestrator
from .registry import InterruptorRegistry, LazyInterruptor
from .builders import build_registry

__all__ = ['Orchestrator', 'InterruptorRegistry', 'LazyInterruptor', 'build_registry']
