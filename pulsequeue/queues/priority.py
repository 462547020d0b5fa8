"""
Priority Handlers

Strategies mapping a logical queue and a priority level to the
physical queues backing it. Dequeue order follows ``levels``: the first
level is drained before the next one is read.

Author: PulseQueue Project
License: MIT
"""

from abc import ABC
from typing import Dict, List, Optional, Type

from ..errors import ConfigurationError


class PriorityHandler(ABC):
    """Ordered set of priority levels, highest first."""

    levels: List[str] = []
    default_level: str = ""
    separator: str = "-"

    def has_level(self, level: str) -> bool:
        return level in self.levels

    def level(self, level: Optional[str] = None) -> str:
        """Validate ``level``, falling back to the default level."""
        if level is None:
            return self.default_level
        if not self.has_level(level):
            raise ValueError(f"Unknown priority '{level}' for {type(self).__name__}")
        return level

    def queue_name(self, base_name: str, level: Optional[str] = None) -> str:
        """Physical queue name for ``base_name`` at ``level``."""
        level = self.level(level)
        if not level:
            return base_name
        return f"{base_name}{self.separator}{level}"

    def queue_names(self, base_name: str) -> List[str]:
        return [self.queue_name(base_name, level) for level in self.levels]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(levels={self.levels!r})"


class StandardPriorityHandler(PriorityHandler):
    """Single level: plain FIFO on one physical queue."""

    levels = [""]
    default_level = ""


class ThreeLevelPriorityHandler(PriorityHandler):
    """HIGH, MID and LOW queues; MID is the default."""

    levels = ["HIGH", "MID", "LOW"]
    default_level = "MID"


PRIORITY_HANDLERS: Dict[str, Type[PriorityHandler]] = {
    "standard": StandardPriorityHandler,
    "three_level": ThreeLevelPriorityHandler,
}


def get_priority_handler(name: str) -> PriorityHandler:
    """
    Look up a priority handler by registered name.

    Raises:
        ConfigurationError: If no handler is registered under ``name``
    """
    handler_cls = PRIORITY_HANDLERS.get(name)
    if handler_cls is None:
        raise ConfigurationError(f"Invalid option 'priorityHandler': unknown handler '{name}'")
    return handler_cls()
