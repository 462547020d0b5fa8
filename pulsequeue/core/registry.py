"""
Interruptor Registry

Name-keyed factories with memoized construction. Lets configuration
refer to interruptors before they exist, including cyclic references
through lazy proxies.

Author: PulseQueue Project
License: MIT
"""

import threading
from typing import Any, Callable, Dict, List, Optional

from ..errors import ConfigurationError, UnknownInterruptorError
from ..interruptor.base import CallbackInterruptor, Interruptor
from ..utils.logger import get_logger

logger = get_logger(__name__)

Factory = Callable[['InterruptorRegistry'], Interruptor]


class LazyInterruptor(Interruptor):
    """Proxy resolving a registry name on first trigger."""

    def __init__(self, registry: 'InterruptorRegistry', name: str):
        self.name = name
        self._registry = registry
        self._target: Optional[Interruptor] = None

    @property
    def target(self) -> Interruptor:
        if self._target is None:
            self._target = self._registry.get(self.name)
        return self._target

    def trigger(self) -> Any:
        return self.target.trigger()

    def __repr__(self) -> str:
        return f"LazyInterruptor(name={self.name!r})"


class InterruptorRegistry:
    """
    Registry mapping identifiers to interruptor factories.

    Instances are built on first ``get()`` and memoized for the process
    lifetime.
    """

    def __init__(self):
        self._factories: Dict[str, Factory] = {}
        self._instances: Dict[str, Interruptor] = {}
        self._constructing: List[str] = []
        self._lock = threading.RLock()

    def register_factory(self, name: str, factory: Factory, replace: bool = False):
        """
        Register a factory for ``name``.

        Args:
            name: Identifier
            factory: Callable receiving this registry, returning an Interruptor
            replace: Allow overriding an existing registration
        """
        with self._lock:
            if not replace and self.has(name):
                raise ConfigurationError(f"Interruptor '{name}' is already registered")
            self._instances.pop(name, None)
            self._factories[name] = factory

    def register(self, name: str, interruptor: Interruptor, replace: bool = False):
        """Register an already constructed interruptor."""
        with self._lock:
            if not replace and self.has(name):
                raise ConfigurationError(f"Interruptor '{name}' is already registered")
            self._factories.pop(name, None)
            self._instances[name] = interruptor

    def register_callback(self, name: str, callback: Callable[[], Any], replace: bool = False):
        """Register a plain callable as a leaf job."""
        self.register(name, CallbackInterruptor(name, callback), replace=replace)

    def has(self, name: str) -> bool:
        return name in self._factories or name in self._instances

    def names(self) -> List[str]:
        return sorted(set(self._factories) | set(self._instances))

    def get(self, name: str) -> Interruptor:
        """
        Resolve ``name`` to a live interruptor.

        Raises:
            UnknownInterruptorError: Nothing registered under ``name``
            ConfigurationError: Construction cycle or a bad factory
        """
        with self._lock:
            if name in self._instances:
                return self._instances[name]

            factory = self._factories.get(name)
            if factory is None:
                raise UnknownInterruptorError(name)

            if name in self._constructing:
                chain = " -> ".join(self._constructing + [name])
                raise ConfigurationError(f"Cyclic construction of interruptor: {chain}")

            self._constructing.append(name)
            try:
                instance = factory(self)
            finally:
                self._constructing.pop()

            if not isinstance(instance, Interruptor):
                raise ConfigurationError(
                    f"Factory for '{name}' returned {type(instance).__name__}, not an Interruptor"
                )

            self._instances[name] = instance
            logger.debug(f"Constructed interruptor '{name}': {instance!r}")
            return instance

    def ref(self, name: str) -> LazyInterruptor:
        """Lazy proxy for ``name``; safe to take before it is registered."""
        return LazyInterruptor(self, name)

    def __contains__(self, name: str) -> bool:
        return self.has(name)
