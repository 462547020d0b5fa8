"""
Builders

Explicit construction of the scheduler tree from validated
configuration, one builder per interruptor kind.

Author: PulseQueue Project
License: MIT
"""

from typing import Any, Callable, Mapping, Optional

from .registry import InterruptorRegistry
from ..config.schema import (
    Config,
    CronMultiplexerConfig,
    MultiplexerConfig,
    QueueConsumerConfig,
    TickerConfig
)
from ..errors import ConfigurationError
from ..interruptor.base import CallbackInterruptor, Interruptor
from ..interruptor.isolation import ErrorReporter, create_wrapper
from ..interruptor.multiplexer import CronMultiplexer, Multiplexer
from ..interruptor.ticker import Ticker
from ..queues.adapter import SqsAdapter
from ..queues.consumer import QueueConsumer
from ..utils.imports import import_object, is_import_path
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _interruptor_from_object(ref: str, obj: Any) -> Interruptor:
    if isinstance(obj, Interruptor):
        return obj
    if isinstance(obj, type) and issubclass(obj, Interruptor):
        return obj()
    if callable(obj):
        return CallbackInterruptor(ref, obj)
    raise ConfigurationError(f"Reference '{ref}' is neither an Interruptor nor callable")


def resolve_reference(registry: InterruptorRegistry, ref: str, lazy: bool = True) -> Interruptor:
    """
    Resolve a callback or child reference.

    Registry names win; otherwise ``ref`` must be a ``module:attribute``
    import path. Registry names come back as lazy proxies unless
    ``lazy`` is False.
    """
    if registry.has(ref):
        return registry.ref(ref) if lazy else registry.get(ref)
    if is_import_path(ref):
        return _interruptor_from_object(ref, import_object(ref))
    raise ConfigurationError(f"Unresolvable reference '{ref}'")


def check_reference(registry: InterruptorRegistry, ref: str, owner: str):
    """Fail fast on references that can never resolve."""
    if registry.has(ref):
        return
    if is_import_path(ref):
        _interruptor_from_object(ref, import_object(ref))
        return
    raise ConfigurationError(f"'{owner}' references unknown interruptor or callback '{ref}'")


def build_ticker(name: str, entry: TickerConfig, error_reporter: Optional[ErrorReporter] = None):
    def factory(registry: InterruptorRegistry) -> Ticker:
        return Ticker(
            target=resolve_reference(registry, entry.callback),
            threshold=entry.threshold,
            wrapper=create_wrapper(entry.wrapper, entry.timeout, error_reporter),
            name=name
        )
    return factory


def build_multiplexer(name: str, entry: MultiplexerConfig, error_reporter: Optional[ErrorReporter] = None):
    def factory(registry: InterruptorRegistry) -> Multiplexer:
        resolver = lambda ref: resolve_reference(registry, ref, lazy=False)
        if isinstance(entry, CronMultiplexerConfig):
            return CronMultiplexer(
                children=entry.children,
                granularity=entry.granularity,
                resolver=resolver,
                name=name,
                error_reporter=error_reporter
            )
        return Multiplexer(
            children=entry.children,
            resolver=resolver,
            name=name,
            error_reporter=error_reporter
        )
    return factory


def build_queue_consumer(
    name: str,
    entry: QueueConsumerConfig,
    queues: Mapping[str, SqsAdapter],
    callbacks: Mapping[str, Callable]
):
    adapter = queues.get(entry.queue)
    if adapter is None:
        raise ConfigurationError(f"Queue consumer '{name}': queue '{entry.queue}' was not provisioned")

    if entry.handler in callbacks:
        handler = callbacks[entry.handler]
    elif is_import_path(entry.handler):
        handler = import_object(entry.handler)
    else:
        raise ConfigurationError(f"Queue consumer '{name}': unknown handler '{entry.handler}'")

    if not callable(handler):
        raise ConfigurationError(f"Queue consumer '{name}': handler '{entry.handler}' is not callable")

    def factory(registry: InterruptorRegistry) -> QueueConsumer:
        return QueueConsumer(
            adapter=adapter,
            queue_name=entry.queue,
            handler=handler,
            max_messages=entry.max_messages,
            priority=entry.priority,
            name=name
        )
    return factory


def build_registry(
    config: Config,
    callbacks: Optional[Mapping[str, Callable]] = None,
    queues: Optional[Mapping[str, SqsAdapter]] = None,
    error_reporter: Optional[ErrorReporter] = None
) -> InterruptorRegistry:
    """
    Register every configured interruptor and check its references.

    Args:
        config: Validated configuration
        callbacks: Named leaf jobs (also used as consumer message handlers)
        queues: Provisioned adapters by queue name
        error_reporter: Receives every failed trigger result

    Returns:
        Registry with one factory per configured interruptor
    """
    callbacks = dict(callbacks or {})
    queues = dict(queues or {})
    registry = InterruptorRegistry()

    for name, callback in callbacks.items():
        if name not in config.interruptors:
            registry.register_callback(name, callback)

    for name, entry in config.interruptors.items():
        if isinstance(entry, TickerConfig):
            factory = build_ticker(name, entry, error_reporter)
        elif isinstance(entry, MultiplexerConfig):
            factory = build_multiplexer(name, entry, error_reporter)
        elif isinstance(entry, QueueConsumerConfig):
            factory = build_queue_consumer(name, entry, queues, callbacks)
        else:
            raise ConfigurationError(f"Interruptor '{name}' has unsupported type {type(entry).__name__}")
        registry.register_factory(name, factory)

    for name, entry in config.interruptors.items():
        if isinstance(entry, TickerConfig):
            check_reference(registry, entry.callback, name)
        elif isinstance(entry, MultiplexerConfig):
            for child in entry.children:
                check_reference(registry, child, name)

    logger.info(f"Registry built with {len(registry.names())} interruptors")
    return registry
