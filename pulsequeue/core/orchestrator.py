"""
Orchestrator

Wires configuration into a running system: provisions the managed
queues, builds the interruptor tree and drives its root ticker.

Author: PulseQueue Project
License: MIT
"""

from collections import deque
from typing import Callable, Deque, Dict, Mapping, Optional

from .builders import build_registry
from .registry import InterruptorRegistry
from ..config.schema import Config
from ..errors import ConfigurationError
from ..interruptor.base import TriggerResult
from ..interruptor.isolation import InlineWrapper
from ..interruptor.ticker import Ticker
from ..queues.adapter import SqsAdapter
from ..queues.provisioner import QueueProvisioner
from ..scheduler.pulse_driver import PulseDriver
from ..utils.logger import get_logger

logger = get_logger(__name__)

MAX_RECENT_FAILURES = 100


class Orchestrator:
    """
    Main orchestrator for PulseQueue.

    ``initialize()`` performs the blocking bootstrap (queue provisioning,
    registry construction); ``start()``/``stop()`` control the pulse
    driver.
    """

    def __init__(
        self,
        config: Config,
        callbacks: Optional[Mapping[str, Callable]] = None,
        provisioner: Optional[QueueProvisioner] = None
    ):
        """
        Initialize orchestrator.

        Args:
            config: Application configuration
            callbacks: Named leaf jobs and queue message handlers
            provisioner: Queue provisioner (default SQS-backed)
        """
        self.config = config
        self.callbacks = dict(callbacks or {})
        self.provisioner = provisioner or QueueProvisioner()

        self.queues: Dict[str, SqsAdapter] = {}
        self.registry: Optional[InterruptorRegistry] = None
        self.driver: Optional[PulseDriver] = None

        self.recent_failures: Deque[TriggerResult] = deque(maxlen=MAX_RECENT_FAILURES)
        self.failure_count = 0

        logger.info("Orchestrator created")

    def report_failure(self, result: TriggerResult):
        """Error channel shared by every wrapper and multiplexer."""
        self.failure_count += 1
        self.recent_failures.append(result)

    def initialize(self):
        """Provision queues and build the interruptor registry."""
        logger.info("Initializing orchestrator...")

        for name, queue_config in self.config.queues.items():
            logger.info(f"Provisioning queue '{name}'")
            adapter = self.provisioner.provision(queue_config)
            # applies the attributes (and redrive policy) to every priority level
            adapter.create_queue(name)
            self.queues[name] = adapter

        self.registry = build_registry(
            self.config,
            callbacks=self.callbacks,
            queues=self.queues,
            error_reporter=self.report_failure
        )

        pulse = self.config.pulse
        if pulse.enabled and self.registry.has(pulse.root):
            root = self.registry.get(pulse.root)
            if not isinstance(root, Ticker):
                raise ConfigurationError(f"Pulse root '{pulse.root}' must be a ticker")
            self.driver = PulseDriver(root, pulse.interval_seconds)
        elif pulse.enabled:
            logger.warning(f"Pulse root '{pulse.root}' not configured, pulse driver disabled")

        logger.info("Orchestrator initialized")

    def start(self):
        """Start the pulse driver."""
        if self.registry is None:
            self.initialize()

        if self.driver is None:
            logger.warning("No pulse driver configured, nothing to start")
            return

        self.driver.start()

    def stop(self):
        """Stop the pulse driver."""
        if self.driver:
            self.driver.stop()

    def trigger(self, name: str) -> TriggerResult:
        """
        Fire one interruptor out of band (webhook, manual run).

        Raises:
            UnknownInterruptorError: If ``name`` is unknown
            ConfigurationError: Not initialized, or the interruptor cannot be built
        """
        if self.registry is None:
            raise ConfigurationError("Orchestrator not initialized")

        interruptor = self.registry.get(name)
        logger.info(f"Manual trigger: {name}")
        return InlineWrapper(error_reporter=self.report_failure).run(interruptor)

    def get_status(self) -> dict:
        """
        Get current orchestrator status.

        Returns:
            Dictionary with status information
        """
        return {
            'initialized': self.registry is not None,
            'pulse': self.driver.get_status() if self.driver else None,
            'interruptors': self.registry.names() if self.registry else [],
            'queues': sorted(self.queues),
            'failure_count': self.failure_count,
            'recent_failures': [r.to_dict() for r in list(self.recent_failures)[-10:]]
        }
