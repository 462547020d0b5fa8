"""
Queue Adapter Provisioner

Turns a queue declaration into a ready SqsAdapter. When a dead-letter
queue is configured it is created if absent, its ARN is polled until
the service reports it, and a RedrivePolicy pointing at it is merged
into the queue attributes.

Author: PulseQueue Project
License: MIT
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from .adapter import SqsAdapter
from .priority import PRIORITY_HANDLERS, PriorityHandler, StandardPriorityHandler, get_priority_handler
from .service import QueueService, SqsQueueService
from ..config.schema import DEFAULT_MAX_RECEIVE_COUNT, QueueConfig, check_queue_settings
from ..errors import ConfigurationError, ProvisioningTimeoutError
from ..utils.imports import import_object, is_import_path
from ..utils.logger import get_logger

logger = get_logger(__name__)

PROVISION_TIMEOUT = 120.0
RETRY_INTERVAL = 1.0

ServiceFactory = Callable[[Dict[str, Any]], QueueService]


@dataclass(frozen=True)
class RedrivePolicy:
    """Redrive settings attached to the primary queue."""
    max_receive_count: int
    dead_letter_target_arn: str

    def to_json(self) -> str:
        return json.dumps({
            'maxReceiveCount': self.max_receive_count,
            'deadLetterTargetArn': self.dead_letter_target_arn
        })


class QueueProvisioner:
    """
    Builds SqsAdapters, provisioning dead-letter queues on the way.

    Provisioning is idempotent: the dead-letter queue is only created
    when listing does not show it, and creation of an existing queue is
    accepted by the service, so concurrent bootstraps converge on one
    queue.
    """

    def __init__(
        self,
        service_factory: ServiceFactory = SqsQueueService.from_config,
        priority_handlers: Optional[Mapping[str, Any]] = None,
        timeout: float = PROVISION_TIMEOUT,
        interval: float = RETRY_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize provisioner.

        Args:
            service_factory: Builds a QueueService from SQS client config
            priority_handlers: Extra named handlers (instances or classes)
            timeout: Overall bound for resolving the dead-letter queue ARN
            interval: Pause between ARN lookups
            clock: Monotonic time source
            sleep: Sleep function used between lookups
        """
        if timeout <= 0 or interval <= 0:
            raise ConfigurationError("Provisioning timeout and interval must be positive")

        self.service_factory = service_factory
        self.priority_handlers = dict(priority_handlers or {})
        self.timeout = timeout
        self.interval = interval
        self.clock = clock
        self.sleep = sleep

    def provision(self, config: Union[QueueConfig, Mapping[str, Any]]) -> SqsAdapter:
        """
        Provision and return the adapter for one queue declaration.

        Args:
            config: QueueConfig or mapping with the same (camelCase or snake_case) keys

        Returns:
            SqsAdapter bound to the client config, priority handler and final attributes

        Raises:
            ConfigurationError: Invalid declaration or unknown priority handler
            ProvisioningTimeoutError: Dead-letter queue ARN not resolvable in time
        """
        config = self._parse(config)

        priority_handler = self.resolve_priority_handler(config.priority_handler)
        check_queue_settings(
            config.sqs_client_config,
            config.dead_letter_queue_name,
            config.max_receive_count
        )

        attributes = dict(config.sqs_attributes)

        if config.dead_letter_queue_name:
            service = self.service_factory(config.sqs_client_config)
            self.ensure_queue(service, config.dead_letter_queue_name)
            arn = self.wait_for_address(service, config.dead_letter_queue_name)

            policy = RedrivePolicy(
                max_receive_count=config.max_receive_count or DEFAULT_MAX_RECEIVE_COUNT,
                dead_letter_target_arn=arn
            )
            attributes['RedrivePolicy'] = policy.to_json()
            logger.info(
                f"Redrive policy set: dead-letter queue '{config.dead_letter_queue_name}' "
                f"after {policy.max_receive_count} receives"
            )

        return SqsAdapter(config.sqs_client_config, priority_handler, attributes)

    def _parse(self, config: Union[QueueConfig, Mapping[str, Any]]) -> QueueConfig:
        if isinstance(config, QueueConfig):
            return config
        try:
            return QueueConfig.parse_obj(dict(config))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid queue configuration: {e}") from e

    def resolve_priority_handler(self, ref: Optional[str]) -> PriorityHandler:
        """
        Resolve a priority handler reference.

        Lookup order: handlers given to the provisioner, built-in names,
        then ``module:attribute`` import paths.
        """
        if ref is None:
            return StandardPriorityHandler()

        if ref in self.priority_handlers:
            handler = self.priority_handlers[ref]
        elif ref in PRIORITY_HANDLERS:
            return get_priority_handler(ref)
        elif is_import_path(ref):
            handler = import_object(ref)
        else:
            raise ConfigurationError(f"Invalid option 'priorityHandler': unknown handler '{ref}'")

        if isinstance(handler, type) and issubclass(handler, PriorityHandler):
            handler = handler()
        if not isinstance(handler, PriorityHandler):
            raise ConfigurationError(f"Invalid option 'priorityHandler': '{ref}' is not a PriorityHandler")
        return handler

    def ensure_queue(self, service: QueueService, name: str) -> bool:
        """
        Create ``name`` unless it is already listed.

        Returns:
            True if a create request was issued
        """
        if name in service.list_queues():
            logger.debug(f"Dead-letter queue '{name}' already exists")
            return False

        logger.info(f"Creating dead-letter queue '{name}'")
        service.create_queue(name, {})
        return True

    def wait_for_address(self, service: QueueService, name: str) -> str:
        """
        Poll for the ARN of ``name`` until it resolves or the timeout passes.

        Raises:
            ProvisioningTimeoutError: When the deadline is reached
        """
        start = self.clock()
        deadline = start + self.timeout
        last_error: Optional[BaseException] = None
        attempts = 0

        while True:
            now = self.clock()
            if now >= deadline:
                logger.error(f"Gave up resolving '{name}' after {attempts} attempts: {last_error}")
                raise ProvisioningTimeoutError(name, now - start, last_error)

            attempts += 1
            try:
                arn = service.resolve_address(name)
            except Exception as e:
                last_error = e
                logger.debug(f"Queue '{name}' not resolvable yet (attempt {attempts}): {e}")
                self.sleep(self.interval)
                continue

            if arn:
                logger.debug(f"Resolved '{name}' to {arn} after {attempts} attempts")
                return arn

            self.sleep(self.interval)


def provision(config: Union[QueueConfig, Mapping[str, Any]], **kwargs) -> SqsAdapter:
    """Provision with a default QueueProvisioner (kwargs go to its constructor)."""
    return QueueProvisioner(**kwargs).provision(config)
