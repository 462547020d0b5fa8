"""
Queue Service Interface

The three remote operations queue provisioning needs, with the SQS
implementation on top of boto3.

Author: PulseQueue Project
License: MIT
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config as BotoConfig

from ..utils.logger import get_logger

logger = get_logger(__name__)

# One address lookup stays short, so the provisioning deadline is kept.
PROVISIONING_CLIENT_CONFIG = BotoConfig(
    connect_timeout=2,
    read_timeout=2,
    retries={'total_max_attempts': 1, 'mode': 'standard'}
)

# read_timeout must exceed the longest receive wait (20s).
ADAPTER_CLIENT_CONFIG = BotoConfig(
    connect_timeout=5,
    read_timeout=30,
    retries={'total_max_attempts': 3, 'mode': 'standard'}
)


def build_sqs_client(client_config: Dict[str, Any], defaults: BotoConfig = ADAPTER_CLIENT_CONFIG):
    """
    Create an SQS client with bounded timeouts and retries.

    A ``config`` entry in ``client_config`` (a botocore Config or a
    mapping of its options) is merged over ``defaults``; its explicit
    values win.
    """
    kwargs = dict(client_config)
    user_config = kwargs.pop('config', None)
    if isinstance(user_config, dict):
        user_config = BotoConfig(**user_config)
    config = defaults.merge(user_config) if user_config is not None else defaults
    return boto3.client('sqs', config=config, **kwargs)


def queue_name_from_url(url: str) -> str:
    """Last path segment of a queue URL."""
    return url.rstrip('/').rsplit('/', 1)[-1]


class QueueService(ABC):
    """Remote queue management operations."""

    @abstractmethod
    def list_queues(self) -> List[str]:
        """Names of the queues that currently exist."""

    @abstractmethod
    def create_queue(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> None:
        """Create ``name``; creating an existing queue is not an error."""

    @abstractmethod
    def resolve_address(self, name: str) -> str:
        """
        ARN of ``name``.

        Raises whatever the backend raises while the queue is not yet
        visible; callers retry.
        """


class SqsQueueService(QueueService):
    """QueueService backed by an SQS client."""

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_config(cls, client_config: Dict[str, Any]) -> 'SqsQueueService':
        """Build from SQS client keyword arguments (region_name, endpoint_url...)."""
        return cls(build_sqs_client(client_config, PROVISIONING_CLIENT_CONFIG))

    def list_queues(self) -> List[str]:
        names = []
        paginator = self.client.get_paginator('list_queues')
        for page in paginator.paginate():
            names.extend(queue_name_from_url(url) for url in page.get('QueueUrls', []))
        return names

    def create_queue(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> None:
        self.client.create_queue(
            QueueName=name,
            Attributes={k: str(v) for k, v in (attributes or {}).items()}
        )
        logger.info(f"Created queue '{name}'")

    def resolve_address(self, name: str) -> str:
        url = self.client.get_queue_url(QueueName=name)['QueueUrl']
        response = self.client.get_queue_attributes(QueueUrl=url, AttributeNames=['QueueArn'])
        return response['Attributes']['QueueArn']
