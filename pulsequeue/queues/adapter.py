"""
SQS Adapter

Priority-aware queue client. Each logical queue is backed by one SQS
queue per priority level of its handler; messages are JSON encoded.

Author: PulseQueue Project
License: MIT
"""

import json
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .priority import PriorityHandler, StandardPriorityHandler
from .service import build_sqs_client, queue_name_from_url
from ..utils.logger import get_logger

logger = get_logger(__name__)

MAX_BATCH = 10


@dataclass
class QueueMessage:
    """Message received from a managed queue."""
    id: str
    receipt_handle: str
    body: Any
    priority: str
    queue_name: str
    malformed: bool = False

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'body': self.body,
            'priority': self.priority,
            'queue_name': self.queue_name
        }


class SqsAdapter:
    """
    Queue client handed out by the provisioner.

    ``attributes`` are applied to every queue this adapter creates; when
    a dead-letter queue was provisioned they include the RedrivePolicy.
    """

    def __init__(
        self,
        client_config: Dict[str, Any],
        priority_handler: Optional[PriorityHandler] = None,
        attributes: Optional[Dict[str, Any]] = None,
        client=None
    ):
        """
        Initialize adapter.

        Args:
            client_config: SQS client keyword arguments
            priority_handler: Priority strategy (standard FIFO if None)
            attributes: Queue attributes for created queues
            client: Pre-built SQS client (created lazily from client_config if None)
        """
        self.client_config = dict(client_config)
        self.priority_handler = priority_handler or StandardPriorityHandler()
        self.attributes = dict(attributes or {})
        self._client = client
        self._urls: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def client(self):
        with self._lock:
            if self._client is None:
                self._client = build_sqs_client(self.client_config)
            return self._client

    def _levels(self, priority: Optional[str]) -> List[str]:
        if priority is None:
            return list(self.priority_handler.levels)
        return [self.priority_handler.level(priority)]

    def _url(self, physical_name: str) -> str:
        if physical_name not in self._urls:
            self._urls[physical_name] = self.client.get_queue_url(QueueName=physical_name)['QueueUrl']
        return self._urls[physical_name]

    def create_queue(self, name: str):
        """Create the physical queue of every priority level."""
        attributes = {k: str(v) for k, v in self.attributes.items()}
        for physical_name in self.priority_handler.queue_names(name):
            response = self.client.create_queue(QueueName=physical_name, Attributes=attributes)
            self._urls[physical_name] = response['QueueUrl']
            logger.info(f"Queue ready: {physical_name}")

    def delete_queue(self, name: str):
        for physical_name in self.priority_handler.queue_names(name):
            self.client.delete_queue(QueueUrl=self._url(physical_name))
            self._urls.pop(physical_name, None)
            logger.info(f"Queue deleted: {physical_name}")

    def list_queues(self, prefix: str = "") -> List[str]:
        """Logical queue names (priority suffixes stripped)."""
        kwargs = {'QueueNamePrefix': prefix} if prefix else {}
        urls = self.client.list_queues(**kwargs).get('QueueUrls', [])
        names = []
        for url in urls:
            name = queue_name_from_url(url)
            for level in self.priority_handler.levels:
                suffix = f"{self.priority_handler.separator}{level}" if level else ""
                if suffix and name.endswith(suffix):
                    name = name[:-len(suffix)]
                    break
            if name not in names:
                names.append(name)
        return names

    def add_message(self, name: str, message: Any, priority: Optional[str] = None, delay_seconds: int = 0) -> str:
        """
        Send one message.

        Returns:
            SQS message id
        """
        physical_name = self.priority_handler.queue_name(name, priority)
        response = self.client.send_message(
            QueueUrl=self._url(physical_name),
            MessageBody=json.dumps(message),
            DelaySeconds=delay_seconds
        )
        logger.debug(f"Message {response['MessageId']} sent to {physical_name}")
        return response['MessageId']

    def add_messages(self, name: str, messages: Iterable[Any], priority: Optional[str] = None) -> List[str]:
        """Send messages in batches of ten; raises if any entry failed."""
        physical_name = self.priority_handler.queue_name(name, priority)
        url = self._url(physical_name)
        messages = list(messages)
        ids = []

        for offset in range(0, len(messages), MAX_BATCH):
            chunk = messages[offset:offset + MAX_BATCH]
            response = self.client.send_message_batch(
                QueueUrl=url,
                Entries=[
                    {'Id': str(i), 'MessageBody': json.dumps(body)}
                    for i, body in enumerate(chunk)
                ]
            )
            failed = response.get('Failed', [])
            if failed:
                raise RuntimeError(f"{len(failed)} messages rejected by {physical_name}: {failed}")
            ids.extend(entry['MessageId'] for entry in response.get('Successful', []))

        return ids

    def get_messages(
        self,
        name: str,
        max_messages: int = 1,
        priority: Optional[str] = None,
        wait_time_seconds: int = 0
    ) -> List[QueueMessage]:
        """
        Receive up to ``max_messages``, reading higher priorities first.
        """
        if not 1 <= max_messages <= MAX_BATCH:
            raise ValueError(f"max_messages must be between 1 and {MAX_BATCH}")

        received: List[QueueMessage] = []
        for level in self._levels(priority):
            remaining = max_messages - len(received)
            if remaining <= 0:
                break

            physical_name = self.priority_handler.queue_name(name, level)
            response = self.client.receive_message(
                QueueUrl=self._url(physical_name),
                MaxNumberOfMessages=remaining,
                WaitTimeSeconds=wait_time_seconds
            )
            for raw in response.get('Messages', []):
                received.append(self._decode(raw, level, physical_name))

        return received

    @staticmethod
    def _decode(raw: Dict[str, Any], level: str, physical_name: str) -> QueueMessage:
        """A body that is not JSON is kept as text and flagged ``malformed``."""
        message = QueueMessage(
            id=raw['MessageId'],
            receipt_handle=raw['ReceiptHandle'],
            body=raw['Body'],
            priority=level,
            queue_name=physical_name
        )
        try:
            message.body = json.loads(raw['Body'])
        except ValueError as e:
            logger.warning(f"Message {message.id} on {physical_name} is not valid JSON: {e}")
            message.malformed = True
        return message

    def delete_message(self, name: str, message: QueueMessage):
        physical_name = self.priority_handler.queue_name(name, message.priority)
        self.client.delete_message(QueueUrl=self._url(physical_name), ReceiptHandle=message.receipt_handle)

    def get_number_messages(self, name: str, priority: Optional[str] = None) -> int:
        total = 0
        for level in self._levels(priority):
            physical_name = self.priority_handler.queue_name(name, level)
            response = self.client.get_queue_attributes(
                QueueUrl=self._url(physical_name),
                AttributeNames=['ApproximateNumberOfMessages']
            )
            total += int(response['Attributes']['ApproximateNumberOfMessages'])
        return total

    def purge_queue(self, name: str, priority: Optional[str] = None):
        for level in self._levels(priority):
            physical_name = self.priority_handler.queue_name(name, level)
            self.client.purge_queue(QueueUrl=self._url(physical_name))
            logger.info(f"Queue purged: {physical_name}")

    def __repr__(self) -> str:
        return f"SqsAdapter(priority_handler={self.priority_handler!r})"
