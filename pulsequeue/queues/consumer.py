"""
Queue Consumer

Leaf job that drains a managed queue each time it is triggered.

Author: PulseQueue Project
License: MIT
"""

from typing import Any, Callable, Optional

from .adapter import SqsAdapter
from ..interruptor.base import Interruptor
from ..utils.logger import get_logger

logger = get_logger(__name__)


class QueueConsumer(Interruptor):
    """
    Receives a batch and hands each message body to ``handler``.

    Handled messages are deleted. A message whose handler raised is left
    in the queue: it becomes visible again after the visibility timeout
    and, once the redrive policy's receive count is exhausted, moves to
    the dead-letter queue. Malformed bodies are never handed to
    ``handler``; they are left the same way and count as failed.
    """

    def __init__(
        self,
        adapter: SqsAdapter,
        queue_name: str,
        handler: Callable[[Any], Any],
        max_messages: int = 10,
        priority: Optional[str] = None,
        name: Optional[str] = None
    ):
        self.adapter = adapter
        self.queue_name = queue_name
        self.handler = handler
        self.max_messages = max_messages
        self.priority = priority
        self.name = name or f"consumer:{queue_name}"

        self.stats = {
            'received': 0,
            'handled': 0,
            'failed': 0
        }

    def trigger(self) -> dict:
        """
        Process one batch.

        Returns:
            Counts for this batch (received, handled, failed)
        """
        messages = self.adapter.get_messages(
            self.queue_name,
            max_messages=self.max_messages,
            priority=self.priority
        )
        batch = {'received': len(messages), 'handled': 0, 'failed': 0}

        for message in messages:
            if message.malformed:
                batch['failed'] += 1
                logger.error(f"{self.name}: message {message.id} is malformed, leaving it for redrive")
                continue

            try:
                self.handler(message.body)
            except Exception as e:
                batch['failed'] += 1
                logger.error(f"{self.name}: message {message.id} failed, leaving it for redrive: {e}")
                continue

            self.adapter.delete_message(self.queue_name, message)
            batch['handled'] += 1

        for key, count in batch.items():
            self.stats[key] += count

        if messages:
            logger.info(
                f"{self.name}: {batch['handled']}/{batch['received']} messages handled"
            )
        return batch
