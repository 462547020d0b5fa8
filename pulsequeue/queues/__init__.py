"""
Queues Module

Dead-letter aware provisioning and the priority-aware SQS client it
hands out.

Author: PulseQueue Project
License: MIT
"""

from .adapter import SqsAdapter, QueueMessage
from .consumer import QueueConsumer
from .priority import PriorityHandler, StandardPriorityHandler, ThreeLevelPriorityHandler
from .provisioner import QueueProvisioner, RedrivePolicy, provision
from .service import QueueService, SqsQueueService

__all__ = [
    'SqsAdapter', 'QueueMessage', 'QueueConsumer', 'PriorityHandler',
    'StandardPriorityHandler', 'ThreeLevelPriorityHandler', 'QueueProvisioner',
    'RedrivePolicy', 'provision', 'QueueService', 'SqsQueueService'
]
