"""
PulseQueue Configuration Module

Loading, validation and environment overrides for the scheduler tree,
managed queues and application settings.

Author: PulseQueue Project
License: MIT
"""

from .schema import (
    Config, QueueConfig, SecurityConfig, TickerConfig, MultiplexerConfig,
    CronMultiplexerConfig, QueueConsumerConfig
)
from .config_loader import ConfigLoader, load_config

__all__ = [
    'Config', 'QueueConfig', 'SecurityConfig', 'TickerConfig', 'MultiplexerConfig',
    'CronMultiplexerConfig', 'QueueConsumerConfig', 'ConfigLoader', 'load_config'
]
