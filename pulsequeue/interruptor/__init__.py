"""
Interruptor Module

Tickers, multiplexers and the isolation wrappers that connect them.

Author: PulseQueue Project
License: MIT
"""

from .base import Interruptor, CallbackInterruptor, TriggerResult, DispatchReport, execute
from .isolation import IsolationWrapper, InlineWrapper, ThreadWrapper, create_wrapper
from .ticker import Ticker
from .multiplexer import Multiplexer, CronMultiplexer, Granularity

__all__ = [
    'Interruptor', 'CallbackInterruptor', 'TriggerResult', 'DispatchReport', 'execute',
    'IsolationWrapper', 'InlineWrapper', 'ThreadWrapper', 'create_wrapper',
    'Ticker', 'Multiplexer', 'CronMultiplexer', 'Granularity'
]
