"""
Scheduler Module

Fixed-rate pulse source for the interruptor tree.

Author: PulseQueue Project
License: MIT
"""

from .pulse_driver import PulseDriver

__all__ = ['PulseDriver']
