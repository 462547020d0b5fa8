"""
PulseQueue

Hierarchical pulse-driven scheduler and dead-letter aware queue
provisioning for backend job processing.

Author: PulseQueue Project
License: MIT
"""

__version__ = "0.1.0"
