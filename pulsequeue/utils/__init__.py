"""
Utilities

Author: PulseQueue Project
License: MIT
"""
