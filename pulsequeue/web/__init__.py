"""
Web Module

FastAPI webhook and status API.

Author: PulseQueue Project
License: MIT
"""

from .app import create_app
from .middleware import create_token, verify_token

__all__ = ['create_app', 'create_token', 'verify_token']
