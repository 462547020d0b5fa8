"""
Import Helpers

Resolve ``module:attribute`` references found in configuration.

Author: PulseQueue Project
License: MIT
"""

import importlib
from typing import Any

from ..errors import ConfigurationError


def is_import_path(ref: str) -> bool:
    return ':' in ref


def import_object(path: str) -> Any:
    """
    Import ``module.path:attribute`` (or ``module.path.attribute``).

    Raises:
        ConfigurationError: If the module or attribute is missing
    """
    if ':' in path:
        module_name, _, attr_path = path.partition(':')
    else:
        module_name, _, attr_path = path.rpartition('.')

    if not module_name or not attr_path:
        raise ConfigurationError(f"Not an import path: '{path}'")

    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import module '{module_name}' for '{path}': {e}") from e

    for attr in attr_path.split('.'):
        try:
            obj = getattr(obj, attr)
        except AttributeError:
            raise ConfigurationError(f"Module '{module_name}' has no attribute '{attr_path}'") from None
    return obj
