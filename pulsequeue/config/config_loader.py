"""
Configuration Loader

Reads the YAML tree declaration, applies environment overrides and
validates the result against the schema.

Author: PulseQueue Project
License: MIT
"""

import os
import yaml
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from dotenv import load_dotenv

from .schema import Config

DEFAULT_CONFIG_PATH = "/app/config/config.yaml"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# (variable, section, key, converter)
ENV_OVERRIDES: List[Tuple[str, str, str, Callable[[str], Any]]] = [
    ("APP_HOST", "app", "host", str),
    ("APP_PORT", "app", "port", int),
    ("APP_LOG_LEVEL", "app", "log_level", str.upper),
    ("APP_JSON_LOGS", "app", "json_logs", _as_bool),
    ("PULSE_ENABLED", "pulse", "enabled", _as_bool),
    ("PULSE_INTERVAL_SECONDS", "pulse", "interval_seconds", float),
    ("PULSE_ROOT", "pulse", "root", str),
    ("SECURITY_WEBHOOK_SECRET", "security", "webhook_secret", str),
]


class ConfigLoader:
    """
    Loads and keeps the current PulseQueue configuration.

    The file location comes from the constructor, then ``CONFIG_PATH``,
    then ``/app/config/config.yaml``. A missing file yields the default
    tree.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Args:
            config_path: YAML file to read; see class docstring for fallbacks
        """
        # .env values become visible to the overrides below
        load_dotenv()

        self.config_path = config_path or os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH)
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """
        Read, override and validate.

        Raises:
            ValueError: Unparseable YAML, a non-mapping root, or a
                declaration rejected by the schema
        """
        raw = self._read_file()
        self._config = Config(**self._merge_env_vars(raw))
        return self._config

    def _read_file(self) -> Dict[str, Any]:
        path = Path(self.config_path)
        if not path.exists():
            return self._create_default_config()

        try:
            data = yaml.safe_load(path.read_text(encoding='utf-8')) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse YAML config {path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping: {path}")
        return data

    def _create_default_config(self) -> Dict[str, Any]:
        """
        Tree used when no file exists: a one-second ticker feeding a
        multiplexer whose only child is an empty minute-gated multiplexer.
        """
        return {
            "app": {
                "host": "0.0.0.0",
                "port": 8080,
                "log_level": "INFO"
            },
            "pulse": {
                "enabled": True,
                "interval_seconds": 1.0,
                "root": "cron"
            },
            "interruptors": {
                "cron": {
                    "kind": "ticker",
                    "callback": "sec_multiplexer",
                    "wrapper": "thread",
                    "threshold": 1
                },
                "sec_multiplexer": {
                    "kind": "multiplexer",
                    "children": ["min_multiplexer"]
                },
                "min_multiplexer": {
                    "kind": "cron_multiplexer",
                    "granularity": "minute",
                    "children": []
                }
            },
            "queues": {}
        }

    def _merge_env_vars(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply ENV_OVERRIDES on top of the file values (env wins)."""
        for variable, section, key, convert in ENV_OVERRIDES:
            value = os.getenv(variable)
            if value:
                config_data.setdefault(section, {})[key] = convert(value)
        return config_data

    def save(self, config: Config, path: Optional[str] = None) -> None:
        """
        Write ``config`` as YAML.

        Args:
            config: Configuration to write
            path: Target file (the loader's own path if None)
        """
        target = Path(path or self.config_path)
        target.parent.mkdir(parents=True, exist_ok=True)

        data = config.dict()
        for entry in data.get("interruptors", {}).values():
            kind = entry.get("kind")
            if hasattr(kind, "value"):
                entry["kind"] = kind.value

        target.write_text(
            yaml.safe_dump(data, default_flow_style=False, sort_keys=False),
            encoding='utf-8'
        )

    def reload(self) -> Config:
        return self.load()

    @property
    def config(self) -> Optional[Config]:
        """Last configuration returned by load(), if any."""
        return self._config


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration with a throwaway ConfigLoader."""
    return ConfigLoader(config_path).load()
