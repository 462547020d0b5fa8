"""
Logging Setup

Console and rotating-file output for the ``pulsequeue`` logger tree,
with JSON lines for log shippers.

Author: PulseQueue Project
License: MIT
"""

import copy
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from pythonjsonlogger import jsonlogger

ROOT_LOGGER_NAME = "pulsequeue"

CONSOLE_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
FILE_FORMAT = '[%(asctime)s] %(levelname)s %(name)s [%(threadName)s %(module)s:%(lineno)d] %(message)s'
JSON_CONSOLE_FIELDS = '%(asctime)s %(name)s %(levelname)s %(threadName)s %(message)s'
JSON_FILE_FIELDS = '%(asctime)s %(name)s %(levelname)s %(threadName)s %(module)s %(funcName)s %(lineno)d %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """ANSI-coloured level names for terminals."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        # Other handlers share the record, so color a copy
        colored = copy.copy(record)
        color = self.COLORS.get(colored.levelname)
        if color:
            colored.levelname = f"{color}{colored.levelname}{self.RESET}"
        return super().format(colored)


def _json_formatter(fields: str) -> logging.Formatter:
    return jsonlogger.JsonFormatter(fields, rename_fields={'levelname': 'level'})


def _console_handler(level: int, json_format: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(_json_formatter(JSON_CONSOLE_FIELDS))
    else:
        handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(level: int, path: str, max_bytes: int, backups: int, json_format: bool) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding='utf-8')
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(_json_formatter(JSON_FILE_FIELDS))
    else:
        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_file_path: str = "/app/logs/pulsequeue.log",
    log_rotation_size: int = 10 * 1024 * 1024,
    log_retention_count: int = 5,
    json_format: bool = False
) -> logging.Logger:
    """
    Configure the ``pulsequeue`` logger.

    Existing handlers are closed and replaced, so this can run again
    after a configuration reload.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_to_file: Also write to a rotating file
        log_file_path: File written when log_to_file is set
        log_rotation_size: Bytes per file before rotating
        log_retention_count: Rotated files kept
        json_format: One JSON object per line instead of text

    Returns:
        The configured root logger of the package
    """
    level_name = str(log_level).upper()
    level = getattr(logging, level_name)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(level)

    root.addHandler(_console_handler(level, json_format))
    if log_to_file:
        root.addHandler(_file_handler(
            level, log_file_path, log_rotation_size, log_retention_count, json_format
        ))
    root.propagate = False

    root.info(f"Logging initialized at {level_name} level")
    if log_to_file:
        root.info(f"Also logging to {log_file_path}")
    return root


def setup_logging_from_config(app_config) -> logging.Logger:
    """Configure logging from an ``AppConfig`` section."""
    return setup_logging(
        log_level=app_config.log_level,
        log_to_file=app_config.log_to_file,
        log_file_path=app_config.log_file_path,
        log_rotation_size=app_config.log_rotation_size,
        log_retention_count=app_config.log_retention_count,
        json_format=app_config.json_logs
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, placed under the ``pulsequeue`` tree."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
