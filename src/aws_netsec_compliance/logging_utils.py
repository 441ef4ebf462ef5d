"""Logging setup for evaluation runs.

Records under the package namespace go out at the configured level. The AWS
SDK loggers stay at WARNING or above unless DEBUG is requested.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from aws_netsec_compliance.config import load_settings

LOGGER_NAMESPACE = "aws_netsec_compliance"
SDK_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_logging_configured = False
_logging_lock = threading.Lock()

_logger = logging.getLogger(__name__)


def _handlers(log_file: str | None) -> list[logging.Handler]:
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream_handler]

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except OSError as exc:
            _logger.warning("Failed to open log file %s: %s", log_file, exc)
        else:
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
    return handlers


def configure_logging() -> None:
    """Install handlers and levels for the run from settings."""
    global _logging_configured

    settings = load_settings()
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, handlers=_handlers(settings.logging.file), force=True)
    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)
    sdk_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace, configuring logging on first use."""
    if not _logging_configured:
        with _logging_lock:
            if not _logging_configured:
                configure_logging()
    if name != LOGGER_NAMESPACE and not name.startswith(LOGGER_NAMESPACE + "."):
        name = f"{LOGGER_NAMESPACE}.{name}"
    return logging.getLogger(name)
