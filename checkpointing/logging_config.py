"""
Structured logging for the checkpoint store and ckptctl.

Every line carries an ``epoch`` field so a record's history (create, status
transitions, refused updates) can be pulled out of the log by epoch number.
Logs go to stderr; ckptctl reserves stdout for command output.

Environment Variables:
    CKPT_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    CKPT_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from checkpointing.logging_config import setup_logging, get_logger

    setup_logging()
    log = get_logger(__name__, epoch=42)
    log.info("Checkpoint status SUBMITTED -> CONFIRMED")
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

NO_EPOCH = "-"

_JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s %(epoch)s"
_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [epoch=%(epoch)s] %(message)s"

# boto3 logs every request at INFO/DEBUG when the S3 backend is active
_QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


class EpochFilter(logging.Filter):
    """Give records logged without get_logger() the placeholder epoch."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "epoch"):
            record.epoch = NO_EPOCH  # type: ignore[attr-defined]
        return True


def _formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    return JsonFormatter(
        _JSON_FIELDS,
        rename_fields={"asctime": "timestamp", "name": "logger", "levelname": "level"},
    )


def setup_logging() -> None:
    """
    Install a single stderr handler on the root logger.

    Unknown CKPT_LOG_LEVEL values fall back to INFO; any CKPT_LOG_FORMAT other
    than "text" selects JSON. Calling this again replaces the handler.
    """
    level = logging.getLevelName(os.getenv("CKPT_LOG_LEVEL", "INFO").strip().upper())
    if not isinstance(level, int):
        level = logging.INFO
    log_format = os.getenv("CKPT_LOG_FORMAT", "json").strip().lower()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(EpochFilter())
    handler.setFormatter(_formatter(log_format))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str, epoch: Optional[int] = None) -> logging.LoggerAdapter:
    """
    Logger bound to the epoch being worked on.

    Args:
        name: Logger name (typically __name__)
        epoch: Epoch number; omitted epochs log as "-"
    """
    return logging.LoggerAdapter(
        logging.getLogger(name), {"epoch": NO_EPOCH if epoch is None else epoch}
    )
