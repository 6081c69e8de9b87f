"""Log configuration for the ec2-control command line."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger.json import JsonFormatter

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Ec2ControlJsonFormatter(JsonFormatter):
    """JSON formatter adding timestamp, level and logger name to every record."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def configure_logging(level: str | int = "WARNING", *, json_format: bool = False) -> logging.Handler:
    """Install a single stderr handler on the root logger.

    Args:
        level: Level name or number.
        json_format: Emit one JSON object per line instead of plain text.

    Returns:
        The installed handler.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(Ec2ControlJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # botocore logs every request at DEBUG
    for name in ("botocore", "boto3", "urllib3"):
        logging.getLogger(name).setLevel(max(level, logging.INFO))
    return handler
