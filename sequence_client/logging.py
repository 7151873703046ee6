"""
Logging for the Sequence client.

Modules log through children of the ``sequence_client`` logger. The library
installs only a NullHandler; applications opt into output with
``configure_logging``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, Union

LOGGER_NAME = "sequence_client"

# Attributes every LogRecord has; anything else was passed through ``extra``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


class JsonFormatter(logging.Formatter):
    """One JSON object per record, including fields given via ``extra``.

    Example:
        >>> logger.debug("POST %s", path, extra={"attempt_id": "ab12/2"})
        {"ts": "...", "level": "DEBUG", "logger": "sequence_client.transport",
         "msg": "POST /team/test/stats", "attempt_id": "ab12/2"}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                entry[key] = value
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, separators=(",", ":"), default=str)


def configure_logging(
    level: Union[int, str] = logging.INFO, json_format: bool = False
) -> logging.Logger:
    """Send sequence_client records to stdout.

    Calling it again replaces the handler installed by the previous call.
    The root logger is left untouched.

    Args:
        level: Logging level (e.g., logging.INFO, "DEBUG").
        json_format: Emit one JSON object per line instead of text.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        ))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``sequence_client.<name>``, or the package logger."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
