"""Structured logging setup for loadpulse."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TextIO

# Attributes that callers may attach via ``extra=`` and that the JSON
# formatter lifts into the emitted object.
_CONTEXT_FIELDS = ("mode", "worker", "endpoint", "sequence_index", "reason")


class _JsonFormatter(logging.Formatter):
    """One-line JSON log formatter.

    Emits objects with keys: timestamp, level, logger, message, plus any
    run context (mode, worker, endpoint, sequence_index, reason) passed
    through ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A single-line JSON string.
        """
        log_entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure and return the root ``loadpulse`` logger.

    Repeated calls only adjust the level; handlers are never duplicated.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``). Defaults to INFO.
        json_format: Emit one JSON object per line instead of plain text.
        stream: Destination stream. Defaults to ``sys.stderr`` so log
            output never mixes with the rendered summary on stdout.

    Returns:
        The configured ``loadpulse`` logger.
    """
    logger = logging.getLogger("loadpulse")
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``loadpulse`` namespace.

    Args:
        name: Dotted suffix, e.g. ``"engine.dispatcher"`` yields
            ``loadpulse.engine.dispatcher``.

    Returns:
        The child logger.
    """
    return logging.getLogger(f"loadpulse.{name}")
