"""Logging configuration for hostcert.

Provides JSON and text formatters and a one-call
``configure_logging`` function driven by config settings.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostcert.config.settings import LoggingSettings

# Record attributes hostcert attaches through ``extra=`` and that the JSON
# formatter emits as top-level fields.
_EXTRA_FIELDS = (
    "entropy_obtained",
    "entropy_required",
    "serial_number",
    "common_name",
    "cert_path",
    "domain",
)

_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter.

    Every record becomes a single JSON object on one line containing
    the standard fields plus those of ``_EXTRA_FIELDS`` the record carries
    (e.g. ``entropy_obtained`` on an entropy shortfall).  Other attributes
    set through *extra* are not emitted.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                data[key] = getattr(record, key)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s %(name)s - %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``hostcert`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output and
    adds a rotating file handler when ``settings.file`` is set.

    Returns the root ``hostcert`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger("hostcert")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.file:
        try:
            from logging.handlers import RotatingFileHandler

            fh = RotatingFileHandler(
                settings.file,
                maxBytes=_LOG_FILE_MAX_BYTES,
                backupCount=_LOG_FILE_BACKUPS,
            )
            fh.setFormatter(formatter)
            root.addHandler(fh)
        except OSError as exc:
            root.warning("Could not open log file %s: %s", settings.file, exc)

    return root
