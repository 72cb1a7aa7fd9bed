"""
logging_config.py - Logging setup for mysql_capture.

Loggers live under the "mysql_capture" namespace:
- mysql_capture.db: statement execution, installs and removals
- mysql_capture.capture: manager decisions
- mysql_capture.activity: activity marking

Install and remove records carry trigger_name and table as extras, so
JSON output can be filtered per monitored table.
"""

import json
import logging
from typing import Final

from mysql_capture.errors import ValidationError

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Extras attached by mysql_capture loggers
CAPTURE_FIELDS: Final[tuple[str, ...]] = ("trigger_name", "table", "step")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with capture extras when present."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for key in CAPTURE_FIELDS:
                if hasattr(record, key):
                    log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def resolve_level(level: str) -> int:
    """
    Map a level name to its logging constant.

    Raises:
        ValidationError: If the name is not a standard level
    """
    name = level.strip().upper()
    if name not in LOG_LEVELS:
        raise ValidationError(
            f"Unknown log level '{level}' (expected one of {', '.join(LOG_LEVELS)})",
            field="log_level",
            value=level,
        )
    return getattr(logging, name)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting
        log_file: Optional log file path, always written as JSON

    Raises:
        ValidationError: If the level is unknown
    """
    numeric_level = resolve_level(level)
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler()
    if json_format:
        console.setFormatter(JSONFormatter())
    else:
        console.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
    handlers.append(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    logging.basicConfig(level=numeric_level, handlers=handlers)
