"""
config.py - Configuration for mysql_capture.

Capture constants are immutable and defined at module level.
Connection settings are read from the environment on demand.
"""

import os
from dataclasses import dataclass
from typing import Final

# Row events a capture artifact reacts to, in installation order.
# Trigger names are derived as <trigger_name>_<action>.
TRIGGER_ACTIONS: Final[tuple[str, ...]] = ("insert", "update", "delete")

# Log entry change types, keyed by action
CHANGE_TYPES: Final[dict[str, str]] = {
    action: action[0].upper() for action in TRIGGER_ACTIONS
}

DEFAULT_KEY_SEPARATOR: Final[str] = "|"

# Trigger retry loop while the capture procedure is being replaced.
# 40 attempts at 50ms gives roughly two seconds of backoff.
DEFAULT_MAX_ATTEMPTS: Final[int] = 40
DEFAULT_BACKOFF_SECONDS: Final[float] = 0.05

# Width of the key parameters of the capture procedure
KEY_COLUMN_LENGTH: Final[int] = 2000

# MySQL limit for trigger, routine and table names
MAX_IDENTIFIER_LENGTH: Final[int] = 64

DEFAULT_LOG_TABLE: Final[str] = "rr_pending_changes"
DEFAULT_ACTIVITY_TABLE: Final[str] = "rr_running_flags"

DEFAULT_DIALECT: Final[str] = "mysql"

# Environment variables used by DatabaseSettings.from_env
ENV_DB_HOST: Final[str] = "CAPTURE_DB_HOST"
ENV_DB_PORT: Final[str] = "CAPTURE_DB_PORT"
ENV_DB_USER: Final[str] = "CAPTURE_DB_USER"
ENV_DB_PASSWORD: Final[str] = "CAPTURE_DB_PASSWORD"
ENV_DB_NAME: Final[str] = "CAPTURE_DB_NAME"


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection parameters for the monitored MySQL database."""

    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = ""
    connect_timeout: int = 10

    @classmethod
    def from_env(cls) -> "DatabaseSettings":
        return cls(
            host=os.environ.get(ENV_DB_HOST, "localhost"),
            port=int(os.environ.get(ENV_DB_PORT, "3306")),
            user=os.environ.get(ENV_DB_USER, "root"),
            password=os.environ.get(ENV_DB_PASSWORD, ""),
            database=os.environ.get(ENV_DB_NAME, ""),
        )
