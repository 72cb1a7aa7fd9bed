"""
mysql_capture - Trigger based change capture for MySQL-family databases.

Installs a capture procedure and insert/update/delete triggers per
monitored table, logging every row change for replication consumers.
"""

from mysql_capture.capture import ActivitySignal, TriggerManager
from mysql_capture.db.dialect import Dialect, get_dialect, register_dialect
from mysql_capture.db.keys import encode_key
from mysql_capture.errors import (
    CaptureError,
    DatabaseError,
    PartialInstallError,
    SchemaError,
    ValidationError,
)
from mysql_capture.models import (
    ChangeType,
    ExhaustionPolicy,
    LogEntry,
    RetryPolicy,
    TriggerSpec,
)

__version__ = "0.1.0"
__all__ = [
    # Core
    "TriggerManager",
    "ActivitySignal",
    "TriggerSpec",
    "RetryPolicy",
    "ExhaustionPolicy",
    "LogEntry",
    "ChangeType",
    "encode_key",
    # Dialects
    "Dialect",
    "get_dialect",
    "register_dialect",
    # Errors
    "CaptureError",
    "ValidationError",
    "DatabaseError",
    "SchemaError",
    "PartialInstallError",
]
