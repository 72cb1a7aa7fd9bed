"""
schema.py - Log and activity table definitions.

The log table receives one row per captured change and is read
by the replication engine. The activity table holds sentinel rows
while the engine performs writes that must not be captured.
"""

import logging
from typing import Final

from mysql_capture.config import KEY_COLUMN_LENGTH
from mysql_capture.db.connection import SqlExecutor
from mysql_capture.db.identifiers import validate_identifier
from mysql_capture.models import LogEntry

logger = logging.getLogger("mysql_capture.db")

LOG_TABLE_SCHEMA: Final[str] = """
CREATE TABLE IF NOT EXISTS {log_table} (
    id INT NOT NULL AUTO_INCREMENT PRIMARY KEY,
    change_table VARCHAR(2000) NOT NULL,
    change_key VARCHAR({key_length}),
    change_org_key VARCHAR({key_length}),
    change_type VARCHAR(1) NOT NULL,
    change_time DATETIME NOT NULL
)
"""

ACTIVITY_TABLE_SCHEMA: Final[str] = """
CREATE TABLE IF NOT EXISTS {activity_table} (
    active INT
)
"""

LOG_ENTRY_COLUMNS: Final[str] = (
    "change_table, change_key, change_org_key, change_type, change_time"
)


def create_log_table(executor: SqlExecutor, log_table: str) -> None:
    """Create the log table if it does not exist yet."""
    validate_identifier(log_table, "log_table")
    executor.execute(
        LOG_TABLE_SCHEMA.format(
            log_table=log_table, key_length=KEY_COLUMN_LENGTH
        ).strip()
    )
    logger.info("Log table %s ready", log_table)


def create_activity_table(executor: SqlExecutor, activity_table: str) -> None:
    """Create the activity table if it does not exist yet."""
    validate_identifier(activity_table, "activity_table")
    executor.execute(
        ACTIVITY_TABLE_SCHEMA.format(activity_table=activity_table).strip()
    )
    logger.info("Activity table %s ready", activity_table)


def read_log_entries(
    executor: SqlExecutor, log_table: str, limit: int | None = None
) -> list[LogEntry]:
    """
    Read captured changes in capture order.

    Args:
        executor: SQL execution capability
        log_table: Log table name
        limit: Maximum number of entries, oldest first

    Returns:
        List of LogEntry
    """
    validate_identifier(log_table, "log_table")
    sql = f"SELECT {LOG_ENTRY_COLUMNS} FROM {log_table} ORDER BY id"
    if limit is not None:
        sql += f" LIMIT {int(limit)}"
    return [LogEntry.from_row(row) for row in executor.query(sql)]
