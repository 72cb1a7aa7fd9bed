"""
activity.py - Suppression of capture for replication-originated writes.

Capture procedures installed with exclude_own_activity skip logging
while the activity table has rows. A replication engine marks its
own writes by inserting a sentinel row before writing and deleting
it afterwards.

This is a shared hint, not a lock. Every session writing to a
monitored table is suppressed while any sentinel is present, so
application writes committed during that window are not captured.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from mysql_capture.db.connection import SqlExecutor
from mysql_capture.db.identifiers import validate_identifier

logger = logging.getLogger("mysql_capture.activity")


class ActivitySignal:
    """Counter-like view of the activity table."""

    def __init__(self, executor: SqlExecutor, activity_table: str) -> None:
        self._executor = executor
        self._table = validate_identifier(activity_table, "activity_table")

    @property
    def table(self) -> str:
        return self._table

    def mark(self) -> None:
        """Insert a sentinel row; capture is suppressed from now on."""
        self._executor.execute(f"INSERT INTO {self._table}(active) VALUES(1)")
        logger.debug("Activity marked in %s", self._table)

    def clear(self) -> None:
        """Delete all sentinel rows; capture resumes."""
        self._executor.execute(f"DELETE FROM {self._table}")
        logger.debug("Activity cleared in %s", self._table)

    def count(self) -> int:
        rows = self._executor.query(f"SELECT count(*) FROM {self._table}")
        return int(rows[0][0]) if rows else 0

    def is_active(self) -> bool:
        return self.count() != 0

    @contextmanager
    def active(self) -> Iterator["ActivitySignal"]:
        """
        Suppress capture for the duration of the block.

        The sentinel is removed even if the block raises.
        """
        self.mark()
        try:
            yield self
        finally:
            self.clear()
