"""
manager.py - Trigger lifecycle manager.

The TriggerManager is the public interface for setting up and
tearing down change capture:
- Capture installation per monitored table
- Existence checks
- Removal
- Log and activity table preparation

It holds no state besides the executor; the database is the
only record of what is installed.
"""

import logging
from typing import Iterable

from mysql_capture.capture.activity import ActivitySignal
from mysql_capture.config import DEFAULT_DIALECT, DatabaseSettings
from mysql_capture.db.connection import SqlExecutor, create_connection
from mysql_capture.db.dialect import Dialect, get_dialect
from mysql_capture.db.schema import (
    create_activity_table,
    create_log_table,
    read_log_entries,
)
from mysql_capture.db.statements import Statement, build_install_statements
from mysql_capture.db.triggers import (
    drop_replication_trigger,
    drop_replication_trigger_if_exists,
    install_replication_trigger,
    replication_trigger_exists,
)
from mysql_capture.models import LogEntry, TriggerSpec

logger = logging.getLogger("mysql_capture.capture")


class TriggerManager:
    """
    Installs, checks and removes capture triggers on one database.
    """

    def __init__(self, executor: SqlExecutor, dialect: Dialect | str = DEFAULT_DIALECT):
        self._executor = executor
        self._dialect = get_dialect(dialect) if isinstance(dialect, str) else dialect

    @classmethod
    def connect(
        cls, settings: DatabaseSettings | None = None, dialect: Dialect | str = DEFAULT_DIALECT
    ) -> "TriggerManager":
        """Open a PyMySQL connection and wrap it in a manager."""
        return cls(create_connection(settings or DatabaseSettings.from_env()), dialect)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        close = getattr(self._executor, "close", None)
        if close is not None:
            close()

    @property
    def executor(self) -> SqlExecutor:
        return self._executor

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def statements(self, spec: TriggerSpec) -> list[Statement]:
        """Statements install() would execute, without running them."""
        return build_install_statements(spec, self._dialect)

    def install(self, spec: TriggerSpec) -> None:
        """Install or replace capture for the table described by spec."""
        install_replication_trigger(self._executor, spec, self._dialect)

    def install_all(self, specs: Iterable[TriggerSpec]) -> int:
        """
        Install capture for several tables, one after the other.

        Stops at the first failure; tables before it stay installed.

        Returns:
            Number of installations performed
        """
        count = 0
        for spec in specs:
            self.install(spec)
            count += 1
        return count

    def ensure_installed(self, spec: TriggerSpec) -> bool:
        """
        Install capture unless the insert trigger is already present.

        Returns:
            True if an installation was performed
        """
        if self.exists(spec.trigger_name, spec.table):
            logger.debug("Capture trigger %s already present", spec.trigger_name)
            return False
        self.install(spec)
        return True

    def remove(self, trigger_name: str, table_name: str) -> None:
        """Remove an installation; fails if any object is missing."""
        drop_replication_trigger(self._executor, trigger_name, table_name)

    def remove_if_exists(self, trigger_name: str, table_name: str) -> bool:
        """Remove an installation if present; returns whether one was found."""
        return drop_replication_trigger_if_exists(
            self._executor, trigger_name, table_name
        )

    def exists(self, trigger_name: str, table_name: str) -> bool:
        """Check whether capture is installed for the table."""
        return replication_trigger_exists(self._executor, trigger_name, table_name)

    def prepare_tables(self, log_table: str, activity_table: str | None = None) -> None:
        """Create the log table and, if given, the activity table."""
        create_log_table(self._executor, log_table)
        if activity_table is not None:
            create_activity_table(self._executor, activity_table)

    def activity(self, activity_table: str) -> ActivitySignal:
        return ActivitySignal(self._executor, activity_table)

    def read_log(self, log_table: str, limit: int | None = None) -> list[LogEntry]:
        return read_log_entries(self._executor, log_table, limit)
