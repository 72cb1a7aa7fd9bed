"""
conftest.py - pytest fixtures for mysql_capture tests.

Lifecycle tests run against CatalogExecutor, an in-memory stand-in
for a MySQL server that tracks procedures, triggers and the rows of
plain tables well enough for the statements mysql_capture emits.
"""

import re

import pytest

from mysql_capture import TriggerManager, TriggerSpec
from mysql_capture.errors import DatabaseError


class CatalogExecutor:
    """Records statements and maintains a minimal schema catalog."""

    def __init__(self):
        self.statements: list[str] = []
        self.queries: list[str] = []
        self.procedures: set[str] = set()
        self.triggers: dict[str, str] = {}
        self.tables: dict[str, list[tuple]] = {}
        self.fail_on: str | None = None
        self.closed = False

    def _fail(self, message: str, code: int, sql: str):
        raise DatabaseError(message, operation="execute", sql=sql, code=code)

    def execute(self, statement: str) -> None:
        self.statements.append(statement)
        if self.fail_on is not None and self.fail_on in statement:
            self._fail(f"Injected failure on {self.fail_on}", 1064, statement)

        if m := re.match(r"DROP PROCEDURE IF EXISTS (\w+)$", statement):
            self.procedures.discard(m.group(1))
        elif m := re.match(r"DROP PROCEDURE (\w+)$", statement):
            if m.group(1) not in self.procedures:
                self._fail(f"PROCEDURE {m.group(1)} does not exist", 1305, statement)
            self.procedures.remove(m.group(1))
        elif m := re.match(r"CREATE PROCEDURE (\w+)\(", statement):
            if m.group(1) in self.procedures:
                self._fail(f"PROCEDURE {m.group(1)} already exists", 1304, statement)
            self.procedures.add(m.group(1))
        elif m := re.match(r"DROP TRIGGER IF EXISTS (\w+)$", statement):
            self.triggers.pop(m.group(1), None)
        elif m := re.match(r"DROP TRIGGER (\w+)$", statement):
            if m.group(1) not in self.triggers:
                self._fail("Trigger does not exist", 1360, statement)
            del self.triggers[m.group(1)]
        elif m := re.match(r"CREATE TRIGGER (\w+)\s+AFTER \w+ ON (\w+)", statement):
            if m.group(1) in self.triggers:
                self._fail("Trigger already exists", 1359, statement)
            self.triggers[m.group(1)] = m.group(2)
        elif m := re.match(r"CREATE TABLE IF NOT EXISTS (\w+)", statement):
            self.tables.setdefault(m.group(1), [])
        elif m := re.match(r"INSERT INTO (\w+)\(active\) VALUES\(1\)$", statement):
            self.tables.setdefault(m.group(1), []).append((1,))
        elif m := re.match(r"DELETE FROM (\w+)$", statement):
            self.tables[m.group(1)] = []
        else:
            self._fail("Unsupported statement", 1064, statement)

    def query(self, statement: str) -> list[tuple]:
        self.queries.append(statement)
        if m := re.search(
            r"trigger_name = '(\w+)' and event_object_table = '(\w+)'", statement
        ):
            name, table = m.groups()
            return [(1,)] if self.triggers.get(name) == table else []
        if m := re.match(r"SELECT count\(\*\) FROM (\w+)$", statement):
            return [(len(self.tables.get(m.group(1), [])),)]
        if m := re.match(r"SELECT .* FROM (\w+) ORDER BY id(?: LIMIT (\d+))?$", statement):
            rows = self.tables.get(m.group(1), [])
            return rows[: int(m.group(2))] if m.group(2) else list(rows)
        raise DatabaseError("Unsupported query", operation="query", sql=statement)

    def close(self) -> None:
        self.closed = True

    def installed_objects(self) -> set[str]:
        return self.procedures | set(self.triggers)


@pytest.fixture
def executor():
    """In-memory catalog executor."""
    return CatalogExecutor()


@pytest.fixture
def manager(executor):
    """TriggerManager bound to the in-memory executor."""
    return TriggerManager(executor)


@pytest.fixture
def accounts_spec():
    """Capture spec for a single-key accounts table."""
    return TriggerSpec(
        trigger_name="rr_trg",
        table="accounts",
        keys=["id"],
        log_table="rr_log",
        activity_table="rr_running_flags",
        key_separator="|",
        exclude_own_activity=False,
    )
