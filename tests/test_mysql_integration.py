"""
test_mysql_integration.py - End to end capture against a live MySQL server.

Runs only when CAPTURE_TEST_MYSQL=1. Connection parameters come from
the CAPTURE_DB_* environment variables; the database must exist and
the user needs CREATE ROUTINE and TRIGGER privileges.
"""

import dataclasses
import os

import pytest

from mysql_capture import TriggerManager, TriggerSpec
from mysql_capture.config import DatabaseSettings
from mysql_capture.errors import DatabaseError, SchemaError
from mysql_capture.models import ChangeType, ExhaustionPolicy, RetryPolicy

pytestmark = pytest.mark.skipif(
    os.environ.get("CAPTURE_TEST_MYSQL") != "1",
    reason="set CAPTURE_TEST_MYSQL=1 to run against a MySQL server",
)


@pytest.fixture
def live():
    """Manager on a live server with fresh accounts, log and activity tables."""
    manager = TriggerManager.connect(DatabaseSettings.from_env())
    ex = manager.executor
    ex.execute("DROP TABLE IF EXISTS accounts")
    ex.execute("DROP TABLE IF EXISTS rr_log")
    ex.execute("DROP TABLE IF EXISTS rr_running_flags")
    ex.execute(
        "CREATE TABLE accounts (org_id INT NOT NULL, id INT NOT NULL, "
        "balance INT NOT NULL DEFAULT 0, PRIMARY KEY (org_id, id))"
    )
    manager.prepare_tables("rr_log", "rr_running_flags")
    yield manager
    manager.remove_if_exists("rr_trg", "accounts")
    ex.execute("DROP TABLE IF EXISTS accounts")
    manager.close()


@pytest.fixture
def spec():
    return TriggerSpec(
        trigger_name="rr_trg",
        table="accounts",
        keys=["id"],
        log_table="rr_log",
        activity_table="rr_running_flags",
        key_separator="|",
    )


def _count_objects(manager):
    routines = manager.executor.query(
        "select count(*) from information_schema.routines "
        "where routine_schema = database() and routine_name = 'rr_trg'"
    )[0][0]
    triggers = manager.executor.query(
        "select count(*) from information_schema.triggers "
        "where trigger_schema = database() and trigger_name like 'rr\\_trg\\_%'"
    )[0][0]
    return routines, triggers


class TestLiveCapture:
    """Row changes produce log entries."""

    def test_install_twice(self, live, spec):
        assert live.exists("rr_trg", "accounts") is False
        live.install(spec)
        live.install(spec)
        assert live.exists("rr_trg", "accounts") is True
        assert _count_objects(live) == (1, 3)

    def test_insert_update_delete(self, live, spec):
        live.install(spec)
        ex = live.executor
        ex.execute("INSERT INTO accounts(org_id, id, balance) VALUES (1, 7, 10)")
        ex.execute("UPDATE accounts SET balance = balance + 1 WHERE id = 7")
        ex.execute("DELETE FROM accounts WHERE id = 7")

        entries = live.read_log("rr_log")
        assert [(e.change_table, e.change_key, e.change_org_key, e.change_type) for e in entries] == [
            ("accounts", "7", None, ChangeType.INSERT),
            ("accounts", "7", "7", ChangeType.UPDATE),
            ("accounts", "7", None, ChangeType.DELETE),
        ]
        assert all(e.change_time is not None for e in entries)

    def test_composite_key(self, live, spec):
        live.install(dataclasses.replace(spec, keys=["org_id", "id"], key_separator="-"))
        live.executor.execute("INSERT INTO accounts(org_id, id) VALUES (5, 42)")
        assert live.read_log("rr_log")[0].change_key == "5-42"

    def test_backslash_separator(self, live, spec):
        mode = live.executor.query("SELECT @@SESSION.sql_mode")[0][0]
        assert "NO_BACKSLASH_ESCAPES" not in mode

        live.install(dataclasses.replace(spec, keys=["org_id", "id"], key_separator="\\"))
        live.executor.execute("INSERT INTO accounts(org_id, id) VALUES (5, 42)")
        assert live.read_log("rr_log")[0].change_key == "5\\42"

    def test_activity_suppresses_capture(self, live, spec):
        live.install(dataclasses.replace(spec, exclude_own_activity=True))
        with live.activity("rr_running_flags").active():
            live.executor.execute("INSERT INTO accounts(org_id, id) VALUES (1, 1)")
        live.executor.execute("INSERT INTO accounts(org_id, id) VALUES (1, 2)")

        assert [e.change_key for e in live.read_log("rr_log")] == ["2"]

    def test_missing_procedure_gives_up_silently(self, live, spec):
        live.install(dataclasses.replace(spec, retry_policy=RetryPolicy(max_attempts=3)))
        live.executor.execute("DROP PROCEDURE rr_trg")

        live.executor.execute("INSERT INTO accounts(org_id, id) VALUES (1, 3)")

        assert live.read_log("rr_log") == []
        assert live.executor.query("SELECT count(*) FROM accounts")[0][0] == 1

    def test_missing_procedure_escalates(self, live, spec):
        policy = RetryPolicy(max_attempts=2, on_exhaustion=ExhaustionPolicy.ESCALATE)
        live.install(dataclasses.replace(spec, retry_policy=policy))
        live.executor.execute("DROP PROCEDURE rr_trg")

        with pytest.raises(DatabaseError):
            live.executor.execute("INSERT INTO accounts(org_id, id) VALUES (1, 4)")

    def test_remove(self, live, spec):
        live.install(spec)
        live.remove("rr_trg", "accounts")
        assert live.exists("rr_trg", "accounts") is False
        with pytest.raises(SchemaError):
            live.remove("rr_trg", "accounts")
