"""
test_statements.py - Tests for capture procedure and trigger SQL generation.
"""

import dataclasses

import pytest

from mysql_capture.db.dialect import Dialect
from mysql_capture.db.statements import (
    build_call,
    build_create_procedure,
    build_create_trigger,
    build_drop_trigger,
    build_exists_query,
    build_install_statements,
    build_remove_if_exists_statements,
    build_remove_statements,
)
from mysql_capture.errors import ValidationError
from mysql_capture.models import ExhaustionPolicy, RetryPolicy


UPDATE_TRIGGER_SQL = """\
CREATE TRIGGER rr_trg_update
AFTER UPDATE ON accounts FOR EACH ROW BEGIN
  DECLARE number_attempts INT DEFAULT 0;
  DECLARE failed INT;
  DECLARE CONTINUE HANDLER FOR 1305 BEGIN
    DO SLEEP(0.05);
    SET failed = 1;
    SET number_attempts = number_attempts + 1;
  END;
  REPEAT
    SET failed = 0;
    CALL rr_trg(concat_ws('|', NEW.id), concat_ws('|', OLD.id), 'U');
  UNTIL failed = 0 OR number_attempts >= 40 END REPEAT;
END"""

PROCEDURE_SQL = """\
CREATE PROCEDURE rr_trg(change_key varchar(2000), change_org_key varchar(2000), change_type varchar(1))
p: BEGIN
  INSERT INTO rr_log(change_table, change_key, change_org_key, change_type, change_time)
    VALUES('accounts', change_key, change_org_key, change_type, now());
END"""


class TestProcedure:
    """Tests for the capture procedure."""

    def test_procedure_without_activity_check(self, accounts_spec):
        statement = build_create_procedure(accounts_spec)
        assert statement.step == "create_procedure"
        assert statement.sql == PROCEDURE_SQL

    def test_procedure_with_activity_check(self, accounts_spec):
        spec = dataclasses.replace(accounts_spec, exclude_own_activity=True)
        sql = build_create_procedure(spec).sql

        assert "DECLARE active INT;" in sql
        assert "SELECT count(*) INTO active FROM rr_running_flags;" in sql
        assert "IF active <> 0 THEN\n    LEAVE p;\n  END IF;" in sql
        # The check runs before the log insert
        assert sql.index("LEAVE p") < sql.index("INSERT INTO rr_log")

    def test_no_trailing_semicolon(self, accounts_spec):
        for statement in build_install_statements(accounts_spec):
            assert not statement.sql.endswith(";")


class TestTriggers:
    """Tests for the row triggers."""

    def test_update_trigger_exact(self, accounts_spec):
        assert build_create_trigger(accounts_spec, "update").sql == UPDATE_TRIGGER_SQL

    def test_insert_call_has_null_original_key(self, accounts_spec):
        assert build_call(accounts_spec, "insert") == (
            "CALL rr_trg(concat_ws('|', NEW.id), null, 'I');"
        )

    def test_delete_call_uses_old_row(self, accounts_spec):
        assert build_call(accounts_spec, "delete") == (
            "CALL rr_trg(concat_ws('|', OLD.id), null, 'D');"
        )

    def test_trigger_events(self, accounts_spec):
        for action in ("insert", "update", "delete"):
            sql = build_create_trigger(accounts_spec, action).sql
            assert sql.startswith(f"CREATE TRIGGER rr_trg_{action}\n")
            assert f"AFTER {action.upper()} ON accounts FOR EACH ROW" in sql

    def test_composite_key(self, accounts_spec):
        spec = dataclasses.replace(accounts_spec, keys=["org_id", "id"], key_separator="-")
        assert build_call(spec, "update") == (
            "CALL rr_trg(concat_ws('-', NEW.org_id, NEW.id), "
            "concat_ws('-', OLD.org_id, OLD.id), 'U');"
        )

    def test_custom_retry_policy(self, accounts_spec):
        spec = dataclasses.replace(
            accounts_spec, retry_policy=RetryPolicy(max_attempts=10, backoff_seconds=0.2)
        )
        sql = build_create_trigger(spec, "insert").sql
        assert "DO SLEEP(0.2);" in sql
        assert "UNTIL failed = 0 OR number_attempts >= 10 END REPEAT;" in sql

    def test_block_policy_has_no_ceiling(self, accounts_spec):
        spec = dataclasses.replace(
            accounts_spec, retry_policy=RetryPolicy(on_exhaustion=ExhaustionPolicy.BLOCK)
        )
        sql = build_create_trigger(spec, "insert").sql
        assert "UNTIL failed = 0 END REPEAT;" in sql
        assert "number_attempts >=" not in sql

    def test_escalate_policy_signals(self, accounts_spec):
        spec = dataclasses.replace(
            accounts_spec, retry_policy=RetryPolicy(on_exhaustion="escalate")
        )
        sql = build_create_trigger(spec, "delete").sql
        assert "UNTIL failed = 0 OR number_attempts >= 40 END REPEAT;" in sql
        assert "IF failed = 1 THEN" in sql
        assert (
            "SIGNAL SQLSTATE '45000' SET MESSAGE_TEXT = "
            "'capture procedure rr_trg unavailable';"
        ) in sql
        assert sql.endswith("END IF;\nEND")

    def test_dialect_supplies_condition(self, accounts_spec):
        dialect = Dialect(name="test", routine_not_found="SQLSTATE '42000'")
        sql = build_create_trigger(accounts_spec, "insert", dialect).sql
        assert "DECLARE CONTINUE HANDLER FOR SQLSTATE '42000' BEGIN" in sql
        assert "1305" not in sql

    def test_unknown_action(self, accounts_spec):
        with pytest.raises(ValidationError):
            build_create_trigger(accounts_spec, "truncate")
        with pytest.raises(ValidationError):
            build_drop_trigger("rr_trg", "truncate")


class TestSequences:
    """Tests for install and remove statement sequences."""

    def test_install_order(self, accounts_spec):
        steps = [s.step for s in build_install_statements(accounts_spec)]
        assert steps == [
            "drop_procedure",
            "create_procedure",
            "drop_trigger:insert",
            "create_trigger:insert",
            "drop_trigger:update",
            "create_trigger:update",
            "drop_trigger:delete",
            "create_trigger:delete",
        ]

    def test_install_drops_are_idempotent(self, accounts_spec):
        statements = build_install_statements(accounts_spec)
        assert statements[0].sql == "DROP PROCEDURE IF EXISTS rr_trg"
        assert statements[2].sql == "DROP TRIGGER IF EXISTS rr_trg_insert"

    def test_remove_sequence(self):
        assert [s.sql for s in build_remove_statements("rr_trg")] == [
            "DROP TRIGGER rr_trg_insert",
            "DROP TRIGGER rr_trg_update",
            "DROP TRIGGER rr_trg_delete",
            "DROP PROCEDURE rr_trg",
        ]

    def test_remove_if_exists_sequence(self):
        assert [s.sql for s in build_remove_if_exists_statements("rr_trg")] == [
            "DROP TRIGGER IF EXISTS rr_trg_insert",
            "DROP TRIGGER IF EXISTS rr_trg_update",
            "DROP TRIGGER IF EXISTS rr_trg_delete",
            "DROP PROCEDURE IF EXISTS rr_trg",
        ]

    def test_exists_query_probes_insert_trigger(self):
        assert build_exists_query("rr_trg", "accounts") == (
            "select 1 from information_schema.triggers "
            "where trigger_schema = database() "
            "and trigger_name = 'rr_trg_insert' "
            "and event_object_table = 'accounts'"
        )

    def test_exists_query_rejects_bad_table(self):
        with pytest.raises(ValidationError):
            build_exists_query("rr_trg", "accounts' or '1'='1")
