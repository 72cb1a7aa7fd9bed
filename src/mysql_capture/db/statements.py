"""
statements.py - SQL generation for the capture procedure and row triggers.

Every write to a monitored table fires an AFTER trigger which calls
one shared capture procedure; the procedure writes the log entry.
Keeping the log logic in the procedure lets it be replaced without
touching the triggers. While it is being replaced (dropped and
recreated) the triggers retry the CALL for a bounded time.

All functions here are pure text generation.
"""

from dataclasses import dataclass
from typing import Final

from mysql_capture.config import CHANGE_TYPES, KEY_COLUMN_LENGTH, TRIGGER_ACTIONS
from mysql_capture.db.dialect import MYSQL, Dialect
from mysql_capture.db.identifiers import (
    quote_literal,
    validate_identifier,
    validate_trigger_name,
)
from mysql_capture.db.keys import encode_key
from mysql_capture.errors import ValidationError
from mysql_capture.models import ExhaustionPolicy, RetryPolicy, TriggerSpec


@dataclass(frozen=True)
class Statement:
    """A single independently executable SQL statement."""

    step: str
    sql: str

    def __str__(self) -> str:
        return self.sql


PROCEDURE_TEMPLATE: Final[str] = """
CREATE PROCEDURE {procedure}(change_key varchar({key_length}), change_org_key varchar({key_length}), change_type varchar(1))
p: BEGIN
{activity_check}  INSERT INTO {log_table}(change_table, change_key, change_org_key, change_type, change_time)
    VALUES({table_literal}, change_key, change_org_key, change_type, {now});
END
"""

# Aborts the procedure while the activity table has rows
ACTIVITY_CHECK_TEMPLATE: Final[str] = """\
  DECLARE active INT;
  SELECT count(*) INTO active FROM {activity_table};
  IF active <> 0 THEN
    LEAVE p;
  END IF;
"""

TRIGGER_TEMPLATE: Final[str] = """
CREATE TRIGGER {trigger}
AFTER {event} ON {table} FOR EACH ROW BEGIN
  DECLARE number_attempts INT DEFAULT 0;
  DECLARE failed INT;
  DECLARE CONTINUE HANDLER FOR {routine_not_found} BEGIN
    {sleep};
    SET failed = 1;
    SET number_attempts = number_attempts + 1;
  END;
  REPEAT
    SET failed = 0;
    {call}
  UNTIL {until} END REPEAT;
{after_loop}END
"""

ESCALATION_TEMPLATE: Final[str] = """\
  IF failed = 1 THEN
    SIGNAL SQLSTATE '{sqlstate}' SET MESSAGE_TEXT = {message};
  END IF;
"""

EXISTS_QUERY_TEMPLATE: Final[str] = (
    "select 1 from information_schema.triggers "
    "where trigger_schema = database() "
    "and trigger_name = {trigger_literal} "
    "and event_object_table = {table_literal}"
)


def _check_action(action: str) -> None:
    if action not in CHANGE_TYPES:
        raise ValidationError(
            f"Unknown trigger action: {action}", field="action", value=action
        )


def trigger_name_for(trigger_name: str, action: str) -> str:
    """Name of the trigger handling ``action`` for a capture installation."""
    return f"{trigger_name}_{action}"


def build_drop_procedure(trigger_name: str) -> Statement:
    validate_trigger_name(trigger_name)
    return Statement("drop_procedure", f"DROP PROCEDURE IF EXISTS {trigger_name}")


def build_create_procedure(spec: TriggerSpec, dialect: Dialect = MYSQL) -> Statement:
    """
    Build the capture procedure for a spec.

    The procedure takes the encoded new key, the encoded original key
    and the change type, and appends one row to the log table stamped
    with the current database time. With ``exclude_own_activity`` set
    it first returns without logging while the activity table is not
    empty.
    """
    activity_check = ""
    if spec.exclude_own_activity:
        activity_check = ACTIVITY_CHECK_TEMPLATE.format(
            activity_table=spec.activity_table
        )

    sql = PROCEDURE_TEMPLATE.format(
        procedure=spec.trigger_name,
        key_length=KEY_COLUMN_LENGTH,
        activity_check=activity_check,
        log_table=spec.log_table,
        table_literal=quote_literal(spec.table),
        now=dialect.now_function,
    ).strip()
    return Statement("create_procedure", sql)


def build_procedure_statements(
    spec: TriggerSpec, dialect: Dialect = MYSQL
) -> list[Statement]:
    return [
        build_drop_procedure(spec.trigger_name),
        build_create_procedure(spec, dialect),
    ]


def build_call(spec: TriggerSpec, action: str) -> str:
    """
    Build the CALL statement a trigger issues for ``action``.

    Inserts log the new row's key, deletes the old row's key and
    updates both, so a changed primary key can be followed.
    """
    _check_action(action)

    def key(row_version: str) -> str:
        return encode_key(
            row_version, spec.keys, spec.key_separator, spec.include_key_names
        )

    if action == "update":
        new_key, org_key = key("NEW"), key("OLD")
    elif action == "delete":
        new_key, org_key = key("OLD"), "null"
    else:
        new_key, org_key = key("NEW"), "null"

    change_type = quote_literal(CHANGE_TYPES[action])
    return f"CALL {spec.trigger_name}({new_key}, {org_key}, {change_type});"


def _until_clause(policy: RetryPolicy) -> str:
    if policy.on_exhaustion is ExhaustionPolicy.BLOCK:
        return "failed = 0"
    return f"failed = 0 OR number_attempts >= {policy.max_attempts}"


def build_create_trigger(
    spec: TriggerSpec, action: str, dialect: Dialect = MYSQL
) -> Statement:
    """
    Build the AFTER trigger for one action.

    The trigger body calls the capture procedure inside a REPEAT loop.
    A CALL failing because the procedure does not exist is caught by a
    CONTINUE handler which sleeps and counts the attempt; the loop then
    retries until the call succeeds or the retry policy gives up.
    """
    policy = spec.retry_policy
    after_loop = ""
    if policy.on_exhaustion is ExhaustionPolicy.ESCALATE:
        after_loop = ESCALATION_TEMPLATE.format(
            sqlstate=dialect.escalation_sqlstate,
            message=quote_literal(
                f"capture procedure {spec.trigger_name} unavailable"
            ),
        )

    name = trigger_name_for(spec.trigger_name, action)
    sql = TRIGGER_TEMPLATE.format(
        trigger=name,
        event=action.upper(),
        table=spec.table,
        routine_not_found=dialect.routine_not_found,
        sleep=dialect.sleep(policy.backoff_seconds),
        call=build_call(spec, action),
        until=_until_clause(policy),
        after_loop=after_loop,
    ).strip()
    return Statement(f"create_trigger:{action}", sql)


def build_drop_trigger(
    trigger_name: str, action: str, if_exists: bool = True
) -> Statement:
    validate_trigger_name(trigger_name)
    _check_action(action)
    name = trigger_name_for(trigger_name, action)
    if_exists_sql = "IF EXISTS " if if_exists else ""
    return Statement(f"drop_trigger:{action}", f"DROP TRIGGER {if_exists_sql}{name}")


def build_trigger_statements(
    spec: TriggerSpec, dialect: Dialect = MYSQL
) -> list[Statement]:
    """Drop and create statements for the insert, update and delete triggers."""
    statements = []
    for action in TRIGGER_ACTIONS:
        statements.append(build_drop_trigger(spec.trigger_name, action))
        statements.append(build_create_trigger(spec, action, dialect))
    return statements


def build_install_statements(
    spec: TriggerSpec, dialect: Dialect = MYSQL
) -> list[Statement]:
    """
    Full installation sequence for a spec.

    Procedure drop and create, then drop and create for each trigger.
    Every object is dropped before it is created, so running the
    sequence over an existing installation replaces it.
    """
    return build_procedure_statements(spec, dialect) + build_trigger_statements(
        spec, dialect
    )


def build_remove_statements(trigger_name: str) -> list[Statement]:
    """
    Removal sequence: the three triggers, then the procedure.

    The drops do not use IF EXISTS; removing a missing object fails.
    """
    validate_trigger_name(trigger_name)
    statements = [
        build_drop_trigger(trigger_name, action, if_exists=False)
        for action in TRIGGER_ACTIONS
    ]
    statements.append(Statement("drop_procedure", f"DROP PROCEDURE {trigger_name}"))
    return statements


def build_remove_if_exists_statements(trigger_name: str) -> list[Statement]:
    """Removal sequence that tolerates missing objects."""
    statements = [
        build_drop_trigger(trigger_name, action) for action in TRIGGER_ACTIONS
    ]
    statements.append(build_drop_procedure(trigger_name))
    return statements


def build_exists_query(trigger_name: str, table_name: str) -> str:
    """
    Catalog query probing for the insert trigger of an installation.

    Only the insert trigger is checked; it stands in for the whole
    procedure and trigger set.
    """
    validate_trigger_name(trigger_name)
    validate_identifier(table_name, "table")
    return EXISTS_QUERY_TEMPLATE.format(
        trigger_literal=quote_literal(trigger_name_for(trigger_name, "insert")),
        table_literal=quote_literal(table_name),
    )
