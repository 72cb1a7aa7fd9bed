"""
triggers.py - Installation and removal of capture triggers.

A capture installation is the capture procedure plus one trigger
per row event. Statements are executed one at a time; the first
failure stops the sequence and is reported as a SchemaError.
"""

import logging
from typing import Sequence

from mysql_capture.db.connection import SqlExecutor
from mysql_capture.db.dialect import MYSQL, Dialect
from mysql_capture.db.identifiers import validate_identifier
from mysql_capture.db.statements import (
    Statement,
    build_exists_query,
    build_install_statements,
    build_remove_if_exists_statements,
    build_remove_statements,
)
from mysql_capture.errors import DatabaseError, PartialInstallError, SchemaError
from mysql_capture.models import TriggerSpec

logger = logging.getLogger("mysql_capture.db")


def _run_sequence(
    executor: SqlExecutor, statements: Sequence[Statement], target: str
) -> None:
    """
    Execute statements in order, stopping at the first failure.

    Raises:
        SchemaError: If the first statement fails
        PartialInstallError: If a later statement fails
    """
    completed: list[str] = []
    for statement in statements:
        logger.debug("%s: %s", target, statement.step)
        try:
            executor.execute(statement.sql)
        except DatabaseError as e:
            if completed:
                logger.warning(
                    "%s left incomplete: %s failed after %s",
                    target,
                    statement.step,
                    ", ".join(completed),
                    extra={"trigger_name": target, "step": statement.step},
                )
                raise PartialInstallError(
                    f"Failed at step '{statement.step}' for '{target}': {e.message}",
                    statement=statement.sql,
                    completed=completed,
                ) from e
            raise SchemaError(
                f"Failed at step '{statement.step}' for '{target}': {e.message}",
                statement=statement.sql,
            ) from e
        completed.append(statement.step)


def install_replication_trigger(
    executor: SqlExecutor, spec: TriggerSpec, dialect: Dialect = MYSQL
) -> None:
    """
    Install or replace the capture procedure and triggers for a table.

    Safe to run repeatedly: each object is dropped before it is
    created.

    Args:
        executor: SQL execution capability
        spec: Capture installation to create
        dialect: Target server dialect

    Raises:
        SchemaError: If a statement fails
    """
    _run_sequence(executor, build_install_statements(spec, dialect), spec.trigger_name)
    logger.info(
        "Installed capture trigger %s on %s (keys=%s, log=%s)",
        spec.trigger_name,
        spec.table,
        ",".join(spec.keys),
        spec.log_table,
        extra={"trigger_name": spec.trigger_name, "table": spec.table},
    )


def drop_replication_trigger(
    executor: SqlExecutor, trigger_name: str, table_name: str
) -> None:
    """
    Remove the triggers and capture procedure of an installation.

    Args:
        executor: SQL execution capability
        trigger_name: Name of the capture installation
        table_name: Monitored table

    Raises:
        SchemaError: If any of the objects does not exist
    """
    validate_identifier(table_name, "table")
    _run_sequence(executor, build_remove_statements(trigger_name), trigger_name)
    logger.info(
        "Removed capture trigger %s from %s",
        trigger_name,
        table_name,
        extra={"trigger_name": trigger_name, "table": table_name},
    )


def drop_replication_trigger_if_exists(
    executor: SqlExecutor, trigger_name: str, table_name: str
) -> bool:
    """
    Remove an installation if its insert trigger is present.

    Also clears out the remains of a partial installation, since
    every drop tolerates a missing object.

    Returns:
        True if an installation was found
    """
    found = replication_trigger_exists(executor, trigger_name, table_name)
    _run_sequence(
        executor, build_remove_if_exists_statements(trigger_name), trigger_name
    )
    if found:
        logger.info(
            "Removed capture trigger %s from %s",
            trigger_name,
            table_name,
            extra={"trigger_name": trigger_name, "table": table_name},
        )
    return found


def replication_trigger_exists(
    executor: SqlExecutor, trigger_name: str, table_name: str
) -> bool:
    """
    Check whether a capture installation exists for a table.

    Only the insert trigger is looked up in the catalog.

    Args:
        executor: SQL execution capability
        trigger_name: Name of the capture installation
        table_name: Monitored table

    Returns:
        True if <trigger_name>_insert exists on the table
    """
    rows = executor.query(build_exists_query(trigger_name, table_name))
    return len(rows) > 0
