"""
errors.py - Domain-specific exceptions for mysql_capture.

All exceptions inherit from CaptureError for unified handling.
Each exception type represents a distinct failure mode.
"""

from typing import Any, Sequence


class CaptureError(Exception):
    """Base exception for all mysql_capture errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


def _truncate(sql: str) -> str:
    return sql[:200] + "..." if len(sql) > 200 else sql


class ValidationError(CaptureError):
    """
    Raised when input validation fails.

    This includes empty key lists, identifiers outside the allowed
    character set and unknown dialect or policy names. Raised before
    any SQL is emitted.
    """

    def __init__(
        self, message: str, field: str | None = None, value: Any = None
    ) -> None:
        context = {}
        if field is not None:
            context["field"] = field
        if value is not None:
            context["value"] = repr(value)[:100]
        super().__init__(message, context=context)
        self.field = field
        self.value = value


class DatabaseError(CaptureError):
    """
    Raised when a database operation fails unexpectedly.

    This wraps driver errors with additional context about
    what operation was being attempted.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        sql: str | None = None,
        code: int | None = None,
    ) -> None:
        context = {}
        if operation is not None:
            context["operation"] = operation
        if code is not None:
            context["code"] = code
        if sql is not None:
            context["sql"] = _truncate(sql)
        super().__init__(message, context=context)
        self.operation = operation
        self.sql = sql
        self.code = code


class SchemaError(CaptureError):
    """
    Raised when a DDL statement of an install or remove sequence fails.

    Removing a trigger or procedure that does not exist is the
    common case. The remaining statements of the sequence are
    not executed and nothing is retried.
    """

    def __init__(
        self,
        message: str,
        statement: str | None = None,
        completed: Sequence[str] = (),
    ) -> None:
        context = {}
        if statement is not None:
            context["statement"] = _truncate(statement)
        super().__init__(message, context=context)
        self.statement = statement
        self.completed = tuple(completed)


class PartialInstallError(SchemaError):
    """
    Raised when a sequence fails after some of its statements succeeded.

    The capture artifact (procedure plus three triggers) may now be
    incomplete. Nothing is rolled back; re-running install restores
    the full set because every object is dropped before it is created.
    """

    def __init__(
        self, message: str, statement: str, completed: Sequence[str]
    ) -> None:
        super().__init__(message, statement=statement, completed=completed)
        self.context["completed_steps"] = len(self.completed)
