"""
identifiers.py - Identifier validation and literal quoting.

Generated statements embed table, trigger and column names
verbatim, so every name is checked against an allow-list
before it reaches a statement template.
"""

import re
from typing import Final

from mysql_capture.config import MAX_IDENTIFIER_LENGTH, TRIGGER_ACTIONS
from mysql_capture.errors import ValidationError

IDENTIFIER_PATTERN: Final[re.Pattern[str]] = re.compile(r"[A-Za-z_][A-Za-z0-9_$]*")

# Longest action suffix appended to a trigger name ("_insert", "_update", "_delete")
_TRIGGER_SUFFIX_LENGTH: Final[int] = max(len(action) for action in TRIGGER_ACTIONS) + 1


def validate_identifier(value: str, field: str = "identifier") -> str:
    """
    Validate an unquoted SQL identifier.

    Args:
        value: Name to check
        field: Name of the field being validated, for error context

    Returns:
        The identifier unchanged

    Raises:
        ValidationError: If the name is empty, too long or contains
            characters outside [A-Za-z0-9_$]
    """
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{field} cannot be empty", field=field, value=value)

    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(
            f"{field} exceeds {MAX_IDENTIFIER_LENGTH} characters: '{value}'",
            field=field,
            value=value,
        )

    # fullmatch: "$" would also accept a trailing newline
    if not IDENTIFIER_PATTERN.fullmatch(value):
        raise ValidationError(
            f"{field} contains invalid characters: '{value}'",
            field=field,
            value=value,
        )

    return value


def validate_trigger_name(value: str) -> str:
    """Validate a trigger name, leaving room for the action suffix."""
    validate_identifier(value, "trigger_name")
    if len(value) + _TRIGGER_SUFFIX_LENGTH > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(
            f"trigger_name too long to carry an action suffix: '{value}'",
            field="trigger_name",
            value=value,
        )
    return value


def quote_literal(value: str) -> str:
    """
    Render a Python string as a single-quoted MySQL string literal.

    Backslashes are doubled, which is correct for MySQL's default sql_mode.
    Under NO_BACKSLASH_ESCAPES the server treats backslash as a plain
    character, so a separator or table name containing one would be stored
    doubled. Sessions that install triggers must not enable that mode;
    create_connection() clears it on connect.
    """
    escaped = value.replace("\\", "\\\\").replace("'", "''")
    return f"'{escaped}'"
