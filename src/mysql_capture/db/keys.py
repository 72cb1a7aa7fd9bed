"""
keys.py - Primary key encoding for captured changes.

Builds the SQL expression a trigger uses to turn a row's key
columns into a single delimited string. The expression is
evaluated by the database; nothing is computed here.
"""

from typing import Final, Sequence

from mysql_capture.db.identifiers import quote_literal, validate_identifier
from mysql_capture.errors import ValidationError

ROW_VERSIONS: Final[frozenset[str]] = frozenset({"NEW", "OLD"})


def encode_key(
    row_version: str,
    keys: Sequence[str],
    separator: str,
    include_key_names: bool = False,
) -> str:
    """
    Build a concat_ws() expression joining the key columns of a row.

    concat_ws skips NULL arguments, so a NULL key column never turns
    the whole key into NULL. Column order follows ``keys`` exactly;
    insert, update and delete triggers of one installation must
    produce comparable keys.

    Args:
        row_version: "NEW" or "OLD"
        keys: Key column names in declared order
        separator: String placed between key values
        include_key_names: Emit 'column', value pairs instead of bare values

    Returns:
        SQL expression, e.g. ``concat_ws('|', NEW.org_id, NEW.id)``

    Raises:
        ValidationError: If the row version or a key name is invalid
    """
    if row_version not in ROW_VERSIONS:
        raise ValidationError(
            f"Row version must be NEW or OLD, got '{row_version}'",
            field="row_version",
            value=row_version,
        )
    if not keys:
        raise ValidationError("At least one key column is required", field="keys")

    parts = []
    for key in keys:
        validate_identifier(key, "keys")
        if include_key_names:
            parts.append(quote_literal(key))
        parts.append(f"{row_version}.{key}")

    return f"concat_ws({quote_literal(separator)}, {', '.join(parts)})"
