"""
dialect.py - Per-database details of the generated capture SQL.

The trigger retry loop reacts to a database specific condition
("stored routine does not exist"). Dialects carry that condition
and the few other engine specific fragments so the statement
builder stays the same for every MySQL-family server.
"""

from dataclasses import dataclass

from mysql_capture.errors import ValidationError


@dataclass(frozen=True)
class Dialect:
    """SQL fragments that differ between MySQL-family servers."""

    name: str
    # Condition raised by CALL when the procedure is missing
    routine_not_found: str
    now_function: str = "now()"
    sleep_template: str = "DO SLEEP({seconds})"
    # SQLSTATE used when a trigger escalates an exhausted retry loop
    escalation_sqlstate: str = "45000"

    def sleep(self, seconds: float) -> str:
        return self.sleep_template.format(seconds=f"{seconds:g}")


# ER_SP_DOES_NOT_EXIST
MYSQL = Dialect(name="mysql", routine_not_found="1305")
MARIADB = Dialect(name="mariadb", routine_not_found="1305")

_DIALECTS: dict[str, Dialect] = {}


def register_dialect(dialect: Dialect) -> None:
    """Register a dialect under its name, replacing any previous one."""
    _DIALECTS[dialect.name.lower()] = dialect


def get_dialect(name: str) -> Dialect:
    """
    Look up a registered dialect.

    Raises:
        ValidationError: If no dialect is registered under the name
    """
    try:
        return _DIALECTS[name.lower()]
    except KeyError:
        raise ValidationError(
            f"Unknown dialect '{name}'. Available: {', '.join(sorted(_DIALECTS))}",
            field="dialect",
            value=name,
        ) from None


def available_dialects() -> list[str]:
    return sorted(_DIALECTS)


register_dialect(MYSQL)
register_dialect(MARIADB)
