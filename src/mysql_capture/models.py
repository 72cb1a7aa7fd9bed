"""
models.py - Value types describing a capture installation and its output.

A TriggerSpec is built by the caller for every monitored table.
LogEntry mirrors one row written by the generated triggers.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Sequence

from mysql_capture.config import (
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_KEY_SEPARATOR,
    DEFAULT_LOG_TABLE,
    DEFAULT_MAX_ATTEMPTS,
)
from mysql_capture.db.identifiers import validate_identifier, validate_trigger_name
from mysql_capture.errors import ValidationError


class ChangeType(str, Enum):
    """Single character change type stored in the log table."""

    INSERT = "I"
    UPDATE = "U"
    DELETE = "D"


class ExhaustionPolicy(str, Enum):
    """What a trigger does once its retry loop runs out of attempts."""

    # Give up silently; the row write succeeds, the change is not logged
    DROP = "drop"
    # Raise an error in the writing session so the row write fails
    ESCALATE = "escalate"
    # Keep retrying without a ceiling
    BLOCK = "block"


@dataclass(frozen=True)
class RetryPolicy:
    """Retry behaviour of a trigger while the capture procedure is missing."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS
    on_exhaustion: ExhaustionPolicy = ExhaustionPolicy.DROP

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ValidationError(
                "max_attempts must be an integer",
                field="max_attempts",
                value=self.max_attempts,
            )
        if self.max_attempts < 1:
            raise ValidationError(
                "max_attempts must be at least 1",
                field="max_attempts",
                value=self.max_attempts,
            )
        if (
            isinstance(self.backoff_seconds, bool)
            or not isinstance(self.backoff_seconds, (int, float))
            or not math.isfinite(self.backoff_seconds)
        ):
            raise ValidationError(
                "backoff_seconds must be a finite number",
                field="backoff_seconds",
                value=self.backoff_seconds,
            )
        if self.backoff_seconds <= 0:
            raise ValidationError(
                "backoff_seconds must be positive",
                field="backoff_seconds",
                value=self.backoff_seconds,
            )
        if not isinstance(self.on_exhaustion, ExhaustionPolicy):
            try:
                policy = ExhaustionPolicy(self.on_exhaustion)
            except ValueError:
                raise ValidationError(
                    f"Unknown exhaustion policy '{self.on_exhaustion}'",
                    field="on_exhaustion",
                    value=self.on_exhaustion,
                ) from None
            object.__setattr__(self, "on_exhaustion", policy)


@dataclass(frozen=True)
class TriggerSpec:
    """
    Configuration of one capture installation.

    Attributes:
        trigger_name: Name of the capture procedure; triggers are
            named <trigger_name>_insert/_update/_delete
        table: Monitored table
        keys: Key columns defining row identity, in log order
        log_table: Table receiving the log entries
        activity_table: Table whose non-empty state suppresses capture
        key_separator: Separator between composite key values
        exclude_own_activity: Honour the activity table
        retry_policy: Trigger retry loop settings
        include_key_names: Encode keys as name/value pairs
    """

    trigger_name: str
    table: str
    keys: Sequence[str]
    log_table: str = DEFAULT_LOG_TABLE
    activity_table: str | None = None
    key_separator: str = DEFAULT_KEY_SEPARATOR
    exclude_own_activity: bool = False
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    include_key_names: bool = False

    def __post_init__(self) -> None:
        validate_trigger_name(self.trigger_name)
        validate_identifier(self.table, "table")
        validate_identifier(self.log_table, "log_table")

        if isinstance(self.keys, str):
            raise ValidationError(
                "keys must be a sequence of column names, not a string",
                field="keys",
                value=self.keys,
            )
        keys = tuple(self.keys)
        if not keys:
            raise ValidationError("At least one key column is required", field="keys")
        for key in keys:
            validate_identifier(key, "keys")
        object.__setattr__(self, "keys", keys)

        if self.activity_table is not None:
            validate_identifier(self.activity_table, "activity_table")
        elif self.exclude_own_activity:
            raise ValidationError(
                "activity_table is required when exclude_own_activity is set",
                field="activity_table",
            )

        if not isinstance(self.key_separator, str):
            raise ValidationError(
                "key_separator must be a string",
                field="key_separator",
                value=self.key_separator,
            )


@dataclass(frozen=True)
class LogEntry:
    """One captured change as stored in the log table."""

    change_table: str
    change_key: str | None
    change_org_key: str | None
    change_type: ChangeType
    change_time: datetime

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "LogEntry":
        """
        Build an entry from a (change_table, change_key, change_org_key,
        change_type, change_time) row.
        """
        change_table, change_key, change_org_key, change_type, change_time = row
        return cls(
            change_table=change_table,
            change_key=change_key,
            change_org_key=change_org_key,
            change_type=ChangeType(change_type),
            change_time=change_time,
        )
