"""Date/time helpers.

- Always store and operate on timezone-aware UTC datetimes.
- Credential ages are tracked in whole Unix seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from shared_queue.domain.shared.messages import ErrorMessages


@dataclass(frozen=True, slots=True)
class UtcDateTime:
    """A tiny value-object wrapper around a timezone-aware UTC `datetime`."""

    dt: datetime

    def __post_init__(self) -> None:
        if self.dt.tzinfo is None:
            raise ValueError(ErrorMessages.TIMEZONE_REQUIRED_UTC_DATETIME)
        object.__setattr__(self, "dt", self.dt.astimezone(UTC))

    @classmethod
    def now(cls) -> UtcDateTime:
        return cls(datetime.now(UTC))

    @property
    def iso(self) -> str:
        """RFC3339/ISO8601 with explicit offset (+00:00)."""
        return self.dt.isoformat()

    @property
    def unix_seconds(self) -> int:
        return int(self.dt.timestamp())


def utcnow() -> datetime:
    """Returns a timezone-aware datetime in UTC."""
    return datetime.now(UTC)


def current_unix_seconds() -> int:
    """Default clock for credential bookkeeping."""
    return UtcDateTime.now().unix_seconds
