"""Reusable Pydantic Annotated types for domain-wide validation.

Every constrained type used across the package is defined here once,
so models can simply annotate their fields::

    from shared_queue.domain.shared.types import MemberIdStr, NonNegativeInt

    class MyModel(BaseModel):
        member_id: MemberIdStr
        points: NonNegativeInt
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BeforeValidator, Field

# ── Numeric constraints ─────────────────────────────────────────────

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

DurationMs = Annotated[int, Field(ge=0, le=86_400_000)]
"""Track duration or progress in milliseconds: 0 … 24 hours."""

UnixSeconds = Annotated[int, Field(ge=0)]
"""Seconds since the Unix epoch."""


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""

MemberIdStr = Annotated[str, Field(min_length=1, max_length=128)]
"""Opaque member identifier (cookie value)."""

PasscodeStr = Annotated[str, Field(min_length=4, max_length=32, pattern=r"^[A-Za-z0-9]+$")]
"""Short alphanumeric passcode used to join a session."""

TrackNameStr = Annotated[str, Field(min_length=1, max_length=500)]
"""Track or artist name: 1-500 characters."""


# ── Datetime constraints ────────────────────────────────────────────

def _ensure_utc(v: datetime | str) -> datetime:
    """Validate that a datetime is timezone-aware and normalise to UTC."""
    if isinstance(v, str):
        v = datetime.fromisoformat(v.replace("Z", "+00:00"))
    if v.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    return v.astimezone(UTC)


UtcDatetimeField = Annotated[datetime, BeforeValidator(_ensure_utc)]
"""Timezone-aware datetime, normalised to UTC on input."""
