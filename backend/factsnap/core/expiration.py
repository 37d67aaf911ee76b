"""Time-Bounded Validity — duration parsing and the ExpiresAt rules.

Invariants:
    - ExpiresAt = CreatedAt + duration, duration in [1h, 24h] inclusive
    - ExpiresAt is computed once at creation and never recomputed
    - A question is open while now <= expires_at (boundary instant is still open)
    - All datetimes handled here are timezone-aware UTC
"""

import re
from datetime import datetime, timedelta, timezone

from factsnap.core.errors import InvalidArgumentError


MIN_DURATION = timedelta(hours=1)
MAX_DURATION = timedelta(hours=24)

# Go-style duration strings: "90m", "2h", "1h30m", "1.5h"
_DURATION_RE = re.compile(r"^(?:\d+(?:\.\d+)?(?:h|ms|m|s))+$")
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(h|ms|m|s)")
_UNITS = {
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_duration(raw: str) -> timedelta:
    """Parse a Go-style duration string."""
    text = (raw or "").strip()
    if not _DURATION_RE.match(text):
        raise InvalidArgumentError(
            "duration is in bad format", field="duration",
        )
    total = timedelta()
    try:
        for amount, unit in _DURATION_PART_RE.findall(text):
            total += _UNITS[unit] * float(amount)
    except (OverflowError, ValueError) as e:
        raise InvalidArgumentError(
            "duration is in bad format", field="duration",
        ) from e
    return total


def check_duration_range(duration: timedelta) -> InvalidArgumentError | None:
    if duration < MIN_DURATION or duration > MAX_DURATION:
        return InvalidArgumentError(
            "duration must be between 1-24 hours (inclusive)",
            field="duration",
        )
    return None


def compute_expires_at(created_at: datetime, duration: timedelta) -> datetime:
    """Fix the expiration instant for a new question."""
    error = check_duration_range(duration)
    if error:
        raise error
    return as_utc(created_at) + duration


def is_expired(expires_at: datetime, now: datetime | None = None) -> bool:
    now = as_utc(now) if now else utc_now()
    return now > as_utc(expires_at)
