"""Parse operator-supplied lock expiry: relative, absolute or never."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from dateutil import parser as dateutil_parser


class ExpiryParseError(ValueError):
    pass


@dataclass(frozen=True)
class Never:
    pass


@dataclass(frozen=True)
class At:
    when: datetime


ExpiryPolicy = Never | At

_UNITS = {
    "s": "seconds", "sec": "seconds", "secs": "seconds", "second": "seconds", "seconds": "seconds",
    "m": "minutes", "min": "minutes", "mins": "minutes", "minute": "minutes", "minutes": "minutes",
    "h": "hours", "hr": "hours", "hrs": "hours", "hour": "hours", "hours": "hours",
    "d": "days", "day": "days", "days": "days",
    "w": "weeks", "week": "weeks", "weeks": "weeks",
}

_RELATIVE = re.compile(r"^(?:in\s+)?(\d+)\s*([a-z]+)(?:\s+from\s+now)?$")


def _relative(text: str) -> timedelta | None:
    if text == "tomorrow":
        return timedelta(days=1)
    match = _RELATIVE.match(text)
    if not match:
        return None
    amount, unit = match.groups()
    if unit not in _UNITS:
        return None
    return timedelta(**{_UNITS[unit]: int(amount)})


def _midnight_local(now: datetime) -> datetime:
    # Missing date fields come from *now*, not the system clock
    local = now.astimezone().replace(tzinfo=None)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def parse_expiry(text: str, now: datetime) -> ExpiryPolicy:
    """Turn operator input into an expiry policy.

    Blank input or "never" means the lock never expires. Relative input
    ("30m", "in 2 hours", "tomorrow") is measured from *now*; anything
    else goes through dateutil. Naive timestamps are local time. The
    result is always UTC and must lie in the future.
    """
    normalized = " ".join(text.strip().lower().split())
    if not normalized or normalized == "never":
        return Never()

    delta = _relative(normalized)
    if delta is not None:
        when = now + delta
    else:
        try:
            when = dateutil_parser.parse(text.strip(), default=_midnight_local(now))
        except (ValueError, OverflowError) as e:
            raise ExpiryParseError(f"could not understand expiry: {text.strip()!r}") from e
        if when.tzinfo is None:
            when = when.astimezone()

    when = when.astimezone(timezone.utc)
    if when <= now:
        raise ExpiryParseError(f"expiry is not in the future: {when.isoformat()}")
    return At(when)
