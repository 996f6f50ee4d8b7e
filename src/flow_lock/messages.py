"""Human-readable lock status text."""

from datetime import datetime, timedelta

from flow_lock.record import LockRecord

FORCE_UNLOCK_HINT = "flow-lock force-unlock"


def humanize(delta: timedelta) -> str:
    seconds = int(abs(delta.total_seconds()))
    if seconds < 60:
        return "less than a minute"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''}"


def expiry_text(record: LockRecord, now: datetime) -> str:
    if record.expire_at is None:
        return f"Lock does not expire. Remove it with: {FORCE_UNLOCK_HINT}"
    remaining = record.expire_at - now
    stamp = record.expire_at.strftime("%Y-%m-%d %H:%M:%S UTC")
    if remaining.total_seconds() < 0:
        return f"Lock expired {humanize(remaining)} ago ({stamp})"
    return f"Lock expires in {humanize(remaining)} ({stamp})"


def lock_message(record: LockRecord, now: datetime) -> str:
    """Describe *record*: who, when, until when, and why."""
    kind = "Custom lock" if record.custom else "Deploy lock"
    created = record.created_at.strftime("%Y-%m-%d %H:%M:%S UTC")
    lines = [
        f"{kind} created by '{record.username}' {humanize(now - record.created_at)} ago ({created})",
    ]
    if record.message:
        lines.append(f"Message: {record.message}")
    lines.append(expiry_text(record, now))
    return "\n".join(lines)
