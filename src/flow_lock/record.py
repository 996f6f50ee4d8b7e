"""Lock record — the YAML document written to the shared lock file."""

from dataclasses import dataclass
from datetime import datetime, timezone

import yaml

FIELDS = ("created_at", "username", "expire_at", "message", "custom")


class MalformedLockError(ValueError):
    """Lock file exists but does not hold a valid lock record."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_time(key: str, value) -> datetime:
    # PyYAML turns unquoted ISO timestamps into datetimes on its own
    if isinstance(value, datetime):
        return _to_utc(value)
    if isinstance(value, str):
        try:
            return _to_utc(datetime.fromisoformat(value))
        except ValueError:
            pass
    raise MalformedLockError(f"invalid {key}: {value!r}")


@dataclass
class LockRecord:
    created_at: datetime
    username: str
    expire_at: datetime | None
    message: str
    custom: bool = False

    def __post_init__(self):
        self.created_at = _to_utc(self.created_at)
        if self.expire_at is not None:
            self.expire_at = _to_utc(self.expire_at)

    def is_expired(self, now: datetime) -> bool:
        return self.expire_at is not None and self.expire_at < now

    def to_dict(self) -> dict:
        return {
            "created_at": self.created_at.isoformat(),
            "username": self.username,
            "expire_at": self.expire_at.isoformat() if self.expire_at else None,
            "message": self.message,
            "custom": self.custom,
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, text: str) -> "LockRecord":
        """Parse lock file contents.

        Raises MalformedLockError for anything that is not a complete
        lock mapping, so a corrupt file never reads as "no lock".
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MalformedLockError(f"lock file is not valid YAML: {e}") from e

        if not isinstance(data, dict):
            raise MalformedLockError("lock file is not a mapping")

        missing = [k for k in FIELDS if k not in data]
        if missing:
            raise MalformedLockError(f"lock file missing: {', '.join(missing)}")

        for key in ("username", "message"):
            if not isinstance(data[key], str):
                raise MalformedLockError(f"{key} must be a string, got {data[key]!r}")
        if not data["username"]:
            raise MalformedLockError("username is empty")
        if not isinstance(data["custom"], bool):
            raise MalformedLockError(f"custom must be true or false, got {data['custom']!r}")

        expire_at = data["expire_at"]
        return cls(
            created_at=_parse_time("created_at", data["created_at"]),
            username=data["username"],
            expire_at=_parse_time("expire_at", expire_at) if expire_at is not None else None,
            message=data["message"],
            custom=data["custom"],
        )
