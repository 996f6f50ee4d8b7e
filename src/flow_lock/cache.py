"""Per-host, per-run memoization of the lock file state."""

from flow_lock.record import LockRecord
from flow_lock.store import LockStore

UNKNOWN = object()


class LockState:
    """What one run believes about the lock on one host.

    ``value`` is UNKNOWN until fetched, then False (no lock) or a
    LockRecord. Once ``removed`` is set the remote file is never read
    again for this run.
    """

    def __init__(self, store: LockStore):
        self.store = store
        self.value = UNKNOWN
        self.removed = False

    def get_or_fetch(self) -> LockRecord | None:
        if self.removed:
            return None
        if self.value is UNKNOWN:
            self.value = self.store.read() or False
        return self.value or None

    def set(self, record: LockRecord | None) -> None:
        self.value = record or False
        self.removed = False

    def invalidate_as_removed(self) -> None:
        self.value = False
        self.removed = True

    @property
    def is_custom(self) -> bool:
        record = self.get_or_fetch()
        return bool(record and record.custom)

    @property
    def cached(self) -> LockRecord | None:
        """Record known to this run, without touching the remote file."""
        if self.removed or self.value is UNKNOWN:
            return None
        return self.value or None
