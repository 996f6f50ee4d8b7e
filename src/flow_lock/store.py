"""Read/write/remove the lock file on a deploy host."""

import shlex

from flow_lock import remote
from flow_lock.record import LockRecord


class LockStore:
    """Lock file at *path* on *host*, reached through remote.execute."""

    def __init__(self, host: remote.Host, path: str, ssh_options: list[str] | None = None):
        self.host = host
        self.path = path
        self.ssh_options = ssh_options

    def _run(self, command: str, input: str | None = None, ok=(0,)):
        result = remote.execute(self.host, command, input=input, ssh_options=self.ssh_options)
        if result.returncode not in ok:
            raise remote.RemoteCommandError(self.host, command, result)
        return result

    def exists(self) -> bool:
        result = self._run(f"test -e {shlex.quote(self.path)}", ok=(0, 1))
        return result.returncode == 0

    def read(self) -> LockRecord | None:
        """Return the lock on this host, or None if there is none.

        Raises MalformedLockError when the file holds garbage.
        """
        if not self.exists():
            return None
        content = self._run(f"cat {shlex.quote(self.path)}").stdout
        if not content.strip():
            return None
        return LockRecord.from_yaml(content)

    def write(self, record: LockRecord) -> None:
        self._run(f"cat > {shlex.quote(self.path)}", input=record.to_yaml())

    def remove(self) -> None:
        self._run(f"rm -f {shlex.quote(self.path)}")
