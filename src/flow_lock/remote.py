"""Run shell commands on deploy hosts over ssh."""

from dataclasses import dataclass, field

from flow_lock import process

LOCAL_HOSTS = ("local", "localhost")


@dataclass
class Host:
    name: str
    user: str | None = None
    port: int | None = None
    roles: list[str] = field(default_factory=list)
    no_release: bool = False

    @property
    def is_local(self) -> bool:
        return self.name in LOCAL_HOSTS

    @property
    def target(self) -> str:
        return f"{self.user}@{self.name}" if self.user else self.name

    def __str__(self) -> str:
        return self.name


class RemoteCommandError(RuntimeError):
    """A command on a deploy host exited with an unexpected status."""

    def __init__(self, host: Host, command: str, result: process.Result):
        self.host = host
        self.command = command
        self.result = result
        detail = result.stderr.strip() or f"exit {result.returncode}"
        super().__init__(f"{host}: `{command}` failed: {detail}")


def build_command(host: Host, command: str, ssh_options: list[str] | None = None) -> list[str]:
    """Return argv running *command* on *host*.

    Local hosts run through ``sh -c``; everything else through ssh.
    """
    if host.is_local:
        return ["sh", "-c", command]

    args = ["ssh"]
    if host.port:
        args += ["-p", str(host.port)]
    args += list(ssh_options or [])
    args += [host.target, command]
    return args


def execute(
    host: Host,
    command: str,
    input: str | None = None,
    ssh_options: list[str] | None = None,
) -> process.Result:
    """Run *command* on *host* and return its result, whatever the exit code."""
    return process.run(build_command(host, command, ssh_options), input=input)
