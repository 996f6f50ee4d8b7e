"""Shared test fixtures."""

import shlex
from datetime import datetime, timezone

import pytest

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_process(monkeypatch):
    """Mock process.run and process.run_streaming for tests."""
    from flow_lock import process

    calls = []
    responses = []

    def fake_run(args, input=None):
        calls.append(("run", args, input))
        if responses:
            return responses.pop(0)
        return process.Result(returncode=0, stdout="", stderr="")

    def fake_run_streaming(args):
        calls.append(("run_streaming", args))
        return 0

    monkeypatch.setattr(process, "run", fake_run)
    monkeypatch.setattr(process, "run_streaming", fake_run_streaming)

    return type("MockProcess", (), {"calls": calls, "responses": responses})()


class FakeRemote:
    """In-memory stand-in for the files on every deploy host."""

    def __init__(self):
        self.files = {}
        self.commands = []

    def execute(self, host, command, input=None, ssh_options=None):
        from flow_lock.process import Result

        self.commands.append((host.name, command))
        if command.startswith("cat > "):
            self.files[(host.name, shlex.split(command)[-1])] = input
            return Result(0, "", "")

        argv = shlex.split(command)
        key = (host.name, argv[-1])
        if argv[0] == "test":
            return Result(0 if key in self.files else 1, "", "")
        if argv[0] == "cat":
            if key not in self.files:
                return Result(1, "", f"cat: {argv[-1]}: No such file or directory")
            return Result(0, self.files[key], "")
        if argv[0] == "rm":
            self.files.pop(key, None)
            return Result(0, "", "")
        raise AssertionError(f"unexpected command: {command}")

    def reads(self, host_name):
        return [c for h, c in self.commands if h == host_name and c.startswith("cat /")]


@pytest.fixture
def fake_remote(monkeypatch):
    from flow_lock import remote

    fake = FakeRemote()
    monkeypatch.setattr(remote, "execute", fake.execute)
    return fake


@pytest.fixture
def lock_config():
    from flow_lock.config import LockConfig
    from flow_lock.remote import Host

    return LockConfig(
        deploy_to="/srv/app",
        branch="main",
        hosts=[Host("web1", roles=["app"]), Host("web2", roles=["app"])],
    )


@pytest.fixture
def make_context(lock_config):
    """Build a LockContext for a host with a frozen clock and no real sleeping."""
    from flow_lock.protocol import LockContext
    from flow_lock.remote import Host

    def _make(host="web1", username="bob", now=NOW, **kwargs):
        kwargs.setdefault("sleep", lambda s: None)
        return LockContext.for_host(
            Host(host), lock_config, username=username, clock=lambda: now, **kwargs
        )

    return _make
