"""Lock lifecycle steps run around a deploy.

Each step takes the LockContext of one host and either returns or
raises DeployLocked to stop the run for that host. Steps never share
state across hosts; the only shared thing is the lock file itself.
"""

import getpass
import os
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from flow_lock import log
from flow_lock.cache import LockState
from flow_lock.config import LockConfig
from flow_lock.expiry import At, ExpiryPolicy, Never
from flow_lock.messages import lock_message
from flow_lock.record import LockRecord, utcnow
from flow_lock.remote import Host
from flow_lock.store import LockStore

COUNTDOWN_SECONDS = 5


class DeployLocked(Exception):
    """A live lock blocks this host."""

    def __init__(self, host: Host, record: LockRecord, reason: str = "deploy locked"):
        self.host = host
        self.record = record
        self.reason = reason
        super().__init__(f"{host}: {reason} by '{record.username}'")


def current_username() -> str:
    return os.environ.get("USER") or getpass.getuser()


@dataclass
class LockContext:
    host: Host
    config: LockConfig
    state: LockState
    username: str
    custom: bool = False
    message: str | None = None
    expiry: ExpiryPolicy | None = None
    countdown: int = COUNTDOWN_SECONDS
    clock: Callable[[], datetime] = utcnow
    sleep: Callable[[float], None] = time.sleep
    created: bool = False
    cancelled: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def for_host(cls, host: Host, config: LockConfig, username: str | None = None, **kwargs):
        store = LockStore(host, config.lockfile, ssh_options=config.ssh_options)
        return cls(
            host=host,
            config=config,
            state=LockState(store),
            username=username or current_username(),
            **kwargs,
        )

    @property
    def store(self) -> LockStore:
        return self.state.store

    def default_expire_at(self, now: datetime) -> datetime:
        return now + timedelta(seconds=self.config.default_lock_expiry)

    def default_message(self) -> str:
        if self.config.branch:
            return f"Deploying {self.config.branch} branch"
        return "Deploying"


def _remove(ctx: LockContext) -> None:
    ctx.store.remove()
    ctx.state.invalidate_as_removed()


def _countdown(ctx: LockContext, record: LockRecord) -> None:
    # Worker threads never see Ctrl-C; the runner sets ctx.cancelled instead
    try:
        for remaining in range(ctx.countdown, 0, -1):
            if ctx.cancelled.is_set():
                break
            log.step(f"{ctx.host}: continuing in {remaining}s (Ctrl-C to cancel)")
            ctx.sleep(1)
    except KeyboardInterrupt:
        ctx.cancelled.set()
    if ctx.cancelled.is_set():
        raise DeployLocked(ctx.host, record, "deploy cancelled, locked")


def check_lock(ctx: LockContext) -> None:
    """Abort if someone else holds a live lock; purge expired locks."""
    if ctx.created:
        return

    record = ctx.state.get_or_fetch()
    if record is None:
        log.step(f"{ctx.host}: no deploy lock")
        return

    now = ctx.clock()
    if record.is_expired(now):
        log.warning(f"{ctx.host}: removing expired lock held by '{record.username}'")
        _remove(ctx)
        return

    text = lock_message(record, now)
    # A lock without expiry always needs an explicit unlock, even for its owner
    if record.username == ctx.username and record.expire_at is not None:
        log.warning(f"{ctx.host}: deploy locked by you")
        log.block(text)
        _countdown(ctx, record)
        return

    log.failure(f"{ctx.host}: deploy locked")
    log.block(text)
    raise DeployLocked(ctx.host, record)


def refresh_lock(ctx: LockContext) -> None:
    """Push out the expiry of an automatic lock that would lapse mid-deploy."""
    record = ctx.state.get_or_fetch()
    if record is None or record.custom or record.expire_at is None:
        return

    horizon = ctx.default_expire_at(ctx.clock())
    if record.expire_at >= horizon:
        return

    refreshed = replace(record, username=ctx.username, expire_at=horizon)
    ctx.store.write(refreshed)
    ctx.state.set(refreshed)
    log.step(f"{ctx.host}: lock refreshed until {horizon:%H:%M:%S} UTC")


def create_lock(ctx: LockContext) -> None:
    """Write a new lock unless this run already knows of one."""
    if ctx.state.cached is not None:
        return

    now = ctx.clock()
    if ctx.expiry is None:
        expire_at = ctx.default_expire_at(now)
    elif isinstance(ctx.expiry, Never):
        expire_at = None
    elif isinstance(ctx.expiry, At):
        expire_at = ctx.expiry.when
    else:
        raise TypeError(f"unknown expiry policy: {ctx.expiry!r}")

    record = LockRecord(
        created_at=now,
        username=ctx.username,
        expire_at=expire_at,
        message=ctx.message or ctx.default_message(),
        custom=ctx.custom,
    )
    ctx.store.write(record)
    ctx.state.set(record)
    ctx.created = True
    log.success(f"{ctx.host}: {'custom lock' if ctx.custom else 'lock'} created")


def unlock(ctx: LockContext) -> None:
    """Remove the lock, unless it is a custom one."""
    if ctx.state.is_custom:
        log.step(f"{ctx.host}: keeping custom lock (use force-unlock to remove it)")
        return
    _remove(ctx)
    log.success(f"{ctx.host}: unlocked")


def force_unlock(ctx: LockContext) -> None:
    _remove(ctx)
    log.success(f"{ctx.host}: lock removed")


def show_lock(ctx: LockContext) -> None:
    record = ctx.state.get_or_fetch()
    if record is None:
        log.step(f"{ctx.host}: not locked")
        return
    log.step(f"{ctx.host}:")
    log.block(lock_message(record, ctx.clock()))


BEFORE_DEPLOY = (check_lock, refresh_lock, create_lock)
AFTER_DEPLOY = (unlock,)
