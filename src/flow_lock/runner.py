"""Select hosts and run lock steps on each of them."""

from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor

from flow_lock import log
from flow_lock.protocol import DeployLocked, LockContext
from flow_lock.record import MalformedLockError
from flow_lock.remote import Host, RemoteCommandError

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_LOCKED = 2

Step = Callable[[LockContext], None]


def select_hosts(hosts: Iterable[Host], roles: Sequence[str] | None = None) -> list[Host]:
    """Hosts in any of *roles* (all when empty), minus no_release hosts."""
    selected = []
    for host in hosts:
        if host.no_release:
            continue
        if roles and not set(roles) & set(host.roles):
            continue
        selected.append(host)
    return selected


def run_for_host(ctx: LockContext, steps: Sequence[Step]) -> int:
    """Run *steps* in order on one host. Returns an exit code."""
    try:
        for step in steps:
            step(ctx)
    except DeployLocked as e:
        log.error(str(e))
        return EXIT_LOCKED
    except MalformedLockError as e:
        log.error(f"{ctx.host}: unreadable lock file {ctx.config.lockfile}: {e}")
        return EXIT_ERROR
    except RemoteCommandError as e:
        log.error(str(e))
        return EXIT_ERROR
    return EXIT_OK


def run_all(
    contexts: Sequence[LockContext],
    steps: Sequence[Step],
    parallel: bool = False,
    max_workers: int | None = None,
) -> int:
    """Run each step across every host before moving to the next step.

    Stops after the first step that fails on any host. Returns the worst
    exit code seen.
    """
    for step in steps:
        if parallel and len(contexts) > 1:
            executor = ThreadPoolExecutor(max_workers=max_workers or len(contexts))
            try:
                codes = list(executor.map(lambda c: run_for_host(c, [step]), contexts))
            except KeyboardInterrupt:
                # Only the main thread gets Ctrl-C; tell the workers to stop
                for ctx in contexts:
                    ctx.cancelled.set()
                log.error("Interrupted, deploy cancelled")
                return EXIT_LOCKED
            finally:
                executor.shutdown(wait=True, cancel_futures=True)
        else:
            codes = [run_for_host(c, [step]) for c in contexts]

        worst = max(codes, default=EXIT_OK)
        if worst != EXIT_OK:
            return worst
    return EXIT_OK
