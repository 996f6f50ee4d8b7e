"""Wrap a deploy command in the lock lifecycle."""

import time
from collections.abc import Sequence

from flow_lock import log, process, protocol, runner
from flow_lock.protocol import LockContext


def lock(contexts: Sequence[LockContext], parallel: bool = False) -> int:
    """Write a lock on every host. Contexts carry message/expiry/custom."""
    return runner.run_all(contexts, [protocol.create_lock], parallel=parallel)


def deploy(
    contexts: Sequence[LockContext],
    command: list[str],
    parallel: bool = False,
) -> int:
    """Check, refresh and create locks, run *command*, then unlock.

    Returns exit code (0=success, 1=failure, 2=locked). The lock is only
    released when the command succeeds; a failed deploy stays locked.
    """
    log.header("deploy")
    log.info(f"hosts: {', '.join(str(c.host) for c in contexts)}")
    log.info(f"command: {' '.join(command)}")
    log.info("")

    code = runner.run_all(contexts, protocol.BEFORE_DEPLOY, parallel=parallel)
    if code != runner.EXIT_OK:
        log.info("")
        log.footer("FAILED (deploy locked)" if code == runner.EXIT_LOCKED else "FAILED")
        return code

    start_time = time.time()
    returncode = process.run_streaming(command)
    elapsed = time.time() - start_time

    if returncode != 0:
        log.failure(f"deploy command exited with {returncode}, lock left in place")
        log.info("")
        log.footer(f"FAILED ({elapsed:.1f}s)")
        return runner.EXIT_ERROR

    code = runner.run_all(contexts, protocol.AFTER_DEPLOY, parallel=parallel)
    log.info("")
    log.footer(f"complete ({elapsed:.1f}s)" if code == runner.EXIT_OK else "unlock FAILED")
    return code


def deploy_with_lock(
    contexts: Sequence[LockContext],
    command: list[str],
    parallel: bool = False,
) -> int:
    """Create a custom lock, then run the normal deploy under it."""
    code = lock(contexts, parallel=parallel)
    if code != runner.EXIT_OK:
        return code
    return deploy(contexts, command, parallel=parallel)
