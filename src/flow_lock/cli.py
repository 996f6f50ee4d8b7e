"""Click entry point — all commands."""

import sys

import click

from flow_lock import __version__, log, protocol, runner
from flow_lock import deploy as deploy_mod
from flow_lock.config import ConfigError, load_config
from flow_lock.expiry import ExpiryParseError, parse_expiry
from flow_lock.record import utcnow
from flow_lock.remote import Host


class Settings:
    def __init__(self, config_path, hosts, roles, parallel, user, overrides=None):
        self.config_path = config_path
        self.hosts = hosts
        self.roles = roles
        self.parallel = parallel
        self.user = user
        self.overrides = overrides or {}

    def contexts(self, **kwargs) -> list[protocol.LockContext]:
        """Load config once and build one LockContext per selected host."""
        try:
            config = load_config(self.config_path, **self.overrides)
        except ConfigError as e:
            log.error(str(e))
            sys.exit(runner.EXIT_ERROR)

        hosts = resolve_hosts(self.hosts, config.hosts) if self.hosts else config.hosts
        selected = runner.select_hosts(hosts, self.roles)
        if not selected:
            log.error("No hosts to lock")
            sys.exit(runner.EXIT_ERROR)

        return [
            protocol.LockContext.for_host(h, config, username=self.user, **kwargs)
            for h in selected
        ]


def resolve_hosts(names: list[str], configured: list[Host]) -> list[Host]:
    """Configured Host for each known name, a bare Host for the rest."""
    by_name = {h.name: h for h in configured}
    return [by_name.get(name) or Host(name=name) for name in names]


pass_settings = click.make_pass_decorator(Settings)


def _run(settings: Settings, steps, **kwargs) -> None:
    contexts = settings.contexts(**kwargs)
    sys.exit(runner.run_all(contexts, steps, parallel=settings.parallel))


def _resolve_expiry(expire: str | None):
    """Parse --expire, or keep prompting until the operator gives a usable value."""
    if expire is not None:
        try:
            return parse_expiry(expire, utcnow())
        except ExpiryParseError as e:
            raise click.BadParameter(str(e), param_hint="'--expire'") from None

    while True:
        text = click.prompt(
            "Expire lock at? (e.g. 30m, 2h, 2026-01-01 18:00; blank for never)",
            default="",
            show_default=False,
        )
        try:
            return parse_expiry(text, utcnow())
        except ExpiryParseError as e:
            click.echo(f"Error: {e}", err=True)


def _lock_options(message: str | None, expire: str | None) -> dict:
    if message is None:
        message = click.prompt("Lock message", default="", show_default=False)
    return {"custom": True, "message": message or None, "expiry": _resolve_expiry(expire)}


@click.group()
@click.version_option(version=__version__, prog_name="flow-lock")
@click.option("--config", "config_path", default=None, help="Path to deploy.yml")
@click.option("--host", "hosts", multiple=True, help="Target host(s), overrides config")
@click.option("--role", "roles", multiple=True, help="Only hosts with this role")
@click.option("--parallel", is_flag=True, help="Run each step on all hosts concurrently")
@click.option("--user", default=None, help="Lock owner name (default: $USER)")
@click.option("--deploy-to", default=None, help="Deployment root, overrides config")
@click.option("--branch", default=None, help="Branch named in automatic lock messages")
@click.option("--lock-expiry", type=int, default=None, help="Automatic lock lifetime in seconds")
@click.option("--lockfile", default=None, help="Full lock file path, overrides deploy_to/name")
@click.pass_context
def main(ctx, config_path, hosts, roles, parallel, user, deploy_to, branch, lock_expiry, lockfile):
    """Cooperative deploy locks on a shared deployment directory."""
    overrides = {
        "deploy_to": deploy_to,
        "branch": branch,
        "default_lock_expiry": lock_expiry,
        "deploy_lockfile": lockfile,
    }
    ctx.obj = Settings(config_path, list(hosts), list(roles), parallel, user, overrides)


@main.command()
@click.option("--message", "-m", default=None, help="Why deploys are locked")
@click.option("--expire", "-e", default=None, help="When the lock expires (blank = never)")
@pass_settings
def lock(settings, message, expire):
    """Lock deploys until explicitly unlocked or expired."""
    options = _lock_options(message, expire)
    contexts = settings.contexts(**options)
    sys.exit(deploy_mod.lock(contexts, parallel=settings.parallel))


@main.command(name="create-lock")
@click.option("--message", "-m", default=None, help="Lock message (default: deploying <branch>)")
@pass_settings
def create_lock(settings, message):
    """Create an automatic deploy lock."""
    _run(settings, [protocol.create_lock], message=message)


@main.command(name="check-lock")
@pass_settings
def check_lock(settings):
    """Fail if deploys are locked by someone else."""
    _run(settings, [protocol.check_lock])


@main.command(name="refresh-lock")
@pass_settings
def refresh_lock(settings):
    """Extend an automatic lock that is about to expire."""
    _run(settings, [protocol.refresh_lock])


@main.command()
@pass_settings
def unlock(settings):
    """Remove the deploy lock (custom locks are kept)."""
    _run(settings, [protocol.unlock])


@main.command(name="force-unlock")
@pass_settings
def force_unlock(settings):
    """Remove the deploy lock, custom or not."""
    _run(settings, [protocol.force_unlock])


@main.command()
@pass_settings
def status(settings):
    """Show the lock on each host."""
    _run(settings, [protocol.show_lock])


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@pass_settings
def deploy(settings, command):
    """Run COMMAND under an automatic deploy lock."""
    contexts = settings.contexts()
    sys.exit(deploy_mod.deploy(contexts, list(command), parallel=settings.parallel))


@main.command(name="deploy-with-lock", context_settings={"ignore_unknown_options": True})
@click.option("--message", "-m", default=None, help="Why deploys are locked")
@click.option("--expire", "-e", default=None, help="When the lock expires (blank = never)")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@pass_settings
def deploy_with_lock(settings, message, expire, command):
    """Lock deploys, then run COMMAND; the lock outlives the deploy."""
    options = _lock_options(message, expire)
    contexts = settings.contexts(**options)
    sys.exit(deploy_mod.deploy_with_lock(contexts, list(command), parallel=settings.parallel))


if __name__ == "__main__":
    main()
