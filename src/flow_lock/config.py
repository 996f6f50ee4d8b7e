"""Parse deploy.yml into a LockConfig and host inventory."""

import os
import posixpath
from dataclasses import dataclass, field

import yaml

from flow_lock.remote import Host

CONFIG_FILE = "deploy.yml"
DEFAULT_LOCK_EXPIRY = 600
DEFAULT_LOCKFILE_NAME = "deploy-lock.yml"


class ConfigError(ValueError):
    pass


@dataclass
class LockConfig:
    deploy_to: str
    branch: str | None = None
    default_lock_expiry: int = DEFAULT_LOCK_EXPIRY
    deploy_lockfile_name: str = DEFAULT_LOCKFILE_NAME
    deploy_lockfile: str | None = None
    ssh_options: list[str] = field(default_factory=list)
    hosts: list[Host] = field(default_factory=list)

    @property
    def lockfile(self) -> str:
        """Explicit deploy_lockfile, else deploy_to/deploy_lockfile_name."""
        if self.deploy_lockfile:
            return self.deploy_lockfile
        return posixpath.join(self.deploy_to, self.deploy_lockfile_name)


def _parse_int(key: str, value) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    if parsed <= 0:
        raise ConfigError(f"{key} must be positive, got {parsed}")
    return parsed


def _parse_roles(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        # Accept "app,web" as well as a YAML list
        return [r.strip() for r in value.split(",") if r.strip()]
    return [str(r) for r in value]


def parse_hosts(items: list, defaults: dict | None = None) -> list[Host]:
    """Parse the hosts list.

    Items are either a bare hostname or a mapping with name/user/port/
    roles/no_release. Top-level user/port act as defaults.
    """
    defaults = defaults or {}
    hosts = []
    for item in items or []:
        if isinstance(item, str):
            item = {"name": item}
        if not isinstance(item, dict) or not item.get("name"):
            raise ConfigError(f"host entry needs a name: {item!r}")

        port = item.get("port", defaults.get("port"))
        hosts.append(
            Host(
                name=str(item["name"]),
                user=item.get("user") or defaults.get("user"),
                port=_parse_int("port", port) if port is not None else None,
                roles=_parse_roles(item.get("roles")),
                no_release=bool(item.get("no_release", False)),
            )
        )
    return hosts


def parse_config(data: dict, env: dict[str, str] | None = None, **overrides) -> LockConfig:
    """Build a LockConfig.

    Resolution order per option: keyword override → FLOW_LOCK_* env →
    config dict → built-in default.
    """
    env = os.environ if env is None else env
    data = data or {}

    def pick(key: str, env_key: str | None = None):
        if overrides.get(key) is not None:
            return overrides[key]
        if env_key and env.get(env_key):
            return env[env_key]
        return data.get(key)

    deploy_to = pick("deploy_to", "FLOW_LOCK_DEPLOY_TO")
    lockfile = pick("deploy_lockfile", "FLOW_LOCK_LOCKFILE")
    if not deploy_to and not lockfile:
        raise ConfigError("deploy_to is required")

    expiry = pick("default_lock_expiry", "FLOW_LOCK_EXPIRY")
    branch = pick("branch", "FLOW_LOCK_BRANCH")
    ssh_options = data.get("ssh_options") or []
    if isinstance(ssh_options, str):
        ssh_options = ssh_options.split()

    return LockConfig(
        deploy_to=str(deploy_to or ""),
        branch=str(branch) if branch else None,
        default_lock_expiry=(
            _parse_int("default_lock_expiry", expiry) if expiry is not None else DEFAULT_LOCK_EXPIRY
        ),
        deploy_lockfile_name=str(pick("deploy_lockfile_name") or DEFAULT_LOCKFILE_NAME),
        deploy_lockfile=str(lockfile) if lockfile else None,
        ssh_options=[str(o) for o in ssh_options],
        hosts=parse_hosts(data.get("hosts", []), defaults=data),
    )


def load_config(path: str | None = None, env: dict[str, str] | None = None, **overrides) -> LockConfig:
    """Read *path* (or FLOW_LOCK_CONFIG, or ./deploy.yml) and parse it.

    A missing default file is fine as long as overrides supply deploy_to.
    """
    env = os.environ if env is None else env
    explicit = path or env.get("FLOW_LOCK_CONFIG")
    path = explicit or CONFIG_FILE

    data = {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        if explicit:
            raise ConfigError(f"config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return parse_config(data, env=env, **overrides)
