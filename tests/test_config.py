"""Tests for config.py — deploy.yml parsing and default resolution."""

import pytest

from flow_lock.config import (
    DEFAULT_LOCK_EXPIRY,
    DEFAULT_LOCKFILE_NAME,
    ConfigError,
    load_config,
    parse_config,
    parse_hosts,
)

DEPLOY_YML = """\
deploy_to: /var/www/app
branch: main
user: deploy
ssh_options: ["-o", "BatchMode=yes"]
hosts:
  - name: web1.example.com
    roles: [app, web]
  - name: db1.example.com
    user: postgres
    port: 2222
    roles: app,db
    no_release: true
  - web2.example.com
"""


def test_defaults():
    config = parse_config({"deploy_to": "/srv/app"}, env={})
    assert config.default_lock_expiry == DEFAULT_LOCK_EXPIRY == 600
    assert config.deploy_lockfile_name == DEFAULT_LOCKFILE_NAME
    assert config.lockfile == "/srv/app/deploy-lock.yml"
    assert config.branch is None
    assert config.hosts == []


def test_custom_lockfile_name():
    config = parse_config({"deploy_to": "/srv/app", "deploy_lockfile_name": "LOCK"}, env={})
    assert config.lockfile == "/srv/app/LOCK"


def test_explicit_lockfile_wins():
    config = parse_config({"deploy_to": "/srv/app", "deploy_lockfile": "/tmp/lock.yml"}, env={})
    assert config.lockfile == "/tmp/lock.yml"


def test_resolution_order():
    data = {"deploy_to": "/srv/app", "branch": "main", "default_lock_expiry": 300}
    env = {"FLOW_LOCK_BRANCH": "release", "FLOW_LOCK_EXPIRY": "900"}

    assert parse_config(data, env={}).branch == "main"
    assert parse_config(data, env=env).branch == "release"
    assert parse_config(data, env=env, branch="hotfix").branch == "hotfix"
    assert parse_config(data, env={}).default_lock_expiry == 300
    assert parse_config(data, env=env).default_lock_expiry == 900


def test_deploy_to_required():
    with pytest.raises(ConfigError, match="deploy_to"):
        parse_config({}, env={})


@pytest.mark.parametrize("value", ["ten", 0, -5])
def test_invalid_expiry(value):
    with pytest.raises(ConfigError, match="default_lock_expiry"):
        parse_config({"deploy_to": "/srv", "default_lock_expiry": value}, env={})


def test_parse_hosts_with_defaults():
    hosts = parse_hosts(
        [{"name": "web1", "roles": ["app"]}, "web2", {"name": "db1", "user": "pg", "no_release": True}],
        defaults={"user": "deploy"},
    )
    assert [h.name for h in hosts] == ["web1", "web2", "db1"]
    assert [h.user for h in hosts] == ["deploy", "deploy", "pg"]
    assert hosts[0].roles == ["app"]
    assert hosts[1].roles == []
    assert hosts[2].no_release is True


def test_host_without_name():
    with pytest.raises(ConfigError, match="name"):
        parse_hosts([{"user": "deploy"}])


def test_load_config(tmp_path):
    path = tmp_path / "deploy.yml"
    path.write_text(DEPLOY_YML)
    config = load_config(str(path), env={})

    assert config.deploy_to == "/var/www/app"
    assert config.branch == "main"
    assert config.ssh_options == ["-o", "BatchMode=yes"]
    web1, db1, web2 = config.hosts
    assert web1.user == "deploy"
    assert web1.roles == ["app", "web"]
    assert db1.user == "postgres"
    assert db1.port == 2222
    assert db1.roles == ["app", "db"]
    assert db1.no_release is True
    assert web2.name == "web2.example.com"


def test_load_config_from_env_path(tmp_path):
    path = tmp_path / "prod.yml"
    path.write_text("deploy_to: /srv/prod\n")
    config = load_config(env={"FLOW_LOCK_CONFIG": str(path)})
    assert config.deploy_to == "/srv/prod"


def test_load_config_default_file_optional(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = load_config(env={"FLOW_LOCK_DEPLOY_TO": "/srv/app"})
    assert config.lockfile == "/srv/app/deploy-lock.yml"


def test_load_config_explicit_missing(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "nope.yml"), env={})


def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / "deploy.yml"
    path.write_text("deploy_to: [unclosed\n")
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_config(str(path), env={})


def test_load_config_not_a_mapping(tmp_path):
    path = tmp_path / "deploy.yml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(str(path), env={})
