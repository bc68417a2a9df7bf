"""
Tests for CLI commands — recipe, config, profile, and global options.
"""

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import make_manifest, write_recipes
from nrcli.adapters.mock import MockTaskEngine
from nrcli.adapters.registry import EngineRegistry
from nrcli.core.errors import DiscoveryError
from nrcli.main import cli

RECIPES = """\
    - name: nginx
      processMatch: [nginx]
      install:
        - name: install
          cmds: ["echo nginx {{.NR_LICENSE_KEY}}"]
    - name: mysql
      processMatch: [mysqld]
      install:
        - name: install
          cmds: ["echo mysql"]
    - name: infra-agent
      install:
        - name: install
          cmds: ["echo agent"]
"""

HOST = make_manifest("nginx: master process /usr/sbin/nginx", "/usr/sbin/mysqld", "/usr/sbin/sshd -D")


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def recipes_file(tmp_path: Path) -> Path:
    return write_recipes(tmp_path / "recipes", "all.yml", RECIPES)


@pytest.fixture
def engine(monkeypatch) -> MockTaskEngine:
    mock = MockTaskEngine()
    registry = EngineRegistry()
    registry.register(mock)
    monkeypatch.setattr("nrcli.adapters.registry.default_registry", lambda: registry)
    return mock


@pytest.fixture
def host(monkeypatch):
    monkeypatch.setattr("nrcli.core.use_cases.install.build_manifest", lambda: HOST)
    monkeypatch.setattr("nrcli.core.discovery.manifest.build_manifest", lambda: HOST)
    return HOST


def invoke(config_dir: Path, *args: str):
    return CliRunner().invoke(cli, ["--config-dir", str(config_dir), *args])


def add_profile(config_dir: Path, name: str = "default", license_key: str = "LK-CLI-1"):
    result = invoke(config_dir, "profile", "add", name, "--license-key", license_key, "--account-id", "7")
    assert result.exit_code == 0, result.output


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "recipe" in result.output
        assert "profile" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_broken_config_reported(self, config_dir: Path):
        (config_dir / "config.json").write_text("{oops")
        result = invoke(config_dir, "config", "list")
        assert result.exit_code == 1
        assert "❌" in result.output


class TestConfigCommands:
    def test_set_get_delete(self, config_dir: Path):
        assert invoke(config_dir, "config", "set", "taskEngine", "shell").exit_code == 0
        assert invoke(config_dir, "config", "get", "taskengine").output.strip() == "shell"
        assert invoke(config_dir, "config", "delete", "taskEngine").exit_code == 0
        assert invoke(config_dir, "config", "get", "taskEngine").output.strip() == "auto"

    def test_set_invalid(self, config_dir: Path):
        result = invoke(config_dir, "config", "set", "logLevel", "chatty")
        assert result.exit_code == 1
        assert "not a valid value" in result.output

    def test_get_unknown_key(self, config_dir: Path):
        result = invoke(config_dir, "config", "get", "colour")
        assert result.exit_code == 1

    def test_list_json(self, config_dir: Path):
        invoke(config_dir, "config", "set", "maxWorkers", "3")
        result = invoke(config_dir, "config", "list", "--json")
        assert result.exit_code == 0
        rows = {row["name"]: row for row in json.loads(result.stdout)}
        assert rows["maxWorkers"]["value"] == "3"
        assert rows["maxWorkers"]["is_default"] is False
        assert rows["logLevel"]["is_default"] is True


class TestProfileCommands:
    def test_add_and_list(self, config_dir: Path):
        add_profile(config_dir, license_key="abcd1234efgh5678")
        result = invoke(config_dir, "profile", "list", "--json")
        data = json.loads(result.stdout)
        assert data["default"] == "default"
        assert data["profiles"]["default"]["licenseKey"] == "abcd…5678"
        assert data["profiles"]["default"]["accountID"] == 7

    def test_invalid_region(self, config_dir: Path):
        result = invoke(config_dir, "profile", "add", "p", "--region", "mars")
        assert result.exit_code == 1
        assert not (config_dir / "credentials.json").exists()

    def test_default_and_delete(self, config_dir: Path):
        add_profile(config_dir, "a")
        add_profile(config_dir, "b")
        assert invoke(config_dir, "profile", "default", "b").exit_code == 0
        assert json.loads((config_dir / "default-profile.json").read_text()) == "b"
        assert invoke(config_dir, "profile", "delete", "a").exit_code == 0
        assert invoke(config_dir, "profile", "delete", "a").exit_code == 1

    def test_list_empty(self, config_dir: Path):
        result = invoke(config_dir, "profile", "list")
        assert result.exit_code == 0
        assert "No profiles" in result.output


class TestRecipeCommands:
    def test_list(self, config_dir: Path, recipes_file: Path):
        result = invoke(config_dir, "recipe", "list", "--recipes", str(recipes_file))
        assert result.exit_code == 0
        assert "nginx" in result.output
        assert "explicit only" in result.output

    def test_list_bundled_json(self, config_dir: Path):
        result = invoke(config_dir, "recipe", "list", "--json")
        names = [r["name"] for r in json.loads(result.stdout)]
        assert "infrastructure-agent-installer" in names

    def test_list_broken_source(self, config_dir: Path, tmp_path: Path):
        bad = write_recipes(tmp_path, "bad.yml", "- name: [\n")
        result = invoke(config_dir, "recipe", "list", "--recipes", str(bad))
        assert result.exit_code == 1
        assert "Recipe load failed" in result.output

    def test_match_json(self, config_dir: Path, recipes_file: Path, host):
        result = invoke(config_dir, "recipe", "match", "--recipes", str(recipes_file), "--json")
        assert result.exit_code == 0
        witnesses = json.loads(result.stdout)
        assert [w["recipe"] for w in witnesses] == ["nginx", "mysql"]
        assert witnesses[0]["pid"] == 100

    def test_match_with_process_filter(self, config_dir: Path, recipes_file: Path, host):
        result = invoke(config_dir, "recipe", "match", "--recipes", str(recipes_file), "--process", "mysqld")
        assert result.exit_code == 0
        assert "mysql" in result.output
        assert "nginx" not in result.output

    def test_manifest_json(self, config_dir: Path, host):
        result = invoke(config_dir, "recipe", "manifest", "--json")
        data = json.loads(result.stdout)
        assert data["platform_family"] == "debian"
        assert len(data["processes"]) == 3

    def test_manifest_discovery_error(self, config_dir: Path, monkeypatch):
        def broken():
            raise DiscoveryError("no /proc")

        monkeypatch.setattr("nrcli.core.discovery.manifest.build_manifest", broken)
        result = invoke(config_dir, "recipe", "manifest")
        assert result.exit_code == 1
        assert "no /proc" in result.output


class TestInstallCommand:
    def test_install_success(self, config_dir: Path, recipes_file: Path, engine, host):
        add_profile(config_dir)
        result = invoke(config_dir, "recipe", "install", "--recipes", str(recipes_file), "--engine", "mock")
        assert result.exit_code == 0, result.output
        assert "nginx" in result.output
        assert engine.steps_run == [("nginx", "install"), ("mysql", "install")]
        assert engine.call_log[0].step.body["cmds"] == ["echo nginx LK-CLI-1"]

    def test_any_failure_exits_nonzero(self, config_dir: Path, recipes_file: Path, engine, host):
        add_profile(config_dir)
        engine.set_failure("install", "exit status 2", recipe="nginx")
        result = invoke(config_dir, "recipe", "install", "--recipes", str(recipes_file), "--engine", "mock")
        assert result.exit_code == 1
        assert "exit status 2" in result.output
        assert ("mysql", "install") in engine.steps_run

    def test_json_report(self, config_dir: Path, recipes_file: Path, engine, host):
        add_profile(config_dir)
        result = invoke(
            config_dir, "recipe", "install", "infra-agent",
            "--recipes", str(recipes_file), "--engine", "mock", "--json",
        )
        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["status"] == "ok"
        assert report["outcomes"][0]["recipe"] == "infra-agent"

    def test_missing_profile_fails(self, config_dir: Path, recipes_file: Path, engine, host):
        result = invoke(config_dir, "recipe", "install", "--recipes", str(recipes_file), "--engine", "mock")
        assert result.exit_code == 1
        assert "profile" in result.output
        assert engine.call_count == 0

    def test_dry_run(self, config_dir: Path, recipes_file: Path, engine, host):
        add_profile(config_dir)
        result = invoke(
            config_dir, "recipe", "install", "--recipes", str(recipes_file), "--engine", "mock", "--dry-run",
        )
        assert result.exit_code == 0
        assert "skipped" in result.output
        assert engine.call_count == 0

    def test_unknown_engine(self, config_dir: Path, recipes_file: Path, engine):
        result = invoke(config_dir, "recipe", "install", "--recipes", str(recipes_file), "--engine", "make")
        assert result.exit_code == 1
        assert "Unknown task engine" in result.output

    def test_nothing_matched(self, config_dir: Path, recipes_file: Path, engine, monkeypatch):
        add_profile(config_dir)
        monkeypatch.setattr("nrcli.core.use_cases.install.build_manifest", lambda: make_manifest("bash"))
        result = invoke(config_dir, "recipe", "install", "--recipes", str(recipes_file), "--engine", "mock")
        assert result.exit_code == 0
        assert "No recipes matched" in result.output
