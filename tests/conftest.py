"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from nrcli.adapters.mock import MockTaskEngine
from nrcli.core.config.credentials import CredentialStore, Profile
from nrcli.core.errors import ProfileNotFoundError, PromptAborted
from nrcli.core.models.manifest import HostManifest, ProcessInfo


class FakeCredentials:
    """In-memory ``CredentialLookup``."""

    def __init__(self, keys: dict[str, str] | None = None, profile: str | None = "default"):
        self._keys = keys if keys is not None else {"default": "LK-TEST-0001"}
        self._profile = profile

    @property
    def profile_name(self) -> str | None:
        return self._profile

    def get_license_key(self, profile: str | None = None) -> str:
        name = profile or self._profile
        if name is None or name not in self._keys:
            raise ProfileNotFoundError(name or "<default>")
        return self._keys[name]


class ScriptedPrompter:
    """Prompter that answers from a dict and records what it was asked."""

    def __init__(self, answers: dict[str, str] | None = None, abort: bool = False):
        self.answers = answers or {}
        self.abort = abort
        self.asked: list[tuple[str, str]] = []

    def prompt(self, label: str, default: str = "") -> str:
        self.asked.append((label, default))
        if self.abort:
            raise PromptAborted(label)
        return self.answers.get(label, default)


def make_manifest(*command_lines: str, **facts: str) -> HostManifest:
    """Manifest with one process per command line (pids 100, 101, ...)."""
    processes = tuple(
        ProcessInfo(pid=100 + i, name=line.split()[0].split("/")[-1].rstrip(":"), command_line=line)
        for i, line in enumerate(command_lines)
    )
    defaults = {
        "os": "linux",
        "platform": "ubuntu",
        "platform_family": "debian",
        "platform_version": "22.04",
        "kernel_arch": "x86_64",
        "kernel_version": "5.15.0",
    }
    defaults.update(facts)
    return HostManifest(processes=processes, **defaults)


def write_recipes(directory: Path, filename: str, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(textwrap.dedent(content))
    return path


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Empty configuration directory."""
    directory = tmp_path / "newrelic"
    directory.mkdir()
    return directory


@pytest.fixture
def credentials(config_dir: Path) -> CredentialStore:
    """Store with one default profile carrying a license key."""
    store = CredentialStore(config_dir)
    store.add_profile("default", Profile(license_key="LK-TEST-0001", region="us"), make_default=True)
    return store


@pytest.fixture
def mock_engine() -> MockTaskEngine:
    return MockTaskEngine()


@pytest.fixture
def fake_credentials() -> FakeCredentials:
    return FakeCredentials()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path):
    """Keep the real ~/.newrelic and NRCLI_* settings out of every test."""
    monkeypatch.setenv("NEW_RELIC_CONFIG_DIR", str(tmp_path / "home-newrelic"))
    for key in ("NRCLI_LOG_LEVEL", "NRCLI_LOG_FILE", "NRCLI_LOG_FILE_LEVEL"):
        monkeypatch.delenv(key, raising=False)
