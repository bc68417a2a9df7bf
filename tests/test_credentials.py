"""
Tests for credential profiles and the scoped read handle.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from nrcli.core.config.credentials import CredentialStore, Profile
from nrcli.core.context import RuntimeContext
from nrcli.core.errors import ConfigError, NrcliError, ProfileNotFoundError


class TestProfile:
    def test_aliases(self):
        p = Profile.model_validate({
            "apiKey": "NRAK-1",
            "region": "EU",
            "accountID": 42,
            "licenseKey": "LK-1",
        })
        assert p.region == "eu"
        assert p.account_id == 42
        assert p.model_dump(by_alias=True)["licenseKey"] == "LK-1"

    def test_invalid_region(self):
        with pytest.raises(ValidationError):
            Profile(region="mars")

    def test_masked(self):
        masked = Profile(license_key="abcd1234efgh5678", api_key="short").masked()
        assert masked["licenseKey"] == "abcd…5678"
        assert masked["apiKey"] == "****"
        assert masked["insightsInsertKey"] == ""


class TestCredentialStore:
    def test_empty_directory(self, config_dir: Path):
        store = CredentialStore.load(config_dir)
        assert store.profiles == {}
        assert store.default_profile is None

    def test_first_profile_becomes_default(self, config_dir: Path):
        store = CredentialStore.load(config_dir)
        store.add_profile("prod", Profile(license_key="LK-P"))
        store.add_profile("stage", Profile(license_key="LK-S", region="staging"))
        assert store.default_profile == "prod"

        reloaded = CredentialStore.load(config_dir)
        assert set(reloaded.profiles) == {"prod", "stage"}
        assert json.loads((config_dir / "default-profile.json").read_text()) == "prod"

    def test_set_default(self, config_dir: Path):
        store = CredentialStore.load(config_dir)
        store.add_profile("a", Profile())
        store.add_profile("b", Profile())
        store.set_default("b")
        assert CredentialStore.load(config_dir).default_profile == "b"

    def test_set_default_unknown(self, config_dir: Path):
        with pytest.raises(ProfileNotFoundError):
            CredentialStore.load(config_dir).set_default("ghost")

    def test_remove_default_clears_pointer(self, config_dir: Path):
        store = CredentialStore.load(config_dir)
        store.add_profile("a", Profile())
        store.remove_profile("a")
        assert store.default_profile is None
        assert not (config_dir / "default-profile.json").exists()

    def test_remove_unknown(self, config_dir: Path):
        with pytest.raises(ProfileNotFoundError):
            CredentialStore.load(config_dir).remove_profile("ghost")

    def test_invalid_profile_file(self, config_dir: Path):
        (config_dir / "credentials.json").write_text(json.dumps({"p": {"region": "mars"}}))
        with pytest.raises(ConfigError, match="Invalid profile 'p'"):
            CredentialStore.load(config_dir)

    def test_files_are_private(self, config_dir: Path):
        CredentialStore.load(config_dir).add_profile("a", Profile(license_key="LK"))
        assert (config_dir / "credentials.json").stat().st_mode & 0o777 == 0o600


class TestCredentialHandle:
    def test_reads_default_profile(self, credentials):
        with credentials.acquire() as handle:
            assert handle.profile_name == "default"
            assert handle.get_license_key() == "LK-TEST-0001"

    def test_explicit_profile(self, credentials):
        credentials.add_profile("other", Profile(license_key="LK-OTHER"))
        with credentials.acquire("other") as handle:
            assert handle.get_license_key() == "LK-OTHER"

    def test_unknown_profile(self, credentials):
        with credentials.acquire("ghost") as handle:
            with pytest.raises(ProfileNotFoundError):
                handle.get_license_key()

    def test_released_after_block(self, credentials):
        with credentials.acquire() as handle:
            pass
        assert handle.released
        with pytest.raises(NrcliError, match="after release"):
            handle.get_license_key()

    def test_released_on_error(self, credentials):
        with pytest.raises(RuntimeError):
            with credentials.acquire() as handle:
                raise RuntimeError("boom")
        assert handle.released


class TestRuntimeContext:
    def test_load(self, config_dir: Path):
        (config_dir / "config.json").write_text(json.dumps({"*": {"logLevel": "Trace"}}))
        rt = RuntimeContext.load(config_dir)
        assert rt.config_dir == config_dir
        assert rt.configured_log_level == "Trace"
        assert rt.credentials.profiles == {}

    def test_default_log_level_not_reported(self, config_dir: Path):
        assert RuntimeContext.load(config_dir).configured_log_level is None
