"""
Credential profiles — credentials.json and default-profile.json.

    credentials.json       {"my-profile": {"apiKey": ..., "region": "us",
                                           "accountID": 123, "licenseKey": ...}}
    default-profile.json   "my-profile"

Readers never touch the store directly. They borrow a read-only
``CredentialHandle`` through ``CredentialStore.acquire()``, which is
released when the ``with`` block exits, whatever the exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nrcli.core.config.loader import CREDENTIALS_FILENAME, DEFAULT_PROFILE_FILENAME
from nrcli.core.errors import ConfigError, NrcliError, ProfileNotFoundError
from nrcli.core.persistence.json_file import read_json, write_json_atomic

logger = logging.getLogger(__name__)

REGIONS = ("us", "eu", "staging")


class Profile(BaseModel):
    """One named set of account credentials."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(default="", alias="apiKey")
    insights_insert_key: str = Field(default="", alias="insightsInsertKey")
    region: str = "us"
    account_id: int = Field(default=0, alias="accountID")
    license_key: str = Field(default="", alias="licenseKey")

    @field_validator("region", mode="before")
    @classmethod
    def _normalize_region(cls, v: object) -> str:
        region = str(v or "").strip().lower()
        if region not in REGIONS:
            raise ValueError(f"region must be one of {list(REGIONS)}, got '{v}'")
        return region

    def masked(self) -> dict:
        """Serializable view with secrets shortened for display."""
        data = self.model_dump(by_alias=True)
        for key in ("apiKey", "insightsInsertKey", "licenseKey"):
            data[key] = _mask(data[key])
        return data


def _mask(secret: str) -> str:
    if not secret:
        return ""
    if len(secret) <= 8:
        return "****"
    return secret[:4] + "…" + secret[-4:]


class CredentialHandle:
    """Read-only view of the store, valid only inside ``acquire()``."""

    def __init__(self, store: CredentialStore, profile_name: str | None):
        self._store = store
        self._profile_name = profile_name
        self._released = False

    @property
    def profile_name(self) -> str | None:
        return self._profile_name

    @property
    def released(self) -> bool:
        return self._released

    def get_license_key(self, profile: str | None = None) -> str:
        if self._released:
            raise NrcliError("Credential handle used after release")
        name = profile or self._profile_name
        if name is None:
            raise ProfileNotFoundError("<default>")
        return self._store.get(name).license_key

    def _release(self) -> None:
        self._released = True


class CredentialStore:
    """All profiles plus the default-profile pointer."""

    def __init__(
        self,
        config_dir: Path,
        profiles: dict[str, Profile] | None = None,
        default_profile: str | None = None,
    ):
        self.config_dir = config_dir
        self._profiles: dict[str, Profile] = dict(profiles or {})
        self._default = default_profile

    @classmethod
    def load(cls, config_dir: Path) -> CredentialStore:
        """Read both credential files. Missing files mean no profiles.

        Raises:
            ConfigError: A file is malformed or a profile fails validation.
        """
        creds_path = config_dir / CREDENTIALS_FILENAME
        raw = read_json(creds_path, default={})
        if not isinstance(raw, dict):
            raise ConfigError(f"Invalid credentials in {creds_path}: expected an object")

        profiles: dict[str, Profile] = {}
        for name, data in raw.items():
            try:
                profiles[name] = Profile.model_validate(data)
            except ValidationError as e:
                raise ConfigError(f"Invalid profile '{name}' in {creds_path}:\n{e}") from e

        default_path = config_dir / DEFAULT_PROFILE_FILENAME
        default = read_json(default_path, default=None)
        if default is not None and not isinstance(default, str):
            raise ConfigError(f"Invalid default profile in {default_path}: expected a string")
        if default and default not in profiles:
            logger.warning("Default profile '%s' does not exist", default)

        logger.debug("Loaded %d credential profile(s)", len(profiles))
        return cls(config_dir, profiles, default or None)

    def save(self) -> None:
        write_json_atomic(
            self.config_dir / CREDENTIALS_FILENAME,
            {name: p.model_dump(by_alias=True) for name, p in self._profiles.items()},
        )
        default_path = self.config_dir / DEFAULT_PROFILE_FILENAME
        if self._default:
            write_json_atomic(default_path, self._default)
        else:
            default_path.unlink(missing_ok=True)

    # ── Queries ─────────────────────────────────────────────────

    @property
    def default_profile(self) -> str | None:
        return self._default

    @property
    def profiles(self) -> dict[str, Profile]:
        return dict(self._profiles)

    def get(self, name: str) -> Profile:
        try:
            return self._profiles[name]
        except KeyError:
            raise ProfileNotFoundError(name) from None

    # ── Mutations ───────────────────────────────────────────────

    def add_profile(self, name: str, profile: Profile, make_default: bool = False) -> None:
        if not name.strip():
            raise ConfigError("Profile name must not be empty")
        self._profiles[name] = profile
        if make_default or self._default is None:
            self._default = name
        self.save()
        logger.info("Profile '%s' saved", name)

    def remove_profile(self, name: str) -> None:
        self.get(name)
        del self._profiles[name]
        if self._default == name:
            self._default = None
        self.save()
        logger.info("Profile '%s' removed", name)

    def set_default(self, name: str) -> None:
        self.get(name)
        self._default = name
        self.save()

    # ── Scoped read access ──────────────────────────────────────

    @contextmanager
    def acquire(self, profile: str | None = None) -> Iterator[CredentialHandle]:
        """Borrow a read-only handle for ``profile`` (default profile if None)."""
        handle = CredentialHandle(self, profile or self._default)
        try:
            yield handle
        finally:
            handle._release()
