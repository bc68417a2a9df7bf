"""
Configuration loader — reads config.json into a typed settings object.

Layout under the config directory::

    ~/.newrelic/
        config.json            {"*": {"logLevel": "Info", ...}}
        credentials.json       profiles (see credentials.py)
        default-profile.json   "my-profile"

Values are stored under the global scope ``"*"``. A matching
``NEW_RELIC_CLI_<KEY>`` environment variable overrides the file for the
current process only; ``save()`` never writes it back.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from nrcli.core.config.fields import CONFIG_FIELDS, ConfigField, find_field, valid_keys
from nrcli.core.errors import ConfigError
from nrcli.core.persistence.json_file import read_json, write_json_atomic

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"
CREDENTIALS_FILENAME = "credentials.json"
DEFAULT_PROFILE_FILENAME = "default-profile.json"
GLOBAL_SCOPE = "*"

ENV_PREFIX = "NEW_RELIC_CLI_"
CONFIG_DIR_ENV = "NEW_RELIC_CONFIG_DIR"


def default_config_dir(environ: dict[str, str] | None = None) -> Path:
    """``$NEW_RELIC_CONFIG_DIR`` if set, else ``~/.newrelic``."""
    env = os.environ if environ is None else environ
    override = env.get(CONFIG_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".newrelic"


def env_key(name: str) -> str:
    """``logLevel`` → ``NEW_RELIC_CLI_LOGLEVEL``."""
    return ENV_PREFIX + name.upper()


@dataclass(frozen=True)
class ConfigValue:
    """One row of ``config list``."""

    name: str
    value: str
    default: str
    source: str  # "default" | "file" | "env"

    @property
    def is_default(self) -> bool:
        return self.value == self.default


class Config:
    """Settings for the current invocation."""

    def __init__(
        self,
        config_dir: Path,
        stored: dict[str, str] | None = None,
        environ: dict[str, str] | None = None,
    ):
        self.config_dir = config_dir
        self._stored: dict[str, str] = dict(stored or {})
        self._environ = os.environ if environ is None else environ

    # ── Loading / saving ────────────────────────────────────────

    @property
    def path(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    @classmethod
    def load(cls, config_dir: Path, environ: dict[str, str] | None = None) -> Config:
        """Read ``config.json`` from ``config_dir``.

        A missing file yields defaults. Unknown keys are dropped with a
        warning; invalid values are rejected.

        Raises:
            ConfigError: The file is malformed or a stored value is invalid.
        """
        path = config_dir / CONFIG_FILENAME
        data = read_json(path, default={})
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config in {path}: expected an object")

        scope = data.get(GLOBAL_SCOPE, {})
        if not isinstance(scope, dict):
            raise ConfigError(f"Invalid config in {path}: scope '{GLOBAL_SCOPE}' must be an object")

        stored: dict[str, str] = {}
        for key, raw in scope.items():
            field = find_field(key)
            if field is None:
                logger.warning("Ignoring unknown config key '%s' in %s", key, path)
                continue
            value = str(raw)
            error = field.validate(value)
            if error:
                raise ConfigError(f"Invalid value for '{field.name}' in {path}: {error}")
            stored[field.name] = field.canonical(value)

        return cls(config_dir, stored, environ)

    def save(self) -> None:
        """Persist file-backed values. Environment overrides are not saved."""
        write_json_atomic(self.path, {GLOBAL_SCOPE: dict(self._stored)})

    # ── Access ──────────────────────────────────────────────────

    def _field(self, key: str) -> ConfigField:
        field = find_field(key)
        if field is None:
            raise ConfigError(f'"{key}" is not a valid key; Please use one of: {valid_keys()}')
        return field

    def _env_value(self, field: ConfigField) -> str | None:
        raw = self._environ.get(env_key(field.name))
        if raw is None or raw == "":
            return None
        if field.validate(raw):
            logger.warning("Ignoring invalid %s=%r", env_key(field.name), raw)
            return None
        return field.canonical(raw)

    def lookup(self, key: str) -> ConfigValue:
        field = self._field(key)
        default = field.default_for(self.config_dir)

        env_value = self._env_value(field)
        if env_value is not None:
            return ConfigValue(field.name, env_value, default, "env")
        if field.name in self._stored:
            return ConfigValue(field.name, self._stored[field.name], default, "file")
        return ConfigValue(field.name, default, default, "default")

    def get(self, key: str) -> str:
        return self.lookup(key).value

    def set(self, key: str, value: str) -> None:
        """Validate and store a value, then save.

        Raises:
            ConfigError: Unknown key or invalid value.
        """
        field = self._field(key)
        error = field.validate(value)
        if error:
            raise ConfigError(error)
        self._stored[field.name] = field.canonical(value)
        self.save()
        logger.debug("Config %s set to %s", field.name, self._stored[field.name])

    def delete(self, key: str) -> None:
        """Revert a key to its default, then save."""
        field = self._field(key)
        self._stored.pop(field.name, None)
        self.save()

    def list(self) -> list[ConfigValue]:
        return [self.lookup(field.name) for field in CONFIG_FIELDS]

    # ── Typed accessors ─────────────────────────────────────────

    @property
    def log_level(self) -> str:
        return self.get("logLevel")

    @property
    def max_workers(self) -> int:
        return int(self.get("maxWorkers"))

    @property
    def task_engine(self) -> str:
        return self.get("taskEngine")

    @property
    def recipe_dir(self) -> Path | None:
        value = self.get("recipeDir")
        return Path(value).expanduser() if value else None

    @property
    def plugin_dir(self) -> Path:
        return Path(self.get("pluginDir")).expanduser()
