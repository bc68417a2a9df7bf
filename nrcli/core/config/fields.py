"""
Configuration field table — every setting the CLI knows about.

Each field is declared once with its default, validator and help text.
Validation, defaults, ``config list`` and ``config delete`` all read
this table; nothing walks the ``Config`` object reflectively.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

Validator = Callable[[str], "str | None"]  # returns an error message or None


def one_of(*choices: str) -> Validator:
    """Case-insensitive membership validator."""
    lowered = {c.lower() for c in choices}

    def _check(value: str) -> str | None:
        if value.lower() not in lowered:
            return f'"{value}" is not a valid value; Please use one of: {list(choices)}'
        return None

    return _check


def positive_int(value: str) -> str | None:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return f'"{value}" is not an integer'
    if number < 1:
        return f'"{value}" must be at least 1'
    return None


@dataclass(frozen=True)
class ConfigField:
    """Descriptor for one configuration key."""

    name: str
    default: str
    description: str
    validator: Validator | None = None
    default_factory: Callable[[Path], str] | None = None
    choices: tuple[str, ...] = ()

    def default_for(self, config_dir: Path) -> str:
        if self.default_factory is not None:
            return self.default_factory(config_dir)
        return self.default

    def validate(self, value: str) -> str | None:
        if self.validator is None:
            return None
        return self.validator(value)

    def canonical(self, value: str) -> str:
        """Normalize case for choice-style fields (``debug`` → ``Debug``)."""
        for choice in self.choices:
            if choice.lower() == value.lower():
                return choice
        return value


LOG_LEVELS = ("Info", "Debug", "Trace", "Warn", "Error")
USAGE_CHOICES = ("NOT_ASKED", "ALLOW", "DISALLOW")
ENGINE_CHOICES = ("auto", "go-task", "shell")


CONFIG_FIELDS: tuple[ConfigField, ...] = (
    ConfigField(
        name="logLevel",
        default="Info",
        description="Log level for verbose output",
        validator=one_of(*LOG_LEVELS),
        choices=LOG_LEVELS,
    ),
    ConfigField(
        name="pluginDir",
        default="",
        description="Directory where plugins are installed",
        default_factory=lambda config_dir: str(config_dir / "plugins"),
    ),
    ConfigField(
        name="prereleaseFeatures",
        default="NOT_ASKED",
        description="Enable prerelease commands",
        validator=one_of(*USAGE_CHOICES),
        choices=USAGE_CHOICES,
    ),
    ConfigField(
        name="sendUsageData",
        default="NOT_ASKED",
        description="Send anonymous usage statistics",
        validator=one_of(*USAGE_CHOICES),
        choices=USAGE_CHOICES,
    ),
    ConfigField(
        name="recipeDir",
        default="",
        description="Recipe file or directory (empty: bundled recipes)",
    ),
    ConfigField(
        name="taskEngine",
        default="auto",
        description="Task engine used to run install steps",
        validator=one_of(*ENGINE_CHOICES),
        choices=ENGINE_CHOICES,
    ),
    ConfigField(
        name="maxWorkers",
        default="1",
        description="Recipes installed in parallel",
        validator=positive_int,
    ),
)


def valid_keys() -> list[str]:
    return [f.name for f in CONFIG_FIELDS]


def find_field(key: str) -> ConfigField | None:
    """Look up a field by name, ignoring case."""
    for field in CONFIG_FIELDS:
        if field.name.lower() == key.lower():
            return field
    return None
