"""
Recipe models — declarative installation procedures.

A recipe says *when* it applies (process patterns), *what* it needs from
the operator (input variables) and *how* to install (named steps handed
to the task engine). Recipes are loaded once and read-only afterwards.
"""

from __future__ import annotations

import fnmatch
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PatternKind = Literal["substring", "glob", "regex"]

_PATTERN_PREFIXES: tuple[PatternKind, ...] = ("glob", "regex", "substring")


class ProcessPattern(BaseModel):
    """A process-match predicate.

    Written in recipe YAML as one of::

        processMatch:
          - nginx                  # substring (default)
          - "glob:*/bin/mysqld *"  # shell-style glob on the whole line
          - "regex:java .*kafka"   # re.search
          - {regex: "redis-server\\s"}
    """

    model_config = ConfigDict(frozen=True)

    kind: PatternKind = "substring"
    value: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_regex(self) -> ProcessPattern:
        if self.kind == "regex":
            try:
                re.compile(self.value)
            except re.error as e:
                raise ValueError(f"invalid regex {self.value!r}: {e}") from e
        return self

    @classmethod
    def parse(cls, raw: Any) -> ProcessPattern:
        """Build a pattern from its YAML form (string or one-key mapping)."""
        if isinstance(raw, ProcessPattern):
            return raw
        if isinstance(raw, dict):
            if len(raw) != 1:
                raise ValueError(f"pattern mapping must have exactly one key, got {raw!r}")
            kind, value = next(iter(raw.items()))
            if kind not in _PATTERN_PREFIXES:
                raise ValueError(f"unknown pattern kind {kind!r}")
            return cls(kind=kind, value=str(value))
        if isinstance(raw, str):
            for kind in _PATTERN_PREFIXES:
                prefix = f"{kind}:"
                if raw.startswith(prefix):
                    return cls(kind=kind, value=raw[len(prefix):])
            return cls(kind="substring", value=raw)
        raise ValueError(f"pattern must be a string or mapping, got {type(raw).__name__}")

    def matches(self, text: str) -> bool:
        """Case-sensitive test against ``text``."""
        if self.kind == "substring":
            return self.value in text
        if self.kind == "glob":
            return fnmatch.fnmatchcase(text, self.value)
        return re.search(self.value, text) is not None

    def __str__(self) -> str:
        if self.kind == "substring":
            return self.value
        return f"{self.kind}:{self.value}"


class RecipeMetadata(BaseModel):
    """Identity and matching information for a recipe."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = ""
    process_match: tuple[ProcessPattern, ...] = Field(default=(), alias="processMatch")
    validation_url: str | None = Field(default=None, alias="validationUrl")
    ports: tuple[int, ...] = ()

    @field_validator("process_match", mode="before")
    @classmethod
    def _parse_patterns(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, (str, dict)):
            v = [v]
        return tuple(ProcessPattern.parse(item) for item in v)


class VariableConfig(BaseModel):
    """An input variable the recipe needs before it can run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    prompt: str = ""
    default: str = ""

    @field_validator("prompt", "default", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, (int, float, bool)):
            return str(v)
        return v

    @property
    def prompt_label(self) -> str:
        return self.prompt or f"value for {self.name} required"


class Step(BaseModel):
    """A named install step.

    ``body`` belongs to the task engine (``cmds``, ``deps``, ...). The
    core only renders variables into it.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    body: dict[str, Any] = Field(default_factory=dict)


class Recipe(BaseModel):
    """A complete recipe: metadata, install steps, input variables."""

    model_config = ConfigDict(frozen=True)

    metadata: RecipeMetadata
    install_steps: tuple[Step, ...] = ()
    input_vars: tuple[VariableConfig, ...] = ()
    source: str = ""  # file the recipe was loaded from

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def auto_selectable(self) -> bool:
        """Recipes without process patterns need explicit selection."""
        return bool(self.metadata.process_match)

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.install_steps]

    def summary(self) -> dict:
        return {
            "name": self.name,
            "description": self.metadata.description,
            "process_match": [str(p) for p in self.metadata.process_match],
            "steps": self.step_names,
            "input_vars": [v.name for v in self.input_vars],
            "source": self.source,
        }
