"""
Recipe repository — loads recipe definitions from YAML.

A source is a single YAML file or a directory of ``*.yml``/``*.yaml``
files. A file may hold one recipe, several YAML documents, or a
top-level list of recipes.

Loading is all-or-nothing per source: the first schema violation or
duplicate name raises ``RecipeLoadError``. The resulting repository is
read-only and safe to share across matcher runs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from nrcli.core.errors import RecipeLoadError
from nrcli.core.models.recipe import Recipe, RecipeMetadata, Step, VariableConfig

logger = logging.getLogger(__name__)

BUNDLED_RECIPES_DIR = Path(__file__).resolve().parent.parent.parent / "data" / "recipes"

_RECIPE_SUFFIXES = (".yml", ".yaml")


class RecipeRepository:
    """An ordered, read-only set of recipes keyed by unique name."""

    def __init__(self, recipes: list[Recipe] | tuple[Recipe, ...] = ()):
        by_name: dict[str, Recipe] = {}
        for recipe in recipes:
            if recipe.name in by_name:
                raise RecipeLoadError(
                    "duplicate",
                    recipe=recipe.name,
                    source=recipe.source or None,
                )
            by_name[recipe.name] = recipe
        self._recipes = tuple(by_name.values())
        self._by_name = by_name

    @property
    def recipes(self) -> tuple[Recipe, ...]:
        return self._recipes

    @property
    def names(self) -> list[str]:
        return [r.name for r in self._recipes]

    def get(self, name: str) -> Recipe | None:
        return self._by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Recipe]:
        return iter(self._recipes)

    def __len__(self) -> int:
        return len(self._recipes)

    def __repr__(self) -> str:
        return f"<RecipeRepository recipes={self.names!r}>"


# ── Loading ─────────────────────────────────────────────────────


def load_recipes(source: Path) -> RecipeRepository:
    """Load every recipe from a file or directory.

    Raises:
        RecipeLoadError: On unreadable/invalid YAML, schema violations,
            or duplicate recipe names.
    """
    recipes = _load_source(source)
    repo = RecipeRepository(recipes)
    logger.info("Loaded %d recipes from %s: %s", len(repo), source, repo.names)
    return repo


def load_recipe_sources(
    primary: Path,
    extras: list[Path] | None = None,
) -> RecipeRepository:
    """Load a primary source plus optional extra sources.

    A broken primary source is fatal. A broken extra source is logged
    and skipped. Duplicate names across sources are still fatal.
    """
    recipes = list(_load_source(primary))
    for extra in extras or []:
        try:
            recipes.extend(_load_source(extra))
        except RecipeLoadError as e:
            logger.warning("Skipping recipe source %s: %s", extra, e)
    repo = RecipeRepository(recipes)
    logger.info("Loaded %d recipes: %s", len(repo), repo.names)
    return repo


def _load_source(source: Path) -> list[Recipe]:
    if source.is_dir():
        files = sorted(
            p for p in source.iterdir()
            if p.is_file() and p.suffix in _RECIPE_SUFFIXES
        )
        if not files:
            logger.debug("Recipe directory %s has no YAML files", source)
        recipes: list[Recipe] = []
        for path in files:
            recipes.extend(_load_file(path))
        return recipes
    if source.is_file():
        return _load_file(source)
    raise RecipeLoadError(f"recipe source not found: {source}")


def _load_file(path: Path) -> list[Recipe]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RecipeLoadError(f"cannot read file: {e}", source=str(path)) from e

    try:
        documents = [d for d in yaml.safe_load_all(raw) if d is not None]
    except yaml.YAMLError as e:
        raise RecipeLoadError(f"invalid YAML: {e}", source=str(path)) from e

    entries: list[Any] = []
    for doc in documents:
        if isinstance(doc, list):
            entries.extend(doc)
        else:
            entries.append(doc)

    recipes = [parse_recipe(entry, source=str(path), index=i) for i, entry in enumerate(entries)]
    logger.debug("Loaded %d recipes from %s", len(recipes), path)
    return recipes


def parse_recipe(data: Any, source: str = "", index: int = 0) -> Recipe:
    """Validate one raw recipe mapping into a ``Recipe``.

    Raises:
        RecipeLoadError: Naming the recipe (or its position when the
            name itself is missing).
    """
    if not isinstance(data, dict):
        raise RecipeLoadError(
            f"recipe #{index + 1} is not a mapping (got {type(data).__name__})",
            source=source or None,
        )

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise RecipeLoadError(
            f"recipe #{index + 1} is missing required field 'name'",
            source=source or None,
        )

    try:
        metadata = RecipeMetadata.model_validate(data)
        steps = _parse_steps(data.get("install"))
        input_vars = tuple(
            VariableConfig.model_validate(v) for v in _as_list(data.get("inputVars"), "inputVars")
        )
    except (ValidationError, ValueError) as e:
        raise RecipeLoadError(str(e), recipe=name, source=source or None) from e

    declared = [v.name for v in input_vars]
    if len(set(declared)) != len(declared):
        raise RecipeLoadError("duplicate input variable", recipe=name, source=source or None)

    return Recipe(
        metadata=metadata,
        install_steps=steps,
        input_vars=input_vars,
        source=source,
    )


def _as_list(value: Any, field: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{field}' must be a list")
    return value


def _parse_steps(install: Any) -> tuple[Step, ...]:
    """Normalize the ``install`` field into an ordered step tuple.

    Accepts a list of ``{name: ..., <engine fields>}`` mappings, or a
    Taskfile-style mapping whose ``tasks`` table lists steps in
    declaration order.
    """
    if install is None:
        return ()

    if isinstance(install, dict):
        tasks = install.get("tasks")
        if not isinstance(tasks, dict) or not tasks:
            raise ValueError("'install' mapping must contain a non-empty 'tasks' table")
        items = []
        for task_name, body in tasks.items():
            if body is None:
                body = {}
            if not isinstance(body, dict):
                raise ValueError(f"install task '{task_name}' must be a mapping")
            items.append({"name": str(task_name), **body})
    elif isinstance(install, list):
        items = install
    else:
        raise ValueError("'install' must be a list of steps or a tasks mapping")

    steps: list[Step] = []
    seen: set[str] = set()
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"install step #{i + 1} must be a mapping")
        body = dict(item)
        step_name = body.pop("name", None)
        if not isinstance(step_name, str) or not step_name:
            raise ValueError(f"install step #{i + 1} is missing 'name'")
        if step_name in seen:
            raise ValueError(f"duplicate install step '{step_name}'")
        seen.add(step_name)
        steps.append(Step(name=step_name, body=body))
    return tuple(steps)
