"""
Recipe matcher — which recipes apply to this host?

Pure functions over an already-built manifest; nothing here touches
the OS, so the same inputs always give the same ordered result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from nrcli.core.models.manifest import HostManifest, ProcessInfo
from nrcli.core.models.recipe import ProcessPattern, Recipe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchWitness:
    """Why a recipe was selected: the first pattern/process pair that hit."""

    recipe: Recipe
    pattern: ProcessPattern
    process: ProcessInfo

    def to_dict(self) -> dict:
        return {
            "recipe": self.recipe.name,
            "pattern": str(self.pattern),
            "pid": self.process.pid,
            "process": self.process.name,
            "command_line": self.process.command_line,
        }


def first_matching_process(
    pattern: ProcessPattern,
    processes: Iterable[ProcessInfo],
) -> ProcessInfo | None:
    """Return the first process (manifest order) the pattern matches."""
    for process in processes:
        if pattern.matches(process.match_target):
            return process
    return None


def find_witness(recipe: Recipe, manifest: HostManifest) -> MatchWitness | None:
    """Test a recipe's patterns in order; stop at the first hit."""
    for pattern in recipe.metadata.process_match:
        process = first_matching_process(pattern, manifest.processes)
        if process is not None:
            return MatchWitness(recipe=recipe, pattern=pattern, process=process)
    return None


def explain_matches(
    manifest: HostManifest,
    recipes: Iterable[Recipe],
) -> list[MatchWitness]:
    """Candidates with the evidence that selected them.

    Recipes without patterns are never auto-selected. Output keeps the
    recipes' load order and lists each name at most once.
    """
    witnesses: list[MatchWitness] = []
    seen: set[str] = set()
    for recipe in recipes:
        if recipe.name in seen or not recipe.auto_selectable:
            continue
        witness = find_witness(recipe, manifest)
        if witness is None:
            continue
        seen.add(recipe.name)
        witnesses.append(witness)
        logger.debug(
            "Recipe '%s' matched pid %d via '%s'",
            recipe.name, witness.process.pid, witness.pattern,
        )
    return witnesses


def match_recipes(manifest: HostManifest, recipes: Iterable[Recipe]) -> list[Recipe]:
    """Ordered, de-duplicated candidate recipes for the manifest."""
    candidates = [w.recipe for w in explain_matches(manifest, recipes)]
    logger.info("Matched %d candidate recipes: %s", len(candidates), [r.name for r in candidates])
    return candidates
