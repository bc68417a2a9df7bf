"""
Install use case — discover, match, resolve and execute recipes.

This is the top-level orchestrator for ``nrcli recipe install``:

    build manifest → load recipes → choose candidates
        → for each recipe: resolve variables → execute steps

Discovery errors and a broken primary recipe source abort the run.
Anything that goes wrong inside one recipe is recorded as a failed
outcome and the remaining recipes still run.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from nrcli.adapters.base import TaskEngine
from nrcli.core.config.credentials import CredentialStore
from nrcli.core.discovery.manifest import build_manifest
from nrcli.core.errors import (
    ExecutionCancelled,
    ExecutionError,
    PipelineCancelled,
    RecipeError,
    RecipeNotFoundError,
)
from nrcli.core.models.manifest import HostManifest
from nrcli.core.models.receipt import StepReceipt
from nrcli.core.models.recipe import Recipe
from nrcli.core.recipes.executor import RecipeExecutor
from nrcli.core.recipes.matcher import match_recipes
from nrcli.core.recipes.repository import BUNDLED_RECIPES_DIR, RecipeRepository, load_recipe_sources
from nrcli.core.recipes.resolver import CredentialLookup, VariableResolver

logger = logging.getLogger(__name__)


@dataclass
class RecipeOutcome:
    """What happened to one recipe."""

    recipe: str
    status: str = "installed"  # installed | failed | skipped
    reason: str = ""
    failed_step: str | None = None
    receipts: list[StepReceipt] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    def to_dict(self) -> dict:
        return {
            "recipe": self.recipe,
            "status": self.status,
            "reason": self.reason,
            "failed_step": self.failed_step,
            "steps": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class InstallReport:
    """Result of one install run."""

    manifest: HostManifest | None = None
    candidates: list[str] = field(default_factory=list)
    outcomes: list[RecipeOutcome] = field(default_factory=list)
    engine: str = ""
    dry_run: bool = False

    @property
    def installed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "installed")

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "skipped")

    @property
    def status(self) -> str:
        if not self.outcomes:
            return "empty"
        if self.failed == 0:
            return "ok"
        if self.failed < len(self.outcomes):
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "engine": self.engine,
            "dry_run": self.dry_run,
            "candidates": self.candidates,
            "installed": self.installed,
            "failed": self.failed,
            "skipped": self.skipped,
            "process_count": self.manifest.process_count if self.manifest else 0,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


# ── Candidate selection ─────────────────────────────────────────


def select_recipes(
    repository: RecipeRepository,
    manifest: HostManifest,
    names: list[str] | None = None,
) -> tuple[list[Recipe], list[RecipeOutcome]]:
    """Explicit names bypass matching; otherwise ask the matcher.

    Returns the recipes to run and failed outcomes for requested names
    that are not in the repository.
    """
    if not names:
        return match_recipes(manifest, repository), []

    selected: list[Recipe] = []
    missing: list[RecipeOutcome] = []
    seen: set[str] = set()
    for name in names:
        if name in seen:
            continue
        seen.add(name)
        recipe = repository.get(name)
        if recipe is None:
            err = RecipeNotFoundError(name)
            logger.warning("%s", err)
            missing.append(RecipeOutcome(recipe=name, status="failed", reason=str(err)))
        else:
            selected.append(recipe)
    return selected, missing


# ── Per-recipe pipeline ─────────────────────────────────────────


def install_recipe(
    recipe: Recipe,
    manifest: HostManifest,
    resolver: VariableResolver,
    executor: RecipeExecutor,
    credentials: CredentialLookup,
    dry_run: bool = False,
    cancel_event: threading.Event | None = None,
) -> RecipeOutcome:
    """Resolve and execute one recipe; recipe-scoped errors become outcomes.

    Cancellation is not caught here. Once ``cancel_event`` is set no new
    prompt is opened; a prompt already waiting on the terminal still
    needs an answer (or Ctrl-D) before the run can stop.
    """
    try:
        bindings = resolver.resolve(recipe, manifest, credentials, cancel_event=cancel_event)
        receipts = executor.execute(recipe, manifest, bindings, dry_run=dry_run)
    except ExecutionError as e:
        logger.warning("Recipe '%s' failed at step '%s': %s", recipe.name, e.step_name, e.cause)
        return RecipeOutcome(
            recipe=recipe.name,
            status="failed",
            reason=str(e),
            failed_step=e.step_name,
            receipts=list(e.receipts),
        )
    except RecipeError as e:
        logger.warning("Recipe '%s' failed: %s", recipe.name, e)
        return RecipeOutcome(recipe=recipe.name, status="failed", reason=str(e))

    status = "skipped" if dry_run else "installed"
    return RecipeOutcome(recipe=recipe.name, status=status, receipts=receipts)


def run_install(
    *,
    engine: TaskEngine,
    credentials: CredentialStore,
    resolver: VariableResolver,
    recipe_source: Path | None = None,
    extra_sources: list[Path] | None = None,
    names: list[str] | None = None,
    process_filters: list[str] | None = None,
    profile: str | None = None,
    max_workers: int = 1,
    dry_run: bool = False,
    cancel_event: threading.Event | None = None,
    manifest_builder: Callable[[], HostManifest] | None = None,
    work_dir: Path | None = None,
) -> InstallReport:
    """Run the whole install pipeline.

    Args:
        engine: Task engine that runs the install steps.
        credentials: Store the license key is borrowed from.
        resolver: Variable resolver (carries the prompter/interactivity).
        recipe_source: Primary recipe file or directory (bundled if None).
        extra_sources: Additional sources; broken ones are skipped.
        names: Explicit recipe names. None means "whatever matches".
        process_filters: Keep only processes whose name or command line
            contains one of these substrings before matching.
        profile: Credential profile (default profile if None).
        max_workers: Recipes installed concurrently (1 = sequential).
        dry_run: Resolve and render, but run nothing.
        cancel_event: Set to stop running steps; created if None.
        manifest_builder: Builds the host manifest (``build_manifest`` if None).
        work_dir: Directory for temporary taskfiles.

    Raises:
        DiscoveryError: The process table could not be read.
        RecipeLoadError: The primary recipe source is broken.
        PipelineCancelled: Interrupted; completed outcomes are attached.
    """
    cancel_event = cancel_event or threading.Event()
    report = InstallReport(engine=engine.name, dry_run=dry_run)

    manifest = (manifest_builder or build_manifest)()
    if process_filters:
        manifest = manifest.filter_processes(process_filters)
        logger.info("Process filter %s kept %d processes", process_filters, manifest.process_count)
    report.manifest = manifest

    repository = load_recipe_sources(recipe_source or BUNDLED_RECIPES_DIR, extra_sources)

    recipes, missing = select_recipes(repository, manifest, names)
    report.candidates = [r.name for r in recipes]
    report.outcomes.extend(missing)

    if not recipes:
        logger.info("No recipes to install")
        return report

    executor = RecipeExecutor(engine, cancel_event=cancel_event, work_dir=work_dir)

    with credentials.acquire(profile) as handle:

        def _one(recipe: Recipe) -> RecipeOutcome:
            return install_recipe(recipe, manifest, resolver, executor, handle, dry_run, cancel_event)

        if max_workers <= 1 or len(recipes) == 1:
            _run_sequential(recipes, _one, report, cancel_event)
        else:
            _run_parallel(recipes, _one, report, cancel_event, max_workers)

    logger.info(
        "Install finished: %d installed, %d failed, %d skipped",
        report.installed, report.failed, report.skipped,
    )
    return report


def _run_sequential(
    recipes: list[Recipe],
    install: Callable[[Recipe], RecipeOutcome],
    report: InstallReport,
    cancel_event: threading.Event,
) -> None:
    for recipe in recipes:
        if cancel_event.is_set():
            raise PipelineCancelled(report.outcomes)
        try:
            report.outcomes.append(install(recipe))
        except (ExecutionCancelled, KeyboardInterrupt) as e:
            cancel_event.set()
            raise PipelineCancelled(report.outcomes) from e


def _run_parallel(
    recipes: list[Recipe],
    install: Callable[[Recipe], RecipeOutcome],
    report: InstallReport,
    cancel_event: threading.Event,
    max_workers: int,
) -> None:
    pool = concurrent.futures.ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="nrcli-recipe",
    )
    futures = [pool.submit(install, recipe) for recipe in recipes]
    try:
        # Outcomes are reported in candidate order, not completion order.
        for future in futures:
            report.outcomes.append(future.result())
    except (ExecutionCancelled, KeyboardInterrupt) as e:
        cancel_event.set()
        pool.shutdown(wait=True, cancel_futures=True)
        raise PipelineCancelled(report.outcomes) from e
    finally:
        pool.shutdown(wait=True)
