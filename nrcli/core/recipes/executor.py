"""
Recipe executor — render a recipe and drive the task engine.

Flow for one recipe:

    bindings → check references → render taskfile (pure)
             → write temp file → run steps in order → remove temp file

Steps run strictly one after another. The first failing step raises
``ExecutionError`` and later steps never start. Nothing is retried.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any

import yaml

from nrcli.adapters.base import StepContext, TaskEngine
from nrcli.core.errors import ExecutionError, VariableResolutionError
from nrcli.core.models.manifest import HostManifest
from nrcli.core.models.receipt import StepReceipt
from nrcli.core.models.recipe import Recipe
from nrcli.core.recipes.resolver import SYSTEM_VARIABLES

logger = logging.getLogger(__name__)

TASKFILE_VERSION = "3"

# Step name reported when the taskfile itself cannot be written
RENDER_STEP = "<render>"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]")

# {{.NAME}} with optional inner whitespace
_VAR_REF = re.compile(r"\{\{\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


# ── Rendering (pure) ────────────────────────────────────────────


def substitute(value: Any, bindings: dict[str, str]) -> Any:
    """Replace ``{{.NAME}}`` references to bound variables, recursively.

    References to names that are not bound are left for the engine.
    """
    if isinstance(value, str):
        return _VAR_REF.sub(
            lambda m: bindings[m.group(1)] if m.group(1) in bindings else m.group(0),
            value,
        )
    if isinstance(value, list):
        return [substitute(v, bindings) for v in value]
    if isinstance(value, dict):
        return {k: substitute(v, bindings) for k, v in value.items()}
    return value


def _references(value: Any) -> set[str]:
    if isinstance(value, str):
        return set(_VAR_REF.findall(value))
    if isinstance(value, list):
        return set().union(*(_references(v) for v in value)) if value else set()
    if isinstance(value, dict):
        return set().union(*(_references(v) for v in value.values())) if value else set()
    return set()


def find_unbound_references(recipe: Recipe, bindings: dict[str, str]) -> list[str]:
    """Declared or system variables the steps use but ``bindings`` lacks.

    Other ``{{.X}}`` references (engine built-ins such as ``.TASK``)
    are not our business and are ignored.
    """
    known = {v.name for v in recipe.input_vars} | set(SYSTEM_VARIABLES)
    used: set[str] = set()
    for step in recipe.install_steps:
        used |= _references(step.body)
    return sorted(name for name in used if name in known and name not in bindings)


def render_taskfile(recipe: Recipe, bindings: dict[str, str]) -> dict[str, Any]:
    """Render a recipe into the task engine's input shape.

    Returns::

        {
            "version": "3",
            "vars": {"NAME": "value", ...},
            "tasks": {"step-1": {...}, "step-2": {...}},   # declared order
        }
    """
    return {
        "version": TASKFILE_VERSION,
        "vars": dict(bindings),
        "tasks": {
            step.name: substitute(step.body, bindings)
            for step in recipe.install_steps
        },
    }


def redact(taskfile: dict[str, Any], secrets: tuple[str, ...] = ("NR_LICENSE_KEY",)) -> dict[str, Any]:
    """Copy of a rendered taskfile safe to print or log."""
    hidden = {taskfile["vars"][k] for k in secrets if taskfile.get("vars", {}).get(k)}

    def _mask(value: Any) -> Any:
        if isinstance(value, str):
            for secret in hidden:
                value = value.replace(secret, "********")
            return value
        if isinstance(value, list):
            return [_mask(v) for v in value]
        if isinstance(value, dict):
            return {k: _mask(v) for k, v in value.items()}
        return value

    return _mask(taskfile)


# ── Execution ───────────────────────────────────────────────────


class RecipeExecutor:
    """Drive one engine through recipes, one step at a time."""

    def __init__(
        self,
        engine: TaskEngine,
        cancel_event: threading.Event | None = None,
        work_dir: Path | None = None,
        working_dir: str | None = None,
    ):
        self._engine = engine
        self._cancel_event = cancel_event
        self._work_dir = work_dir          # where temp taskfiles go
        self._working_dir = working_dir    # cwd for the steps

    @property
    def engine(self) -> TaskEngine:
        return self._engine

    def execute(
        self,
        recipe: Recipe,
        manifest: HostManifest,
        bindings: dict[str, str],
        dry_run: bool = False,
    ) -> list[StepReceipt]:
        """Run every install step of ``recipe`` in declared order.

        ``manifest`` is the snapshot the bindings were resolved against;
        it is only logged here.

        Raises:
            VariableResolutionError: Steps reference an unbound variable.
            ExecutionError: First failing step (later steps not run).
            ExecutionCancelled: Cancellation while a step was running.
        """
        unbound = find_unbound_references(recipe, bindings)
        if unbound:
            raise VariableResolutionError(unbound[0], f"referenced by install steps but unbound: {unbound}")

        taskfile = render_taskfile(recipe, bindings)
        logger.debug(
            "Executing recipe %s on %s/%s with %s",
            recipe.name, manifest.os, manifest.platform, self._engine.name,
        )

        if dry_run:
            logger.info(
                "Dry run for %s, taskfile:\n%s",
                recipe.name, yaml.safe_dump(redact(taskfile), sort_keys=False, default_flow_style=False),
            )
            return [
                StepReceipt.skip(self._engine.name, recipe.name, step.name, reason="dry-run")
                for step in recipe.install_steps
            ]

        path = self._write_taskfile(recipe, taskfile)
        try:
            return self._run_steps(recipe, taskfile, path)
        finally:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            logger.debug("Removed temporary taskfile %s", path)

    def _write_taskfile(self, recipe: Recipe, taskfile: dict[str, Any]) -> Path:
        # mkstemp creates the file 0600; it holds the license key
        try:
            fd, name = tempfile.mkstemp(
                prefix=f"nrcli-{_UNSAFE_FILENAME_CHARS.sub('_', recipe.name)}-",
                suffix=".yml",
                dir=str(self._work_dir) if self._work_dir else None,
            )
        except OSError as e:
            raise ExecutionError(RENDER_STEP, f"cannot create taskfile: {e}") from e

        path = Path(name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(taskfile, f, sort_keys=False, default_flow_style=False)
        except OSError as e:
            path.unlink(missing_ok=True)
            raise ExecutionError(RENDER_STEP, f"cannot write taskfile: {e}") from e
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        logger.debug("Wrote taskfile for %s to %s", recipe.name, path)
        return path

    def _run_steps(self, recipe: Recipe, taskfile: dict[str, Any], path: Path) -> list[StepReceipt]:
        receipts: list[StepReceipt] = []
        tasks = taskfile["tasks"]
        total = len(recipe.install_steps)

        for i, step in enumerate(recipe.install_steps, start=1):
            logger.info("▶ %s: step %d/%d '%s'", recipe.name, i, total, step.name)
            context = StepContext(
                recipe=recipe.name,
                step=step.model_copy(update={"body": tasks[step.name]}),
                taskfile=str(path),
                tasks=tasks,
                variables=taskfile["vars"],
                working_dir=self._working_dir,
                cancel_event=self._cancel_event,
            )
            receipt = self._engine.run_step(context)
            receipts.append(receipt)

            if receipt.failed:
                logger.info("✗ %s: step '%s' failed: %s", recipe.name, step.name, receipt.error)
                raise ExecutionError(step.name, receipt.error or "step failed", receipts=receipts)
            logger.info("✓ %s: step '%s'", recipe.name, step.name)

        return receipts
