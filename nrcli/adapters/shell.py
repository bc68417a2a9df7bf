"""
Shell engine — runs a step's ``cmds`` with ``sh -c``.

Fallback for hosts without go-task. Understands the subset of the
Taskfile step format recipes use:

    cmds:
      - echo plain string
      - cmd: echo mapping form
      - task: other-step        # run another step's cmds inline
    deps: [other-step]          # run before this step's cmds
    env: {KEY: value}
    dir: /some/where

Variables arrive already rendered into the step body; they are also
exported into the child environment.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from typing import Any

from nrcli.adapters.base import StepContext, TaskEngine
from nrcli.adapters.subprocess_runner import run_streaming
from nrcli.core.models.receipt import StepReceipt

logger = logging.getLogger(__name__)


class _StepFailed(Exception):
    def __init__(self, message: str, return_code: int | None = None):
        self.return_code = return_code
        super().__init__(message)


class ShellTaskEngine(TaskEngine):
    """Interpret step bodies directly and run each command via a shell."""

    def __init__(self, shell: str = "sh"):
        self._shell = shell

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which(self._shell) is not None

    def run_step(self, context: StepContext) -> StepReceipt:
        start = time.monotonic()
        env = os.environ.copy()
        env.update(context.variables)
        try:
            commands = self._run_task(context, context.step.name, context.step.body, env, ())
        except _StepFailed as e:
            return StepReceipt.failure(
                engine=self.name,
                recipe=context.recipe,
                step=context.step.name,
                error=str(e),
                return_code=e.return_code,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        return StepReceipt.success(
            engine=self.name,
            recipe=context.recipe,
            step=context.step.name,
            return_code=0,
            duration_ms=int((time.monotonic() - start) * 1000),
            metadata={"commands": commands},
        )

    def _run_task(
        self,
        context: StepContext,
        task_name: str,
        body: dict[str, Any],
        env: dict[str, str],
        stack: tuple[str, ...],
    ) -> int:
        """Run deps then cmds of one task; return the number of commands run."""
        if task_name in stack:
            raise _StepFailed(f"task cycle: {' -> '.join(stack + (task_name,))}")
        stack = stack + (task_name,)

        task_env = dict(env)
        for key, value in (body.get("env") or {}).items():
            task_env[str(key)] = str(value)
        cwd = body.get("dir") or context.working_dir

        count = 0
        for dep in body.get("deps") or []:
            dep_name = dep.get("task") if isinstance(dep, dict) else dep
            count += self._run_task(context, str(dep_name), self._lookup(context, str(dep_name)), env, stack)

        for entry in body.get("cmds") or []:
            if isinstance(entry, str):
                command = entry
            elif isinstance(entry, dict) and "cmd" in entry:
                command = str(entry["cmd"])
            elif isinstance(entry, dict) and "task" in entry:
                ref = str(entry["task"])
                count += self._run_task(context, ref, self._lookup(context, ref), env, stack)
                continue
            else:
                raise _StepFailed(f"unsupported command entry in '{task_name}': {entry!r}")

            try:
                code = run_streaming(
                    [self._shell, "-c", command],
                    env=task_env,
                    cwd=cwd,
                    cancel_event=context.cancel_event,
                    step_name=context.step.name,
                )
            except OSError as e:
                raise _StepFailed(f"cannot start {self._shell}: {e}") from e
            count += 1
            if code != 0:
                raise _StepFailed(f"command exited with code {code}: {command}", return_code=code)
        return count

    @staticmethod
    def _lookup(context: StepContext, task_name: str) -> dict[str, Any]:
        if task_name not in context.tasks:
            raise _StepFailed(f"unknown task '{task_name}'")
        return context.tasks[task_name]
