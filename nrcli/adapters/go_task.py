"""
go-task engine — hands each step to the external ``task`` binary.

The rendered taskfile already carries the variable bindings in its
``vars`` table, so the engine only names the task to run.
"""

from __future__ import annotations

import logging
import shutil
import time

from nrcli.adapters.base import StepContext, TaskEngine
from nrcli.adapters.subprocess_runner import run_streaming
from nrcli.core.models.receipt import StepReceipt

logger = logging.getLogger(__name__)


class GoTaskEngine(TaskEngine):
    """Run steps with go-task (https://taskfile.dev)."""

    def __init__(self, binary: str = "task"):
        self._binary = binary

    @property
    def name(self) -> str:
        return "go-task"

    def is_available(self) -> bool:
        return shutil.which(self._binary) is not None

    def build_command(self, context: StepContext) -> list[str]:
        cmd = [self._binary, "--taskfile", context.taskfile]
        if context.working_dir:
            cmd += ["--dir", context.working_dir]
        cmd.append(context.step.name)
        return cmd

    def run_step(self, context: StepContext) -> StepReceipt:
        cmd = self.build_command(context)
        start = time.monotonic()
        try:
            code = run_streaming(
                cmd,
                cwd=context.working_dir,
                cancel_event=context.cancel_event,
                step_name=context.step.name,
            )
        except OSError as e:
            return StepReceipt.failure(
                engine=self.name,
                recipe=context.recipe,
                step=context.step.name,
                error=f"Cannot start {self._binary}: {e}",
            )
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if code == 0:
            return StepReceipt.success(
                engine=self.name,
                recipe=context.recipe,
                step=context.step.name,
                return_code=code,
                duration_ms=elapsed_ms,
            )
        return StepReceipt.failure(
            engine=self.name,
            recipe=context.recipe,
            step=context.step.name,
            error=f"task exited with code {code}",
            return_code=code,
            duration_ms=elapsed_ms,
        )
