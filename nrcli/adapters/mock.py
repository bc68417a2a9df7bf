"""
Mock engine — universal test double for step execution.

Records every step it is asked to run. Succeeds by default; can be
configured to fail or to cancel specific steps.
"""

from __future__ import annotations

from nrcli.adapters.base import StepContext, TaskEngine
from nrcli.core.errors import ExecutionCancelled
from nrcli.core.models.receipt import StepReceipt


class MockTaskEngine(TaskEngine):
    """Engine that runs nothing."""

    def __init__(self, engine_name: str = "mock", available: bool = True):
        self._name = engine_name
        self._available = available
        self._failures: dict[tuple[str | None, str], str] = {}
        self._cancel_on: set[str] = set()
        self._call_log: list[StepContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[StepContext]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def steps_run(self) -> list[tuple[str, str]]:
        """``(recipe, step)`` pairs in call order."""
        return [(c.recipe, c.step.name) for c in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, step: str, error: str = "Mock failure", recipe: str | None = None) -> None:
        """Fail ``step`` (for one recipe, or for every recipe)."""
        self._failures[(recipe, step)] = error

    def set_cancel(self, step: str) -> None:
        """Raise ``ExecutionCancelled`` when ``step`` runs."""
        self._cancel_on.add(step)

    def run_step(self, context: StepContext) -> StepReceipt:
        self._call_log.append(context)
        step = context.step.name

        if step in self._cancel_on:
            raise ExecutionCancelled(step)

        error = self._failures.get((context.recipe, step)) or self._failures.get((None, step))
        if error is not None:
            return StepReceipt.failure(
                engine=self._name,
                recipe=context.recipe,
                step=step,
                error=error,
                return_code=1,
            )
        return StepReceipt.success(
            engine=self._name,
            recipe=context.recipe,
            step=step,
            return_code=0,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        self._call_log.clear()
        self._failures.clear()
        self._cancel_on.clear()
