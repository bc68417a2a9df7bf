"""
Task engine base — the protocol between the executor and engines.

The executor only talks to engines through this interface, never to
the external tool directly. It sends one ``StepContext`` at a time and
gets a ``StepReceipt`` back.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from nrcli.core.models.receipt import StepReceipt
from nrcli.core.models.recipe import Step


class StepContext(BaseModel):
    """Everything an engine needs to run one step.

    ``taskfile`` is the rendered task definition on disk; ``tasks`` is
    the same content in memory for engines that interpret it
    themselves.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    recipe: str
    step: Step
    taskfile: str = ""
    tasks: dict[str, dict[str, Any]] = Field(default_factory=dict)
    variables: dict[str, str] = Field(default_factory=dict)
    working_dir: str | None = None
    cancel_event: threading.Event | None = None


class TaskEngine(ABC):
    """Abstract base class for task engines.

    Engines report a failing step as a failed receipt. The one thing
    they raise is ``ExecutionCancelled``.

    To add an engine:
        1. Subclass TaskEngine
        2. Implement name, is_available, run_step
        3. Register it in the EngineRegistry
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The engine identifier (e.g. 'go-task', 'shell')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the engine can run on this host. Fast, never raises."""

    @abstractmethod
    def run_step(self, context: StepContext) -> StepReceipt:
        """Run one step and return its receipt."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
