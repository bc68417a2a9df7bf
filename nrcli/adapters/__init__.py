"""Adapters — bindings to the task engines and the operator's terminal.

Public re-exports for convenient access.
"""

from nrcli.adapters.base import StepContext, TaskEngine
from nrcli.adapters.mock import MockTaskEngine
from nrcli.adapters.registry import EngineRegistry, default_registry

__all__ = [
    "EngineRegistry",
    "MockTaskEngine",
    "StepContext",
    "TaskEngine",
    "default_registry",
]
