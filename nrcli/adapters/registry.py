"""
Engine registry — look up the task engine to drive installs with.

``auto`` prefers go-task and falls back to the shell engine when the
``task`` binary is not installed.
"""

from __future__ import annotations

import logging
from typing import Any

from nrcli.adapters.base import TaskEngine
from nrcli.core.errors import ConfigError

logger = logging.getLogger(__name__)

AUTO = "auto"
_AUTO_PREFERENCE = ("go-task", "shell")


class EngineRegistry:
    """Registry of task engines keyed by name."""

    def __init__(self) -> None:
        self._engines: dict[str, TaskEngine] = {}

    def register(self, engine: TaskEngine) -> None:
        name = engine.name
        if name in self._engines:
            logger.warning("Overwriting existing engine: %s", name)
        self._engines[name] = engine
        logger.debug("Registered engine: %s", name)

    def get(self, name: str) -> TaskEngine | None:
        return self._engines.get(name)

    def list_engines(self) -> list[str]:
        return list(self._engines.keys())

    def engine_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered engine."""
        status = {}
        for name, engine in self._engines.items():
            try:
                available = engine.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": engine.__class__.__name__,
            }
        return status

    def resolve(self, name: str = AUTO) -> TaskEngine:
        """Return the engine for ``name``.

        Raises:
            ConfigError: Unknown name, or nothing available for ``auto``.
        """
        if name == AUTO:
            for candidate in _AUTO_PREFERENCE:
                engine = self._engines.get(candidate)
                if engine is not None and engine.is_available():
                    logger.debug("Auto-selected engine: %s", candidate)
                    return engine
            raise ConfigError(
                f"No task engine available (tried: {', '.join(_AUTO_PREFERENCE)})"
            )

        engine = self._engines.get(name)
        if engine is None:
            raise ConfigError(
                f"Unknown task engine '{name}'; use one of: {[AUTO, *self.list_engines()]}"
            )
        if not engine.is_available():
            logger.warning("Task engine '%s' does not look available on this host", name)
        return engine


def default_registry() -> EngineRegistry:
    """Registry with the built-in engines."""
    from nrcli.adapters.go_task import GoTaskEngine
    from nrcli.adapters.shell import ShellTaskEngine

    registry = EngineRegistry()
    registry.register(GoTaskEngine())
    registry.register(ShellTaskEngine())
    return registry
