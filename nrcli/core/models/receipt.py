"""
Step receipts — the contract between the executor and task engines.

The executor hands an engine one step at a time; the engine answers
with a ``StepReceipt``. Engines report step failures as receipts and
never raise for them. Only cancellation is raised.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepReceipt(BaseModel):
    """Outcome of running one install step."""

    engine: str
    recipe: str
    step: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    return_code: int | None = None
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, engine: str, recipe: str, step: str, **kwargs: Any) -> StepReceipt:
        return cls(engine=engine, recipe=recipe, step=step, status="ok", **kwargs)

    @classmethod
    def failure(
        cls,
        engine: str,
        recipe: str,
        step: str,
        error: str,
        **kwargs: Any,
    ) -> StepReceipt:
        return cls(
            engine=engine,
            recipe=recipe,
            step=step,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(cls, engine: str, recipe: str, step: str, reason: str = "", **kwargs: Any) -> StepReceipt:
        kwargs.setdefault("metadata", {})["reason"] = reason
        return cls(engine=engine, recipe=recipe, step=step, status="skipped", **kwargs)
