"""
Error taxonomy for the recipe pipeline.

Two families:

    - Run-scoped errors (``DiscoveryError``, ``RecipeLoadError``,
      cancellation) abort the whole invocation.
    - Recipe-scoped errors (``RecipeError`` subclasses) abort one recipe.
      The install use case catches them and records a failed outcome,
      so sibling recipes keep going.
"""

from __future__ import annotations


class NrcliError(Exception):
    """Base class for every error raised by nrcli."""


# ── Configuration layer ─────────────────────────────────────────


class ConfigError(NrcliError):
    """Raised when configuration or credential files are invalid."""


class ProfileNotFoundError(NrcliError):
    """Raised when a named credential profile does not exist."""

    def __init__(self, profile: str):
        self.profile = profile
        super().__init__(f"Profile '{profile}' not found")


# ── Run-scoped ──────────────────────────────────────────────────


class DiscoveryError(NrcliError):
    """The process table could not be enumerated at all."""


class RecipeLoadError(NrcliError):
    """A recipe source is malformed or declares a duplicate recipe."""

    def __init__(
        self,
        reason: str,
        recipe: str | None = None,
        source: str | None = None,
    ):
        self.reason = reason
        self.recipe = recipe
        self.source = source
        where = f" in {source}" if source else ""
        which = f"recipe '{recipe}': " if recipe else ""
        super().__init__(f"{which}{reason}{where}")


class ExecutionCancelled(NrcliError):
    """A running step was stopped by the cancellation signal."""

    def __init__(self, step_name: str | None = None):
        self.step_name = step_name
        label = f" during step '{step_name}'" if step_name else ""
        super().__init__(f"Execution cancelled{label}")


class PipelineCancelled(NrcliError):
    """The install run was interrupted before all recipes finished."""

    def __init__(self, outcomes: list | None = None):
        self.outcomes = outcomes or []
        super().__init__("Install run cancelled")


class PromptAborted(NrcliError):
    """The operator aborted an interactive prompt."""


# ── Recipe-scoped ───────────────────────────────────────────────


class RecipeError(NrcliError):
    """Failure confined to a single recipe."""


class RecipeNotFoundError(RecipeError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Recipe '{name}' not found")


class VariableResolutionError(RecipeError):
    """A required input variable could not be resolved."""

    def __init__(self, name: str, detail: str = ""):
        self.name = name
        self.detail = detail
        msg = f"Could not resolve variable '{name}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class CredentialMissingError(RecipeError):
    """The active credential profile has no license key."""

    def __init__(self, profile: str | None):
        self.profile = profile
        if profile:
            msg = f"License key not found in profile '{profile}'"
        else:
            msg = "No credential profile configured; run 'nrcli profile add'"
        super().__init__(msg)


class ExecutionError(RecipeError):
    """An install step failed; later steps were not run."""

    def __init__(self, step_name: str, cause: str, receipts: list | None = None):
        self.step_name = step_name
        self.cause = cause
        self.receipts = receipts or []  # steps run so far, failing one last
        super().__init__(f"Step '{step_name}' failed: {cause}")
