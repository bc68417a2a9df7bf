"""
Variable resolver — build the variable bindings for one recipe run.

Resolution order for each declared input variable:

    1. environment variable of the same name (set and non-empty;
       an empty value counts as unset)
    2. interactive prompt (prompt text or a generated label,
       default pre-filled), when running interactively
    3. otherwise → ``VariableResolutionError``

A declared ``default`` only pre-fills the prompt; it never satisfies a
non-interactive run on its own.

System bindings are injected last and win over any same-named declared
variable: the manifest's platform facts and ``NR_LICENSE_KEY`` from the
active credential profile.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping
from typing import Protocol

from nrcli.adapters.prompt import Prompter
from nrcli.core.errors import (
    CredentialMissingError,
    ExecutionCancelled,
    ProfileNotFoundError,
    PromptAborted,
    VariableResolutionError,
)
from nrcli.core.models.manifest import HostManifest
from nrcli.core.models.recipe import Recipe, VariableConfig

logger = logging.getLogger(__name__)

LICENSE_KEY_VAR = "NR_LICENSE_KEY"

SYSTEM_VARIABLES = (
    "OS",
    "Platform",
    "PlatformFamily",
    "PlatformVersion",
    "KernelArch",
    "KernelVersion",
    LICENSE_KEY_VAR,
)


class CredentialLookup(Protocol):
    @property
    def profile_name(self) -> str | None: ...

    def get_license_key(self, profile: str | None = None) -> str:
        """License key of ``profile`` (default: active profile).

        Raises ``ProfileNotFoundError`` for an unknown profile.
        """
        ...


class VariableResolver:
    """Resolve a recipe's variables into a fresh bindings dict.

    One resolver may serve several recipes concurrently: it keeps no
    per-recipe state, and prompts are serialized through a lock so two
    recipes never read the terminal at the same time.
    """

    def __init__(
        self,
        prompter: Prompter | None = None,
        interactive: bool = False,
        environ: Mapping[str, str] | None = None,
        prompt_lock: threading.Lock | None = None,
    ):
        self._prompter = prompter
        self._interactive = interactive and prompter is not None
        self._environ = environ if environ is not None else os.environ
        self._prompt_lock = prompt_lock or threading.Lock()

    @property
    def interactive(self) -> bool:
        return self._interactive

    def resolve(
        self,
        recipe: Recipe,
        manifest: HostManifest,
        credentials: CredentialLookup,
        cancel_event: threading.Event | None = None,
    ) -> dict[str, str]:
        """Return the complete bindings for ``recipe``.

        Raises:
            VariableResolutionError: A declared variable has no value.
            CredentialMissingError: No license key in the active profile.
            ExecutionCancelled: Cancellation was signalled before a prompt.
        """
        license_key = self._license_key(credentials)

        bindings: dict[str, str] = {}
        for var in recipe.input_vars:
            if var.name in SYSTEM_VARIABLES:
                # Supplied below; never prompt for a value that would be overwritten.
                logger.debug(
                    "Recipe '%s' declares system variable '%s'; system value wins",
                    recipe.name, var.name,
                )
                continue
            bindings[var.name] = self._resolve_one(recipe, var, cancel_event)

        bindings.update(manifest.system_facts())
        bindings[LICENSE_KEY_VAR] = license_key
        return bindings

    def _resolve_one(
        self, recipe: Recipe, var: VariableConfig, cancel_event: threading.Event | None = None,
    ) -> str:
        env_value = self._environ.get(var.name, "")
        if env_value:
            logger.debug("Variable '%s' for '%s' taken from environment", var.name, recipe.name)
            return env_value

        if not self._interactive:
            raise VariableResolutionError(
                var.name,
                "not set in the environment and prompting is disabled",
            )

        assert self._prompter is not None
        logger.debug("Prompting for variable '%s' (recipe '%s')", var.name, recipe.name)
        try:
            with self._prompt_lock:
                # Checked under the lock: a run cancelled while this recipe
                # waited for another prompt must not open a new one.
                if cancel_event is not None and cancel_event.is_set():
                    raise ExecutionCancelled()
                return self._prompter.prompt(var.prompt_label, var.default)
        except PromptAborted as e:
            raise VariableResolutionError(var.name, "prompt aborted") from e

    @staticmethod
    def _license_key(credentials: CredentialLookup) -> str:
        profile = credentials.profile_name
        try:
            key = credentials.get_license_key()
        except ProfileNotFoundError as e:
            raise CredentialMissingError(profile) from e
        if not key:
            raise CredentialMissingError(profile)
        return key
