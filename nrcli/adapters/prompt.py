"""
Prompt capability — ask the operator for a missing value.

The resolver depends on the ``Prompter`` protocol only; the CLI wires
in ``ClickPrompter``. Tests pass a scripted prompter instead.
"""

from __future__ import annotations

import sys
from typing import Protocol

import click

from nrcli.core.errors import PromptAborted


class Prompter(Protocol):
    def prompt(self, label: str, default: str = "") -> str:
        """Return the operator's answer; raise ``PromptAborted`` on abort."""
        ...


class ClickPrompter:
    """Line prompt on the controlling terminal via ``click.prompt``."""

    def prompt(self, label: str, default: str = "") -> str:
        try:
            value = click.prompt(label, default=default or None, show_default=bool(default))
        except click.exceptions.Abort as e:
            raise PromptAborted(f"Prompt aborted: {label}") from e
        return str(value)


def stdin_is_interactive() -> bool:
    """Whether stdin is attached to a terminal."""
    try:
        return sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False
