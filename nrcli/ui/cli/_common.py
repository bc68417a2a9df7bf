"""Helpers shared by the CLI command groups."""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from nrcli.core.context import RuntimeContext
from nrcli.core.errors import ConfigError


def runtime(ctx: click.Context) -> RuntimeContext:
    """Load the runtime context once per invocation and cache it on ``ctx.obj``."""
    root = ctx.find_root()
    root.ensure_object(dict)
    if root.obj.get("runtime") is None:
        root.obj["runtime"] = RuntimeContext.load(root.obj.get("config_dir"))
    return root.obj["runtime"]


def runtime_or_exit(ctx: click.Context) -> RuntimeContext:
    try:
        return runtime(ctx)
    except ConfigError as e:
        fail(str(e))


def fail(message: str) -> NoReturn:
    click.secho(f"❌ {message}", fg="red")
    sys.exit(1)


def is_quiet(ctx: click.Context) -> bool:
    return bool(ctx.find_root().obj.get("quiet", False))
