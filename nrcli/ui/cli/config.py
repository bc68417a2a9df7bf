"""
CLI commands for configuration — get, set, delete, list.

Thin wrappers over ``nrcli.core.config.loader.Config``.
"""

from __future__ import annotations

import json

import click

from nrcli.core.errors import ConfigError
from nrcli.ui.cli._common import fail, runtime_or_exit


@click.group()
def config() -> None:
    """Configuration — settings stored in config.json."""


@config.command("get")
@click.argument("key", required=False)
@click.pass_context
def config_get(ctx: click.Context, key: str | None) -> None:
    """Print one setting, or all of them when KEY is omitted."""
    cfg = runtime_or_exit(ctx).config
    if key is None:
        for value in cfg.list():
            click.echo(f"{value.name}: {value.value}")
        return
    try:
        click.echo(cfg.get(key))
    except ConfigError as e:
        fail(str(e))


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Validate and store a setting."""
    cfg = runtime_or_exit(ctx).config
    try:
        cfg.set(key, value)
    except ConfigError as e:
        fail(str(e))
    except OSError as e:
        fail(f"Cannot write {cfg.path}: {e}")
    click.secho(f"✅ {key} set to {cfg.get(key)}", fg="green")


@config.command("delete")
@click.argument("key")
@click.pass_context
def config_delete(ctx: click.Context, key: str) -> None:
    """Revert a setting to its default."""
    cfg = runtime_or_exit(ctx).config
    try:
        cfg.delete(key)
    except ConfigError as e:
        fail(str(e))
    except OSError as e:
        fail(f"Cannot write {cfg.path}: {e}")
    click.secho(f"✅ {key} reset to default ({cfg.get(key) or 'empty'})", fg="green")


@config.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_list(ctx: click.Context, as_json: bool) -> None:
    """List every setting with its default and where the value came from."""
    values = runtime_or_exit(ctx).config.list()

    if as_json:
        click.echo(json.dumps(
            [
                {
                    "name": v.name,
                    "value": v.value,
                    "default": v.default,
                    "is_default": v.is_default,
                    "source": v.source,
                }
                for v in values
            ],
            indent=2,
        ))
        return

    width = max(len(v.name) for v in values)
    for v in values:
        marker = "" if v.is_default else "  (modified)"
        source = f"  [{v.source}]" if v.source == "env" else ""
        click.echo(f"  {v.name:<{width}}  {v.value or '-'}{marker}{source}")
