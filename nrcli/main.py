"""
nrcli — CLI entrypoint.

Usage:
    python -m nrcli.main --help
    nrcli recipe install
    nrcli recipe match --json
    nrcli config list
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from nrcli import __version__
from nrcli.core.observability.logging_config import (
    LOG_FILE_ENV,
    LOG_FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="nrcli")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Configuration directory (default: $NEW_RELIC_CONFIG_DIR or ~/.newrelic).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_dir: str | None,
) -> None:
    """nrcli — discover what runs on this host and install matching recipes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_dir"] = Path(config_dir) if config_dir else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        flag = "DEBUG"
    elif verbose:
        flag = "INFO"
    elif quiet:
        flag = "ERROR"
    else:
        flag = None

    config_level = None
    if flag is None:
        from nrcli.core.errors import ConfigError
        from nrcli.ui.cli._common import runtime

        try:
            config_level = runtime(ctx).configured_log_level
        except ConfigError:
            # reported by the command that actually needs the config
            pass

    setup_logging(
        level=resolve_level(flag, config_level=config_level),
        log_file=os.environ.get(LOG_FILE_ENV),
        log_file_level=os.environ.get(LOG_FILE_LEVEL_ENV),
    )


# ── Sub-command groups ──────────────────────────────────────────

from nrcli.ui.cli.config import config  # noqa: E402
from nrcli.ui.cli.profile import profile  # noqa: E402
from nrcli.ui.cli.recipe import recipe  # noqa: E402

cli.add_command(recipe)
cli.add_command(config)
cli.add_command(profile)


if __name__ == "__main__":
    cli()
