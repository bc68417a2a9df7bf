"""
CLI commands for recipes — install, list, match, manifest.

Thin wrappers over ``nrcli.core.use_cases.install`` and the recipe
modules in ``nrcli.core.recipes``.
"""

from __future__ import annotations

import json
import sys
import threading
from pathlib import Path

import click

from nrcli.ui.cli._common import fail, is_quiet, runtime_or_exit

_STATUS_MARKERS = {"installed": "✅", "failed": "❌", "skipped": "⏭️ "}
_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red", "empty": "white"}


def _sources(ctx: click.Context, recipes: tuple[str, ...]) -> tuple[Path | None, list[Path]]:
    """Primary source (config recipeDir or bundled) plus extras from --recipes."""
    paths = [Path(p).expanduser() for p in recipes]
    configured = runtime_or_exit(ctx).config.recipe_dir
    if paths and configured is None:
        return paths[0], paths[1:]
    return configured, paths


def _load_repository(ctx: click.Context, recipes: tuple[str, ...]):
    from nrcli.core.errors import RecipeLoadError
    from nrcli.core.recipes.repository import BUNDLED_RECIPES_DIR, load_recipe_sources

    primary, extras = _sources(ctx, recipes)
    try:
        return load_recipe_sources(primary or BUNDLED_RECIPES_DIR, extras)
    except RecipeLoadError as e:
        fail(f"Recipe load failed: {e}")


def _manifest(process_filters: tuple[str, ...] = ()):
    from nrcli.core.discovery.manifest import build_manifest
    from nrcli.core.errors import DiscoveryError

    try:
        manifest = build_manifest()
    except DiscoveryError as e:
        fail(f"Process discovery failed: {e}")
    if process_filters:
        manifest = manifest.filter_processes(list(process_filters))
    return manifest


@click.group()
def recipe() -> None:
    """Recipes — discover running software and install integrations."""


# ── install ─────────────────────────────────────────────────────


@recipe.command()
@click.argument("names", nargs=-1)
@click.option("--recipes", "recipes", multiple=True, type=click.Path(), help="Recipe file or directory (repeatable).")
@click.option("--process", "process_filters", multiple=True, help="Only consider processes containing this text.")
@click.option("--non-interactive", is_flag=True, help="Never prompt; missing variables fail the recipe.")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Recipes installed in parallel.")
@click.option("--engine", "engine_name", default=None, help="Task engine: auto, go-task, shell.")
@click.option("--profile", default=None, help="Credential profile (default profile if omitted).")
@click.option("--dry-run", is_flag=True, help="Resolve and render, but run nothing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    names: tuple[str, ...],
    recipes: tuple[str, ...],
    process_filters: tuple[str, ...],
    non_interactive: bool,
    workers: int | None,
    engine_name: str | None,
    profile: str | None,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Install recipes matching this host, or the NAMES given."""
    from nrcli.adapters.prompt import ClickPrompter, stdin_is_interactive
    from nrcli.adapters.registry import default_registry
    from nrcli.core.errors import ConfigError, DiscoveryError, PipelineCancelled, RecipeLoadError
    from nrcli.core.recipes.resolver import VariableResolver
    from nrcli.core.use_cases.install import run_install

    rt = runtime_or_exit(ctx)
    try:
        engine = default_registry().resolve(engine_name or rt.config.task_engine)
    except ConfigError as e:
        fail(str(e))

    interactive = not non_interactive and not as_json and stdin_is_interactive()
    resolver = VariableResolver(prompter=ClickPrompter(), interactive=interactive)
    primary, extras = _sources(ctx, recipes)
    cancel_event = threading.Event()

    try:
        report = run_install(
            engine=engine,
            credentials=rt.credentials,
            resolver=resolver,
            recipe_source=primary,
            extra_sources=extras,
            names=list(names) or None,
            process_filters=list(process_filters) or None,
            profile=profile,
            max_workers=workers or rt.config.max_workers,
            dry_run=dry_run,
            cancel_event=cancel_event,
        )
    except DiscoveryError as e:
        fail(f"Process discovery failed: {e}")
    except RecipeLoadError as e:
        fail(f"Recipe load failed: {e}")
    except PipelineCancelled as e:
        click.secho(f"\n⚠️  Cancelled after {len(e.outcomes)} recipe(s)", fg="yellow")
        sys.exit(130)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.failed == 0 else 1)

    if not report.outcomes:
        click.secho("⚠️  No recipes matched this host", fg="yellow")
        return

    click.echo()
    for outcome in report.outcomes:
        marker = _STATUS_MARKERS.get(outcome.status, "•")
        click.echo(f"  {marker} {outcome.recipe} — {outcome.status}")
        if outcome.reason:
            click.echo(f"      {outcome.reason}")
        elif not is_quiet(ctx):
            for receipt in outcome.receipts:
                click.echo(f"      • {receipt.step} ({receipt.duration_ms}ms)")

    click.echo()
    click.echo("  Result: ", nl=False)
    click.secho(report.status, fg=_STATUS_COLORS.get(report.status, "white"), bold=True)
    click.echo(
        f"  {report.installed} installed, {report.failed} failed, "
        f"{report.skipped} skipped (engine: {report.engine})"
    )
    click.echo()

    if report.failed:
        sys.exit(1)


# ── list ────────────────────────────────────────────────────────


@recipe.command("list")
@click.option("--recipes", "recipes", multiple=True, type=click.Path(), help="Recipe file or directory (repeatable).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_recipes(ctx: click.Context, recipes: tuple[str, ...], as_json: bool) -> None:
    """List every recipe in the repository."""
    repository = _load_repository(ctx, recipes)

    if as_json:
        click.echo(json.dumps([r.summary() for r in repository], indent=2))
        return

    click.secho(f"\n📋 Recipes ({len(repository)})", fg="cyan", bold=True)
    for r in repository:
        patterns = ", ".join(str(p) for p in r.metadata.process_match) or "explicit only"
        click.echo(f"   • {r.name}  [{patterns}]")
        if r.metadata.description and not is_quiet(ctx):
            click.echo(f"     {r.metadata.description}")
    click.echo()


# ── match ───────────────────────────────────────────────────────


@recipe.command()
@click.option("--recipes", "recipes", multiple=True, type=click.Path(), help="Recipe file or directory (repeatable).")
@click.option("--process", "process_filters", multiple=True, help="Only consider processes containing this text.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def match(
    ctx: click.Context,
    recipes: tuple[str, ...],
    process_filters: tuple[str, ...],
    as_json: bool,
) -> None:
    """Show which recipes match processes on this host, and why."""
    from nrcli.core.recipes.matcher import explain_matches

    repository = _load_repository(ctx, recipes)
    manifest = _manifest(process_filters)
    witnesses = explain_matches(manifest, repository)

    if as_json:
        click.echo(json.dumps([w.to_dict() for w in witnesses], indent=2))
        return

    if not witnesses:
        click.secho("⚠️  No recipes matched this host", fg="yellow")
        return

    click.secho(f"\n🔍 Matched recipes ({len(witnesses)})", fg="cyan", bold=True)
    for w in witnesses:
        click.echo(f"   ✓ {w.recipe.name}  ← pid {w.process.pid} ({w.process.name}) via '{w.pattern}'")
    click.echo()


# ── manifest ────────────────────────────────────────────────────


@recipe.command()
@click.option("--process", "process_filters", multiple=True, help="Only list processes containing this text.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def manifest(ctx: click.Context, process_filters: tuple[str, ...], as_json: bool) -> None:
    """Show host facts and discovered processes."""
    host = _manifest(process_filters)

    if as_json:
        click.echo(json.dumps(host.to_dict(), indent=2))
        return

    click.secho("\n🖥️  Host", fg="cyan", bold=True)
    for key, value in host.system_facts().items():
        click.echo(f"   {key}: {value or '-'}")

    click.secho(f"\n   Processes: {host.process_count}", fg="white", bold=True)
    if not is_quiet(ctx):
        for proc in host.processes:
            ports = f"  ports={sorted(proc.listening_ports)}" if proc.listening_ports else ""
            click.echo(f"     {proc.pid:>7}  {proc.name}{ports}")
    click.echo()
