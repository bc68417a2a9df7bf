"""
CLI commands for credential profiles — add, list, default, delete.

Thin wrappers over ``nrcli.core.config.credentials.CredentialStore``.
"""

from __future__ import annotations

import json

import click
from pydantic import ValidationError

from nrcli.core.errors import ConfigError, ProfileNotFoundError
from nrcli.ui.cli._common import fail, runtime_or_exit


@click.group()
def profile() -> None:
    """Credential profiles — API keys, license key and region."""


@profile.command("add")
@click.argument("name")
@click.option("--api-key", default="", help="User API key.")
@click.option("--insights-insert-key", default="", help="Insights insert key.")
@click.option("--region", default="us", show_default=True, help="Region: us, eu or staging.")
@click.option("--account-id", type=int, default=0, help="Account ID.")
@click.option("--license-key", default="", help="License key used by recipes.")
@click.option("--default", "make_default", is_flag=True, help="Make this the default profile.")
@click.pass_context
def profile_add(
    ctx: click.Context,
    name: str,
    api_key: str,
    insights_insert_key: str,
    region: str,
    account_id: int,
    license_key: str,
    make_default: bool,
) -> None:
    """Add or replace a credential profile."""
    from nrcli.core.config.credentials import Profile

    store = runtime_or_exit(ctx).credentials
    try:
        new = Profile(
            api_key=api_key,
            insights_insert_key=insights_insert_key,
            region=region,
            account_id=account_id,
            license_key=license_key,
        )
    except ValidationError as e:
        fail(f"Invalid profile:\n{e}")

    try:
        store.add_profile(name, new, make_default=make_default)
    except ConfigError as e:
        fail(str(e))

    suffix = " (default)" if store.default_profile == name else ""
    click.secho(f"✅ Profile '{name}' saved{suffix}", fg="green")


@profile.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def profile_list(ctx: click.Context, as_json: bool) -> None:
    """List profiles; secrets are masked."""
    store = runtime_or_exit(ctx).credentials
    profiles = store.profiles

    if as_json:
        click.echo(json.dumps(
            {
                "default": store.default_profile,
                "profiles": {name: p.masked() for name, p in profiles.items()},
            },
            indent=2,
        ))
        return

    if not profiles:
        click.secho("⚠️  No profiles configured. Run: nrcli profile add NAME", fg="yellow")
        return

    for name, p in profiles.items():
        marker = " (default)" if name == store.default_profile else ""
        click.secho(f"  • {name}{marker}", bold=bool(marker))
        masked = p.masked()
        click.echo(f"      region={p.region} account={p.account_id} licenseKey={masked['licenseKey'] or '-'}")


@profile.command("default")
@click.argument("name")
@click.pass_context
def profile_default(ctx: click.Context, name: str) -> None:
    """Make NAME the default profile."""
    store = runtime_or_exit(ctx).credentials
    try:
        store.set_default(name)
    except ProfileNotFoundError as e:
        fail(str(e))
    click.secho(f"✅ Default profile is now '{name}'", fg="green")


@profile.command("delete")
@click.argument("name")
@click.pass_context
def profile_delete(ctx: click.Context, name: str) -> None:
    """Remove a profile."""
    store = runtime_or_exit(ctx).credentials
    try:
        store.remove_profile(name)
    except ProfileNotFoundError as e:
        fail(str(e))
    click.secho(f"✅ Profile '{name}' deleted", fg="green")
