"""Operator CLI for the whitelist.

Why:
    Server operators need the same add/remove/list operations as the chat bot
    from a shell, e.g. in deployment scripts or when the bot is offline.

Usage:
    python -m backend.tools.whitelist_cli roles
    python -m backend.tools.whitelist_cli list ADMIN
    python -m backend.tools.whitelist_cli add S3 76561198000000001
    python -m backend.tools.whitelist_cli remove S3 76561198000000001
    python -m backend.tools.whitelist_cli status
    python -m backend.tools.whitelist_cli backup
    python -m backend.tools.whitelist_cli init-db

Notes:
    - The backend follows the environment: database service (with file
      fallback) when a database URL is set, else the panel bridge or the local
      file (see ``backend.whitelist.wiring``).
    - Failed operations exit with status 1 and print the reason.
"""

from __future__ import annotations

import logging

import click

from backend.whitelist.config import load_settings
from backend.whitelist.domain import staff_without_umbrella
from backend.whitelist.errors import OperationResult, WhitelistError
from backend.whitelist.repo_db import DBWhitelistRepo
from backend.whitelist.wiring import build_service, build_text_backend


def _build_backend():
    settings = load_settings()
    text_backend = build_text_backend(settings)
    return build_service(settings, text_backend) or text_backend


def _backend(ctx: click.Context):
    if ctx.obj is None:
        ctx.obj = _build_backend()
        # remote bridge keeps a temp dir until closed
        for candidate in (ctx.obj, getattr(ctx.obj, "file_store", None)):
            if hasattr(candidate, "close"):
                ctx.call_on_close(candidate.close)
    return ctx.obj


def _report(result: OperationResult) -> None:
    if not result.success:
        raise click.ClickException(result.message)
    click.echo(result.message)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, help="Log backend activity to stderr.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Manage the role-based Steam id whitelist."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")


@cli.command("roles")
def roles_cmd() -> None:
    """List configured roles with descriptions."""
    for info in load_settings().registry.roles():
        click.echo(f"{info.code:<10} {info.description}")


@cli.command("list")
@click.argument("role")
@click.pass_context
def list_cmd(ctx: click.Context, role: str) -> None:
    """Print the identifiers of ROLE, one per line."""
    try:
        uids = _backend(ctx).list_uids(role)
    except WhitelistError as exc:
        raise click.ClickException(str(exc))
    for uid in uids:
        click.echo(uid)


@cli.command("add")
@click.argument("role")
@click.argument("uid")
@click.pass_context
def add_cmd(ctx: click.Context, role: str, uid: str) -> None:
    """Add UID to ROLE."""
    try:
        _report(_backend(ctx).add_uid(role, uid))
    except WhitelistError as exc:
        raise click.ClickException(str(exc))


@cli.command("remove")
@click.argument("role")
@click.argument("uid")
@click.pass_context
def remove_cmd(ctx: click.Context, role: str, uid: str) -> None:
    """Remove UID from ROLE."""
    try:
        _report(_backend(ctx).remove_uid(role, uid))
    except WhitelistError as exc:
        raise click.ClickException(str(exc))


@cli.command("status")
@click.pass_context
def status_cmd(ctx: click.Context) -> None:
    """Show counts per role and staff ids missing from ALL."""
    try:
        doc = _backend(ctx).list_all()
    except WhitelistError as exc:
        raise click.ClickException(str(exc))
    for code, uids in doc.items():
        click.echo(f"{code}: {len(uids)} UIDs")
    for code, missing in staff_without_umbrella(doc).items():
        click.echo(f"WARNING: {code} not in ALL: {', '.join(missing)}", err=True)


@cli.command("backup")
@click.pass_context
def backup_cmd(ctx: click.Context) -> None:
    """Write a timestamped copy of the panel-hosted whitelist file."""
    backend = _backend(ctx)
    if not hasattr(backend, "backup"):
        raise click.ClickException("Backup is only available with the panel integration.")
    try:
        path = backend.backup()
    except WhitelistError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Backup written: {path}")


@cli.command("init-db")
@click.option("--db-dsn", required=False, help="Overrides WHITELIST_DATABASE_URL / DATABASE_URL.")
def init_db_cmd(db_dsn: str | None) -> None:
    """Create the whitelist tables and seed the role types."""
    settings = load_settings()
    dsn = db_dsn or settings.database_url
    if not dsn:
        raise click.ClickException("No database DSN configured.")
    try:
        repo = DBWhitelistRepo(dsn, registry=settings.registry, uid_length=settings.uid_length)
        repo.ensure_schema()
    except RuntimeError as exc:
        raise click.ClickException(str(exc))
    except WhitelistError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Schema ready ({len(settings.registry)} whitelist types).")


if __name__ == "__main__":  # pragma: no cover
    cli()
