"""Login and status commands for the ledgerbridge CLI."""

import logging

import typer

from ledgerbridge.sync import build_sync_service

logger = logging.getLogger(__name__)


def login(
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Seconds to wait for the login (default from settings)",
    ),
) -> None:
    """Wait for an interactive login and register the discovered accounts."""
    service = build_sync_service()
    result = service.start_login(timeout=timeout)
    if not result.success:
        logger.error(f"❌ Login failed: {result.error}")
        raise typer.Exit(1)

    logger.info(f"✅ Login successful, {len(result.accounts)} account(s) found")
    for account in result.accounts:
        typer.echo(f"{account.id}\t{account.iban}\t{account.alias}")


def status() -> None:
    """Show login state and pending movements per account."""
    service = build_sync_service()
    sync_status = service.get_status()

    last_login = (
        sync_status.last_login_time.isoformat() if sync_status.last_login_time else "never"
    )
    typer.echo(f"Last login: {last_login}")
    typer.echo(f"Session valid: {'yes' if sync_status.session_valid else 'no'}")
    typer.echo(f"Sync in progress: {'yes' if sync_status.in_progress else 'no'}")
    if sync_status.last_error:
        typer.echo(f"Last error: {sync_status.last_error}")

    for account in sync_status.accounts:
        pending = "?" if account.pending_count is None else str(account.pending_count)
        link = account.ledger_account_id or "unlinked"
        typer.echo(f"{account.iban}\t{account.alias}\t{link}\tpending={pending}")
