"""Main CLI application for ledgerbridge.

Commands are grouped by concern: interactive login, the account registry,
syncing and a status overview.
"""

import logging
from typing import Annotated

import typer

from ..config import set_current_profile
from ..logging import setup_logging
from .commands import accounts, session, sync

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="ledgerbridge",
    help="ledgerbridge: Sync homebanking movements into a budget ledger",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    profile: Annotated[
        str,
        typer.Option(
            "--profile",
            "-p",
            help="Profile to use (loads .env.<profile>). Default: default",
            envvar="LEDGERBRIDGE_PROFILE",
        ),
    ] = "default",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for the ledgerbridge CLI.

    Each profile keeps its own settings file, so separate households or
    banks can be synced into separate ledgers.

    Examples:
      ledgerbridge login
      ledgerbridge --profile=household sync all
    """
    try:
        set_current_profile(profile)
    except ValueError as e:
        raise typer.BadParameter(
            f"Invalid profile name: {profile}. "
            "Use only alphanumeric characters, dashes, and underscores"
        ) from e

    # Logging settings belong to the profile, so it must be set first
    try:
        setup_logging(cli_mode=True, verbose=verbose)
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from e

    logger.debug(f"👤 Using profile: {profile}")


app.command("login")(session.login)
app.command("status")(session.status)
app.add_typer(accounts.app, name="accounts", help="Account registry commands")
app.add_typer(sync.app, name="sync", help="Sync movements into the ledger")


def main() -> None:
    """Entry point for the ledgerbridge CLI application."""
    app()


if __name__ == "__main__":
    main()
