"""Main CLI entry point."""

import click
from coarecon.config import load_settings
from coarecon.database.factories import create_sqlite_database
from coarecon.domain.errors import ValidationError
from coarecon.logging_config import configure_logging

# Import and register all commands at module level
from coarecon.cli.commands import (
    account,
    sheets,
    stage,
    fields,
    import_cmd,
    match,
    stats,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides COARECON_DB_PATH environment variable)",
    envvar="COARECON_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    envvar="COARECON_LOG_LEVEL",
    help="Logging verbosity (default WARNING)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """coarecon - Chart of Accounts reconciliation.

    Import a shop's chart of accounts from a spreadsheet and match every
    shop account to the program's master chart.
    """
    ctx.ensure_object(dict)

    try:
        settings = load_settings()
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    configure_logging(log_level or settings.log_level)
    ctx.obj["settings"] = settings

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path or settings.database_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
sheets.register_commands(cli)
stage.register_commands(cli)
fields.register_commands(cli)
import_cmd.register_commands(cli)
match.register_commands(cli)
stats.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
