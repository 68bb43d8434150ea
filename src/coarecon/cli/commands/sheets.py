"""Spreadsheet inspection commands."""

from pathlib import Path

import click
from coarecon.cli.error_handling import handle_domain_error
from coarecon.domain.errors import DomainError
from coarecon.domain.spreadsheet import SpreadsheetAnalyzer


@click.group()
def sheets_group():
    """Inspect spreadsheets before staging them."""
    pass


@sheets_group.command("list")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def list_sheets(ctx, file: str):
    """List the sheets of a workbook with row and column counts."""
    path = Path(file)
    try:
        sheets = SpreadsheetAnalyzer().analyze(path.read_bytes(), path.name)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nSheets in {path.name}:")
    click.echo("-" * 60)
    for sheet in sheets:
        click.echo(f"{sheet.name:30s} | Rows: {sheet.row_count:6d} | Columns: {sheet.column_count:3d}")


@sheets_group.command("preview")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--sheet", required=True, help="Sheet name")
@click.option("--limit", type=int, default=5, show_default=True, help="Number of data rows")
@click.pass_context
def preview_sheet(ctx, file: str, sheet: str, limit: int):
    """Show the header row and the first data rows of a sheet."""
    path = Path(file)
    try:
        preview = SpreadsheetAnalyzer().preview(path.read_bytes(), path.name, sheet, limit=limit)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(" | ".join(preview.headers))
    click.echo("-" * 60)
    for row in preview.rows:
        click.echo(" | ".join(row))
    click.echo(f"\nShowing {len(preview.rows)} of {preview.total_rows} rows")


def register_commands(cli):
    """Register sheet commands with main CLI."""
    cli.add_command(sheets_group, name="sheets")
