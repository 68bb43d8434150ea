"""Staging command."""

from pathlib import Path

import click
from coarecon.cli.error_handling import handle_domain_error
from coarecon.domain.entities import ImportKind
from coarecon.domain.errors import DomainError
from coarecon.domain.staging import StagingService


@click.command("stage")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--sheet", help="Sheet name (defaults to the CSV file name for .csv files)")
@click.option("--program", type=int, required=True, help="Program ID")
@click.option("--shop", type=int, help="Shop ID (omit to stage a master chart)")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in ImportKind]),
    default=ImportKind.CHART_OF_ACCOUNTS.value,
    show_default=True,
    help="Which target fields the columns are mapped to",
)
@click.option("--import-date", help="Import date (general ledger uploads)")
@click.option("--ledger-date", help="Ledger period date (general ledger uploads)")
@click.pass_context
def stage_file(ctx, file: str, sheet: str | None, program: int, shop: int | None, kind: str,
               import_date: str | None, ledger_date: str | None):
    """Stage a spreadsheet sheet for column mapping and import."""
    path = Path(file)
    service = StagingService(ctx.obj["db"], ctx.obj["settings"])
    sheet_name = sheet if sheet is not None else path.stem

    try:
        job = service.stage(
            data=path.read_bytes(),
            file_name=path.name,
            sheet_name=sheet_name,
            program_id=program,
            shop_id=shop,
            import_kind=ImportKind(kind),
            import_date=import_date,
            ledger_date=ledger_date,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Staged job {job.job_id} ({job.total_rows} rows)")
    click.echo("\nDetected columns:")
    click.echo("-" * 80)
    for col in job.detected_columns:
        suggestion = col.suggested_target_field or "-"
        samples = ", ".join(col.sample_values)
        click.echo(f"{col.column_name:25s} -> {suggestion:16s} | {samples}")
    click.echo("\nUse 'import JOB_ID --program ID --map COLUMN=FIELD' to import.")


def register_commands(cli):
    """Register stage command with main CLI."""
    cli.add_command(stage_file)
