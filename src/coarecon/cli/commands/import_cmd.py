"""Import and job status commands."""

import click
from coarecon.cli.error_handling import handle_domain_error
from coarecon.domain.chart_import import ImportExecutor
from coarecon.domain.entities import ColumnMapping
from coarecon.domain.errors import DomainError
from coarecon.domain.mapping import ColumnMappingSet, suggested_mappings
from coarecon.domain.polling import PollResult, RetryPolicy, wait_for_job
from coarecon.domain.staging import StagingService


def _parse_mapping(ctx: click.Context, value: str) -> ColumnMapping:
    column, sep, field = value.rpartition("=")
    if not sep or not column.strip() or not field.strip():
        click.echo(f"Error: Invalid mapping '{value}'. Use COLUMN=FIELD", err=True)
        ctx.exit(1)
    return ColumnMapping(source_column=column.strip(), target_field=field.strip())


@click.command("import")
@click.argument("job_id")
@click.option("--program", type=int, required=True, help="Program ID the job was staged for")
@click.option("--map", "maps", multiple=True, help="Column mapping as COLUMN=FIELD (repeatable)")
@click.option(
    "--use-suggested",
    is_flag=True,
    help="Start from the suggested mappings; --map entries override them",
)
@click.pass_context
def import_job(ctx, job_id: str, program: int, maps: tuple[str, ...], use_suggested: bool):
    """Apply column mappings to a staged job and import its rows."""
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]
    staging = StagingService(db, settings)
    executor = ImportExecutor(db, settings, staging_service=staging)

    try:
        suggested = ColumnMappingSet()
        if use_suggested:
            suggested = suggested_mappings(staging.get_job(job_id))
        # Explicit --map entries replace suggestions for the same field, but
        # mapping one field twice on the command line is still rejected
        explicit = [_parse_mapping(ctx, value) for value in maps]
        explicit_fields = {m.target_field for m in explicit}
        mappings = [m for m in suggested if m.target_field not in explicit_fields] + explicit
        result = executor.apply_mappings_and_import(job_id, program, mappings)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo("\nImport complete:")
    click.echo(f"  Processed: {result.processed_records} rows")
    click.echo(f"  Successful: {result.successful_records} ({result.created_records} created, "
               f"{result.updated_records} updated)")
    click.echo(f"  Failed: {result.failed_records}")
    for error in result.errors:
        click.echo(f"    {error}", err=True)


@click.command("job-status")
@click.argument("job_id")
@click.option("--wait", is_flag=True, help="Poll until the job finishes")
@click.option("--interval", type=float, default=5.0, show_default=True, help="Seconds between polls")
@click.option("--max-attempts", type=int, default=60, show_default=True, help="Polls before timing out")
@click.pass_context
def job_status(ctx, job_id: str, wait: bool, interval: float, max_attempts: int):
    """Show the status of a staged import job."""
    executor = ImportExecutor(ctx.obj["db"], ctx.obj["settings"])

    try:
        if wait:
            outcome = wait_for_job(
                executor.get_job_status,
                job_id,
                RetryPolicy(interval_seconds=interval, max_attempts=max_attempts),
            )
            status = outcome.status
            if outcome.result is PollResult.TIMED_OUT:
                click.echo(f"Timed out after {outcome.attempts} attempts; job is still running.")
            elif outcome.result is PollResult.NOT_STARTED:
                click.echo(f"Job {job_id} has not been imported yet; nothing to wait for.")
        else:
            status = executor.get_job_status(job_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Job {status.job_id}: {status.status.value} ({status.percentage_complete:.0f}%)")
    click.echo(f"  Records: {status.total_records} total, {status.successful_records} successful, "
               f"{status.failed_records} failed")
    for error in status.errors:
        click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_job)
    cli.add_command(job_status)
