"""Mapping field catalog command."""

import click
from coarecon.domain.entities import ImportKind
from coarecon.domain.mapping import MappingResolver
from coarecon.domain.staging import StagingService


@click.command("fields")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in ImportKind]),
    default=ImportKind.CHART_OF_ACCOUNTS.value,
    show_default=True,
)
@click.pass_context
def list_fields(ctx, kind: str):
    """List the target fields columns can be mapped to."""
    resolver = MappingResolver(StagingService(ctx.obj["db"], ctx.obj["settings"]))

    click.echo(f"\nMapping fields ({kind}):")
    click.echo("-" * 80)
    for field in resolver.get_mapping_fields(ImportKind(kind)):
        required = "required" if field.is_required else "optional"
        click.echo(f"{field.field_name:16s} | {required:8s} | {field.data_type:8s} | {field.description}")


def register_commands(cli):
    """Register fields command with main CLI."""
    cli.add_command(list_fields)
