"""Reconciliation statistics command."""

import click
from coarecon.domain.statistics import ReconciliationStatisticsService


@click.command("stats")
@click.option("--shop", type=int, required=True, help="Shop ID")
@click.option("--program", type=int, required=True, help="Program ID")
@click.pass_context
def show_stats(ctx, shop: int, program: int):
    """Show reconciliation progress for a shop in a program."""
    service = ReconciliationStatisticsService(ctx.obj["db"], ctx.obj["settings"])
    stats = service.get_statistics(shop_id=shop, program_id=program)

    click.echo(f"\nReconciliation for shop {shop}, program {program}:")
    click.echo("-" * 50)
    click.echo(f"  Total shop accounts:  {stats.total_shop_accounts}")
    click.echo(f"  Matched:              {stats.matched_accounts}")
    click.echo(f"  Potential matches:    {stats.potential_matches}")
    click.echo(f"  Unmatched:            {stats.unmatched_accounts}")
    click.echo(f"  High confidence:      {stats.high_confidence_matches}")
    click.echo(f"  Match rate:           {stats.match_rate:.1%}")
    click.echo(f"  Average confidence:   {stats.average_confidence:.2f}")


def register_commands(cli):
    """Register stats command with main CLI."""
    cli.add_command(show_stats)
