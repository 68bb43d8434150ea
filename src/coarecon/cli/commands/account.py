"""Chart of account management commands."""

import click
from coarecon.cli.error_handling import handle_domain_error
from coarecon.domain.chart_export import import_template
from coarecon.domain.chart_of_account import ChartOfAccountService
from coarecon.domain.errors import DomainError


@click.group()
def account_group():
    """Manage chart of account entries."""
    pass


@account_group.command("create")
@click.argument("number", metavar="ACCOUNT_NUMBER")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--program", type=int, required=True, help="Program ID")
@click.option("--shop", type=int, help="Shop ID (omit to create a master account)")
@click.option("--description", help="Account description")
@click.option("--type", "account_type", help="Account type (Asset, Revenue, ...)")
@click.pass_context
def create_account(ctx, number: str, name: str, program: int, shop: int | None,
                   description: str | None, account_type: str | None):
    """Create a master or shop account.

    Examples:
        coarecon account create 4000 "Parts Sales" --program 1
        coarecon account create 4000-01 "Parts Sales Retail" --program 1 --shop 7
    """
    service = ChartOfAccountService(ctx.obj["db"])

    try:
        account_id = service.create_account(
            program_id=program,
            account_number=number,
            account_name=name,
            shop_id=shop,
            description=description,
            account_type=account_type,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    kind = "master account" if shop is None else f"account for shop {shop}"
    click.echo(f"Created {kind} '{number} {name}' (ID: {account_id})")


@account_group.command("list")
@click.option("--program", type=int, help="Filter by program ID")
@click.option("--shop", type=int, help="Filter by shop ID")
@click.option(
    "--scope",
    type=click.Choice(["all", "master", "shop"]),
    default="all",
    show_default=True,
    help="Master accounts, shop accounts or both",
)
@click.option("--active-only", is_flag=True, help="Hide inactive accounts")
@click.pass_context
def list_accounts(ctx, program: int | None, shop: int | None, scope: str, active_only: bool):
    """List accounts."""
    master = {"all": None, "master": True, "shop": False}[scope]
    service = ChartOfAccountService(ctx.obj["db"])

    accounts = service.list_accounts(
        program_id=program, shop_id=shop, master=master, active_only=active_only
    )
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        scope = "master" if acc.is_master_account else f"shop {acc.shop_id}"
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:4d} | {acc.account_number:12s} | {acc.account_name:30s} | "
            f"program {acc.program_id}, {scope}{status}"
        )


@account_group.command("export")
@click.option("--program", type=int, required=True, help="Program ID")
@click.option("--shop", type=int, help="Shop ID (omit to export the master chart)")
@click.option("--active-only", is_flag=True, help="Leave inactive accounts out")
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False, writable=True), required=True,
    help="Workbook to write (.xlsx)",
)
@click.pass_context
def export_accounts(ctx, program: int, shop: int | None, active_only: bool, output: str):
    """Export a chart of accounts to an Excel workbook.

    The workbook uses the import template layout, so it can be staged as is.

    Examples:
        coarecon account export --program 1 -o master.xlsx
        coarecon account export --program 1 --shop 7 -o shop7.xlsx
    """
    service = ChartOfAccountService(ctx.obj["db"])
    data = service.export_chart(program, shop_id=shop, active_only=active_only)
    with open(output, "wb") as f:
        f.write(data)
    click.echo(f"Exported chart of accounts to {output}")


@account_group.command("template")
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False, writable=True), required=True,
    help="Workbook to write (.xlsx)",
)
def write_template(output: str):
    """Write the blank chart of accounts import template."""
    with open(output, "wb") as f:
        f.write(import_template())
    click.echo(f"Wrote import template to {output}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
