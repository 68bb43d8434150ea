"""Account matching commands."""

import click
from coarecon.cli.error_handling import handle_domain_error, parse_id_list
from coarecon.domain.errors import DomainError
from coarecon.domain.matching import DEFAULT_MIN_CONFIDENCE, MatchingEngine


def _echo_matching(matching) -> None:
    click.echo(
        f"ID: {matching.id:4d} | shop account {matching.shop_account_id:4d} -> "
        f"master account {matching.master_account_id:4d} | {matching.confidence:.2f} | "
        f"{matching.method.value:6s} | {matching.status.value:19s} | {matching.details or ''}"
    )


@click.group()
def match_group():
    """Match shop accounts to the master chart."""
    pass


@match_group.command("auto")
@click.option("--shop", type=int, help="Only this shop's accounts")
@click.option("--program", type=int, help="Only this program's accounts")
@click.option(
    "--min-confidence",
    type=float,
    default=DEFAULT_MIN_CONFIDENCE,
    show_default=True,
    help="Discard candidates scoring below this",
)
@click.option("--review", is_flag=True, help="Never confirm automatically")
@click.pass_context
def auto_match(ctx, shop: int | None, program: int | None, min_confidence: float, review: bool):
    """Score unmatched shop accounts against the master chart."""
    engine = MatchingEngine(ctx.obj["db"], ctx.obj["settings"])

    try:
        result = engine.auto_match(
            shop_id=shop, program_id=program, min_confidence=min_confidence, review_mode=review
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(result.message)
    click.echo(f"  High confidence: {result.high_confidence_matches}")
    click.echo(f"  Average confidence: {result.average_confidence:.2f}")


@match_group.command("manual")
@click.argument("shop_account_id", type=int)
@click.argument("master_account_id", type=int)
@click.option("--confirm", is_flag=True, help="Create the match as confirmed")
@click.option("--details", help="Rationale stored with the match")
@click.option("--reviewer", help="Name recorded as reviewer")
@click.pass_context
def manual_match(ctx, shop_account_id: int, master_account_id: int, confirm: bool,
                 details: str | None, reviewer: str | None):
    """Match a shop account to a master account by hand."""
    engine = MatchingEngine(ctx.obj["db"], ctx.obj["settings"])

    try:
        matching = engine.create_manual_match(
            shop_account_id, master_account_id, confirmed=confirm, details=details, reviewed_by=reviewer
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Created matching {matching.id} ({matching.status.value})")


def _review(ctx, ids: tuple[str, ...], action: str, reviewer: str | None) -> None:
    engine = MatchingEngine(ctx.obj["db"], ctx.obj["settings"])
    matching_ids = parse_id_list(ctx, ids, "matching ID")

    try:
        outcome = engine.review_matches(matching_ids, action, reviewed_by=reviewer)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(outcome.message)
    for error in outcome.errors:
        click.echo(f"  {error}", err=True)
    if outcome.errors:
        ctx.exit(1)


@match_group.command("confirm")
@click.argument("matching_ids", nargs=-1, required=True)
@click.option("--reviewer", help="Name recorded as reviewer")
@click.pass_context
def confirm_matches(ctx, matching_ids: tuple[str, ...], reviewer: str | None):
    """Confirm one or more matchings."""
    _review(ctx, matching_ids, "Confirm", reviewer)


@match_group.command("reject")
@click.argument("matching_ids", nargs=-1, required=True)
@click.option("--reviewer", help="Name recorded as reviewer")
@click.pass_context
def reject_matches(ctx, matching_ids: tuple[str, ...], reviewer: str | None):
    """Reject one or more matchings."""
    _review(ctx, matching_ids, "Reject", reviewer)


@match_group.command("reset")
@click.option("--matching", "matchings", multiple=True, help="Matching ID (repeatable)")
@click.option("--account", "accounts", multiple=True, help="Shop account ID (repeatable)")
@click.pass_context
def reset_matches(ctx, matchings: tuple[str, ...], accounts: tuple[str, ...]):
    """Move confirmed or rejected matchings back to pending."""
    engine = MatchingEngine(ctx.obj["db"], ctx.obj["settings"])
    matching_ids = parse_id_list(ctx, matchings, "matching ID")
    account_ids = parse_id_list(ctx, accounts, "account ID")

    try:
        reset = engine.reset_to_pending(matching_ids=matching_ids, chart_of_account_ids=account_ids)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Reset {len(reset)} matching(s) to pending")


@match_group.command("pending")
@click.option("--shop", type=int, help="Filter by shop ID")
@click.option("--program", type=int, help="Filter by program ID")
@click.pass_context
def pending_matches(ctx, shop: int | None, program: int | None):
    """List matchings awaiting review."""
    engine = MatchingEngine(ctx.obj["db"], ctx.obj["settings"])

    matchings = engine.get_pending_matches(shop_id=shop, program_id=program)
    if not matchings:
        click.echo("No pending matches.")
        return

    click.echo("\nPending matches:")
    click.echo("-" * 100)
    for matching in matchings:
        _echo_matching(matching)


@match_group.command("list")
@click.argument("shop_account_id", type=int)
@click.pass_context
def list_matches(ctx, shop_account_id: int):
    """List every matching of a shop account."""
    engine = MatchingEngine(ctx.obj["db"], ctx.obj["settings"])

    try:
        matchings = engine.get_account_matchings(shop_account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not matchings:
        click.echo("No matchings found.")
        return
    for matching in matchings:
        _echo_matching(matching)


def register_commands(cli):
    """Register match commands with main CLI."""
    cli.add_command(match_group, name="match")
