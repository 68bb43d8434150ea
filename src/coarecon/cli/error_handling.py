"""CLI error handling helpers."""

import click

from coarecon.domain.errors import AlreadyConfirmedError, DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, AlreadyConfirmedError):
        click.echo(
            f"Hint: run 'coarecon match reset --matching {error.matching_id}' first.", err=True
        )
    ctx.exit(1)


def parse_id_list(ctx: click.Context, values: tuple[str, ...], label: str) -> list[int]:
    """Parse IDs given either as repeated arguments or comma separated."""
    ids = []
    for value in values:
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            try:
                ids.append(int(part))
            except ValueError:
                click.echo(f"Error: Invalid {label} '{part}'", err=True)
                ctx.exit(1)
    return ids
