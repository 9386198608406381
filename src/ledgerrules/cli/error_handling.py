"""CLI error handling helpers."""

import click

from ledgerrules.domain.errors import DomainError, RuleValidationError


def handle_domain_error(ctx: click.Context, error: DomainError) -> None:
    """Render a domain error and exit with failure.

    Field-level validation failures are listed one per line below the message.
    """
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, RuleValidationError):
        for field_error in error.errors:
            if field_error.message != str(error):
                click.echo(f"  {field_error.field}: {field_error.message}", err=True)
    ctx.exit(1)
