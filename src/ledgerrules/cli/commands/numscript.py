"""Numscript commands."""

import click
from ledgerrules.domain import numscript


@click.group()
def numscript_group():
    """Work with Numscript text."""
    pass


@numscript_group.command("validate")
@click.argument("script_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--account",
    "accounts",
    multiple=True,
    help="Known account code; when given, references outside this list are reported",
)
@click.pass_context
def validate(ctx, script_file: str, accounts: tuple[str, ...]):
    """Statically check a Numscript file.

    Examples:
        ledgerrules numscript validate transfer.num
        ledgerrules numscript validate transfer.num --account 1000 --account 2000
    """
    with open(script_file, encoding="utf-8") as f:
        script = f.read()

    result = numscript.validate(script)
    if accounts:
        for warning in numscript.validate_account_references(script, accounts).warnings:
            result.add_warning(warning)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    for error in result.errors:
        click.echo(f"Error: {error}", err=True)

    if result.valid:
        click.echo(f"Numscript is valid ({len(result.warnings)} warning(s))")
    else:
        click.echo(f"Numscript is invalid ({len(result.errors)} error(s))")
        ctx.exit(1)


def register_commands(cli):
    """Register numscript commands with main CLI."""
    cli.add_command(numscript_group, name="numscript")
