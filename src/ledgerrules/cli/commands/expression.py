"""Amount expression commands."""

import click
from ledgerrules.cli.error_handling import handle_domain_error
from ledgerrules.cli.loaders import load_json_object, parse_value_option, parse_variable_option
from ledgerrules.domain.errors import DomainError
from ledgerrules.domain.expression import evaluate_expression, validate_expression


@click.group()
def expression_group():
    """Check and evaluate amount expressions."""
    pass


@expression_group.command("validate")
@click.argument("expression")
@click.option("--var", "variables", multiple=True, help="Schema variable as NAME:TYPE[:CURRENCY]")
@click.pass_context
def validate(ctx, expression: str, variables: tuple[str, ...]):
    """Validate an expression against an optional variable schema.

    Examples:
        ledgerrules expression validate "amount - fee" --var amount:MONEY:EUR --var fee:MONEY
    """
    try:
        schema = [parse_variable_option(spec) for spec in variables]
    except DomainError as e:
        handle_domain_error(ctx, e)

    result = validate_expression(expression, schema)
    status = "valid" if result.valid else "invalid"
    parsed_type = result.parsed_type.value if result.parsed_type else "unknown"
    click.echo(f"Expression is {status} (type: {parsed_type})")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    for error in result.errors:
        click.echo(f"Error: {error}", err=True)
    if not result.valid:
        ctx.exit(1)


@expression_group.command("evaluate")
@click.argument("expression")
@click.option("--set", "assignments", multiple=True, help="Variable value as NAME=NUMBER")
@click.option(
    "--data",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with variable values (nested objects allowed)",
)
@click.pass_context
def evaluate(ctx, expression: str, assignments: tuple[str, ...], data: str | None):
    """Evaluate an expression.

    Operators apply strictly left to right, so "2 + 3 * 4" is 20.

    Examples:
        ledgerrules expression evaluate "amount * rate" --set amount=100 --set rate=0.05
        ledgerrules expression evaluate "order.total - order.discount" --data event.json
    """
    try:
        values = load_json_object(data) if data else {}
        values.update(parse_value_option(spec) for spec in assignments)
        result = evaluate_expression(expression, values)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(format(result, "f"))


def register_commands(cli):
    """Register expression commands with main CLI."""
    cli.add_command(expression_group, name="expression")
