"""Main CLI entry point."""

import logging

import click

# Import and register all commands at module level
from ledgerrules.cli.commands import expression, numscript, rule

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERRULES_DB_PATH environment variable)",
    envvar="LEDGERRULES_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity (overrides LEDGERRULES_LOG_LEVEL environment variable)",
    envvar="LEDGERRULES_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Ledgerrules - accounting rule engine.

    Define double-entry accounting rules with amount expressions and trigger
    conditions, move them through their DRAFT/ACTIVE/ARCHIVED lifecycle,
    generate Numscript from them and dry-run them against sample events.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Opened by the commands that need storage
    ctx.obj["db_path"] = db_path


# Register all commands
rule.register_commands(cli)
expression.register_commands(cli)
numscript.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
