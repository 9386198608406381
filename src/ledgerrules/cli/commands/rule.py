"""Accounting rule commands."""

import json

import click
from ledgerrules.cli.error_handling import handle_domain_error
from ledgerrules.cli.loaders import load_json_object, parse_rule_payload
from ledgerrules.database.factories import create_sqlite_database
from ledgerrules.domain import numscript
from ledgerrules.domain.conditions import to_human_readable
from ledgerrules.domain.entities import AccountingRule, RuleStatus
from ledgerrules.domain.errors import DomainError
from ledgerrules.domain.rule import AccountingRuleService
from ledgerrules.domain.serialization import rule_to_dict
from ledgerrules.domain.simulation import RuleSimulationService
from ledgerrules.utils.rule_resolver import resolve_rule


@click.group()
@click.pass_context
def rule_group(ctx):
    """Manage accounting rules."""
    db = create_sqlite_database(database_path=ctx.obj.get("db_path"))
    db.connect()
    db.initialize_schema()
    ctx.obj["db"] = db
    ctx.call_on_close(db.disconnect)


def _print_rule(rule: AccountingRule) -> None:
    click.echo(f"\nRule {rule.code} (ID: {rule.id})")
    click.echo("-" * 60)
    click.echo(f"Name:        {rule.name}")
    if rule.description:
        click.echo(f"Description: {rule.description}")
    click.echo(f"Status:      {rule.status.value}")
    click.echo(f"Shared:      {'yes' if rule.shared_across_scenarios else 'no'}")
    click.echo(f"Version:     {rule.current_version} (token {rule.concurrency_token})")

    template = rule.entry_template
    if template is not None and template.variable_schema:
        click.echo("\nVariables:")
        for var in template.variable_schema:
            currency = f" {var.currency}" if var.currency else ""
            click.echo(f"  {var.name:20s} {var.type.value}{currency}")
    if template is not None and template.lines:
        click.echo("\nEntry lines:")
        for line in template.lines:
            click.echo(
                f"  {line.sequence_number:2d}. {line.entry_type.value:6s} {line.account_code:12s} "
                f"{line.amount_expression}"
            )
    if rule.trigger_conditions:
        click.echo("\nTrigger conditions:")
        for trigger in rule.trigger_conditions:
            suffix = f"  # {trigger.description}" if trigger.description else ""
            click.echo(f"  {to_human_readable(trigger.condition)}{suffix}")


@rule_group.command("create")
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@click.option("--user", help="Actor recorded on the rule and its first version")
@click.pass_context
def create_rule(ctx, definition: str, user: str | None):
    """Create a DRAFT rule from a JSON definition file.

    The file uses the same shape 'rule show --json' prints: code, name,
    description, sharedAcrossScenarios, entryTemplate and triggerConditions.

    Examples:
        ledgerrules rule create deposit.json
    """
    service = AccountingRuleService(ctx.obj["db"])
    try:
        payload = parse_rule_payload(load_json_object(definition))
        rule = service.create_rule(
            code=payload.pop("code", None),
            name=payload.pop("name", None),
            created_by=user,
            **payload,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created rule '{rule.code}' (ID: {rule.id}, token: {rule.concurrency_token})")


@rule_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in RuleStatus], case_sensitive=False),
    help="Only rules in this status",
)
@click.option("--shared/--not-shared", default=None, help="Filter by the shared-across-scenarios flag")
@click.option("--search", help="Case-insensitive text to find in code or name")
@click.pass_context
def list_rules(ctx, status: str | None, shared: bool | None, search: str | None):
    """List rules."""
    service = AccountingRuleService(ctx.obj["db"])
    rules = service.list_rules(
        status=RuleStatus(status.upper()) if status else None, shared=shared, search=search
    )
    if not rules:
        click.echo("No rules found.")
        return

    click.echo("\nRules:")
    click.echo("-" * 80)
    for r in rules:
        shared_mark = "shared" if r.shared_across_scenarios else ""
        click.echo(
            f"ID: {r.id:3d} | {r.code:15s} | {r.name:25s} | {r.status.value:8s} | v{r.current_version} {shared_mark}"
        )


@rule_group.command("show")
@click.argument("rule_ref", metavar="RULE")
@click.option("--json", "as_json", is_flag=True, help="Print the rule as JSON")
@click.pass_context
def show_rule(ctx, rule_ref: str, as_json: bool):
    """Show a rule.

    RULE can be a rule ID or code.
    """
    service = AccountingRuleService(ctx.obj["db"])
    try:
        rule = resolve_rule(service, rule_ref)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if as_json:
        click.echo(json.dumps(rule_to_dict(rule), indent=2))
    else:
        _print_rule(rule)


@rule_group.command("update")
@click.argument("rule_ref", metavar="RULE")
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@click.option("--token", type=int, required=True, help="Concurrency token from the last read of the rule")
@click.option("--user", help="Actor recorded on the new version")
@click.pass_context
def update_rule(ctx, rule_ref: str, definition: str, token: int, user: str | None):
    """Update a DRAFT rule from a JSON file.

    Only keys present in the file change. A supplied entryTemplate or
    triggerConditions replaces the existing one. The code cannot change.

    Examples:
        ledgerrules rule update DEP-001 changes.json --token 3
    """
    service = AccountingRuleService(ctx.obj["db"])
    try:
        rule = resolve_rule(service, rule_ref)
        payload = parse_rule_payload(load_json_object(definition))
        payload.pop("code", None)
        rule = service.update_rule(rule.id, token, updated_by=user, **payload)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated rule '{rule.code}' to version {rule.current_version} (token: {rule.concurrency_token})")


@rule_group.command("delete")
@click.argument("rule_ref", metavar="RULE")
@click.pass_context
def delete_rule(ctx, rule_ref: str):
    """Delete a DRAFT or ARCHIVED rule. Version history is kept."""
    service = AccountingRuleService(ctx.obj["db"])
    try:
        rule = resolve_rule(service, rule_ref)
        service.delete_rule(rule.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted rule '{rule.code}'")


@rule_group.command("clone")
@click.argument("rule_ref", metavar="RULE")
@click.argument("new_code")
@click.argument("new_name")
@click.option("--user", help="Actor recorded on the clone")
@click.pass_context
def clone_rule(ctx, rule_ref: str, new_code: str, new_name: str, user: str | None):
    """Copy a rule into a new DRAFT rule.

    Examples:
        ledgerrules rule clone DEP-001 DEP-002 "Deposit (copy)"
    """
    service = AccountingRuleService(ctx.obj["db"])
    try:
        source = resolve_rule(service, rule_ref)
        clone = service.clone_rule(source.id, new_code, new_name, created_by=user)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Cloned '{source.code}' to '{clone.code}' (ID: {clone.id})")


def _transition_command(name: str, method: str, done: str, help_text: str):
    @rule_group.command(name, help=help_text)
    @click.argument("rule_ref", metavar="RULE")
    @click.option("--user", help="Actor recorded on the new version")
    @click.pass_context
    def command(ctx, rule_ref: str, user: str | None):
        service = AccountingRuleService(ctx.obj["db"])
        try:
            rule = resolve_rule(service, rule_ref)
            rule = getattr(service, method)(rule.id, actor=user)
        except DomainError as e:
            handle_domain_error(ctx, e)
        click.echo(f"{done} rule '{rule.code}' (now {rule.status.value}, version {rule.current_version})")

    return command


activate_rule = _transition_command(
    "activate", "activate_rule", "Activated", "Activate a DRAFT rule. RULE can be a rule ID or code."
)
archive_rule = _transition_command(
    "archive", "archive_rule", "Archived", "Archive a DRAFT or ACTIVE rule. RULE can be a rule ID or code."
)
restore_rule = _transition_command(
    "restore", "restore_rule", "Restored", "Restore an ARCHIVED rule to DRAFT. RULE can be a rule ID or code."
)


@rule_group.command("versions")
@click.argument("rule_ref", metavar="RULE")
@click.pass_context
def list_versions(ctx, rule_ref: str):
    """List a rule's version history, newest first."""
    service = AccountingRuleService(ctx.obj["db"])
    try:
        rule = resolve_rule(service, rule_ref)
        versions = service.list_versions(rule.id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nVersions of {rule.code}:")
    click.echo("-" * 80)
    for v in versions:
        created = v.created_at.strftime("%Y-%m-%d %H:%M") if v.created_at else ""
        by = f" by {v.created_by}" if v.created_by else ""
        click.echo(
            f"v{v.version_number:<3d} | {v.snapshot.status:8s} | {v.snapshot.name:25s} | "
            f"{v.change_description} ({created}{by})"
        )


@rule_group.command("rollback")
@click.argument("rule_ref", metavar="RULE")
@click.argument("version_number", type=int)
@click.option("--user", help="Actor recorded on the new version")
@click.pass_context
def rollback_rule(ctx, rule_ref: str, version_number: int, user: str | None):
    """Restore name and description from an earlier version.

    The rule becomes DRAFT at a new version number. ACTIVE rules must be
    archived first.
    """
    service = AccountingRuleService(ctx.obj["db"])
    try:
        rule = resolve_rule(service, rule_ref)
        rule = service.rollback_to_version(rule.id, version_number, actor=user)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Rolled back '{rule.code}' to version {version_number} (now version {rule.current_version})")


@rule_group.command("generate")
@click.argument("rule_ref", metavar="RULE")
@click.option(
    "--account",
    "accounts",
    multiple=True,
    help="Known account code; when given, references outside this list are reported",
)
@click.pass_context
def generate_numscript(ctx, rule_ref: str, accounts: tuple[str, ...]):
    """Generate Numscript for a rule.

    Examples:
        ledgerrules rule generate DEP-001
        ledgerrules rule generate DEP-001 --account 1000 --account 2000
    """
    service = AccountingRuleService(ctx.obj["db"])
    try:
        rule = resolve_rule(service, rule_ref)
    except DomainError as e:
        handle_domain_error(ctx, e)

    result = numscript.generate(rule)
    if result.numscript is not None:
        click.echo(result.numscript)

    warnings = list(result.validation.warnings)
    if result.numscript is not None and accounts:
        warnings.extend(numscript.validate_account_references(result.numscript, accounts).warnings)
    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)
    for error in result.validation.errors:
        click.echo(f"Error: {error}", err=True)
    if not result.valid:
        ctx.exit(1)


@rule_group.command("simulate")
@click.argument("rule_ref", metavar="RULE")
@click.argument("event_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def simulate_rule(ctx, rule_ref: str, event_file: str):
    """Dry-run a rule against event data from a JSON file.

    Examples:
        ledgerrules rule simulate DEP-001 event.json
    """
    db = ctx.obj["db"]
    try:
        rule = resolve_rule(AccountingRuleService(db), rule_ref)
        event_data = load_json_object(event_file)
    except DomainError as e:
        handle_domain_error(ctx, e)

    result = RuleSimulationService(db).simulate(rule, event_data)
    if not result.would_fire:
        click.echo(f"Rule would not fire: {result.reason_not_fired}")
        return

    click.echo(f"\nSimulated entries for {rule.code}:")
    click.echo("-" * 80)
    for entry in result.entries:
        memo = f" | {entry.memo}" if entry.memo else ""
        click.echo(
            f"{entry.sequence_number:2d}. {entry.entry_type.value:6s} {entry.account_code:12s} "
            f"{entry.amount:>15} {entry.currency}{memo}"
        )
    click.echo("-" * 80)
    click.echo(f"Total debits:  {result.total_debits}")
    click.echo(f"Total credits: {result.total_credits}")
    click.echo(f"Balanced:      {'yes' if result.balanced else 'no'}")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
