"""Mapper functions to convert between domain models and SQLAlchemy models.

Condition trees, variable schemas and version snapshots live in JSON text
columns; this layer is the only place that parses them back into entities.
"""

from ledgerrules.domain import entities as domain
from ledgerrules.domain.serialization import condition_from_json, schema_from_json, snapshot_from_json
from ledgerrules.database.models import (
    AccountingRule as ORMAccountingRule,
    AccountingRuleVersion as ORMAccountingRuleVersion,
    EntryLine as ORMEntryLine,
    EntryTemplate as ORMEntryTemplate,
    TriggerCondition as ORMTriggerCondition,
)


def entry_line_to_domain(orm_line: ORMEntryLine) -> domain.EntryLine:
    """Convert SQLAlchemy EntryLine model to domain EntryLine entity."""
    return domain.EntryLine(
        id=orm_line.id,
        sequence_number=orm_line.sequence_number,
        account_code=orm_line.account_code,
        entry_type=domain.EntryType(orm_line.entry_type),
        amount_expression=orm_line.amount_expression,
        memo_template=orm_line.memo_template,
    )


def entry_template_to_domain(orm_template: ORMEntryTemplate) -> domain.EntryTemplate:
    """Convert SQLAlchemy EntryTemplate model to domain EntryTemplate entity."""
    return domain.EntryTemplate(
        id=orm_template.id,
        description=orm_template.description,
        lines=tuple(entry_line_to_domain(line) for line in orm_template.lines),
        variable_schema=schema_from_json(orm_template.variable_schema_json),
    )


def trigger_condition_to_domain(orm_condition: ORMTriggerCondition) -> domain.TriggerCondition:
    """Convert SQLAlchemy TriggerCondition model to domain TriggerCondition entity."""
    return domain.TriggerCondition(
        id=orm_condition.id,
        rule_id=orm_condition.rule_id,
        condition=condition_from_json(orm_condition.condition_json),
        description=orm_condition.description,
    )


def rule_to_domain(orm_rule: ORMAccountingRule) -> domain.AccountingRule:
    """Convert SQLAlchemy AccountingRule model to domain AccountingRule entity."""
    template = None
    if orm_rule.entry_template is not None:
        template = entry_template_to_domain(orm_rule.entry_template)
    return domain.AccountingRule(
        id=orm_rule.id,
        code=orm_rule.code,
        name=orm_rule.name,
        description=orm_rule.description,
        status=domain.RuleStatus(orm_rule.status),
        shared_across_scenarios=orm_rule.shared_across_scenarios,
        current_version=orm_rule.current_version,
        concurrency_token=orm_rule.concurrency_token,
        entry_template=template,
        trigger_conditions=tuple(trigger_condition_to_domain(c) for c in orm_rule.trigger_conditions),
        created_at=orm_rule.created_at,
        updated_at=orm_rule.updated_at,
        created_by=orm_rule.created_by,
        updated_by=orm_rule.updated_by,
    )


def rule_version_to_domain(orm_version: ORMAccountingRuleVersion) -> domain.RuleVersion:
    """Convert SQLAlchemy AccountingRuleVersion model to domain RuleVersion entity."""
    return domain.RuleVersion(
        id=orm_version.id,
        rule_id=orm_version.rule_id,
        version_number=orm_version.version_number,
        snapshot=snapshot_from_json(orm_version.snapshot_json),
        change_description=orm_version.change_description,
        created_at=orm_version.created_at,
        created_by=orm_version.created_by,
    )
