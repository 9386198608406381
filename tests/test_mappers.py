"""Tests for database mappers."""

import json
from datetime import datetime, UTC

import pytest

from ledgerrules.database.models import (
    AccountingRule as ORMAccountingRule,
    AccountingRuleVersion as ORMAccountingRuleVersion,
    EntryLine as ORMEntryLine,
    EntryTemplate as ORMEntryTemplate,
    TriggerCondition as ORMTriggerCondition,
)
from ledgerrules.database.mappers import (
    entry_line_to_domain,
    entry_template_to_domain,
    rule_to_domain,
    rule_version_to_domain,
    trigger_condition_to_domain,
)
from ledgerrules.domain.entities import (
    AccountingRule,
    ConditionOperator,
    EntryType,
    ExpressionType,
    OrCondition,
    RuleStatus,
    RuleVersion,
)
from ledgerrules.domain.errors import RuleEngineError


def orm_lines():
    return [
        ORMEntryLine(id=1, sequence_number=1, account_code="1000", entry_type="DEBIT", amount_expression="amount"),
        ORMEntryLine(
            id=2,
            sequence_number=2,
            account_code="2000",
            entry_type="CREDIT",
            amount_expression="amount",
            memo_template="Memo",
        ),
    ]


class TestEntryTemplateMapper:
    """Tests for EntryTemplate and EntryLine mappers."""

    def test_entry_line_to_domain(self):
        line = entry_line_to_domain(orm_lines()[1])

        assert line.id == 2
        assert line.entry_type == EntryType.CREDIT
        assert line.memo_template == "Memo"

    def test_entry_template_to_domain(self):
        orm_template = ORMEntryTemplate(
            id=7,
            rule_id=3,
            description="Deposit",
            variable_schema_json=json.dumps([{"name": "amount", "type": "MONEY", "currency": "EUR"}]),
            lines=orm_lines(),
        )

        template = entry_template_to_domain(orm_template)

        assert template.id == 7
        assert template.description == "Deposit"
        assert template.variable_schema[0].type == ExpressionType.MONEY
        assert template.variable_schema[0].currency == "EUR"
        assert [line.sequence_number for line in template.lines] == [1, 2]
        assert isinstance(template.lines, tuple)

    def test_corrupt_schema_raises(self):
        orm_template = ORMEntryTemplate(id=1, rule_id=1, variable_schema_json="{oops", lines=[])

        with pytest.raises(RuleEngineError, match="Failed to parse variable schema"):
            entry_template_to_domain(orm_template)


class TestTriggerConditionMapper:
    """Tests for TriggerCondition mapper."""

    def test_trigger_condition_to_domain(self):
        tree = {
            "type": "OR",
            "conditions": [
                {"type": "SIMPLE", "field": "channel", "operator": "NOT_EQUALS", "value": "BRANCH"},
                {"type": "SIMPLE", "field": "channel", "operator": "EQUALS", "value": "ATM"},
            ],
        }
        orm_condition = ORMTriggerCondition(id=4, rule_id=9, condition_json=json.dumps(tree), description="ATM")

        condition = trigger_condition_to_domain(orm_condition)

        assert condition.id == 4
        assert condition.rule_id == 9
        assert condition.description == "ATM"
        assert isinstance(condition.condition, OrCondition)
        assert condition.condition.conditions[0].operator == ConditionOperator.NOT_EQUALS


class TestRuleMapper:
    """Tests for AccountingRule mapper."""

    def test_rule_to_domain(self):
        now = datetime.now(UTC)
        orm_rule = ORMAccountingRule(
            id=1,
            code="DEP-001",
            name="Deposit",
            description=None,
            status="ACTIVE",
            shared_across_scenarios=True,
            current_version=3,
            concurrency_token=5,
            created_at=now,
            updated_at=now,
            created_by="alice",
            updated_by="bob",
        )
        orm_rule.entry_template = ORMEntryTemplate(id=2, variable_schema_json="[]", lines=orm_lines())
        orm_rule.trigger_conditions = [
            ORMTriggerCondition(
                id=3,
                condition_json=json.dumps({"type": "SIMPLE", "field": "a", "operator": "EQUALS", "value": 1}),
            )
        ]

        rule = rule_to_domain(orm_rule)

        assert isinstance(rule, AccountingRule)
        assert rule.status == RuleStatus.ACTIVE
        assert rule.shared_across_scenarios
        assert rule.current_version == 3
        assert rule.concurrency_token == 5
        assert rule.created_at == now
        assert rule.updated_by == "bob"
        assert len(rule.entry_template.lines) == 2
        assert rule.trigger_conditions[0].condition.field == "a"

    def test_rule_without_template(self):
        orm_rule = ORMAccountingRule(
            id=1,
            code="X",
            name="X",
            status="DRAFT",
            shared_across_scenarios=False,
            current_version=1,
            concurrency_token=1,
        )

        rule = rule_to_domain(orm_rule)

        assert rule.entry_template is None
        assert rule.trigger_conditions == ()


class TestRuleVersionMapper:
    """Tests for AccountingRuleVersion mapper."""

    def test_rule_version_to_domain(self):
        now = datetime.now(UTC)
        orm_version = ORMAccountingRuleVersion(
            id=10,
            rule_id=1,
            version_number=2,
            snapshot_json=json.dumps({"code": "X", "name": "Old", "description": "d", "status": "DRAFT"}),
            change_description="Updated rule",
            created_at=now,
            created_by="carol",
        )

        version = rule_version_to_domain(orm_version)

        assert isinstance(version, RuleVersion)
        assert version.version_number == 2
        assert version.snapshot.name == "Old"
        assert version.snapshot.status == "DRAFT"
        assert version.change_description == "Updated rule"
        assert version.created_by == "carol"
