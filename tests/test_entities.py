"""Tests for domain entities."""

import dataclasses

import pytest

from ledgerrules.domain.entities import (
    AndCondition,
    ConditionOperator,
    EntryLine,
    EntryTemplate,
    EntryType,
    ExpressionType,
    RuleSnapshot,
    SimpleCondition,
    VariableDefinition,
)


def line(seq, entry_type, account="1000"):
    return EntryLine(sequence_number=seq, account_code=account, entry_type=entry_type, amount_expression="amount")


class TestEntryTemplate:
    """Tests for EntryTemplate entity."""

    def test_lines_split_by_side(self):
        template = EntryTemplate(
            lines=(line(1, EntryType.DEBIT), line(2, EntryType.CREDIT, "2000"), line(3, EntryType.DEBIT, "3000"))
        )

        assert [l.account_code for l in template.debit_lines] == ["1000", "3000"]
        assert [l.account_code for l in template.credit_lines] == ["2000"]
        assert template.is_balanced_shape()

    def test_one_sided_template_is_not_balanced_shape(self):
        assert not EntryTemplate(lines=(line(1, EntryType.DEBIT),)).is_balanced_shape()
        assert not EntryTemplate().is_balanced_shape()

    def test_variables_by_name(self):
        amount = VariableDefinition(name="amount", type=ExpressionType.MONEY, currency="USD")
        rate = VariableDefinition(name="rate", type=ExpressionType.DECIMAL)

        template = EntryTemplate(variable_schema=(amount, rate))

        assert template.variables_by_name() == {"amount": amount, "rate": rate}

    def test_template_immutability(self):
        template = EntryTemplate(description="Deposit")

        with pytest.raises(dataclasses.FrozenInstanceError):
            template.description = "Changed"


class TestConditions:
    """Tests for condition node entities."""

    def test_simple_condition_equality_includes_extra(self):
        plain = SimpleCondition(field="amount", operator=ConditionOperator.GREATER_THAN, value=10)
        hinted = SimpleCondition(
            field="amount", operator=ConditionOperator.GREATER_THAN, value=10, extra={"uiHint": "slider"}
        )

        assert plain == SimpleCondition(field="amount", operator=ConditionOperator.GREATER_THAN, value=10)
        assert plain != hinted

    def test_composite_holds_children(self):
        leaf = SimpleCondition(field="a", operator=ConditionOperator.EQUALS, value=1)

        node = AndCondition(conditions=(leaf, leaf))

        assert node.NODE_TYPE == "AND"
        assert node.conditions == (leaf, leaf)


def test_enums_compare_to_strings():
    assert EntryType.DEBIT == "DEBIT"
    assert ExpressionType("MONEY") is ExpressionType.MONEY


def test_snapshot_is_frozen():
    snapshot = RuleSnapshot(code="A", name="B", description=None, status="DRAFT")

    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.name = "C"
