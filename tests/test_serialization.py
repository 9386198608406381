"""Tests for JSON conversion of rule data."""

import json

import pytest

from ledgerrules.domain.entities import (
    AndCondition,
    ConditionOperator,
    EntryType,
    ExpressionType,
    RuleSnapshot,
    SimpleCondition,
)
from ledgerrules.domain.errors import RuleEngineError, RuleValidationError
from ledgerrules.domain.serialization import (
    condition_from_json,
    condition_to_json,
    entry_template_from_dict,
    rule_to_dict,
    schema_from_json,
    schema_to_json,
    snapshot_from_json,
    snapshot_to_json,
    trigger_condition_from_dict,
    variable_from_dict,
)


def test_condition_tree_keeps_unknown_keys():
    raw = {
        "type": "AND",
        "label": "big deposits",
        "conditions": [
            {"type": "SIMPLE", "field": "amount", "operator": "GREATER_THAN", "value": 100, "uiHint": "slider"},
            {
                "type": "OR",
                "conditions": [{"type": "SIMPLE", "field": "currency", "operator": "IN", "value": ["USD", "EUR"]}],
            },
        ],
    }

    node = condition_from_json(json.dumps(raw))

    assert isinstance(node, AndCondition)
    assert node.conditions[0] == SimpleCondition(
        field="amount", operator=ConditionOperator.GREATER_THAN, value=100, extra={"uiHint": "slider"}
    )
    assert json.loads(condition_to_json(node)) == raw


def test_condition_from_json_rejects_bad_json():
    with pytest.raises(RuleEngineError, match="Failed to parse condition"):
        condition_from_json("{not json")


def test_condition_to_json_rejects_unserializable_value():
    node = SimpleCondition(field="a", operator=ConditionOperator.IN, value={1, 2})

    with pytest.raises(RuleEngineError, match="Failed to serialize condition"):
        condition_to_json(node)


def test_variable_schema_round_trip_keeps_extra_keys():
    raw = [
        {"name": "amount", "type": "MONEY", "currency": "USD", "required": True},
        {"name": "customer.tier", "type": "STRING", "description": "Tier name"},
    ]

    schema = schema_from_json(json.dumps(raw))

    assert schema[0].type == ExpressionType.MONEY
    assert schema[0].extra == {"required": True}
    assert schema[1].description == "Tier name"
    assert json.loads(schema_to_json(schema)) == raw
    assert schema_from_json("") == ()


def test_schema_from_json_requires_list():
    with pytest.raises(RuleEngineError, match="expected a JSON list"):
        schema_from_json('{"name": "amount"}')


@pytest.mark.parametrize("name", ["Amount", "1amount", "amount-total", "", None])
def test_variable_name_rules(name):
    with pytest.raises(RuleValidationError, match="Variable name must start with lowercase letter"):
        variable_from_dict({"name": name, "type": "MONEY"})


def test_variable_type_must_be_known():
    with pytest.raises(RuleValidationError, match="Invalid value 'CURRENCY'") as exc_info:
        variable_from_dict({"name": "amount", "type": "CURRENCY"})
    assert exc_info.value.errors[0].field == "variableSchema.type"


def test_entry_template_from_dict_numbers_lines():
    template = entry_template_from_dict(
        {
            "description": "Deposit",
            "variableSchema": [{"name": "amount", "type": "MONEY"}],
            "lines": [
                {"accountCode": "1000", "entryType": "DEBIT", "amountExpression": "amount", "memoTemplate": "m"},
                {"accountCode": "2000", "entryType": "CREDIT", "amountExpression": "amount"},
            ],
        }
    )

    assert [l.sequence_number for l in template.lines] == [1, 2]
    assert template.lines[0].entry_type == EntryType.DEBIT
    assert template.lines[0].memo_template == "m"
    assert template.lines[1].memo_template is None
    assert template.variable_schema[0].name == "amount"


def test_entry_template_from_dict_collects_line_errors():
    with pytest.raises(RuleValidationError, match="Invalid entry template") as exc_info:
        entry_template_from_dict(
            {
                "lines": [
                    {"accountCode": "", "entryType": "DEBIT", "amountExpression": "1"},
                    {"accountCode": "2000", "entryType": "SIDEWAYS", "amountExpression": " "},
                ]
            }
        )

    fields = [e.field for e in exc_info.value.errors]
    assert fields == [
        "entryTemplate.lines[0].accountCode",
        "entryTemplate.lines[1].entryType",
        "entryTemplate.lines[1].amountExpression",
    ]


def test_trigger_condition_from_dict_accepts_alias():
    tree = {"type": "SIMPLE", "field": "eventType", "operator": "EQUALS", "value": "DEPOSIT"}

    by_json_key = trigger_condition_from_dict({"conditionJson": tree, "description": "Deposits"})
    by_alias = trigger_condition_from_dict({"condition": tree})

    assert by_json_key.condition == by_alias.condition
    assert by_json_key.description == "Deposits"
    assert by_alias.description is None


def test_trigger_condition_requires_tree():
    with pytest.raises(RuleValidationError, match="Condition must be an object"):
        trigger_condition_from_dict({"description": "nothing"})


def test_snapshot_round_trip():
    snapshot = RuleSnapshot(code="DEP-001", name="Deposit", description=None, status="DRAFT")

    text = snapshot_to_json(snapshot)

    assert json.loads(text) == {"code": "DEP-001", "name": "Deposit", "description": None, "status": "DRAFT"}
    assert snapshot_from_json(text) == snapshot


def test_snapshot_from_json_requires_object():
    with pytest.raises(RuleEngineError):
        snapshot_from_json("[1, 2]")


def test_rule_to_dict(sample_rule):
    data = rule_to_dict(sample_rule)

    assert data["code"] == "DEP-001"
    assert data["status"] == "DRAFT"
    assert data["currentVersion"] == 1
    assert data["version"] == sample_rule.concurrency_token
    assert data["sharedAcrossScenarios"] is False
    assert [l["entryType"] for l in data["entryTemplate"]["lines"]] == ["DEBIT", "CREDIT"]
    assert data["triggerConditions"][0]["conditionJson"]["field"] == "eventType"
    assert data["triggerConditions"][0]["description"] == "Deposits only"
    json.dumps(data)
