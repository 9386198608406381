"""Conversion between domain entities and their persisted JSON form.

Condition trees, variable schemas and version snapshots are stored as JSON
text and are also read back by client-facing responses, so conversion must be
lossless: keys this module does not know about are kept in each entity's
``extra`` mapping and written back unchanged.
"""

import json
import re
from collections.abc import Mapping
from typing import Any, Optional

from ledgerrules.domain.entities import (
    AccountingRule,
    AndCondition,
    ConditionNode,
    ConditionOperator,
    EntryLine,
    EntryTemplate,
    EntryType,
    ExpressionType,
    OrCondition,
    RuleSnapshot,
    SimpleCondition,
    TriggerCondition,
    VariableDefinition,
)
from ledgerrules.domain.errors import FieldError, RuleEngineError, RuleValidationError

VARIABLE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_.]*$")

_VARIABLE_KEYS = ("name", "type", "currency", "description")
_SIMPLE_KEYS = ("type", "field", "operator", "value")
_COMPOSITE_KEYS = ("type", "conditions")


# Variable schema

def variable_from_dict(data: Mapping[str, Any]) -> VariableDefinition:
    """Build a VariableDefinition, validating its name and type.

    Raises:
        RuleValidationError: If the name or type is missing or invalid
    """
    name = data.get("name")
    if not isinstance(name, str) or not VARIABLE_NAME_PATTERN.match(name):
        raise RuleValidationError.for_field(
            "variableSchema.name",
            "Variable name must start with lowercase letter and contain only lowercase "
            "letters, digits, underscores, and dots",
            None if name is None else str(name),
        )
    var_type = _parse_enum(ExpressionType, data.get("type"), "variableSchema.type")
    return VariableDefinition(
        name=name,
        type=var_type,
        currency=data.get("currency"),
        description=data.get("description"),
        extra=_extra(data, _VARIABLE_KEYS),
    )


def variable_to_dict(variable: VariableDefinition) -> dict[str, Any]:
    data: dict[str, Any] = {"name": variable.name, "type": variable.type.value}
    if variable.currency is not None:
        data["currency"] = variable.currency
    if variable.description is not None:
        data["description"] = variable.description
    data.update(variable.extra)
    return data


def schema_to_json(schema: tuple[VariableDefinition, ...] | list[VariableDefinition]) -> str:
    return _dumps([variable_to_dict(var) for var in schema], "variable schema")


def schema_from_json(text: Optional[str]) -> tuple[VariableDefinition, ...]:
    if text is None or not text.strip():
        return ()
    data = _loads(text, "variable schema")
    if not isinstance(data, list):
        raise RuleEngineError("Failed to parse variable schema: expected a JSON list")
    return tuple(variable_from_dict(item) for item in data)


# Trigger conditions

def condition_from_dict(data: Any, path: str = "condition") -> ConditionNode:
    """Build a condition node from its JSON-shaped form.

    Enforces the tree invariants: composite nodes have a non-empty
    ``conditions`` list, simple nodes have a non-blank ``field`` and a known
    ``operator``.

    Raises:
        RuleValidationError: If the tree is malformed
    """
    if not isinstance(data, Mapping):
        raise RuleValidationError.for_field(path, "Condition must be an object")

    node_type = data.get("type")
    if node_type == SimpleCondition.NODE_TYPE:
        field_name = data.get("field")
        if not isinstance(field_name, str) or not field_name.strip():
            raise RuleValidationError.for_field(f"{path}.field", "Condition field is required")
        operator = _parse_enum(ConditionOperator, data.get("operator"), f"{path}.operator")
        return SimpleCondition(
            field=field_name,
            operator=operator,
            value=data.get("value"),
            extra=_extra(data, _SIMPLE_KEYS),
        )

    if node_type in (AndCondition.NODE_TYPE, OrCondition.NODE_TYPE):
        children = data.get("conditions")
        if not isinstance(children, list) or not children:
            raise RuleValidationError.for_field(
                f"{path}.conditions", f"{node_type} condition requires at least one sub-condition"
            )
        nodes = tuple(
            condition_from_dict(child, f"{path}.conditions[{index}]")
            for index, child in enumerate(children)
        )
        node_class = AndCondition if node_type == AndCondition.NODE_TYPE else OrCondition
        return node_class(conditions=nodes, extra=_extra(data, _COMPOSITE_KEYS))

    raise RuleValidationError.for_field(
        f"{path}.type", f"Unknown condition type: {node_type}", None if node_type is None else str(node_type)
    )


def condition_to_dict(node: ConditionNode) -> dict[str, Any]:
    if isinstance(node, SimpleCondition):
        data: dict[str, Any] = {
            "type": node.NODE_TYPE,
            "field": node.field,
            "operator": node.operator.value,
            "value": node.value,
        }
    else:
        data = {
            "type": node.NODE_TYPE,
            "conditions": [condition_to_dict(child) for child in node.conditions],
        }
    data.update(node.extra)
    return data


def condition_to_json(node: ConditionNode) -> str:
    return _dumps(condition_to_dict(node), "condition")


def condition_from_json(text: str) -> ConditionNode:
    return condition_from_dict(_loads(text, "condition"))


def trigger_condition_from_dict(data: Mapping[str, Any]) -> TriggerCondition:
    """Build a TriggerCondition from ``{"conditionJson": {...}, "description": ...}``.

    ``condition`` is accepted as an alias for ``conditionJson``.
    """
    tree = data.get("conditionJson", data.get("condition"))
    return TriggerCondition(
        condition=condition_from_dict(tree, "conditionJson"),
        description=data.get("description"),
    )


def trigger_condition_to_dict(trigger: TriggerCondition) -> dict[str, Any]:
    return {
        "id": trigger.id,
        "conditionJson": condition_to_dict(trigger.condition),
        "description": trigger.description,
    }


# Entry templates

def entry_template_from_dict(data: Mapping[str, Any]) -> EntryTemplate:
    """Build an EntryTemplate; lines are numbered 1.. in the order given.

    Raises:
        RuleValidationError: If any line or variable is malformed
    """
    schema = tuple(variable_from_dict(var) for var in data.get("variableSchema") or [])
    errors: list[FieldError] = []
    lines = []
    for index, line in enumerate(data.get("lines") or []):
        prefix = f"entryTemplate.lines[{index}]"
        account_code = line.get("accountCode")
        if not isinstance(account_code, str) or not account_code.strip():
            errors.append(FieldError(f"{prefix}.accountCode", "Account code is required"))
        entry_type = line.get("entryType")
        if entry_type not in EntryType.__members__:
            errors.append(
                FieldError(f"{prefix}.entryType", "Entry type must be DEBIT or CREDIT", _as_text(entry_type))
            )
        expression = line.get("amountExpression")
        if not isinstance(expression, str) or not expression.strip():
            errors.append(FieldError(f"{prefix}.amountExpression", "Amount expression is required"))
        if errors:
            continue
        lines.append(
            EntryLine(
                sequence_number=index + 1,
                account_code=account_code,
                entry_type=EntryType(entry_type),
                amount_expression=expression,
                memo_template=line.get("memoTemplate"),
            )
        )
    if errors:
        raise RuleValidationError("Invalid entry template", errors)
    return EntryTemplate(description=data.get("description"), lines=tuple(lines), variable_schema=schema)


def entry_template_to_dict(template: EntryTemplate) -> dict[str, Any]:
    return {
        "id": template.id,
        "description": template.description,
        "variableSchema": [variable_to_dict(var) for var in template.variable_schema],
        "lines": [
            {
                "id": line.id,
                "sequenceNumber": line.sequence_number,
                "accountCode": line.account_code,
                "entryType": line.entry_type.value,
                "amountExpression": line.amount_expression,
                "memoTemplate": line.memo_template,
            }
            for line in template.lines
        ],
    }


def rule_to_dict(rule: AccountingRule) -> dict[str, Any]:
    """Render a rule in the client-facing JSON shape."""
    return {
        "id": rule.id,
        "code": rule.code,
        "name": rule.name,
        "description": rule.description,
        "status": rule.status.value,
        "sharedAcrossScenarios": rule.shared_across_scenarios,
        "currentVersion": rule.current_version,
        "version": rule.concurrency_token,
        "entryTemplate": entry_template_to_dict(rule.entry_template) if rule.entry_template else None,
        "triggerConditions": [trigger_condition_to_dict(t) for t in rule.trigger_conditions],
        "createdAt": rule.created_at.isoformat() if rule.created_at else None,
        "updatedAt": rule.updated_at.isoformat() if rule.updated_at else None,
        "createdBy": rule.created_by,
        "updatedBy": rule.updated_by,
    }


# Version snapshots

def snapshot_to_json(snapshot: RuleSnapshot) -> str:
    return _dumps(
        {
            "code": snapshot.code,
            "name": snapshot.name,
            "description": snapshot.description,
            "status": snapshot.status,
        },
        "version snapshot",
    )


def snapshot_from_json(text: str) -> RuleSnapshot:
    data = _loads(text, "version snapshot")
    if not isinstance(data, Mapping):
        raise RuleEngineError("Failed to parse version snapshot: expected a JSON object")
    return RuleSnapshot(
        code=data.get("code"),
        name=data.get("name"),
        description=data.get("description"),
        status=data.get("status"),
    )


def _parse_enum(enum_class, value: Any, field_path: str):
    try:
        return enum_class(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_class)
        raise RuleValidationError.for_field(
            field_path, f"Invalid value '{value}'; expected one of: {allowed}", _as_text(value)
        ) from None


def _extra(data: Mapping[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if key not in known}


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _dumps(data: Any, what: str) -> str:
    try:
        return json.dumps(data)
    except (TypeError, ValueError) as e:
        raise RuleEngineError(f"Failed to serialize {what}: {e}") from e


def _loads(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise RuleEngineError(f"Failed to parse {what}: {e}") from e
