"""Reading rule definitions, event data and variable values from CLI input."""

import json
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from ledgerrules.domain.entities import EntryTemplate, ExpressionType, TriggerCondition, VariableDefinition
from ledgerrules.domain.errors import RuleValidationError, ValidationError
from ledgerrules.domain.serialization import entry_template_from_dict, trigger_condition_from_dict
from ledgerrules.utils.values import to_decimal


def load_json_file(path: str) -> Any:
    """Read a JSON document from a file.

    Raises:
        ValidationError: If the file is not valid JSON
    """
    with open(path, encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {path}: {e}") from e


def load_json_object(path: str) -> dict[str, Any]:
    """Read a JSON object (not an array or scalar) from a file."""
    data = load_json_file(path)
    if not isinstance(data, Mapping):
        raise ValidationError(f"Expected a JSON object in {path}")
    return dict(data)


def parse_rule_payload(data: Mapping[str, Any]) -> dict[str, Any]:
    """Turn a client-shaped rule document into AccountingRuleService keyword arguments.

    Only keys present in the document are returned, so the result also works
    as a partial update.

    Raises:
        RuleValidationError: If the template or a condition is malformed
    """
    kwargs: dict[str, Any] = {}
    for key, arg in (("code", "code"), ("name", "name"), ("description", "description")):
        if key in data:
            kwargs[arg] = data[key]
    if data.get("sharedAcrossScenarios") is not None:
        kwargs["shared_across_scenarios"] = bool(data["sharedAcrossScenarios"])
    if data.get("entryTemplate") is not None:
        kwargs["entry_template"] = parse_entry_template(data["entryTemplate"])
    if data.get("triggerConditions") is not None:
        kwargs["trigger_conditions"] = parse_trigger_conditions(data["triggerConditions"])
    return kwargs


def parse_entry_template(data: Any) -> EntryTemplate:
    if not isinstance(data, Mapping):
        raise RuleValidationError.for_field("entryTemplate", "Entry template must be a JSON object")
    return entry_template_from_dict(data)


def parse_trigger_conditions(data: Any) -> list[TriggerCondition]:
    if not isinstance(data, list):
        raise RuleValidationError.for_field("triggerConditions", "Trigger conditions must be a JSON array")
    conditions = []
    for index, item in enumerate(data):
        if not isinstance(item, Mapping):
            raise RuleValidationError.for_field(
                f"triggerConditions[{index}]", "Trigger condition must be a JSON object"
            )
        conditions.append(trigger_condition_from_dict(item))
    return conditions


def parse_variable_option(spec: str) -> VariableDefinition:
    """Parse ``name:TYPE`` or ``name:MONEY:CUR`` into a variable definition."""
    parts = spec.split(":")
    if len(parts) not in (2, 3) or not parts[0]:
        raise ValidationError(f"Invalid variable '{spec}'; expected NAME:TYPE[:CURRENCY]")
    name, type_name = parts[0], parts[1].upper()
    try:
        var_type = ExpressionType(type_name)
    except ValueError:
        allowed = ", ".join(t.value for t in ExpressionType)
        raise ValidationError(f"Invalid variable type '{parts[1]}'; expected one of: {allowed}") from None
    currency: Optional[str] = parts[2] if len(parts) == 3 else None
    return VariableDefinition(name=name, type=var_type, currency=currency)


def parse_value_option(spec: str) -> tuple[str, Decimal]:
    """Parse ``name=number`` into a variable value."""
    name, sep, raw = spec.partition("=")
    value = to_decimal(raw) if sep else None
    if not name or value is None:
        raise ValidationError(f"Invalid value '{spec}'; expected NAME=NUMBER")
    return name, value
