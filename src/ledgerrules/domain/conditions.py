"""Trigger condition evaluation.

Conditions are trees of SIMPLE leaves joined by AND/OR nodes, evaluated
against arbitrary nested event data. Field names are dotted paths into that
data (``transaction.amount``). Values that both parse as decimals compare
numerically; anything else compares by its string form.
"""

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from ledgerrules.domain.entities import (
    AndCondition,
    ConditionNode,
    ConditionOperator,
    OrCondition,
    SimpleCondition,
    TriggerCondition,
)
from ledgerrules.domain.errors import RuleValidationError
from ledgerrules.domain.serialization import condition_from_dict
from ledgerrules.utils.values import resolve_path, to_decimal, to_text

logger = logging.getLogger(__name__)

NULL_TOLERANT_OPERATORS = frozenset({ConditionOperator.NOT_EQUALS, ConditionOperator.NOT_IN})
ORDERING_OPERATORS = frozenset(
    {
        ConditionOperator.GREATER_THAN,
        ConditionOperator.GREATER_THAN_OR_EQUALS,
        ConditionOperator.LESS_THAN,
        ConditionOperator.LESS_THAN_OR_EQUALS,
    }
)

OPERATOR_SYMBOLS = {
    ConditionOperator.EQUALS: "=",
    ConditionOperator.NOT_EQUALS: "!=",
    ConditionOperator.GREATER_THAN: ">",
    ConditionOperator.GREATER_THAN_OR_EQUALS: ">=",
    ConditionOperator.LESS_THAN: "<",
    ConditionOperator.LESS_THAN_OR_EQUALS: "<=",
    ConditionOperator.CONTAINS: "contains",
    ConditionOperator.MATCHES: "matches",
    ConditionOperator.IN: "in",
    ConditionOperator.NOT_IN: "not in",
}


@dataclass(frozen=True)
class EvaluationResult:
    """Whether a condition matched, and why not when it did not."""

    matches: bool
    reason: Optional[str] = None


def evaluate_node(node: ConditionNode, event_data: Optional[Mapping[str, Any]]) -> bool:
    """Evaluate a single condition tree against event data."""
    if isinstance(node, SimpleCondition):
        return _evaluate_simple(node, event_data)
    if isinstance(node, AndCondition):
        return all(evaluate_node(child, event_data) for child in node.conditions)
    if isinstance(node, OrCondition):
        return any(evaluate_node(child, event_data) for child in node.conditions)
    raise TypeError(f"Unknown condition node: {type(node).__name__}")


def evaluate(trigger: TriggerCondition, event_data: Optional[Mapping[str, Any]]) -> EvaluationResult:
    """Evaluate one trigger condition, explaining a failed match."""
    if evaluate_node(trigger.condition, event_data):
        return EvaluationResult(matches=True)
    label = trigger.description or to_human_readable(trigger.condition)
    return EvaluationResult(matches=False, reason=f"Condition not met: {label}")


def evaluate_all(
    triggers: Optional[Sequence[TriggerCondition]], event_data: Optional[Mapping[str, Any]]
) -> EvaluationResult:
    """AND together a rule's trigger conditions.

    An empty or missing list matches. Otherwise evaluation stops at the first
    condition that does not match and that condition's result is returned.
    """
    if not triggers:
        return EvaluationResult(matches=True)

    for trigger in triggers:
        result = evaluate(trigger, event_data)
        if not result.matches:
            return result
    return EvaluationResult(matches=True)


def validate_condition_dict(data: Any) -> list[str]:
    """Check a raw JSON-shaped condition tree.

    Returns:
        List of error messages (empty if the tree is valid)
    """
    try:
        condition_from_dict(data)
    except RuleValidationError as e:
        return [f"{error.field}: {error.message}" for error in e.errors] or [str(e)]
    return []


def to_human_readable(node: ConditionNode) -> str:
    """Render a condition tree as text, e.g. ``(amount > 100 AND currency = "USD")``."""
    if isinstance(node, SimpleCondition):
        symbol = OPERATOR_SYMBOLS.get(node.operator, node.operator.value)
        return f"{node.field} {symbol} {_format_value(node.value)}"
    joiner = f" {node.NODE_TYPE} "
    return "(" + joiner.join(to_human_readable(child) for child in node.conditions) + ")"


def _evaluate_simple(node: SimpleCondition, event_data: Optional[Mapping[str, Any]]) -> bool:
    actual = resolve_path(event_data, node.field)
    if actual is None and node.operator not in NULL_TOLERANT_OPERATORS:
        return False

    expected = node.value
    operator = node.operator

    if operator in ORDERING_OPERATORS and expected is None:
        return False
    if operator == ConditionOperator.EQUALS:
        return _equals(actual, expected)
    if operator == ConditionOperator.NOT_EQUALS:
        return not _equals(actual, expected)
    if operator == ConditionOperator.GREATER_THAN:
        return _compare(actual, expected) > 0
    if operator == ConditionOperator.GREATER_THAN_OR_EQUALS:
        return _compare(actual, expected) >= 0
    if operator == ConditionOperator.LESS_THAN:
        return _compare(actual, expected) < 0
    if operator == ConditionOperator.LESS_THAN_OR_EQUALS:
        return _compare(actual, expected) <= 0
    if operator == ConditionOperator.CONTAINS:
        return expected is not None and to_text(expected) in to_text(actual)
    if operator == ConditionOperator.MATCHES:
        return _matches(actual, expected)
    if operator == ConditionOperator.IN:
        return _is_in(actual, expected)
    if operator == ConditionOperator.NOT_IN:
        return not _is_in(actual, expected)
    return False


def _equals(actual: Any, expected: Any) -> bool:
    if actual is None and expected is None:
        return True
    if actual is None or expected is None:
        return False
    actual_number = to_decimal(actual)
    expected_number = to_decimal(expected)
    if actual_number is not None and expected_number is not None:
        return actual_number == expected_number
    return to_text(actual) == to_text(expected)


def _compare(actual: Any, expected: Any) -> int:
    actual_number = to_decimal(actual)
    expected_number = to_decimal(expected)
    if actual_number is not None and expected_number is not None:
        left, right = actual_number, expected_number
    else:
        left, right = to_text(actual), to_text(expected)
    return (left > right) - (left < right)


def _matches(actual: Any, expected: Any) -> bool:
    if expected is None:
        return False
    try:
        return re.fullmatch(to_text(expected), to_text(actual)) is not None
    except re.error:
        logger.warning("Invalid regex pattern: %s", expected)
        return False


def _is_in(actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return False
    if isinstance(expected, (list, tuple)):
        return any(_equals(actual, item) for item in expected)
    return _equals(actual, expected)


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_value(item) for item in value) + "]"
    return to_text(value)
