"""Amount expression engine.

Amount expressions are small arithmetic formulas over the variables declared
in an entry template, e.g. ``principal * rate + fee``. Variables match
``[a-z][a-z0-9_.]*`` (``true``/``false``/``null`` are keywords), numbers match
``-?digits(.digits)?``, operators are ``+ - * /`` and ``()`` groups.

Evaluation applies operators strictly in the order they appear: there is no
multiplication-before-addition precedence, so ``2 + 3 * 4`` is 20. Existing
rules depend on this, so do not change it. A ``-`` that follows another
operator replaces it instead of negating the next number, so ``10 - -5`` is 5
and ``2 * -3`` is -1. Division is rounded half-up to 10 fractional digits.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Optional, Union

from ledgerrules.domain.entities import ExpressionType, VariableDefinition
from ledgerrules.domain.errors import ExpressionParseError
from ledgerrules.utils.values import flatten_mapping, is_number, to_decimal

VARIABLE_PATTERN = re.compile(r"[a-z][a-z0-9_.]*")
NUMBER_PATTERN = re.compile(r"-?\d+(\.\d+)?")
KEYWORDS = frozenset({"true", "false", "null"})
OPERATORS = frozenset("+-*/")

DEFAULT_CURRENCY = "USD"
DIVISION_SCALE = 10
_DIVISION_QUANTUM = Decimal(1).scaleb(-DIVISION_SCALE)
_WORKING_PRECISION = 100

_NUMBER_RUN = re.compile(r"\d[\d.]*")
_UNRESOLVED_TOKEN = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")

Schema = Union[Iterable[VariableDefinition], Mapping[str, VariableDefinition], None]


@dataclass(frozen=True)
class ExpressionValidationResult:
    """Outcome of validating one expression against a variable schema."""

    valid: bool
    parsed_type: Optional[ExpressionType]
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def extract_variables(expression: str) -> set[str]:
    """Return the identifier tokens referenced by an expression (keywords excluded)."""
    return {
        token
        for token in VARIABLE_PATTERN.findall(expression or "")
        if token.lower() not in KEYWORDS
    }


def validate_expression(expression: Optional[str], schema: Schema = None) -> ExpressionValidationResult:
    """Validate an expression's syntax and its variables against a schema.

    Variables missing from the schema produce warnings, not errors.

    Args:
        expression: Expression text
        schema: Variable definitions available to the expression

    Returns:
        ExpressionValidationResult with inferred type, errors and warnings
    """
    if expression is None or not expression.strip():
        return ExpressionValidationResult(
            valid=False, parsed_type=None, errors=["Expression cannot be empty"]
        )

    errors: list[str] = []
    warnings: list[str] = []
    schema_map = _schema_map(schema)

    variables = extract_variables(expression)
    for name in sorted(variables):
        if name not in schema_map:
            warnings.append(f"Variable '{name}' is not defined in the schema")

    parsed_type = _infer_type(variables, schema_map)

    try:
        check_syntax(expression)
    except ExpressionParseError as e:
        errors.append(str(e))

    return ExpressionValidationResult(
        valid=not errors, parsed_type=parsed_type, errors=errors, warnings=warnings
    )


def get_type(expression: str, schema: Schema = None) -> ExpressionType:
    """Infer the result type of an expression from the variables it references."""
    return _infer_type(extract_variables(expression), _schema_map(schema))


def expression_currency(expression: str, schema: Schema = None, default: str = DEFAULT_CURRENCY) -> str:
    """Return the currency of the first MONEY variable in the expression that declares one."""
    schema_map = _schema_map(schema)
    for token in VARIABLE_PATTERN.findall(expression or ""):
        definition = schema_map.get(token)
        if definition is not None and definition.type == ExpressionType.MONEY and definition.currency:
            return definition.currency
    return default


def check_syntax(expression: str) -> None:
    """Check parentheses, operator placement and token shapes.

    Raises:
        ExpressionParseError: On the first syntax violation, with its position
    """
    text = expression.strip()
    depth = 0
    last_was_operator = True
    i = 0

    while i < len(text):
        char = text[i]

        if char.isspace():
            i += 1
        elif char == "(":
            depth += 1
            last_was_operator = True
            i += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ExpressionParseError("Unmatched closing parenthesis", expression, i)
            last_was_operator = False
            i += 1
        elif char in OPERATORS:
            if last_was_operator and char != "-":
                raise ExpressionParseError("Unexpected operator", expression, i, "operand")
            last_was_operator = True
            i += 1
        elif char.isdigit() or char == ".":
            start = i
            while i < len(text) and (text[i].isdigit() or text[i] == "."):
                i += 1
            if not NUMBER_PATTERN.fullmatch(text[start:i]):
                raise ExpressionParseError(f"Invalid number '{text[start:i]}'", expression, start)
            last_was_operator = False
        elif char.isalpha() or char == "_":
            start = i
            while i < len(text) and (text[i].isalnum() or text[i] in "_."):
                i += 1
            token = text[start:i]
            if not VARIABLE_PATTERN.fullmatch(token):
                raise ExpressionParseError(f"Invalid variable name '{token}'", expression, start)
            if token in KEYWORDS:
                raise ExpressionParseError(f"Unexpected keyword '{token}'", expression, start, "operand")
            last_was_operator = False
        else:
            raise ExpressionParseError(f"Invalid character: {char}", expression, i)

    if depth != 0:
        raise ExpressionParseError("Unmatched opening parenthesis", expression, len(expression) - 1)

    if last_was_operator:
        raise ExpressionParseError(
            "Expression ends with operator", expression, len(expression) - 1, "operand"
        )


def substitute_variables(expression: str, variable_values: Optional[Mapping[str, Any]]) -> str:
    """Replace known numeric variables in the expression text with their values.

    Nested mappings are addressable by dotted name (``event.amount``). Longer
    names are replaced first so ``ab`` is never corrupted by a value for ``a``.
    """
    values = _numeric_values(variable_values or {})
    result = expression
    for name in sorted(values, key=len, reverse=True):
        result = result.replace(name, values[name])
    return result


def evaluate_expression(expression: str, variable_values: Optional[Mapping[str, Any]] = None) -> Decimal:
    """Evaluate an expression with the given variable values.

    Args:
        expression: Expression text
        variable_values: Variable name to value mapping (nested mappings allowed)

    Returns:
        Decimal result

    Raises:
        ExpressionParseError: If the expression is empty, references a variable
            with no numeric value, divides by zero or cannot be parsed
    """
    if expression is None or not expression.strip():
        raise ExpressionParseError("Expression cannot be empty", expression)

    resolved = substitute_variables(expression, variable_values)
    leftover = _UNRESOLVED_TOKEN.search(resolved)
    if leftover is not None:
        raise ExpressionParseError(
            f"Unresolved variable '{leftover.group()}'", expression, leftover.start()
        )

    compact = re.sub(r"\s+", "", resolved)
    try:
        with localcontext() as ctx:
            ctx.prec = _WORKING_PRECISION
            value, _ = _evaluate_group(compact, 0, expression)
    except ArithmeticError as e:
        raise ExpressionParseError(f"Failed to evaluate expression: {e!r}", expression) from e
    return value


def _evaluate_group(text: str, start: int, expression: str) -> tuple[Decimal, int]:
    # Single left-to-right pass: running accumulator plus the pending operator.
    result = Decimal(0)
    operator = "+"
    i = start

    while i < len(text):
        char = text[i]
        if char == "(":
            inner, i = _evaluate_group(text, i + 1, expression)
            result = _apply(result, inner, operator, expression)
        elif char == ")":
            return result, i + 1
        elif char in OPERATORS:
            # A leading "-5" is 0 - 5
            operator = char
            i += 1
        elif char.isdigit():
            match = _NUMBER_RUN.match(text, i)
            result = _apply(result, Decimal(match.group()), operator, expression)
            i = match.end()
        else:
            i += 1

    return result, i


def _apply(left: Decimal, right: Decimal, operator: str, expression: str) -> Decimal:
    if operator == "+":
        return left + right
    if operator == "-":
        return left - right
    if operator == "*":
        return left * right
    if operator == "/":
        if right == 0:
            raise ExpressionParseError("Division by zero", expression)
        # Enough digits for the whole integer part plus the fixed scale
        with localcontext() as ctx:
            ctx.prec = max(_WORKING_PRECISION, left.adjusted() - right.adjusted() + DIVISION_SCALE + 3)
            return (left / right).quantize(_DIVISION_QUANTUM, rounding=ROUND_HALF_UP)
    return right


def _numeric_values(variable_values: Mapping[str, Any]) -> dict[str, str]:
    candidates = dict(variable_values)
    candidates.update(flatten_mapping(variable_values))
    values = {}
    for name, value in candidates.items():
        number = to_decimal(value) if is_number(value) else None
        if number is not None:
            values[name] = format(number, "f")
    return values


def _schema_map(schema: Schema) -> dict[str, VariableDefinition]:
    if schema is None:
        return {}
    if isinstance(schema, Mapping):
        return dict(schema)
    return {definition.name: definition for definition in schema}


def _infer_type(variables: set[str], schema_map: Mapping[str, VariableDefinition]) -> ExpressionType:
    declared = [schema_map[name].type for name in variables if name in schema_map]
    if ExpressionType.MONEY in declared:
        return ExpressionType.MONEY
    return ExpressionType.DECIMAL
