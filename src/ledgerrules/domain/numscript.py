"""Numscript generation and static validation.

The generator turns a rule's entry template into a ledger transfer script:

    vars {
      monetary $amount
    }

    send [
      USD $amount
    ] (
      source = {
        @account:2000
      }
      destination = {
        @account:1000
      }
    )

``source`` lists the CREDIT accounts and ``destination`` the DEBIT accounts.
That labeling is inverted relative to the usual debit/credit reading and is
kept as-is because existing exports rely on it.

The validator is a structural and lexical checker, not a full parser.
"""

import logging
import re
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from typing import Optional

from ledgerrules.domain.entities import AccountingRule, EntryLine, EntryTemplate, ExpressionType, VariableDefinition
from ledgerrules.domain.errors import NumscriptGenerationError
from ledgerrules.domain.expression import KEYWORDS, VARIABLE_PATTERN, expression_currency

logger = logging.getLogger(__name__)

VARIABLE_SIGIL = "$"
ACCOUNT_NAMESPACE = "@account:"
UNKNOWN_ACCOUNT = "@unknown"
RESERVED_ACCOUNTS = frozenset({"world"})

NUMSCRIPT_TYPES = {
    ExpressionType.MONEY: "monetary",
    ExpressionType.DECIMAL: "number",
    ExpressionType.BOOLEAN: "boolean",
    ExpressionType.STRING: "string",
}
VALID_TYPES = frozenset(NUMSCRIPT_TYPES.values())

_VARS_BLOCK = re.compile(r"vars\s*\{[^}]*\}", re.DOTALL)
_SEND_BLOCK = re.compile(r"send\s*\[[^\]]*\]\s*\([^)]*\)", re.DOTALL)
_VARIABLE_DECL = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)\s+\$([a-zA-Z_][a-zA-Z0-9_]*)")
_VARIABLE_REF = re.compile(r"\$([a-zA-Z_][a-zA-Z0-9_]*)")
_ACCOUNT_REF = re.compile(r"@([a-zA-Z_][a-zA-Z0-9_:]*)?")
_SIGIL_ON_NUMBER = re.compile(r"\$([0-9])")

_PAIRS = (("{", "}", "braces"), ("(", ")", "parentheses"), ("[", "]", "brackets"))


@dataclass
class ValidationResult:
    """Errors and warnings collected while checking a script."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    @classmethod
    def failure(cls, *errors: str) -> "ValidationResult":
        return cls(errors=list(errors))


@dataclass(frozen=True)
class GenerationResult:
    """Generated script text bundled with the validator's verdict on it."""

    numscript: Optional[str]
    validation: ValidationResult

    @property
    def valid(self) -> bool:
        return self.numscript is not None and self.validation.valid


# Generation

def generate(rule: AccountingRule) -> GenerationResult:
    """Generate and validate the Numscript for a rule.

    Missing templates, empty templates and one-sided templates produce a
    failed result with no script rather than an exception.
    """
    logger.info("Generating Numscript for rule: %s", rule.code)

    template = rule.entry_template
    if template is None:
        return GenerationResult(None, ValidationResult.failure("Rule has no entry template"))
    if not template.lines:
        return GenerationResult(None, ValidationResult.failure("Entry template has no lines"))

    try:
        script = build_numscript(template)
    except NumscriptGenerationError as e:
        logger.error("Failed to generate Numscript for rule %s: %s", rule.code, e)
        return GenerationResult(None, ValidationResult.failure(f"Generation failed: {e}"))

    return GenerationResult(script, validate(script))


def build_numscript(template: EntryTemplate) -> str:
    """Render the script text for an entry template.

    Raises:
        NumscriptGenerationError: If the template lacks a debit or a credit line
    """
    parts = []
    if template.variable_schema:
        parts.append(_variables_block(template.variable_schema))
        parts.append("\n")
    parts.append(_send_block(template))
    return "".join(parts)


def translate_expression(expression: Optional[str]) -> str:
    """Prefix every variable in an amount expression with the script sigil."""
    if expression is None or not expression.strip():
        return "0"

    def _replace(match: re.Match) -> str:
        token = match.group()
        if token in KEYWORDS:
            return token
        return VARIABLE_SIGIL + variable_name(token)

    translated = VARIABLE_PATTERN.sub(_replace, expression)
    return _SIGIL_ON_NUMBER.sub(r"\1", translated)


def account_path(account_code: Optional[str]) -> str:
    """Map an account code to its ledger path (``1000-A`` -> ``@account:1000_a``)."""
    if account_code is None or not account_code.strip():
        return UNKNOWN_ACCOUNT
    return ACCOUNT_NAMESPACE + _normalize_code(account_code)


def variable_name(name: Optional[str]) -> str:
    if name is None:
        return "unknown"
    return name.replace(".", "_")


def _variables_block(schema: Iterable[VariableDefinition]) -> str:
    lines = ["vars {\n"]
    for variable in schema:
        lines.append(f"  {NUMSCRIPT_TYPES[variable.type]} {VARIABLE_SIGIL}{variable_name(variable.name)}\n")
    lines.append("}\n")
    return "".join(lines)


def _send_block(template: EntryTemplate) -> str:
    if not template.is_balanced_shape():
        raise NumscriptGenerationError("Entry template must have at least one debit and one credit line")

    debits = template.debit_lines
    credits = template.credit_lines
    lines = ["send [\n"]
    for debit in debits:
        lines.append(f"  {_line_asset(debit, template)} {translate_expression(debit.amount_expression)}\n")
    lines.append("] (\n")
    lines.append("  source = {\n")
    for credit in credits:
        lines.append(f"    {account_path(credit.account_code)}\n")
    lines.append("  }\n")
    lines.append("  destination = {\n")
    for debit in debits:
        lines.append(f"    {account_path(debit.account_code)}\n")
    lines.append("  }\n")
    lines.append(")\n")
    return "".join(lines)


def _line_asset(line: EntryLine, template: EntryTemplate) -> str:
    return expression_currency(line.amount_expression, template.variables_by_name())


def _normalize_code(account_code: str) -> str:
    return account_code.lower().replace("-", "_")


# Validation

def validate(numscript: Optional[str]) -> ValidationResult:
    """Statically check script text.

    Structural problems (no send block, unbalanced delimiters) stop the
    check early. Otherwise declarations, account references and spacing are
    inspected; undeclared variables and odd spacing are warnings only.
    """
    result = ValidationResult()

    if numscript is None or not numscript.strip():
        result.add_error("Numscript cannot be empty")
        return result

    _check_structure(numscript, result)
    if result.valid:
        _check_variables(numscript, result)
        _check_accounts(numscript, result)
        _check_style(numscript, result)

    logger.debug(
        "Numscript validation result: valid=%s, errors=%d, warnings=%d",
        result.valid,
        len(result.errors),
        len(result.warnings),
    )
    return result


def validate_account_references(numscript: str, valid_accounts: Optional[Collection[str]]) -> ValidationResult:
    """Warn about account references outside the reserved set and the allow-list.

    Allow-list entries are matched after the same normalization the
    generator applies (lower case, hyphens to underscores). A None allow-list
    disables the check.
    """
    result = ValidationResult()
    if valid_accounts is None:
        return result

    allowed = {_normalize_code(code) for code in valid_accounts}
    for match in _ACCOUNT_REF.finditer(numscript or ""):
        account = match.group(1)
        if not account:
            continue
        code = account.split(":")[-1]
        if code not in RESERVED_ACCOUNTS and code not in allowed:
            result.add_warning(f"Account reference may not exist: @{account}")
    return result


def _check_structure(numscript: str, result: ValidationResult) -> None:
    if not _SEND_BLOCK.search(numscript):
        result.add_error("Numscript must contain at least one 'send' statement")

    for opening, closing, label in _PAIRS:
        open_count = numscript.count(opening)
        close_count = numscript.count(closing)
        if open_count != close_count:
            result.add_error(
                f"Mismatched {label}: {open_count} '{opening}' vs {close_count} '{closing}'"
            )


def _check_variables(numscript: str, result: ValidationResult) -> None:
    vars_blocks = [match.group() for match in _VARS_BLOCK.finditer(numscript)]

    declared: set[str] = set()
    for block in vars_blocks:
        body = block[block.index("{") + 1:]
        for match in _VARIABLE_DECL.finditer(body):
            var_type, name = match.group(1), match.group(2)
            if var_type not in VALID_TYPES:
                result.add_error(f"Invalid variable type: {var_type}")
            if name in declared:
                result.add_error(f"Duplicate variable declaration: ${name}")
            declared.add(name)

    referenced = set(_VARIABLE_REF.findall(numscript))
    for name in sorted(referenced - declared):
        if not any(f"{VARIABLE_SIGIL}{name}" in block for block in vars_blocks):
            result.add_warning(f"Variable ${name} may not be declared")


def _check_accounts(numscript: str, result: ValidationResult) -> None:
    for match in _ACCOUNT_REF.finditer(numscript):
        if not match.group(1):
            result.add_error("Empty account reference found")


def _check_style(numscript: str, result: ValidationResult) -> None:
    for number, raw_line in enumerate(numscript.split("\n"), start=1):
        line = raw_line.strip()
        if not line or line.startswith("//"):
            continue
        if "  " in line:
            result.add_warning(f"Line {number}: Multiple consecutive spaces detected")
