"""Rule simulation (dry-run) service."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from ledgerrules.database.base import Database
from ledgerrules.domain import conditions
from ledgerrules.domain.entities import AccountingRule, EntryLine, EntryTemplate, EntryType
from ledgerrules.domain.errors import ExpressionParseError, RuleNotFoundError, rule_not_found
from ledgerrules.domain.expression import evaluate_expression, expression_currency
from ledgerrules.utils.values import flatten_mapping, to_text

logger = logging.getLogger(__name__)

NOT_FIRED_FALLBACK_REASON = "Trigger conditions not met"
UNBALANCED_WARNING = "Total debits do not equal total credits"


@dataclass(frozen=True)
class SimulatedEntry:
    """One entry line as it would be posted for the simulated event."""

    sequence_number: int
    account_code: str
    account_name: str
    entry_type: EntryType
    amount: Decimal
    currency: str
    memo: Optional[str]


@dataclass
class SimulationResult:
    """Outcome of simulating a rule against one event."""

    would_fire: bool
    reason_not_fired: Optional[str] = None
    entries: list[SimulatedEntry] = field(default_factory=list)
    total_debits: Decimal = Decimal(0)
    total_credits: Decimal = Decimal(0)
    balanced: bool = True
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @classmethod
    def not_fired(cls, reason: str) -> "SimulationResult":
        return cls(would_fire=False, reason_not_fired=reason)

    @classmethod
    def fired(cls, entries: list[SimulatedEntry], warnings: Optional[list[str]] = None) -> "SimulationResult":
        total_debits = sum(
            (entry.amount for entry in entries if entry.entry_type == EntryType.DEBIT), Decimal(0)
        )
        total_credits = sum(
            (entry.amount for entry in entries if entry.entry_type == EntryType.CREDIT), Decimal(0)
        )
        return cls(
            would_fire=True,
            entries=entries,
            total_debits=total_debits,
            total_credits=total_credits,
            balanced=total_debits == total_credits,
            warnings=list(warnings or []),
        )


class RuleSimulationService:
    """Service for dry-running rules against sample event data."""

    def __init__(self, db: Database):
        """Initialize simulation service.

        Args:
            db: Database instance
        """
        self.db = db

    def simulate(self, rule: AccountingRule, event_data: Optional[Mapping[str, Any]]) -> SimulationResult:
        """Simulate a rule firing for one event.

        The rule's persisted trigger conditions gate firing. When they match,
        every entry line's amount is evaluated against the event data; a line
        whose amount cannot be evaluated contributes zero and a warning.

        Args:
            rule: Rule to simulate
            event_data: Nested event payload

        Returns:
            SimulationResult; an unbalanced result carries a warning, not an error
        """
        logger.info("Simulating rule %s with event data", rule.code)
        event_data = event_data or {}

        triggers = self.db.list_trigger_conditions(rule.id)
        if triggers:
            evaluation = conditions.evaluate_all(triggers, event_data)
            if not evaluation.matches:
                return SimulationResult.not_fired(evaluation.reason or NOT_FIRED_FALLBACK_REASON)

        warnings: list[str] = []
        entries = self._simulate_entries(rule.entry_template, event_data, warnings)
        result = SimulationResult.fired(entries, warnings)
        if not result.balanced:
            result.warnings.append(UNBALANCED_WARNING)
        return result

    def simulate_rule(self, rule_id: int, event_data: Optional[Mapping[str, Any]]) -> SimulationResult:
        """Load a rule by ID and simulate it.

        Raises:
            RuleNotFoundError: If the rule does not exist
        """
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_not_found(rule_id))
        return self.simulate(rule, event_data)

    def _simulate_entries(
        self, template: Optional[EntryTemplate], event_data: Mapping[str, Any], warnings: list[str]
    ) -> list[SimulatedEntry]:
        if template is None:
            return []

        entries = []
        for line in template.lines:
            entries.append(
                SimulatedEntry(
                    sequence_number=line.sequence_number,
                    account_code=line.account_code,
                    account_name=f"Account {line.account_code}",
                    entry_type=line.entry_type,
                    amount=self._evaluate_amount(line, event_data, warnings),
                    currency=expression_currency(line.amount_expression, template.variables_by_name()),
                    memo=resolve_memo(line.memo_template, event_data),
                )
            )
        return entries

    def _evaluate_amount(self, line: EntryLine, event_data: Mapping[str, Any], warnings: list[str]) -> Decimal:
        expression = line.amount_expression
        if expression is None or not expression.strip():
            return Decimal(0)
        try:
            return evaluate_expression(expression, event_data)
        except ExpressionParseError as e:
            logger.warning("Failed to evaluate expression '%s': %s", expression, e)
            warnings.append(f"Line {line.sequence_number}: could not evaluate '{expression}' ({e}); using 0")
            return Decimal(0)


def resolve_memo(template: Optional[str], event_data: Mapping[str, Any]) -> Optional[str]:
    """Fill ``${field}`` and ``{field}`` placeholders from event data.

    Nested values are addressable by dotted path (``{customer.name}``).
    """
    if template is None or not template.strip():
        return None

    values = dict(event_data)
    values.update(flatten_mapping(event_data))
    result = template
    for key, value in values.items():
        text = to_text(value)
        for placeholder in (f"${{{key}}}", f"{{{key}}}"):
            if placeholder in result:
                result = result.replace(placeholder, text)
    return result
