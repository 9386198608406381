"""Domain model entities for ledgerrules.

These are pure data classes representing business concepts, independent of
database schema. Trigger conditions are a tagged union of node classes and
variable schemas are concrete records; both keep unrecognised keys from their
persisted JSON form in ``extra`` so they round-trip without loss.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union


class ExpressionType(str, Enum):
    MONEY = "MONEY"
    DECIMAL = "DECIMAL"
    BOOLEAN = "BOOLEAN"
    STRING = "STRING"


class EntryType(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class RuleStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class ConditionOperator(str, Enum):
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUALS = "GREATER_THAN_OR_EQUALS"
    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUALS = "LESS_THAN_OR_EQUALS"
    CONTAINS = "CONTAINS"
    MATCHES = "MATCHES"
    IN = "IN"
    NOT_IN = "NOT_IN"


@dataclass(frozen=True)
class VariableDefinition:
    """Typed variable available to the amount expressions of one template."""

    name: str
    type: ExpressionType
    currency: Optional[str] = None
    description: Optional[str] = None
    extra: dict[str, Any] = dataclasses.field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class SimpleCondition:
    """Leaf condition comparing one event-data field against a value."""

    NODE_TYPE: ClassVar[str] = "SIMPLE"

    field: str
    operator: ConditionOperator
    value: Any = dataclasses.field(default=None, hash=False)
    extra: dict[str, Any] = dataclasses.field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class AndCondition:
    """True iff every child condition is true."""

    NODE_TYPE: ClassVar[str] = "AND"

    conditions: tuple["ConditionNode", ...]
    extra: dict[str, Any] = dataclasses.field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class OrCondition:
    """True iff at least one child condition is true."""

    NODE_TYPE: ClassVar[str] = "OR"

    conditions: tuple["ConditionNode", ...]
    extra: dict[str, Any] = dataclasses.field(default_factory=dict, hash=False)


ConditionNode = Union[SimpleCondition, AndCondition, OrCondition]


@dataclass(frozen=True)
class TriggerCondition:
    """Condition tree gating whether a rule fires, plus its free-text description."""

    condition: ConditionNode
    description: Optional[str] = None
    id: Optional[int] = None
    rule_id: Optional[int] = None


@dataclass(frozen=True)
class EntryLine:
    """One debit or credit leg of an entry template."""

    sequence_number: int
    account_code: str
    entry_type: EntryType
    amount_expression: str
    memo_template: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class EntryTemplate:
    """Ordered entry lines plus the variable schema they reference."""

    description: Optional[str] = None
    lines: tuple[EntryLine, ...] = ()
    variable_schema: tuple[VariableDefinition, ...] = ()
    id: Optional[int] = None

    @property
    def debit_lines(self) -> list[EntryLine]:
        return [line for line in self.lines if line.entry_type == EntryType.DEBIT]

    @property
    def credit_lines(self) -> list[EntryLine]:
        return [line for line in self.lines if line.entry_type == EntryType.CREDIT]

    def is_balanced_shape(self) -> bool:
        """Return True if the template has at least one debit and one credit line."""
        return bool(self.debit_lines) and bool(self.credit_lines)

    def variables_by_name(self) -> dict[str, VariableDefinition]:
        return {var.name: var for var in self.variable_schema}


@dataclass(frozen=True)
class AccountingRule:
    """Accounting rule domain entity."""

    id: int
    code: str
    name: str
    description: Optional[str]
    status: RuleStatus
    shared_across_scenarios: bool
    current_version: int
    concurrency_token: int
    entry_template: Optional[EntryTemplate] = None
    trigger_conditions: tuple[TriggerCondition, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None


@dataclass(frozen=True)
class RuleSnapshot:
    """Mutable rule fields captured at one lifecycle transition."""

    code: str
    name: str
    description: Optional[str]
    status: str


@dataclass(frozen=True)
class RuleVersion:
    """Immutable, append-only version history row."""

    id: int
    rule_id: int
    version_number: int
    snapshot: RuleSnapshot
    change_description: Optional[str]
    created_at: datetime
    created_by: Optional[str] = None
