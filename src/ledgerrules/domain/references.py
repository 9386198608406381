"""Tracking which scenarios reference a rule.

The index itself is a replaceable collaborator: ``InMemoryReferenceIndex``
lives only as long as the process, and a table- or service-backed index can
be dropped in by implementing ``ReferenceIndex``.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from ledgerrules.database.base import Database
from ledgerrules.domain.errors import RuleNotFoundError, rule_not_found

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioReference:
    scenario_id: str
    scenario_name: str
    usage_context: Optional[str] = None


@dataclass(frozen=True)
class RuleReferences:
    rule_id: int
    rule_code: str
    is_shared: bool
    references: list[ScenarioReference] = field(default_factory=list)

    @property
    def reference_count(self) -> int:
        return len(self.references)

    def has_references(self) -> bool:
        return self.reference_count > 0


@dataclass(frozen=True)
class ImpactAnalysis:
    rule_id: int
    has_impact: bool
    affected_scenarios: list[str]
    warning_message: Optional[str] = None


class ReferenceIndex(ABC):
    """Storage for scenario-to-rule references."""

    @abstractmethod
    def add_reference(self, rule_id: int, reference: ScenarioReference) -> None:
        pass

    @abstractmethod
    def remove_reference(self, rule_id: int, scenario_id: str) -> None:
        """Drop every reference from a scenario to a rule."""
        pass

    @abstractmethod
    def list_references(self, rule_id: int) -> list[ScenarioReference]:
        """List references to a rule in insertion order."""
        pass


class InMemoryReferenceIndex(ReferenceIndex):
    """Process-local, thread-safe reference index."""

    def __init__(self):
        self._references: dict[int, list[ScenarioReference]] = defaultdict(list)
        self._lock = threading.Lock()

    def add_reference(self, rule_id: int, reference: ScenarioReference) -> None:
        with self._lock:
            self._references[rule_id].append(reference)

    def remove_reference(self, rule_id: int, scenario_id: str) -> None:
        with self._lock:
            if rule_id in self._references:
                self._references[rule_id] = [
                    ref for ref in self._references[rule_id] if ref.scenario_id != scenario_id
                ]

    def list_references(self, rule_id: int) -> list[ScenarioReference]:
        with self._lock:
            return list(self._references.get(rule_id, []))


class RuleReferenceService:
    """Service for recording scenario references and assessing change impact."""

    def __init__(self, db: Database, index: Optional[ReferenceIndex] = None):
        """Initialize reference service.

        Args:
            db: Database instance
            index: Reference index; defaults to a fresh in-memory index
        """
        self.db = db
        self.index = index if index is not None else InMemoryReferenceIndex()

    def add_reference(
        self, rule_id: int, scenario_id: str, scenario_name: str, usage_context: Optional[str] = None
    ) -> None:
        logger.info("Adding reference from scenario %s to rule %s", scenario_id, rule_id)
        self.index.add_reference(rule_id, ScenarioReference(scenario_id, scenario_name, usage_context))

    def remove_reference(self, rule_id: int, scenario_id: str) -> None:
        logger.info("Removing reference from scenario %s to rule %s", scenario_id, rule_id)
        self.index.remove_reference(rule_id, scenario_id)

    def get_references(self, rule_id: int) -> RuleReferences:
        """Get a rule's scenario references.

        Raises:
            RuleNotFoundError: If rule doesn't exist
        """
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_not_found(rule_id))
        return RuleReferences(
            rule_id=rule_id,
            rule_code=rule.code,
            is_shared=rule.shared_across_scenarios,
            references=self.index.list_references(rule_id),
        )

    def has_references(self, rule_id: int) -> bool:
        return bool(self.index.list_references(rule_id))

    def get_affected_scenarios(self, rule_id: int) -> list[str]:
        """Names of the scenarios referencing a rule."""
        return [ref.scenario_name for ref in self.index.list_references(rule_id)]

    def get_impact_analysis(self, rule_id: int) -> ImpactAnalysis:
        """Describe which scenarios a change to the rule would affect.

        Raises:
            RuleNotFoundError: If rule doesn't exist
        """
        if self.db.get_rule(rule_id) is None:
            raise RuleNotFoundError(rule_not_found(rule_id))

        affected = self.get_affected_scenarios(rule_id)
        warning = None
        if affected:
            warning = (
                f"Modifying this rule will affect {len(affected)} scenario(s): {', '.join(affected)}"
            )
        return ImpactAnalysis(rule_id, bool(affected), affected, warning)
