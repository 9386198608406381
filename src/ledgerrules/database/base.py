"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerrules.domain.entities import (
    AccountingRule,
    EntryTemplate,
    RuleSnapshot,
    RuleStatus,
    RuleVersion,
    TriggerCondition,
)


class Database(ABC):
    """Abstract database interface for ledgerrules."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Group several writes into one atomic unit.

        Writes made inside the block are committed together when it exits
        normally and all rolled back if it raises. Blocks may be nested; only
        the outermost one commits.
        """
        pass

    # Rule operations
    @abstractmethod
    def create_rule(
        self,
        code: str,
        name: str,
        description: Optional[str],
        shared_across_scenarios: bool,
        status: RuleStatus,
        current_version: int,
        created_by: Optional[str] = None,
    ) -> int:
        """Create a rule row. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[AccountingRule]:
        """Get rule by ID, with its entry template and trigger conditions."""
        pass

    @abstractmethod
    def get_rule_by_code(self, code: str) -> Optional[AccountingRule]:
        """Get rule by its unique code."""
        pass

    @abstractmethod
    def rule_code_exists(self, code: str) -> bool:
        """Check whether a rule code is already taken."""
        pass

    @abstractmethod
    def list_rules(
        self,
        status: Optional[RuleStatus] = None,
        shared: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> list[AccountingRule]:
        """List rules with optional filters.

        Args:
            status: Optional lifecycle status filter
            shared: Optional shared-across-scenarios filter
            search: Optional case-insensitive substring of code or name
        """
        pass

    @abstractmethod
    def update_rule(
        self,
        rule_id: int,
        name: str,
        description: Optional[str],
        shared_across_scenarios: bool,
        status: RuleStatus,
        current_version: int,
        updated_by: Optional[str] = None,
    ) -> int:
        """Save a rule's mutable fields. Returns the new concurrency token.

        Raises:
            VersionMismatchError: If the row changed since it was read
        """
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule with its entry template and trigger conditions.

        Version history is kept.
        """
        pass

    # Entry template operations
    @abstractmethod
    def get_entry_template(self, rule_id: int) -> Optional[EntryTemplate]:
        """Get the entry template owned by a rule."""
        pass

    @abstractmethod
    def replace_entry_template(self, rule_id: int, template: EntryTemplate) -> None:
        """Overwrite a rule's entry template; previous lines are discarded."""
        pass

    # Trigger condition operations
    @abstractmethod
    def list_trigger_conditions(self, rule_id: int) -> list[TriggerCondition]:
        """List a rule's trigger conditions in creation order."""
        pass

    @abstractmethod
    def replace_trigger_conditions(self, rule_id: int, conditions: list[TriggerCondition]) -> None:
        """Overwrite all trigger conditions of a rule."""
        pass

    # Version operations
    @abstractmethod
    def add_rule_version(
        self,
        rule_id: int,
        version_number: int,
        snapshot: RuleSnapshot,
        change_description: str,
        created_by: Optional[str] = None,
    ) -> int:
        """Append a version snapshot. Returns version row ID."""
        pass

    @abstractmethod
    def get_rule_version(self, rule_id: int, version_number: int) -> Optional[RuleVersion]:
        """Get one version snapshot of a rule."""
        pass

    @abstractmethod
    def list_rule_versions(self, rule_id: int) -> list[RuleVersion]:
        """List a rule's versions, newest first."""
        pass
