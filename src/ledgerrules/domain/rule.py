"""Accounting rule domain service: lifecycle and version history."""

import logging
from dataclasses import replace
from typing import Optional

from ledgerrules.database.base import Database
from ledgerrules.domain.entities import (
    AccountingRule as AccountingRuleEntity,
    EntryTemplate,
    RuleSnapshot,
    RuleStatus,
    RuleVersion,
    TriggerCondition,
)
from ledgerrules.domain.errors import (
    ExpressionParseError,
    FieldError,
    RuleNotFoundError,
    RuleValidationError,
    RuleVersionNotFoundError,
    VersionMismatchError,
    duplicate_rule_code,
    rule_code_not_found,
    rule_not_found,
    rule_version_not_found,
)
from ledgerrules.domain.expression import validate_expression
from ledgerrules.domain.lifecycle import Transition, check_activation_ready, check_transition

logger = logging.getLogger(__name__)

INITIAL_VERSION = 1


class AccountingRuleService:
    """Service for managing accounting rules.

    Every mutating operation runs in one database transaction: the lifecycle
    guard, the field changes and the matching version snapshot are committed
    together or not at all.
    """

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_rule(
        self,
        code: str,
        name: str,
        description: Optional[str] = None,
        shared_across_scenarios: bool = False,
        entry_template: Optional[EntryTemplate] = None,
        trigger_conditions: Optional[list[TriggerCondition]] = None,
        created_by: Optional[str] = None,
    ) -> AccountingRuleEntity:
        """Create a new DRAFT rule at version 1.

        Args:
            code: Unique rule code
            name: Display name
            description: Optional description
            shared_across_scenarios: Whether scenarios may share the rule
            entry_template: Entry template; an empty one is stored if omitted
            trigger_conditions: Optional trigger conditions
            created_by: Optional actor recorded on the rule and its snapshot

        Returns:
            The created rule

        Raises:
            RuleValidationError: If code or name is blank, the code is taken,
                or the template declares a variable twice
            ExpressionParseError: If an amount expression is invalid
        """
        logger.info("Creating accounting rule with code: %s", code)

        if code is None or not code.strip():
            raise RuleValidationError.for_field("code", "Rule code is required")
        self._require_name(name)
        if self.db.rule_code_exists(code):
            raise RuleValidationError.for_field("code", duplicate_rule_code(code), code)

        template = self._prepare_template(entry_template or EntryTemplate())

        with self.db.transaction():
            rule_id = self.db.create_rule(
                code=code,
                name=name,
                description=description,
                shared_across_scenarios=shared_across_scenarios,
                status=RuleStatus.DRAFT,
                current_version=INITIAL_VERSION,
                created_by=created_by,
            )
            self.db.replace_entry_template(rule_id, template)
            self.db.replace_trigger_conditions(rule_id, list(trigger_conditions or []))
            self.db.add_rule_version(
                rule_id,
                INITIAL_VERSION,
                RuleSnapshot(code, name, description, RuleStatus.DRAFT.value),
                "Initial version",
                created_by,
            )

        logger.info("Created accounting rule with id: %s", rule_id)
        return self.get_rule(rule_id)

    def get_rule(self, rule_id: int) -> AccountingRuleEntity:
        """Get rule by ID.

        Raises:
            RuleNotFoundError: If rule doesn't exist
        """
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_not_found(rule_id))
        return rule

    def get_rule_by_code(self, code: str) -> AccountingRuleEntity:
        """Get rule by code.

        Raises:
            RuleNotFoundError: If no rule has this code
        """
        rule = self.db.get_rule_by_code(code)
        if rule is None:
            raise RuleNotFoundError(rule_code_not_found(code))
        return rule

    def list_rules(
        self,
        status: Optional[RuleStatus] = None,
        shared: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> list[AccountingRuleEntity]:
        """List rules, optionally filtered by status, sharing flag and code/name text."""
        return self.db.list_rules(status=status, shared=shared, search=search)

    def update_rule(
        self,
        rule_id: int,
        concurrency_token: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        shared_across_scenarios: Optional[bool] = None,
        entry_template: Optional[EntryTemplate] = None,
        trigger_conditions: Optional[list[TriggerCondition]] = None,
        updated_by: Optional[str] = None,
    ) -> AccountingRuleEntity:
        """Edit a DRAFT rule.

        Fields left as None keep their current value. A supplied entry
        template or condition list replaces the existing one entirely.

        Args:
            rule_id: Rule ID
            concurrency_token: Token the caller last read for this rule

        Raises:
            RuleNotFoundError: If rule doesn't exist
            InvalidStateTransitionError: If the rule is not DRAFT
            VersionMismatchError: If concurrency_token is stale
            RuleValidationError: If the new name or template is invalid
            ExpressionParseError: If an amount expression is invalid
        """
        logger.info("Updating accounting rule with id: %s", rule_id)

        rule = self.get_rule(rule_id)
        check_transition(rule.status, Transition.UPDATE)
        if rule.concurrency_token != concurrency_token:
            raise VersionMismatchError(rule_id, concurrency_token, rule.concurrency_token)

        if name is not None:
            self._require_name(name)
        if entry_template is not None:
            entry_template = self._prepare_template(entry_template)

        with self.db.transaction():
            if entry_template is not None:
                self.db.replace_entry_template(rule_id, entry_template)
            if trigger_conditions is not None:
                self.db.replace_trigger_conditions(rule_id, list(trigger_conditions))
            changes = {
                "name": name,
                "description": description,
                "shared_across_scenarios": shared_across_scenarios,
            }
            self._advance(
                rule,
                RuleStatus.DRAFT,
                "Updated rule",
                updated_by,
                **{field: value for field, value in changes.items() if value is not None},
            )

        logger.info("Updated accounting rule with id: %s", rule_id)
        return self.get_rule(rule_id)

    def activate_rule(self, rule_id: int, actor: Optional[str] = None) -> AccountingRuleEntity:
        """Move a DRAFT rule to ACTIVE.

        Raises:
            InvalidStateTransitionError: If the rule is not DRAFT
            RuleValidationError: If the template lacks a DEBIT or CREDIT line
        """
        logger.info("Activating accounting rule with id: %s", rule_id)
        rule = self.get_rule(rule_id)
        target = check_transition(rule.status, Transition.ACTIVATE)
        check_activation_ready(rule.entry_template)
        with self.db.transaction():
            self._advance(rule, target, "Activated rule", actor)
        logger.info("Activated accounting rule with id: %s", rule_id)
        return self.get_rule(rule_id)

    def archive_rule(self, rule_id: int, actor: Optional[str] = None) -> AccountingRuleEntity:
        """Move a DRAFT or ACTIVE rule to ARCHIVED."""
        logger.info("Archiving accounting rule with id: %s", rule_id)
        rule = self.get_rule(rule_id)
        target = check_transition(rule.status, Transition.ARCHIVE)
        with self.db.transaction():
            self._advance(rule, target, "Archived rule", actor)
        logger.info("Archived accounting rule with id: %s", rule_id)
        return self.get_rule(rule_id)

    def restore_rule(self, rule_id: int, actor: Optional[str] = None) -> AccountingRuleEntity:
        """Move an ARCHIVED rule back to DRAFT."""
        logger.info("Restoring accounting rule with id: %s", rule_id)
        rule = self.get_rule(rule_id)
        target = check_transition(rule.status, Transition.RESTORE)
        with self.db.transaction():
            self._advance(rule, target, "Restored to draft", actor)
        logger.info("Restored accounting rule with id: %s", rule_id)
        return self.get_rule(rule_id)

    def rollback_to_version(
        self, rule_id: int, version_number: int, actor: Optional[str] = None
    ) -> AccountingRuleEntity:
        """Restore name and description from an earlier snapshot as a new DRAFT version.

        The rule code never changes, and the entry template and trigger
        conditions are left as they are.

        Raises:
            InvalidStateTransitionError: If the rule is ACTIVE
            RuleVersionNotFoundError: If the version doesn't exist
        """
        logger.info("Rolling back rule %s to version %s", rule_id, version_number)
        rule = self.get_rule(rule_id)
        target = check_transition(rule.status, Transition.ROLLBACK)
        version = self.get_version(rule_id, version_number)

        with self.db.transaction():
            self._advance(
                rule,
                target,
                f"Rolled back to version {version_number}",
                actor,
                name=version.snapshot.name,
                description=version.snapshot.description,
            )

        logger.info("Rolled back rule %s to version %s", rule_id, version_number)
        return self.get_rule(rule_id)

    def delete_rule(self, rule_id: int) -> None:
        """Delete a DRAFT or ARCHIVED rule. Its version history is kept.

        Raises:
            InvalidStateTransitionError: If the rule is ACTIVE
        """
        logger.info("Deleting accounting rule with id: %s", rule_id)
        rule = self.get_rule(rule_id)
        check_transition(rule.status, Transition.DELETE)
        with self.db.transaction():
            self.db.delete_rule(rule_id)
        logger.info("Deleted accounting rule with id: %s", rule_id)

    def clone_rule(
        self, rule_id: int, new_code: str, new_name: str, created_by: Optional[str] = None
    ) -> AccountingRuleEntity:
        """Copy a rule's template and conditions into a new DRAFT rule.

        The clone starts at version 1, is not shared across scenarios and
        keeps the source description.

        Raises:
            RuleValidationError: If new_code is taken or new_name is blank
            RuleNotFoundError: If the source rule doesn't exist
        """
        logger.info("Cloning accounting rule %s to new code: %s", rule_id, new_code)

        if new_code is None or not new_code.strip():
            raise RuleValidationError.for_field("code", "Rule code is required")
        if self.db.rule_code_exists(new_code):
            raise RuleValidationError.for_field("code", duplicate_rule_code(new_code), new_code)
        self._require_name(new_name)

        source = self.get_rule(rule_id)
        template = source.entry_template or EntryTemplate()
        conditions = [
            TriggerCondition(condition=trigger.condition, description=trigger.description)
            for trigger in self.db.list_trigger_conditions(rule_id)
        ]

        with self.db.transaction():
            clone_id = self.db.create_rule(
                code=new_code,
                name=new_name,
                description=source.description,
                shared_across_scenarios=False,
                status=RuleStatus.DRAFT,
                current_version=INITIAL_VERSION,
                created_by=created_by,
            )
            self.db.replace_entry_template(clone_id, template)
            self.db.replace_trigger_conditions(clone_id, conditions)
            self.db.add_rule_version(
                clone_id,
                INITIAL_VERSION,
                RuleSnapshot(new_code, new_name, source.description, RuleStatus.DRAFT.value),
                f"Cloned from rule: {source.code}",
                created_by,
            )

        logger.info("Cloned accounting rule to id: %s", clone_id)
        return self.get_rule(clone_id)

    def list_versions(self, rule_id: int) -> list[RuleVersion]:
        """List an existing rule's versions, newest first.

        Raises:
            RuleNotFoundError: If rule doesn't exist
        """
        self.get_rule(rule_id)
        return self.db.list_rule_versions(rule_id)

    def get_version(self, rule_id: int, version_number: int) -> RuleVersion:
        """Get one version of an existing rule.

        Raises:
            RuleNotFoundError: If rule doesn't exist
            RuleVersionNotFoundError: If the version doesn't exist
        """
        self.get_rule(rule_id)
        version = self.db.get_rule_version(rule_id, version_number)
        if version is None:
            raise RuleVersionNotFoundError(rule_version_not_found(rule_id, version_number))
        return version

    def _advance(
        self,
        rule: AccountingRuleEntity,
        status: RuleStatus,
        change_description: str,
        actor: Optional[str],
        **changes,
    ) -> None:
        """Save the rule one version higher and append the matching snapshot.

        ``changes`` overrides name, description or shared_across_scenarios.
        Must be called inside ``db.transaction()``.
        """
        updated = replace(rule, status=status, current_version=rule.current_version + 1, **changes)

        self.db.update_rule(
            updated.id,
            name=updated.name,
            description=updated.description,
            shared_across_scenarios=updated.shared_across_scenarios,
            status=updated.status,
            current_version=updated.current_version,
            updated_by=actor,
        )
        self.db.add_rule_version(
            updated.id,
            updated.current_version,
            RuleSnapshot(updated.code, updated.name, updated.description, updated.status.value),
            change_description,
            actor,
        )

    def _require_name(self, name: Optional[str]) -> None:
        if name is None or not name.strip():
            raise RuleValidationError.for_field("name", "Rule name is required")

    def _prepare_template(self, template: EntryTemplate) -> EntryTemplate:
        """Number lines 1..n in list order and validate the template.

        Raises:
            RuleValidationError: If a variable name is declared twice
            ExpressionParseError: If an amount expression is invalid
        """
        template = replace(
            template,
            lines=tuple(
                replace(line, sequence_number=number) for number, line in enumerate(template.lines, start=1)
            ),
        )
        seen: set[str] = set()
        errors = []
        for variable in template.variable_schema:
            if variable.name in seen:
                errors.append(
                    FieldError(
                        "entryTemplate.variableSchema",
                        f"Duplicate variable name: {variable.name}",
                        variable.name,
                    )
                )
            seen.add(variable.name)
        if errors:
            raise RuleValidationError("Invalid entry template", errors)

        for line in template.lines:
            result = validate_expression(line.amount_expression, template.variable_schema)
            if not result.valid:
                raise ExpressionParseError(
                    f"Invalid expression: {', '.join(result.errors)}", expression=line.amount_expression
                )
            for warning in result.warnings:
                logger.warning("Line %s: %s", line.sequence_number, warning)
        return template
