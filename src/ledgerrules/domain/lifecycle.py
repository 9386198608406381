"""Rule lifecycle state machine.

Every legal move is one entry in ``TRANSITIONS``, keyed by
``(current status, requested transition)`` and mapping to the resulting
status (None for DELETE, which removes the rule). Anything not in the table
is rejected with an InvalidStateTransitionError.
"""

from enum import Enum
from typing import Optional

from ledgerrules.domain.entities import EntryTemplate, RuleStatus
from ledgerrules.domain.errors import FieldError, InvalidStateTransitionError, RuleValidationError


class Transition(str, Enum):
    UPDATE = "UPDATE"
    ACTIVATE = "ACTIVATE"
    ARCHIVE = "ARCHIVE"
    RESTORE = "RESTORE"
    ROLLBACK = "ROLLBACK"
    DELETE = "DELETE"


TRANSITIONS: dict[tuple[RuleStatus, Transition], Optional[RuleStatus]] = {
    (RuleStatus.DRAFT, Transition.UPDATE): RuleStatus.DRAFT,
    (RuleStatus.DRAFT, Transition.ACTIVATE): RuleStatus.ACTIVE,
    (RuleStatus.DRAFT, Transition.ARCHIVE): RuleStatus.ARCHIVED,
    (RuleStatus.DRAFT, Transition.ROLLBACK): RuleStatus.DRAFT,
    (RuleStatus.DRAFT, Transition.DELETE): None,
    (RuleStatus.ACTIVE, Transition.ARCHIVE): RuleStatus.ARCHIVED,
    (RuleStatus.ARCHIVED, Transition.RESTORE): RuleStatus.DRAFT,
    (RuleStatus.ARCHIVED, Transition.ROLLBACK): RuleStatus.DRAFT,
    (RuleStatus.ARCHIVED, Transition.DELETE): None,
}

# Name reported as the "target" when a transition is rejected.
TARGET_LABELS = {
    Transition.UPDATE: "UPDATE",
    Transition.ACTIVATE: RuleStatus.ACTIVE.value,
    Transition.ARCHIVE: RuleStatus.ARCHIVED.value,
    Transition.RESTORE: RuleStatus.DRAFT.value,
    Transition.ROLLBACK: "ROLLBACK",
    Transition.DELETE: "DELETE",
}

REJECTION_REASONS = {
    Transition.UPDATE: "Only DRAFT rules can be updated",
    Transition.ACTIVATE: "Only DRAFT rules can be activated",
    Transition.ARCHIVE: "Only DRAFT or ACTIVE rules can be archived",
    Transition.RESTORE: "Only ARCHIVED rules can be restored",
    Transition.ROLLBACK: "Cannot rollback ACTIVE rules. Archive first.",
    Transition.DELETE: "Cannot delete ACTIVE rules. Archive first.",
}


def is_allowed(status: RuleStatus, transition: Transition) -> bool:
    return (status, transition) in TRANSITIONS


def allowed_transitions(status: RuleStatus) -> list[Transition]:
    """List the transitions permitted from a status, in declaration order."""
    return [transition for (current, transition) in TRANSITIONS if current == status]


def check_transition(status: RuleStatus, transition: Transition) -> Optional[RuleStatus]:
    """Return the status a transition leads to.

    Raises:
        InvalidStateTransitionError: If the transition is not permitted
    """
    key = (status, transition)
    if key not in TRANSITIONS:
        raise InvalidStateTransitionError(
            status.value, TARGET_LABELS[transition], REJECTION_REASONS[transition]
        )
    return TRANSITIONS[key]


def check_activation_ready(template: Optional[EntryTemplate]) -> None:
    """Guard for ACTIVATE: the template needs a DEBIT line and a CREDIT line.

    Raises:
        RuleValidationError: Listing every missing piece
    """
    errors = []
    if template is None or not template.lines:
        errors.append(FieldError("entryTemplate", "Rule must have at least one entry line"))
    else:
        if not template.debit_lines:
            errors.append(FieldError("entryTemplate.lines", "Rule must have at least one DEBIT line"))
        if not template.credit_lines:
            errors.append(FieldError("entryTemplate.lines", "Rule must have at least one CREDIT line"))
    if errors:
        raise RuleValidationError("Rule validation failed for activation", errors)
