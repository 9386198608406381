"""Tests for the rule lifecycle transition table."""

import pytest

from ledgerrules.domain.entities import EntryLine, EntryTemplate, EntryType, RuleStatus
from ledgerrules.domain.errors import InvalidStateTransitionError, RuleValidationError
from ledgerrules.domain.lifecycle import (
    Transition,
    allowed_transitions,
    check_activation_ready,
    check_transition,
    is_allowed,
)


@pytest.mark.parametrize(
    "status,transition,target",
    [
        (RuleStatus.DRAFT, Transition.UPDATE, RuleStatus.DRAFT),
        (RuleStatus.DRAFT, Transition.ACTIVATE, RuleStatus.ACTIVE),
        (RuleStatus.DRAFT, Transition.ARCHIVE, RuleStatus.ARCHIVED),
        (RuleStatus.DRAFT, Transition.ROLLBACK, RuleStatus.DRAFT),
        (RuleStatus.DRAFT, Transition.DELETE, None),
        (RuleStatus.ACTIVE, Transition.ARCHIVE, RuleStatus.ARCHIVED),
        (RuleStatus.ARCHIVED, Transition.RESTORE, RuleStatus.DRAFT),
        (RuleStatus.ARCHIVED, Transition.ROLLBACK, RuleStatus.DRAFT),
        (RuleStatus.ARCHIVED, Transition.DELETE, None),
    ],
)
def test_permitted_transitions(status, transition, target):
    assert is_allowed(status, transition)
    assert check_transition(status, transition) == target


@pytest.mark.parametrize(
    "status,transition,message",
    [
        (RuleStatus.ACTIVE, Transition.UPDATE, "Invalid state transition from ACTIVE to UPDATE: Only DRAFT rules can be updated"),
        (RuleStatus.ARCHIVED, Transition.UPDATE, "Invalid state transition from ARCHIVED to UPDATE"),
        (RuleStatus.ACTIVE, Transition.ACTIVATE, "Invalid state transition from ACTIVE to ACTIVE"),
        (RuleStatus.ARCHIVED, Transition.ACTIVATE, "Only DRAFT rules can be activated"),
        (RuleStatus.ARCHIVED, Transition.ARCHIVE, "Invalid state transition from ARCHIVED to ARCHIVED"),
        (RuleStatus.DRAFT, Transition.RESTORE, "Only ARCHIVED rules can be restored"),
        (RuleStatus.ACTIVE, Transition.RESTORE, "Invalid state transition from ACTIVE to DRAFT"),
        (RuleStatus.ACTIVE, Transition.ROLLBACK, "Cannot rollback ACTIVE rules. Archive first."),
        (RuleStatus.ACTIVE, Transition.DELETE, "Cannot delete ACTIVE rules. Archive first."),
    ],
)
def test_rejected_transitions(status, transition, message):
    assert not is_allowed(status, transition)
    with pytest.raises(InvalidStateTransitionError, match=message) as exc_info:
        check_transition(status, transition)
    assert exc_info.value.current_status == status.value


def test_allowed_transitions_by_status():
    assert allowed_transitions(RuleStatus.ACTIVE) == [Transition.ARCHIVE]
    assert set(allowed_transitions(RuleStatus.ARCHIVED)) == {
        Transition.RESTORE,
        Transition.ROLLBACK,
        Transition.DELETE,
    }
    assert Transition.ACTIVATE in allowed_transitions(RuleStatus.DRAFT)


def line(seq, entry_type):
    return EntryLine(sequence_number=seq, account_code="1000", entry_type=entry_type, amount_expression="1")


def test_activation_ready_with_both_sides():
    check_activation_ready(EntryTemplate(lines=(line(1, EntryType.DEBIT), line(2, EntryType.CREDIT))))


def test_activation_requires_lines():
    with pytest.raises(RuleValidationError, match="Rule validation failed for activation") as exc_info:
        check_activation_ready(EntryTemplate())
    assert [e.message for e in exc_info.value.errors] == ["Rule must have at least one entry line"]

    with pytest.raises(RuleValidationError):
        check_activation_ready(None)


def test_activation_requires_credit_line():
    with pytest.raises(RuleValidationError) as exc_info:
        check_activation_ready(EntryTemplate(lines=(line(1, EntryType.DEBIT),)))

    assert [e.message for e in exc_info.value.errors] == ["Rule must have at least one CREDIT line"]
    assert exc_info.value.errors[0].field == "entryTemplate.lines"
