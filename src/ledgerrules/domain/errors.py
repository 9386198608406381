"""Shared domain error messages and error types."""

from dataclasses import dataclass
from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as stale writes."""


class RuleEngineError(DomainError):
    """Internal failure while serializing, generating or persisting rule data."""


class NumscriptGenerationError(RuleEngineError):
    """Numscript could not be generated from an entry template."""


class ExpressionParseError(ValidationError):
    """Malformed amount expression.

    Attributes:
        expression: The expression text that failed
        position: Offending character index, or -1 when unknown
        expected: Optional hint for what was expected at ``position``
    """

    def __init__(
        self,
        message: str,
        expression: Optional[str] = None,
        position: int = -1,
        expected: Optional[str] = None,
    ):
        self.message = message
        self.expression = expression
        self.position = position
        self.expected = expected
        super().__init__(self._render())

    def _render(self) -> str:
        text = self.message
        if self.position >= 0:
            text += f" at position {self.position}"
        if self.expected:
            text += f" (expected: {self.expected})"
        return text


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    message: str
    value: Optional[str] = None


class RuleValidationError(ValidationError):
    """Invalid rule payload or failed pre-activation checks."""

    def __init__(self, message: str, errors: Optional[list[FieldError]] = None):
        super().__init__(message)
        self.errors = list(errors or [])

    @classmethod
    def for_field(cls, field: str, message: str, value: Optional[str] = None) -> "RuleValidationError":
        """Build an error carrying exactly one field failure."""
        return cls(message, [FieldError(field=field, message=message, value=value)])


class InvalidStateTransitionError(DomainError):
    """Operation not allowed for the rule's current lifecycle status."""

    def __init__(self, current_status: str, target_status: str, reason: Optional[str] = None):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        message = f"Invalid state transition from {current_status} to {target_status}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class VersionMismatchError(ConflictError):
    """Caller's concurrency token is stale relative to the stored rule."""

    def __init__(self, rule_id: int, expected_token: Optional[int], actual_token: Optional[int]):
        self.rule_id = rule_id
        self.expected_token = expected_token
        self.actual_token = actual_token
        super().__init__(version_mismatch(rule_id, expected_token, actual_token))


class RuleNotFoundError(NotFoundError):
    """Unknown rule id or code."""


class RuleVersionNotFoundError(NotFoundError):
    """Unknown version number for an existing rule."""


def rule_not_found(rule_id: int) -> str:
    """Return message for missing rule by ID."""
    return f"Accounting rule not found with id: {rule_id}"


def rule_code_not_found(code: str) -> str:
    """Return message for missing rule by code."""
    return f"Accounting rule not found with code: {code}"


def rule_version_not_found(rule_id: int, version_number: int) -> str:
    """Return message for a missing version snapshot."""
    return f"Version {version_number} not found for rule {rule_id}"


def duplicate_rule_code(code: str) -> str:
    """Return message for a rule code that is already taken."""
    return f"Rule code already exists: {code}"


def version_mismatch(rule_id: int, expected_token: Optional[int], actual_token: Optional[int]) -> str:
    """Return message for a stale concurrency token."""
    return (
        f"Version mismatch for rule {rule_id}. Current version is {actual_token}, "
        f"but you provided {expected_token}"
    )
