"""Utility for resolving rule codes to rules."""

from ledgerrules.domain.entities import AccountingRule
from ledgerrules.domain.errors import RuleNotFoundError
from ledgerrules.domain.rule import AccountingRuleService


def resolve_rule(rule_service: AccountingRuleService, rule: str | int) -> AccountingRule:
    """Resolve a rule ID or code to the rule.

    Args:
        rule_service: AccountingRuleService instance
        rule: Rule ID (int or string representation of int) or rule code

    Returns:
        The matching rule

    Raises:
        RuleNotFoundError: If no rule matches
    """
    if isinstance(rule, int):
        return rule_service.get_rule(rule)

    # Digits are tried as an ID first, then as a code (codes like "1001" are valid)
    try:
        return rule_service.get_rule(int(rule))
    except (ValueError, TypeError, RuleNotFoundError):
        pass
    return rule_service.get_rule_by_code(rule)
