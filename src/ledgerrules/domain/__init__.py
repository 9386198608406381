"""Domain layer for ledgerrules."""

__all__ = [
    "AccountingRuleService",
    "RuleSimulationService",
    "RuleReferenceService",
]


# Services import the database layer, which imports domain.entities; load
# them on first access so either package can be imported first.
def __getattr__(name):
    if name == "AccountingRuleService":
        from ledgerrules.domain.rule import AccountingRuleService
        return AccountingRuleService
    if name == "RuleSimulationService":
        from ledgerrules.domain.simulation import RuleSimulationService
        return RuleSimulationService
    if name == "RuleReferenceService":
        from ledgerrules.domain.references import RuleReferenceService
        return RuleReferenceService
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
