"""Shared pytest fixtures for ledgerrules tests."""

import json
import os
import tempfile

import pytest

from ledgerrules.database.factories import create_sqlite_database
from ledgerrules.domain.entities import (
    ConditionOperator,
    EntryLine,
    EntryTemplate,
    EntryType,
    ExpressionType,
    SimpleCondition,
    TriggerCondition,
    VariableDefinition,
)
from ledgerrules.domain.references import RuleReferenceService
from ledgerrules.domain.rule import AccountingRuleService
from ledgerrules.domain.simulation import RuleSimulationService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def rule_service(temp_db):
    """Create an AccountingRuleService with a temporary database."""
    return AccountingRuleService(temp_db)


@pytest.fixture
def simulation_service(temp_db):
    """Create a RuleSimulationService with a temporary database."""
    return RuleSimulationService(temp_db)


@pytest.fixture
def reference_service(temp_db):
    """Create a RuleReferenceService with a temporary database."""
    return RuleReferenceService(temp_db)


@pytest.fixture
def deposit_template():
    """Balanced two-line template: debit cash, credit customer deposits."""
    return EntryTemplate(
        description="Customer deposit",
        variable_schema=(
            VariableDefinition(name="amount", type=ExpressionType.MONEY, currency="USD"),
            VariableDefinition(name="fee", type=ExpressionType.MONEY, currency="USD"),
        ),
        lines=(
            EntryLine(
                sequence_number=1,
                account_code="1000",
                entry_type=EntryType.DEBIT,
                amount_expression="amount",
                memo_template="Deposit from {customer.name}",
            ),
            EntryLine(
                sequence_number=2,
                account_code="2000",
                entry_type=EntryType.CREDIT,
                amount_expression="amount",
            ),
        ),
    )


@pytest.fixture
def deposit_condition():
    """Fires only for DEPOSIT events."""
    return TriggerCondition(
        condition=SimpleCondition(field="eventType", operator=ConditionOperator.EQUALS, value="DEPOSIT"),
        description="Deposits only",
    )


@pytest.fixture
def sample_rule(rule_service, deposit_template, deposit_condition):
    """Create a sample DRAFT rule for testing."""
    return rule_service.create_rule(
        code="DEP-001",
        name="Customer deposit",
        description="Books incoming deposits",
        entry_template=deposit_template,
        trigger_conditions=[deposit_condition],
    )


@pytest.fixture
def deposit_payload():
    """Client-shaped JSON document for the sample rule."""
    return {
        "code": "DEP-001",
        "name": "Customer deposit",
        "description": "Books incoming deposits",
        "sharedAcrossScenarios": False,
        "entryTemplate": {
            "description": "Customer deposit",
            "variableSchema": [
                {"name": "amount", "type": "MONEY", "currency": "USD"},
            ],
            "lines": [
                {"accountCode": "1000", "entryType": "DEBIT", "amountExpression": "amount"},
                {"accountCode": "2000", "entryType": "CREDIT", "amountExpression": "amount"},
            ],
        },
        "triggerConditions": [
            {
                "conditionJson": {"type": "SIMPLE", "field": "eventType", "operator": "EQUALS", "value": "DEPOSIT"},
                "description": "Deposits only",
            }
        ],
    }


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document to a temporary file and return its path."""

    def _write(data, name="data.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
