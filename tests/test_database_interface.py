"""Tests for Database interface returning domain models."""

from datetime import datetime

import pytest

from ledgerrules.database.factories import create_sqlite_database
from ledgerrules.domain import entities
from ledgerrules.domain.entities import RuleSnapshot, RuleStatus
from ledgerrules.domain.errors import RuleNotFoundError, VersionMismatchError


def create_draft(db, code="R-1", name="Rule one", shared=False):
    return db.create_rule(
        code=code,
        name=name,
        description=None,
        shared_across_scenarios=shared,
        status=RuleStatus.DRAFT,
        current_version=1,
        created_by="alice",
    )


class TestRuleStorage:
    """Tests for rule rows."""

    def test_get_rule_returns_domain_model(self, temp_db):
        rule_id = create_draft(temp_db)

        rule = temp_db.get_rule(rule_id)

        assert isinstance(rule, entities.AccountingRule)
        assert rule.code == "R-1"
        assert rule.status == RuleStatus.DRAFT
        assert rule.concurrency_token == 1
        assert rule.created_by == "alice"
        assert isinstance(rule.created_at, datetime)
        assert rule.entry_template is None
        assert rule.trigger_conditions == ()

    def test_missing_rule_returns_none(self, temp_db):
        assert temp_db.get_rule(999) is None
        assert temp_db.get_rule_by_code("NOPE") is None
        assert not temp_db.rule_code_exists("NOPE")

    def test_lookup_by_code(self, temp_db):
        rule_id = create_draft(temp_db, code="FEE-9")

        assert temp_db.get_rule_by_code("FEE-9").id == rule_id
        assert temp_db.rule_code_exists("FEE-9")

    def test_list_rules_filters(self, temp_db):
        create_draft(temp_db, code="B-2", name="Card fee")
        create_draft(temp_db, code="A-1", name="Deposit", shared=True)
        archived_id = create_draft(temp_db, code="C-3", name="Old deposit")
        temp_db.update_rule(archived_id, "Old deposit", None, False, RuleStatus.ARCHIVED, 2)

        assert [r.code for r in temp_db.list_rules()] == ["A-1", "B-2", "C-3"]
        assert [r.code for r in temp_db.list_rules(status=RuleStatus.ARCHIVED)] == ["C-3"]
        assert [r.code for r in temp_db.list_rules(shared=True)] == ["A-1"]
        assert [r.code for r in temp_db.list_rules(shared=False)] == ["B-2", "C-3"]
        assert [r.code for r in temp_db.list_rules(search="deposit")] == ["A-1", "C-3"]
        assert [r.code for r in temp_db.list_rules(search="b-")] == ["B-2"]

    def test_update_rule_bumps_token(self, temp_db):
        rule_id = create_draft(temp_db)

        token = temp_db.update_rule(rule_id, "Renamed", "Now described", True, RuleStatus.DRAFT, 2, "bob")

        rule = temp_db.get_rule(rule_id)
        assert token == 2
        assert rule.concurrency_token == 2
        assert rule.name == "Renamed"
        assert rule.description == "Now described"
        assert rule.shared_across_scenarios
        assert rule.current_version == 2
        assert rule.updated_by == "bob"

    def test_update_missing_rule(self, temp_db):
        with pytest.raises(RuleNotFoundError):
            temp_db.update_rule(999, "x", None, False, RuleStatus.DRAFT, 1)

    def test_stale_write_is_rejected(self, temp_db):
        rule_id = create_draft(temp_db)
        other = create_sqlite_database(database_path=temp_db.database_path)

        try:
            with pytest.raises(VersionMismatchError):
                with temp_db.transaction():
                    temp_db.get_rule(rule_id)
                    other.update_rule(rule_id, "From elsewhere", None, False, RuleStatus.DRAFT, 2)
                    temp_db.update_rule(rule_id, "Mine", None, False, RuleStatus.DRAFT, 2)
        finally:
            other.disconnect()

        rule = temp_db.get_rule(rule_id)
        assert rule.name == "From elsewhere"
        assert rule.concurrency_token == 2


class TestTemplateAndConditions:
    """Tests for entry templates and trigger conditions."""

    def test_replace_entry_template(self, temp_db, deposit_template):
        rule_id = create_draft(temp_db)

        temp_db.replace_entry_template(rule_id, deposit_template)
        first = temp_db.get_entry_template(rule_id)
        temp_db.replace_entry_template(rule_id, entities.EntryTemplate(description="Empty"))
        second = temp_db.get_entry_template(rule_id)

        assert [line.account_code for line in first.lines] == ["1000", "2000"]
        assert first.variable_schema == deposit_template.variable_schema
        assert second.id == first.id
        assert second.description == "Empty"
        assert second.lines == ()

    def test_template_lines_relationship_does_not_bump_token(self, temp_db, deposit_template):
        rule_id = create_draft(temp_db)

        temp_db.replace_entry_template(rule_id, deposit_template)

        assert temp_db.get_rule(rule_id).concurrency_token == 1

    def test_replace_trigger_conditions(self, temp_db, deposit_condition):
        rule_id = create_draft(temp_db)

        temp_db.replace_trigger_conditions(rule_id, [deposit_condition, deposit_condition])
        assert len(temp_db.list_trigger_conditions(rule_id)) == 2

        temp_db.replace_trigger_conditions(rule_id, [deposit_condition])
        conditions = temp_db.list_trigger_conditions(rule_id)
        assert len(conditions) == 1
        assert conditions[0].condition == deposit_condition.condition
        assert conditions[0].rule_id == rule_id

    def test_get_template_for_rule_without_one(self, temp_db):
        assert temp_db.get_entry_template(create_draft(temp_db)) is None


class TestVersions:
    """Tests for version snapshots."""

    def test_versions_listed_newest_first(self, temp_db):
        rule_id = create_draft(temp_db)
        for number in (1, 2, 3):
            snapshot = RuleSnapshot(code="R-1", name=f"Name {number}", description=None, status="DRAFT")
            temp_db.add_rule_version(rule_id, number, snapshot, f"Change {number}", "alice")

        versions = temp_db.list_rule_versions(rule_id)

        assert [v.version_number for v in versions] == [3, 2, 1]
        assert versions[0].snapshot.name == "Name 3"
        assert versions[0].created_by == "alice"
        assert temp_db.get_rule_version(rule_id, 2).change_description == "Change 2"
        assert temp_db.get_rule_version(rule_id, 9) is None

    def test_delete_keeps_history(self, temp_db, deposit_template, deposit_condition):
        rule_id = create_draft(temp_db)
        temp_db.replace_entry_template(rule_id, deposit_template)
        temp_db.replace_trigger_conditions(rule_id, [deposit_condition])
        snapshot = RuleSnapshot(code="R-1", name="Rule one", description=None, status="DRAFT")
        temp_db.add_rule_version(rule_id, 1, snapshot, "Initial version")

        temp_db.delete_rule(rule_id)

        assert temp_db.get_rule(rule_id) is None
        assert temp_db.get_entry_template(rule_id) is None
        assert temp_db.list_trigger_conditions(rule_id) == []
        assert [v.version_number for v in temp_db.list_rule_versions(rule_id)] == [1]


class TestTransactions:
    """Tests for grouped writes."""

    def test_transaction_commits_together(self, temp_db):
        with temp_db.transaction():
            rule_id = create_draft(temp_db)
            snapshot = RuleSnapshot(code="R-1", name="Rule one", description=None, status="DRAFT")
            temp_db.add_rule_version(rule_id, 1, snapshot, "Initial version")

        assert temp_db.get_rule(rule_id) is not None
        assert len(temp_db.list_rule_versions(rule_id)) == 1

    def test_transaction_rolls_back_on_error(self, temp_db):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                create_draft(temp_db, code="GONE")
                raise RuntimeError("boom")

        assert temp_db.get_rule_by_code("GONE") is None

    def test_nested_transaction_rolls_back_outer_block(self, temp_db):
        with pytest.raises(RuntimeError):
            with temp_db.transaction():
                create_draft(temp_db, code="OUTER")
                with temp_db.transaction():
                    create_draft(temp_db, code="INNER")
                raise RuntimeError("boom")

        assert temp_db.list_rules() == []
