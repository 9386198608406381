"""SQLAlchemy models for ledgerrules database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class AccountingRule(Base):
    """Accounting rule model."""

    __tablename__ = "accounting_rules"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="DRAFT", nullable=False)
    shared_across_scenarios = Column(Boolean, default=False, nullable=False)
    current_version = Column(Integer, default=1, nullable=False)
    concurrency_token = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)

    # The store bumps concurrency_token on every UPDATE and refuses stale writes
    __mapper_args__ = {"version_id_col": concurrency_token}

    # Relationships
    entry_template = relationship(
        "EntryTemplate", back_populates="rule", uselist=False, cascade="all, delete-orphan"
    )
    trigger_conditions = relationship(
        "TriggerCondition",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="TriggerCondition.id",
    )


class EntryTemplate(Base):
    """Entry template model, one per rule."""

    __tablename__ = "entry_templates"

    id = Column(Integer, primary_key=True)
    rule_id = Column(Integer, ForeignKey("accounting_rules.id"), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    variable_schema_json = Column(Text, default="[]", nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    # Relationships
    rule = relationship("AccountingRule", back_populates="entry_template")
    lines = relationship(
        "EntryLine",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="EntryLine.sequence_number",
    )


class EntryLine(Base):
    """Entry line model."""

    __tablename__ = "entry_lines"

    id = Column(Integer, primary_key=True)
    template_id = Column(Integer, ForeignKey("entry_templates.id"), nullable=False)
    sequence_number = Column(Integer, nullable=False)
    account_code = Column(String(50), nullable=False)
    entry_type = Column(String(10), nullable=False)
    amount_expression = Column(Text, nullable=False)
    memo_template = Column(Text, nullable=True)

    # Relationships
    template = relationship("EntryTemplate", back_populates="lines")


class TriggerCondition(Base):
    """Trigger condition model; the tree is stored as JSON text."""

    __tablename__ = "trigger_conditions"

    id = Column(Integer, primary_key=True)
    rule_id = Column(Integer, ForeignKey("accounting_rules.id"), nullable=False)
    condition_json = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    rule = relationship("AccountingRule", back_populates="trigger_conditions")


class AccountingRuleVersion(Base):
    """Append-only rule version snapshot.

    rule_id has no foreign key, so history outlives the rule.
    """

    __tablename__ = "accounting_rule_versions"

    id = Column(Integer, primary_key=True)
    rule_id = Column(Integer, nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    snapshot_json = Column(Text, nullable=False)
    change_description = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)
    created_by = Column(String(100), nullable=True)

    __table_args__ = (UniqueConstraint("rule_id", "version_number", name="uq_rule_version_number"),)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
