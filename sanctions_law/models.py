"""
SQLAlchemy ORM Models for the Sanctions Law Reference Service

Relational schema for the reference store. Every table is written once by
the seed loader and then only read.

Tables:
1. sources - Issuing authorities and their publication portals
2. sanctions_regimes - Named sanctions programs, one jurisdiction each
3. provisions - Atomic legal passages (indexed by provisions_fts)
4. executive_orders - Executive orders and comparable instruments
5. delisting_procedures - Administrative routes off a regime's list
6. export_controls - Export-control rules tied to sanctions
7. sanctions_case_law - Court decisions on sanctions measures
8. source_freshness - Declared update status, one row per source

List and object valued columns (topics, legal_basis, keywords, metadata)
hold JSON text; see record_utils for the encode/decode helpers.
"""

from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, Mapped, mapped_column

# Base class for all models
Base = declarative_base()


# ============================================
# ENUMS
# ============================================

class PriorityTier(str, PyEnum):
    """Coverage priority of a source"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FreshnessStatus(str, PyEnum):
    """Staleness classification of a source"""
    FRESH = "fresh"
    WARNING = "warning"
    STALE = "stale"
    PLANNED = "planned"


# ============================================
# REFERENCE MODELS
# ============================================

class Source(Base):
    """An issuing authority; every other record points back to one."""
    __tablename__ = "sources"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    authority: Mapped[str] = mapped_column(String, nullable=False)
    official_portal: Mapped[str] = mapped_column(String, nullable=False)
    retrieval_method: Mapped[str] = mapped_column(String, nullable=False)
    update_frequency: Mapped[str] = mapped_column(String, nullable=False)
    records_estimate: Mapped[str] = mapped_column(String, nullable=False)
    priority: Mapped[str] = mapped_column(String, nullable=False)
    coverage_note: Mapped[str] = mapped_column(Text, nullable=False)
    last_verified: Mapped[str] = mapped_column(String, nullable=False)

    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[Optional[str]] = mapped_column("metadata", Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Source(id='{self.id}', priority='{self.priority}')>"


class SanctionsRegime(Base):
    """
    A named sanctions program tied to one jurisdiction.

    delisting_procedure_id is checked by the seed loader rather than by a
    foreign key, since delisting_procedures.regime_id already points back
    here and SQLite cannot insert a cycle of enforced references.
    """
    __tablename__ = "sanctions_regimes"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    jurisdiction: Mapped[str] = mapped_column(String, nullable=False)
    authority: Mapped[str] = mapped_column(String, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    legal_basis: Mapped[str] = mapped_column(Text, nullable=False)
    cyber_related: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delisting_procedure_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    official_url: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index('idx_regimes_jurisdiction', 'jurisdiction'),
    )

    def __repr__(self) -> str:
        return f"<SanctionsRegime(id='{self.id}', jurisdiction='{self.jurisdiction}')>"


class Provision(Base):
    """
    An atomic citable passage of legal text.

    The integer surrogate key is the rowid the FTS5 index is keyed on; the
    natural key is (source_id, item_id).
    """
    __tablename__ = "provisions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[str] = mapped_column(
        String, ForeignKey("sources.id"), nullable=False
    )
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    parent: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    regime_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("sanctions_regimes.id"), nullable=True
    )
    issued_on: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    url: Mapped[str] = mapped_column(String, nullable=False)
    topics: Mapped[str] = mapped_column(Text, nullable=False)
    extra_metadata: Mapped[Optional[str]] = mapped_column("metadata", Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('source_id', 'item_id', name='uq_provision_source_item'),
        Index('idx_provisions_source', 'source_id'),
        Index('idx_provisions_regime', 'regime_id'),
    )

    def __repr__(self) -> str:
        return f"<Provision(source_id='{self.source_id}', item_id='{self.item_id}')>"


class ExecutiveOrder(Base):
    """An executive order (or comparable statutory instrument)."""
    __tablename__ = "executive_orders"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    source_id: Mapped[str] = mapped_column(
        String, ForeignKey("sources.id"), nullable=False
    )
    regime_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("sanctions_regimes.id"), nullable=True
    )
    # Primary external lookup key; unique in practice but not enforced
    order_number: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    issued_on: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    cyber_related: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    legal_basis: Mapped[str] = mapped_column(Text, nullable=False)
    official_url: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index('idx_executive_orders_order_number', 'order_number'),
    )

    def __repr__(self) -> str:
        return f"<ExecutiveOrder(id='{self.id}', order_number='{self.order_number}')>"


class DelistingProcedure(Base):
    """The administrative process for removal from a regime's list."""
    __tablename__ = "delisting_procedures"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    regime_id: Mapped[str] = mapped_column(
        String, ForeignKey("sanctions_regimes.id"), nullable=False
    )
    authority: Mapped[str] = mapped_column(String, nullable=False)
    procedure_summary: Mapped[str] = mapped_column(Text, nullable=False)
    evidentiary_standard: Mapped[str] = mapped_column(Text, nullable=False)
    review_body: Mapped[str] = mapped_column(String, nullable=False)
    review_timeline: Mapped[str] = mapped_column(String, nullable=False)
    application_url: Mapped[str] = mapped_column(String, nullable=False)
    legal_basis: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<DelistingProcedure(id='{self.id}', regime_id='{self.regime_id}')>"


class ExportControl(Base):
    """An export-control rule relevant to sanctions compliance."""
    __tablename__ = "export_controls"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    source_id: Mapped[str] = mapped_column(
        String, ForeignKey("sources.id"), nullable=False
    )
    jurisdiction: Mapped[str] = mapped_column(String, nullable=False)
    instrument: Mapped[str] = mapped_column(String, nullable=False)
    section: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    focus: Mapped[str] = mapped_column(Text, nullable=False)
    official_url: Mapped[str] = mapped_column(String, nullable=False)

    def __repr__(self) -> str:
        return f"<ExportControl(id='{self.id}', section='{self.section}')>"


class SanctionsCaseLaw(Base):
    """A court decision on a sanctions measure."""
    __tablename__ = "sanctions_case_law"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    source_id: Mapped[str] = mapped_column(
        String, ForeignKey("sources.id"), nullable=False
    )
    court: Mapped[str] = mapped_column(String, nullable=False)
    case_reference: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    decision_date: Mapped[str] = mapped_column(String, nullable=False)
    regime_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("sanctions_regimes.id"), nullable=True
    )
    delisting_related: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    outcome: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    keywords: Mapped[str] = mapped_column(Text, nullable=False)
    official_url: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index('idx_case_law_regime', 'regime_id'),
    )

    def __repr__(self) -> str:
        return f"<SanctionsCaseLaw(id='{self.id}', case_reference='{self.case_reference}')>"


class SourceFreshness(Base):
    """
    Declared update status of a source.

    The status stored here is what the ingestion side last declared; the
    evaluated status is derived from last_updated at query time.
    """
    __tablename__ = "source_freshness"

    source_id: Mapped[str] = mapped_column(
        String, ForeignKey("sources.id"), primary_key=True
    )
    last_checked: Mapped[str] = mapped_column(String, nullable=False)
    last_updated: Mapped[str] = mapped_column(String, nullable=False)
    check_frequency: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<SourceFreshness(source_id='{self.source_id}', status='{self.status}')>"


# Parent tables first; the seed loader inserts in this order.
SEED_TABLES = (
    ('sources', Source),
    ('sanctions_regimes', SanctionsRegime),
    ('provisions', Provision),
    ('executive_orders', ExecutiveOrder),
    ('delisting_procedures', DelistingProcedure),
    ('export_controls', ExportControl),
    ('sanctions_case_law', SanctionsCaseLaw),
    ('source_freshness', SourceFreshness),
)
