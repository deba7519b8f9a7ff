"""
Repository Pattern for Sanctions Law Database Queries

Each repository composes the filters for one entity over the schema and
returns SQLAlchemy rows; result shaping (JSON decoding, typed models) is
done by the lookup service. All queries are read-only and carry an
explicit ORDER BY so repeated calls return rows in the same order.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import Row, and_, bindparam, case, func, or_, select, text
from sqlalchemy.orm import Session

from record_utils import like_pattern
from sanctions_law.models import (
    DelistingProcedure,
    ExecutiveOrder,
    ExportControl,
    PriorityTier,
    Provision,
    SanctionsCaseLaw,
    SanctionsRegime,
    Source,
    SourceFreshness,
)
from sanctions_law.schema import FTS_TABLE

logger = logging.getLogger(__name__)

RELATED_LIMIT = 5
SAMPLE_LIMIT = 5

# Provision kinds that stand in for an order's own text when it has no regime
ORDER_RELATED_KINDS = ('executive_order_section', 'guidance')

SNIPPET_OPEN = '>>>'
SNIPPET_CLOSE = '<<<'
SNIPPET_ELLIPSIS = '...'
SNIPPET_TOKENS = 36


def _provision_summary_columns():
    return (
        Provision.source_id,
        Provision.item_id,
        Provision.title,
        Provision.kind,
        Provision.regime_id,
        Provision.issued_on,
        Provision.url.label("official_url"),
    )


def _recent_first():
    return (Provision.issued_on.desc(), Provision.item_id.asc())


# ============================================
# PROVISION REPOSITORY
# ============================================

class ProvisionRepository:
    """Repository for provision lookups and full-text search."""

    def __init__(self, session: Session):
        self.session = session

    def search(
        self,
        match: str,
        source_ids: Sequence[str] = (),
        jurisdictions: Sequence[str] = (),
        regime_id: Optional[str] = None,
        topics: Sequence[str] = (),
        limit: int = 10
    ) -> List[Row]:
        """
        Full-text search over the provisions index.

        Args:
            match: Already-escaped FTS5 expression
            source_ids: Keep provisions from any of these sources
            jurisdictions: Keep provisions whose regime jurisdiction is one of
                these ('' matches provisions without a regime)
            regime_id: Keep provisions of this regime
            topics: Keep provisions whose topic list mentions any of these
            limit: Maximum rows

        Returns:
            Rows ordered by BM25 score ascending (best first)
        """
        conditions = [f"{FTS_TABLE} MATCH :match"]
        params = {"match": match, "limit": limit}
        expanding = []

        if source_ids:
            conditions.append("p.source_id IN :source_ids")
            params["source_ids"] = list(source_ids)
            expanding.append(bindparam("source_ids", expanding=True))

        if jurisdictions:
            conditions.append("COALESCE(r.jurisdiction, '') IN :jurisdictions")
            params["jurisdictions"] = list(jurisdictions)
            expanding.append(bindparam("jurisdictions", expanding=True))

        if regime_id:
            conditions.append("p.regime_id = :regime_id")
            params["regime_id"] = regime_id

        if topics:
            topic_clauses = []
            for index, topic in enumerate(topics):
                key = f"topic_{index}"
                topic_clauses.append(f"LOWER(p.topics) LIKE :{key}")
                params[key] = like_pattern(topic)
            conditions.append("(" + " OR ".join(topic_clauses) + ")")

        query = text(f"""
            SELECT
                p.source_id,
                s.name AS source_name,
                p.item_id,
                p.kind,
                p.title,
                snippet({FTS_TABLE}, 3, '{SNIPPET_OPEN}', '{SNIPPET_CLOSE}',
                        '{SNIPPET_ELLIPSIS}', {SNIPPET_TOKENS}) AS snippet,
                bm25({FTS_TABLE}) AS relevance,
                p.regime_id,
                r.name AS regime_name,
                p.issued_on,
                p.url AS official_url,
                p.topics
            FROM {FTS_TABLE}
            JOIN provisions p ON p.id = {FTS_TABLE}.rowid
            JOIN sources s ON s.id = p.source_id
            LEFT JOIN sanctions_regimes r ON r.id = p.regime_id
            WHERE {' AND '.join(conditions)}
            ORDER BY relevance ASC, p.source_id ASC, p.item_id ASC
            LIMIT :limit
        """)
        if expanding:
            query = query.bindparams(*expanding)

        return list(self.session.execute(query, params).all())

    def get_detail(self, source_id: str, item_id: str) -> Optional[Row]:
        """Fetch one provision by natural key, joined with source and regime names."""
        query = (
            select(
                Provision,
                Source.name.label("source_name"),
                SanctionsRegime.name.label("regime_name"),
            )
            .join(Source, Source.id == Provision.source_id)
            .outerjoin(SanctionsRegime, SanctionsRegime.id == Provision.regime_id)
            .where(and_(Provision.source_id == source_id, Provision.item_id == item_id))
        )
        return self.session.execute(query).first()

    def list_by_regime(
        self,
        regime_id: str,
        exclude: Optional[Provision] = None,
        limit: int = RELATED_LIMIT
    ) -> List[Row]:
        """Most recent provisions of a regime, optionally excluding one."""
        conditions = [Provision.regime_id == regime_id]
        if exclude is not None:
            conditions.append(Provision.id != exclude.id)

        query = (
            select(*_provision_summary_columns())
            .where(and_(*conditions))
            .order_by(*_recent_first())
            .limit(limit)
        )
        return list(self.session.execute(query).all())

    def list_by_topic(self, topic: str, exclude: Provision, limit: int = RELATED_LIMIT) -> List[Row]:
        """Provisions whose topic list mentions ``topic``, excluding one provision."""
        query = (
            select(*_provision_summary_columns())
            .where(and_(
                func.lower(Provision.topics).like(like_pattern(topic)),
                Provision.id != exclude.id,
            ))
            .order_by(*_recent_first())
            .limit(limit)
        )
        return list(self.session.execute(query).all())

    def list_by_source_kinds(
        self,
        source_id: str,
        kinds: Sequence[str] = ORDER_RELATED_KINDS,
        limit: int = RELATED_LIMIT
    ) -> List[Row]:
        """Most recent provisions of a source restricted to some kinds."""
        query = (
            select(*_provision_summary_columns())
            .where(and_(Provision.source_id == source_id, Provision.kind.in_(kinds)))
            .order_by(*_recent_first())
            .limit(limit)
        )
        return list(self.session.execute(query).all())

    def list_by_source(self, source_id: str, limit: int = SAMPLE_LIMIT) -> List[Row]:
        """Most recent provisions of a source."""
        query = (
            select(*_provision_summary_columns())
            .where(Provision.source_id == source_id)
            .order_by(*_recent_first())
            .limit(limit)
        )
        return list(self.session.execute(query).all())

    def list_cyber(self, query_text: Optional[str], limit: int) -> List[Row]:
        """Provisions tagged with a cyber topic, optionally narrowed by text."""
        conditions = [func.lower(Provision.topics).like(like_pattern('cyber'))]
        if query_text:
            pattern = like_pattern(query_text)
            conditions.append(or_(
                func.lower(Provision.title).like(pattern),
                func.lower(Provision.text).like(pattern),
            ))

        query = (
            select(*_provision_summary_columns(), Provision.topics, SanctionsRegime.jurisdiction)
            .outerjoin(SanctionsRegime, SanctionsRegime.id == Provision.regime_id)
            .where(and_(*conditions))
            .order_by(*_recent_first())
            .limit(limit)
        )
        return list(self.session.execute(query).all())


# ============================================
# REGIME REPOSITORY
# ============================================

class RegimeRepository:
    """Repository for sanctions regimes."""

    def __init__(self, session: Session):
        self.session = session

    def find(
        self,
        regime_id: Optional[str] = None,
        name: Optional[str] = None,
        jurisdiction: Optional[str] = None,
        limit: int = 10
    ) -> List[Row]:
        """
        Regimes matching every given filter, each with linked-row counts.

        Returns:
            Rows of (SanctionsRegime, provision_count, case_law_count)
        """
        provision_count = (
            select(func.count())
            .select_from(Provision)
            .where(Provision.regime_id == SanctionsRegime.id)
            .correlate(SanctionsRegime)
            .scalar_subquery()
        )
        case_law_count = (
            select(func.count())
            .select_from(SanctionsCaseLaw)
            .where(SanctionsCaseLaw.regime_id == SanctionsRegime.id)
            .correlate(SanctionsRegime)
            .scalar_subquery()
        )

        conditions = []
        if regime_id:
            conditions.append(SanctionsRegime.id == regime_id)
        if name:
            conditions.append(func.lower(SanctionsRegime.name).like(like_pattern(name)))
        if jurisdiction:
            conditions.append(SanctionsRegime.jurisdiction == jurisdiction)

        query = select(
            SanctionsRegime,
            provision_count.label("provision_count"),
            case_law_count.label("case_law_count"),
        )
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(
            SanctionsRegime.jurisdiction, SanctionsRegime.name, SanctionsRegime.id
        ).limit(limit)

        return list(self.session.execute(query).all())

    def list_cyber(self, query_text: Optional[str], limit: int) -> List[SanctionsRegime]:
        """Cyber-related regimes, optionally narrowed by name/summary text."""
        conditions = [SanctionsRegime.cyber_related.is_(True)]
        if query_text:
            pattern = like_pattern(query_text)
            conditions.append(or_(
                func.lower(SanctionsRegime.name).like(pattern),
                func.lower(SanctionsRegime.summary).like(pattern),
            ))

        query = (
            select(SanctionsRegime)
            .where(and_(*conditions))
            .order_by(SanctionsRegime.jurisdiction, SanctionsRegime.name, SanctionsRegime.id)
            .limit(limit)
        )
        return list(self.session.execute(query).scalars().all())


# ============================================
# EXECUTIVE ORDER REPOSITORY
# ============================================

class ExecutiveOrderRepository:
    """Repository for executive orders."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_number_or_id(self, order_number: str) -> Optional[Row]:
        """
        Fetch an order whose number or internal id equals ``order_number``.

        Returns:
            Row of (ExecutiveOrder, source_name, regime_name) or None
        """
        query = (
            select(
                ExecutiveOrder,
                Source.name.label("source_name"),
                SanctionsRegime.name.label("regime_name"),
            )
            .join(Source, Source.id == ExecutiveOrder.source_id)
            .outerjoin(SanctionsRegime, SanctionsRegime.id == ExecutiveOrder.regime_id)
            .where(or_(
                ExecutiveOrder.order_number == order_number,
                ExecutiveOrder.id == order_number,
            ))
            # Prefer an order-number hit over an id hit
            .order_by(
                case((ExecutiveOrder.order_number == order_number, 0), else_=1),
                ExecutiveOrder.id,
            )
            .limit(1)
        )
        return self.session.execute(query).first()

    def list_cyber(self, query_text: Optional[str], limit: int) -> List[Row]:
        """
        Cyber-related orders, optionally narrowed by title/summary text.

        Returns:
            Rows of (ExecutiveOrder, regime_jurisdiction)
        """
        conditions = [ExecutiveOrder.cyber_related.is_(True)]
        if query_text:
            pattern = like_pattern(query_text)
            conditions.append(or_(
                func.lower(ExecutiveOrder.title).like(pattern),
                func.lower(ExecutiveOrder.summary).like(pattern),
            ))

        query = (
            select(ExecutiveOrder, SanctionsRegime.jurisdiction.label("regime_jurisdiction"))
            .outerjoin(SanctionsRegime, SanctionsRegime.id == ExecutiveOrder.regime_id)
            .where(and_(*conditions))
            .order_by(ExecutiveOrder.issued_on.desc(), ExecutiveOrder.id)
            .limit(limit)
        )
        return list(self.session.execute(query).all())


# ============================================
# DELISTING / EXPORT CONTROL / CASE LAW
# ============================================

class DelistingProcedureRepository:
    """Repository for delisting procedures."""

    def __init__(self, session: Session):
        self.session = session

    def find(
        self,
        procedure_id: Optional[str] = None,
        regime_id: Optional[str] = None,
        limit: int = 10
    ) -> List[Row]:
        """
        Returns:
            Rows of (DelistingProcedure, regime_name, jurisdiction)
        """
        conditions = []
        if procedure_id:
            conditions.append(DelistingProcedure.id == procedure_id)
        if regime_id:
            conditions.append(DelistingProcedure.regime_id == regime_id)

        query = (
            select(
                DelistingProcedure,
                SanctionsRegime.name.label("regime_name"),
                SanctionsRegime.jurisdiction.label("jurisdiction"),
            )
            .join(SanctionsRegime, SanctionsRegime.id == DelistingProcedure.regime_id)
        )
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(
            SanctionsRegime.jurisdiction, SanctionsRegime.name, DelistingProcedure.id
        ).limit(limit)

        return list(self.session.execute(query).all())


class ExportControlRepository:
    """Repository for export-control entries."""

    def __init__(self, session: Session):
        self.session = session

    def find(
        self,
        jurisdiction: Optional[str] = None,
        section: Optional[str] = None,
        query_text: Optional[str] = None,
        limit: int = 10
    ) -> List[Row]:
        """
        Returns:
            Rows of (ExportControl, source_name)
        """
        conditions = []
        if jurisdiction:
            conditions.append(ExportControl.jurisdiction == jurisdiction)
        if section:
            conditions.append(func.lower(ExportControl.section).like(like_pattern(section)))
        if query_text:
            pattern = like_pattern(query_text)
            conditions.append(or_(
                func.lower(ExportControl.title).like(pattern),
                func.lower(ExportControl.summary).like(pattern),
                func.lower(ExportControl.focus).like(pattern),
            ))

        query = (
            select(ExportControl, Source.name.label("source_name"))
            .join(Source, Source.id == ExportControl.source_id)
        )
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(
            ExportControl.jurisdiction,
            ExportControl.instrument,
            ExportControl.section,
            ExportControl.id,
        ).limit(limit)

        return list(self.session.execute(query).all())


class CaseLawRepository:
    """Repository for sanctions case law."""

    def __init__(self, session: Session):
        self.session = session

    def search(
        self,
        query_text: Optional[str] = None,
        regime_id: Optional[str] = None,
        court: Optional[str] = None,
        delisting_related: Optional[bool] = None,
        limit: int = 10
    ) -> List[Row]:
        """
        Returns:
            Rows of (SanctionsCaseLaw, regime_name), newest decision first
        """
        conditions = []
        if query_text:
            pattern = like_pattern(query_text)
            conditions.append(or_(
                func.lower(SanctionsCaseLaw.case_reference).like(pattern),
                func.lower(SanctionsCaseLaw.title).like(pattern),
                func.lower(SanctionsCaseLaw.summary).like(pattern),
                func.lower(SanctionsCaseLaw.keywords).like(pattern),
            ))
        if regime_id:
            conditions.append(SanctionsCaseLaw.regime_id == regime_id)
        if court:
            conditions.append(func.lower(SanctionsCaseLaw.court).like(like_pattern(court)))
        if delisting_related is not None:
            conditions.append(SanctionsCaseLaw.delisting_related.is_(delisting_related))

        query = (
            select(SanctionsCaseLaw, SanctionsRegime.name.label("regime_name"))
            .outerjoin(SanctionsRegime, SanctionsRegime.id == SanctionsCaseLaw.regime_id)
        )
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(
            SanctionsCaseLaw.decision_date.desc(), SanctionsCaseLaw.id
        ).limit(limit)

        return list(self.session.execute(query).all())


# ============================================
# SOURCE REPOSITORY
# ============================================

class SourceRepository:
    """Repository for sources and their freshness records."""

    # Unknown tiers sort after "low"
    PRIORITY_ORDER = {tier.value: rank for rank, tier in enumerate(PriorityTier)}

    def __init__(self, session: Session):
        self.session = session

    def list_summaries(self) -> List[Row]:
        """
        Every source with its linked-row counts and declared freshness.

        Returns:
            Rows of (Source, provision_count, regime_count, case_law_count,
            freshness_status, last_updated), ordered by priority then id
        """
        provision_count = (
            select(func.count())
            .select_from(Provision)
            .where(Provision.source_id == Source.id)
            .correlate(Source)
            .scalar_subquery()
        )
        regime_count = (
            select(func.count(func.distinct(Provision.regime_id)))
            .where(Provision.source_id == Source.id)
            .correlate(Source)
            .scalar_subquery()
        )
        case_law_count = (
            select(func.count())
            .select_from(SanctionsCaseLaw)
            .where(SanctionsCaseLaw.source_id == Source.id)
            .correlate(Source)
            .scalar_subquery()
        )
        priority_rank = case(
            self.PRIORITY_ORDER,
            value=Source.priority,
            else_=len(self.PRIORITY_ORDER),
        )

        query = (
            select(
                Source,
                provision_count.label("provision_count"),
                regime_count.label("regime_count"),
                case_law_count.label("case_law_count"),
                SourceFreshness.status.label("freshness_status"),
                SourceFreshness.last_updated.label("last_updated"),
            )
            .outerjoin(SourceFreshness, SourceFreshness.source_id == Source.id)
            .order_by(priority_rank, Source.id)
        )
        return list(self.session.execute(query).all())

    def list_freshness(self) -> List[Row]:
        """
        Freshness records with source names, ordered by source id.

        Returns:
            Rows of (SourceFreshness, source_name)
        """
        query = (
            select(SourceFreshness, Source.name.label("source_name"))
            .join(Source, Source.id == SourceFreshness.source_id)
            .order_by(Source.id)
        )
        return list(self.session.execute(query).all())

    def list_all(self) -> List[Source]:
        query = select(Source).order_by(Source.id)
        return list(self.session.execute(query).scalars().all())
