"""
Database-backed Lookup Service for the Sanctions Law Reference Service

One method per query operation. The service holds an open SQLAlchemy
session handed to it by the caller (dependency injection), delegates query
composition to the repositories and shapes rows into the pydantic result
models of sanctions_law.schemas.

Failure semantics:
- A missing or blank required argument raises InputValidationError
- A lookup that finds nothing returns None
- Storage errors (sqlalchemy.exc.SQLAlchemyError) propagate unchanged

Usage:
    # With FastAPI
    @app.post("/search")
    def search(params: SearchProvisionsInput, session: Session = Depends(get_db)):
        return SanctionsLookupService(session).search_provisions(params)

    # Standalone
    with db_provider.session_scope() as session:
        service = SanctionsLookupService(session, config)
        results = service.search_provisions(SearchProvisionsInput(query="cyber"))
"""

import logging
import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import Row
from sqlalchemy.orm import Session

from config_manager import FreshnessConfig, QueryConfig, ServiceConfig
from record_utils import (
    clean_text,
    escape_fts_query,
    infer_jurisdiction,
    normalize_limit,
    normalize_string_list,
    parse_json_array,
    parse_json_field,
    sanitize_for_logging,
)
from sanctions_law.catalogue import OPERATION_NAMES
from sanctions_law.freshness import evaluate_freshness
from sanctions_law.models import FreshnessStatus
from sanctions_law.monitoring import timed_query
from sanctions_law.repositories import (
    CaseLawRepository,
    DelistingProcedureRepository,
    ExecutiveOrderRepository,
    ExportControlRepository,
    ProvisionRepository,
    RegimeRepository,
    SourceRepository,
    SAMPLE_LIMIT,
)
from sanctions_law.schemas import (
    AboutInput,
    AboutResult,
    CaseLawResult,
    CheckCyberSanctionsInput,
    CheckFreshnessInput,
    CyberExecutiveOrder,
    CyberProvision,
    CyberRegime,
    CyberSanctionsResult,
    DataSourceInfo,
    DelistingProcedureResult,
    ExecutiveOrderResult,
    ExportControlResult,
    FreshnessEntry,
    FreshnessReport,
    GetDelistingProcedureInput,
    GetExecutiveOrderInput,
    GetExportControlInput,
    GetProvisionInput,
    GetRegimeInput,
    ListSourcesInput,
    ListSourcesResult,
    ProvisionDetail,
    ProvisionSearchResult,
    ProvisionSummary,
    RegimeResult,
    SearchCaseLawInput,
    SearchProvisionsInput,
    SourceDetail,
    SourceSummary,
)
from sanctions_law.seed import count_records

if TYPE_CHECKING:
    from config_manager import ConfigManager

logger = logging.getLogger(__name__)


class InputValidationError(ValueError):
    """Raised when a required argument is missing or blank

    Attributes:
        field: The argument that failed validation
        code: Error code for programmatic handling
        suggestion: Optional hint for fixing the call
    """
    def __init__(self, message: str, field: str = "unknown", code: str = "REQUIRED_FIELD", suggestion: str = ""):
        self.field = field
        self.code = code
        self.suggestion = suggestion
        super().__init__(message)


def require_text(value: Optional[str], field: str, suggestion: str = "") -> str:
    """Return the trimmed value or raise InputValidationError when blank."""
    cleaned = clean_text(value)
    if cleaned is None:
        raise InputValidationError(
            f"{field} is required",
            field=field,
            suggestion=suggestion or f"Provide a non-empty {field}",
        )
    return cleaned


def _summaries(rows: List[Row]) -> List[ProvisionSummary]:
    return [
        ProvisionSummary(
            source_id=row.source_id,
            item_id=row.item_id,
            title=row.title,
            kind=row.kind,
            regime_id=row.regime_id,
            issued_on=row.issued_on,
            official_url=row.official_url,
        )
        for row in rows
    ]


class SanctionsLookupService:
    """
    Read-only query operations over the sanctions law store.

    Args:
        session: Open SQLAlchemy session (the caller owns its lifetime)
        config: Optional ConfigManager; built-in defaults are used without one
    """

    def __init__(self, session: Session, config: Optional['ConfigManager'] = None):
        self.session = session
        self.query_config: QueryConfig = config.query if config else QueryConfig()
        self.freshness_config: FreshnessConfig = config.freshness if config else FreshnessConfig()
        self.service_config: ServiceConfig = config.service if config else ServiceConfig()

        self.provisions = ProvisionRepository(session)
        self.regimes = RegimeRepository(session)
        self.orders = ExecutiveOrderRepository(session)
        self.delisting = DelistingProcedureRepository(session)
        self.export_controls = ExportControlRepository(session)
        self.case_law = CaseLawRepository(session)
        self.sources = SourceRepository(session)

    def _limit(self, value: Any, default: Optional[int] = None) -> int:
        return normalize_limit(value, default or self.query_config.default_limit)

    # ============================================
    # PROVISIONS
    # ============================================

    @timed_query("search-provisions")
    def search_provisions(self, params: SearchProvisionsInput) -> List[ProvisionSearchResult]:
        """
        Full-text search over provisions.

        A blank query, or one with nothing left after escaping, returns an
        empty list without touching the index.
        """
        match = escape_fts_query(params.query)
        if not match:
            logger.debug("Empty search query after escaping; returning no results")
            return []

        rows = self.provisions.search(
            match,
            source_ids=normalize_string_list(params.source_ids),
            jurisdictions=normalize_string_list(params.jurisdictions),
            regime_id=clean_text(params.regime_id),
            topics=normalize_string_list(params.topics),
            limit=self._limit(params.limit),
        )
        logger.debug(f"search-provisions '{sanitize_for_logging(params.query)}' -> {len(rows)} rows")

        return [
            ProvisionSearchResult(
                source_id=row.source_id,
                source_name=row.source_name,
                item_id=row.item_id,
                kind=row.kind,
                title=row.title,
                snippet=row.snippet or '',
                relevance=float(row.relevance),
                regime_id=row.regime_id,
                regime_name=row.regime_name,
                issued_on=row.issued_on,
                official_url=row.official_url,
                topics=parse_json_array(row.topics),
            )
            for row in rows
        ]

    @timed_query("get-provision")
    def get_provision(self, params: GetProvisionInput) -> Optional[ProvisionDetail]:
        """
        Fetch one provision by (source_id, item_id).

        With include_related, attaches up to five provisions of the same
        regime, or when the provision has no regime, provisions sharing its
        first topic.
        """
        source_id = require_text(params.source_id, "source_id", "Use list-sources to find source ids")
        item_id = require_text(params.item_id, "item_id", "Use search-provisions to find item ids")

        row = self.provisions.get_detail(source_id, item_id)
        if row is None:
            return None
        provision, source_name, regime_name = row
        topics = parse_json_array(provision.topics)

        related = None
        if params.include_related:
            if provision.regime_id:
                related = _summaries(self.provisions.list_by_regime(provision.regime_id, exclude=provision))
            elif topics:
                related = _summaries(self.provisions.list_by_topic(topics[0], exclude=provision))
            else:
                related = []

        return ProvisionDetail(
            source_id=provision.source_id,
            source_name=source_name,
            item_id=provision.item_id,
            kind=provision.kind,
            title=provision.title,
            text=provision.text,
            parent=provision.parent,
            regime_id=provision.regime_id,
            regime_name=regime_name,
            issued_on=provision.issued_on,
            official_url=provision.url,
            topics=topics,
            metadata=parse_json_field(provision.extra_metadata),
            related=related,
        )

    # ============================================
    # REGIMES AND ORDERS
    # ============================================

    @timed_query("get-regime")
    def get_regime(self, params: GetRegimeInput) -> List[RegimeResult]:
        regime_id = clean_text(params.regime_id)
        limit = self._limit(params.limit, 1 if regime_id else None)

        rows = self.regimes.find(
            regime_id=regime_id,
            name=clean_text(params.name),
            jurisdiction=clean_text(params.jurisdiction),
            limit=limit,
        )

        results = []
        for regime, provision_count, case_law_count in rows:
            provisions = None
            if params.include_provisions:
                provisions = _summaries(self.provisions.list_by_regime(regime.id))
            results.append(RegimeResult(
                id=regime.id,
                name=regime.name,
                jurisdiction=regime.jurisdiction,
                authority=regime.authority,
                summary=regime.summary,
                legal_basis=parse_json_array(regime.legal_basis),
                cyber_related=bool(regime.cyber_related),
                delisting_procedure_id=regime.delisting_procedure_id,
                official_url=regime.official_url,
                provision_count=provision_count,
                case_law_count=case_law_count,
                provisions=provisions,
            ))
        return results

    @timed_query("get-executive-order")
    def get_executive_order(self, params: GetExecutiveOrderInput) -> Optional[ExecutiveOrderResult]:
        """Look an order up by its number or internal id."""
        order_number = require_text(params.order_number, "order_number", 'e.g. "13694"')

        row = self.orders.get_by_number_or_id(order_number)
        if row is None:
            return None
        order, source_name, regime_name = row

        related = None
        if params.include_related_provisions:
            if order.regime_id:
                related = _summaries(self.provisions.list_by_regime(order.regime_id))
            else:
                related = _summaries(self.provisions.list_by_source_kinds(order.source_id))

        return ExecutiveOrderResult(
            id=order.id,
            order_number=order.order_number,
            title=order.title,
            issued_on=order.issued_on,
            status=order.status,
            summary=order.summary,
            cyber_related=bool(order.cyber_related),
            legal_basis=parse_json_array(order.legal_basis),
            official_url=order.official_url,
            source_id=order.source_id,
            source_name=source_name,
            regime_id=order.regime_id,
            regime_name=regime_name,
            related_provisions=related,
        )

    @timed_query("check-cyber-sanctions")
    def check_cyber_sanctions(self, params: CheckCyberSanctionsInput) -> CyberSanctionsResult:
        """
        Collect cyber-related regimes, orders and provisions.

        Each list is fetched up to the limit and then narrowed by jurisdiction,
        so a jurisdiction filter can return fewer rows than the limit.
        """
        query_text = clean_text(params.query)
        jurisdictions = normalize_string_list([params.jurisdiction] if params.jurisdiction else None)
        limit = self._limit(params.limit)

        def wanted(jurisdiction: str) -> bool:
            return not jurisdictions or jurisdiction in jurisdictions

        regimes = [
            CyberRegime(
                regime_id=regime.id,
                name=regime.name,
                jurisdiction=regime.jurisdiction,
                authority=regime.authority,
                official_url=regime.official_url,
            )
            for regime in self.regimes.list_cyber(query_text, limit)
            if wanted(regime.jurisdiction)
        ]

        orders = []
        for order, regime_jurisdiction in self.orders.list_cyber(query_text, limit):
            jurisdiction = regime_jurisdiction or infer_jurisdiction(order.source_id)
            if not wanted(jurisdiction):
                continue
            orders.append(CyberExecutiveOrder(
                id=order.id,
                order_number=order.order_number,
                title=order.title,
                issued_on=order.issued_on,
                status=order.status,
                source_id=order.source_id,
                regime_id=order.regime_id,
                jurisdiction=jurisdiction,
                official_url=order.official_url,
            ))

        provisions = []
        for row in self.provisions.list_cyber(query_text, limit):
            jurisdiction = row.jurisdiction or infer_jurisdiction(row.source_id)
            if not wanted(jurisdiction):
                continue
            provisions.append(CyberProvision(
                source_id=row.source_id,
                item_id=row.item_id,
                title=row.title,
                kind=row.kind,
                regime_id=row.regime_id,
                jurisdiction=jurisdiction,
                issued_on=row.issued_on,
                official_url=row.official_url,
                topics=parse_json_array(row.topics),
            ))

        return CyberSanctionsResult(
            matched_query=query_text,
            jurisdictions_applied=jurisdictions,
            regimes=regimes,
            executive_orders=orders,
            provisions=provisions,
        )

    # ============================================
    # DELISTING, EXPORT CONTROLS, CASE LAW
    # ============================================

    @timed_query("get-delisting-procedure")
    def get_delisting_procedure(self, params: GetDelistingProcedureInput) -> List[DelistingProcedureResult]:
        rows = self.delisting.find(
            procedure_id=clean_text(params.procedure_id),
            regime_id=clean_text(params.regime_id),
            limit=self._limit(params.limit),
        )
        return [
            DelistingProcedureResult(
                id=procedure.id,
                regime_id=procedure.regime_id,
                regime_name=regime_name,
                jurisdiction=jurisdiction,
                authority=procedure.authority,
                procedure_summary=procedure.procedure_summary,
                evidentiary_standard=procedure.evidentiary_standard,
                review_body=procedure.review_body,
                review_timeline=procedure.review_timeline,
                application_url=procedure.application_url,
                legal_basis=parse_json_array(procedure.legal_basis),
            )
            for procedure, regime_name, jurisdiction in rows
        ]

    @timed_query("get-export-control")
    def get_export_control(self, params: GetExportControlInput) -> List[ExportControlResult]:
        rows = self.export_controls.find(
            jurisdiction=clean_text(params.jurisdiction),
            section=clean_text(params.section),
            query_text=clean_text(params.query),
            limit=self._limit(params.limit),
        )
        return [
            ExportControlResult(
                id=control.id,
                source_id=control.source_id,
                source_name=source_name,
                jurisdiction=control.jurisdiction,
                instrument=control.instrument,
                section=control.section,
                title=control.title,
                summary=control.summary,
                focus=control.focus,
                official_url=control.official_url,
            )
            for control, source_name in rows
        ]

    @timed_query("search-case-law")
    def search_case_law(self, params: SearchCaseLawInput) -> List[CaseLawResult]:
        rows = self.case_law.search(
            query_text=clean_text(params.query),
            regime_id=clean_text(params.regime_id),
            court=clean_text(params.court),
            delisting_related=params.delisting_related,
            limit=self._limit(params.limit),
        )
        return [
            CaseLawResult(
                id=case.id,
                source_id=case.source_id,
                court=case.court,
                case_reference=case.case_reference,
                title=case.title,
                decision_date=case.decision_date,
                regime_id=case.regime_id,
                regime_name=regime_name,
                delisting_related=bool(case.delisting_related),
                outcome=case.outcome,
                summary=case.summary,
                keywords=parse_json_array(case.keywords),
                official_url=case.official_url,
            )
            for case, regime_name in rows
        ]

    # ============================================
    # SOURCES, ABOUT, FRESHNESS
    # ============================================

    @timed_query("list-sources")
    def list_sources(self, params: ListSourcesInput) -> ListSourcesResult:
        """
        Summaries of every source, plus a detail record when source_id is given.

        An unknown source_id leaves ``source`` as None.
        """
        requested = clean_text(params.source_id)
        summaries = []
        detail = None

        for row in self.sources.list_summaries():
            source = row.Source
            summary = SourceSummary(
                id=source.id,
                name=source.name,
                authority=source.authority,
                official_portal=source.official_portal,
                update_frequency=source.update_frequency,
                priority=source.priority,
                records_estimate=source.records_estimate,
                provision_count=row.provision_count,
                regime_count=row.regime_count,
                case_law_count=row.case_law_count,
                freshness_status=row.freshness_status,
                last_updated=row.last_updated,
            )
            summaries.append(summary)

            if requested and source.id == requested:
                samples = []
                if params.include_samples:
                    samples = _summaries(self.provisions.list_by_source(source.id, limit=SAMPLE_LIMIT))
                detail = SourceDetail(
                    **summary.model_dump(),
                    retrieval_method=source.retrieval_method,
                    coverage_note=source.coverage_note,
                    last_verified=source.last_verified,
                    metadata=parse_json_field(source.extra_metadata),
                    sample_items=samples,
                )

        return ListSourcesResult(sources=summaries, source=detail)

    @timed_query("about")
    def about(self, params: Optional[AboutInput] = None) -> AboutResult:
        """Service identity, record counts, source list and disclaimer."""
        counts = count_records(self.session)
        stats = {
            'total_items': (
                counts['provisions']
                + counts['executive_orders']
                + counts['delisting_procedures']
                + counts['export_controls']
                + counts['sanctions_case_law']
            ),
            'total_sources': counts['sources'],
            'provisions': counts['provisions'],
            'executive_orders': counts['executive_orders'],
            'delisting_procedures': counts['delisting_procedures'],
            'export_controls': counts['export_controls'],
            'sanctions_case_law': counts['sanctions_case_law'],
            'sanctions_regimes': counts['sanctions_regimes'],
        }

        service = self.service_config
        return AboutResult(
            name=service.name,
            version=service.version,
            category=service.category,
            description=service.description,
            stats=stats,
            data_sources=[
                DataSourceInfo(
                    id=source.id,
                    name=source.name,
                    url=source.official_portal,
                    authority=source.authority,
                )
                for source in self.sources.list_all()
            ],
            freshness={
                'last_ingestion': service.last_ingestion,
                'database_built': service.database_built,
            },
            disclaimer=service.disclaimer,
            supported_tools=list(OPERATION_NAMES),
        )

    @timed_query("check-freshness")
    def check_freshness(self, params: CheckFreshnessInput) -> FreshnessReport:
        """
        Evaluate every source's freshness as of a reference date.

        ``max_age_days`` only drives ``is_within_max_age``; the status comes
        from each source's frequency threshold. The status filter and the
        totals both use the evaluated status.
        """
        as_of = clean_text(params.as_of) or datetime.now(timezone.utc).date().isoformat()
        max_age = params.max_age_days
        if max_age is None or not math.isfinite(max_age):
            max_age_days = self.freshness_config.default_max_age_days
        else:
            max_age_days = max(1, math.floor(max_age))

        entries = []
        totals = {status.value: 0 for status in FreshnessStatus}
        for record, source_name in self.sources.list_freshness():
            evaluation = evaluate_freshness(record.last_updated, record.check_frequency, as_of)
            if params.status is not None and evaluation.status != params.status:
                continue

            age = evaluation.known_age
            totals[evaluation.status.value] += 1
            entries.append(FreshnessEntry(
                source_id=record.source_id,
                source_name=source_name,
                check_frequency=record.check_frequency,
                last_checked=record.last_checked,
                last_updated=record.last_updated,
                declared_status=record.status,
                expected_max_age_days=evaluation.threshold_days,
                age_days=age,
                evaluated_status=evaluation.status,
                is_within_max_age=age is not None and age <= max_age_days,
                notes=record.notes,
            ))

        logger.debug(f"check-freshness as_of={sanitize_for_logging(as_of)}: {totals}")
        return FreshnessReport(
            as_of=as_of,
            max_age_days=max_age_days,
            status_filter=params.status,
            totals=totals,
            entries=entries,
        )
