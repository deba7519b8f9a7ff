"""
Pydantic input/result schemas for the query operations

Input models double as the published argument schema of each operation
(see catalogue.py); result models are what the operations return and what
the HTTP layer serializes.
"""

from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field

from sanctions_law.models import FreshnessStatus


def _numeric_or_none(value: Any) -> Any:
    """Non-numeric limits fall back to the operation default instead of failing."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


# Numeric argument; anything non-numeric becomes None (the default)
Number = Annotated[Optional[Union[int, float]], BeforeValidator(_numeric_or_none)]


LIMIT_DESCRIPTION = "Maximum rows to return. Default 10, max 50."


class OperationInput(BaseModel):
    """Base for operation arguments; unknown keys are ignored."""
    model_config = {"extra": "ignore"}


# ============================================
# INPUTS
# ============================================

class SearchProvisionsInput(OperationInput):
    # Published as required; a missing query searches nothing
    model_config = {"json_schema_extra": {"required": ["query"]}}

    query: Optional[str] = Field(default=None, description="Search text or keywords")
    source_ids: Optional[List[str]] = Field(
        default=None,
        description='Optional source filters, e.g. ["EU_RESTRICTIVE_MEASURES"]'
    )
    jurisdictions: Optional[List[str]] = Field(
        default=None,
        description='Optional jurisdiction filters, e.g. ["EU", "US"]'
    )
    regime_id: Optional[str] = Field(default=None, description="Optional sanctions regime id")
    topics: Optional[List[str]] = Field(
        default=None,
        description='Optional topic filters, e.g. ["cyber", "asset_freeze"]'
    )
    limit: Number = Field(default=None, description=LIMIT_DESCRIPTION)


class GetProvisionInput(OperationInput):
    source_id: str = Field(..., description="Source id, e.g. EU_RESTRICTIVE_MEASURES")
    item_id: str = Field(..., description="Item id within the source, e.g. EU833_ART2")
    include_related: bool = Field(
        default=False,
        description="Attach up to 5 provisions from the same regime or topic"
    )


class GetRegimeInput(OperationInput):
    regime_id: Optional[str] = Field(default=None, description="Exact regime id")
    name: Optional[str] = Field(default=None, description="Partial regime name")
    jurisdiction: Optional[str] = Field(default=None, description="Exact jurisdiction code")
    include_provisions: bool = Field(
        default=False,
        description="Attach up to 5 recent provisions of each regime"
    )
    limit: Number = Field(default=None, description=LIMIT_DESCRIPTION)


class GetExecutiveOrderInput(OperationInput):
    order_number: str = Field(..., description='Order number (e.g. "13694") or internal id')
    include_related_provisions: bool = Field(
        default=False,
        description="Attach up to 5 related provisions"
    )


class CheckCyberSanctionsInput(OperationInput):
    query: Optional[str] = Field(default=None, description="Optional text filter")
    jurisdiction: Optional[str] = Field(default=None, description="Optional jurisdiction code")
    limit: Number = Field(default=None, description=LIMIT_DESCRIPTION)


class GetDelistingProcedureInput(OperationInput):
    procedure_id: Optional[str] = Field(default=None, description="Exact procedure id")
    regime_id: Optional[str] = Field(default=None, description="Exact regime id")
    limit: Number = Field(default=None, description=LIMIT_DESCRIPTION)


class GetExportControlInput(OperationInput):
    jurisdiction: Optional[str] = Field(default=None, description="Exact jurisdiction code")
    section: Optional[str] = Field(default=None, description="Partial section identifier")
    query: Optional[str] = Field(
        default=None,
        description="Text filter over title, summary and focus"
    )
    limit: Number = Field(default=None, description=LIMIT_DESCRIPTION)


class SearchCaseLawInput(OperationInput):
    query: Optional[str] = Field(
        default=None,
        description="Text filter over case reference, title, summary and keywords"
    )
    regime_id: Optional[str] = Field(default=None, description="Exact regime id")
    court: Optional[str] = Field(default=None, description="Partial court name")
    delisting_related: Optional[bool] = Field(
        default=None,
        description="Only cases that are (or are not) about delisting"
    )
    limit: Number = Field(default=None, description=LIMIT_DESCRIPTION)


class ListSourcesInput(OperationInput):
    source_id: Optional[str] = Field(default=None, description="Source to describe in detail")
    include_samples: bool = Field(
        default=False,
        description="Attach up to 5 sample provisions to the detail record"
    )


class AboutInput(OperationInput):
    pass


class CheckFreshnessInput(OperationInput):
    as_of: Optional[str] = Field(
        default=None,
        description="Reference date (YYYY-MM-DD); defaults to today"
    )
    max_age_days: Number = Field(
        default=None,
        description="Age limit for the is_within_max_age flag. Default 45"
    )
    status: Optional[FreshnessStatus] = Field(
        default=None,
        description="Only entries with this evaluated status"
    )


# ============================================
# RESULTS
# ============================================

class ProvisionSummary(BaseModel):
    """Short provision reference used in related/sample lists."""
    source_id: str
    item_id: str
    title: str
    kind: str
    regime_id: Optional[str] = None
    issued_on: Optional[str] = None
    official_url: str


class ProvisionSearchResult(BaseModel):
    source_id: str
    source_name: str
    item_id: str
    kind: str
    title: str
    snippet: str = Field(..., description="Matched text with >>> <<< highlight markers")
    relevance: float = Field(..., description="BM25 score; lower is more relevant")
    regime_id: Optional[str] = None
    regime_name: Optional[str] = None
    issued_on: Optional[str] = None
    official_url: str
    topics: List[str] = Field(default_factory=list)


class ProvisionDetail(BaseModel):
    source_id: str
    source_name: str
    item_id: str
    kind: str
    title: str
    text: str
    parent: Optional[str] = None
    regime_id: Optional[str] = None
    regime_name: Optional[str] = None
    issued_on: Optional[str] = None
    official_url: str
    topics: List[str] = Field(default_factory=list)
    metadata: Optional[Any] = None
    related: Optional[List[ProvisionSummary]] = Field(
        default=None,
        description="Present only when include_related was requested"
    )


class RegimeResult(BaseModel):
    id: str
    name: str
    jurisdiction: str
    authority: str
    summary: str
    legal_basis: List[str] = Field(default_factory=list)
    cyber_related: bool
    delisting_procedure_id: Optional[str] = None
    official_url: str
    provision_count: int
    case_law_count: int
    provisions: Optional[List[ProvisionSummary]] = None


class ExecutiveOrderResult(BaseModel):
    id: str
    order_number: str
    title: str
    issued_on: str
    status: str
    summary: str
    cyber_related: bool
    legal_basis: List[str] = Field(default_factory=list)
    official_url: str
    source_id: str
    source_name: str
    regime_id: Optional[str] = None
    regime_name: Optional[str] = None
    related_provisions: Optional[List[ProvisionSummary]] = None


class CyberRegime(BaseModel):
    regime_id: str
    name: str
    jurisdiction: str
    authority: str
    official_url: str


class CyberExecutiveOrder(BaseModel):
    id: str
    order_number: str
    title: str
    issued_on: str
    status: str
    source_id: str
    regime_id: Optional[str] = None
    jurisdiction: str
    official_url: str


class CyberProvision(BaseModel):
    source_id: str
    item_id: str
    title: str
    kind: str
    regime_id: Optional[str] = None
    jurisdiction: str
    issued_on: Optional[str] = None
    official_url: str
    topics: List[str] = Field(default_factory=list)


class CyberSanctionsResult(BaseModel):
    matched_query: Optional[str] = None
    jurisdictions_applied: List[str] = Field(default_factory=list)
    regimes: List[CyberRegime] = Field(default_factory=list)
    executive_orders: List[CyberExecutiveOrder] = Field(default_factory=list)
    provisions: List[CyberProvision] = Field(default_factory=list)


class DelistingProcedureResult(BaseModel):
    id: str
    regime_id: str
    regime_name: str
    jurisdiction: str
    authority: str
    procedure_summary: str
    evidentiary_standard: str
    review_body: str
    review_timeline: str
    application_url: str
    legal_basis: List[str] = Field(default_factory=list)


class ExportControlResult(BaseModel):
    id: str
    source_id: str
    source_name: str
    jurisdiction: str
    instrument: str
    section: str
    title: str
    summary: str
    focus: str
    official_url: str


class CaseLawResult(BaseModel):
    id: str
    source_id: str
    court: str
    case_reference: str
    title: str
    decision_date: str
    regime_id: Optional[str] = None
    regime_name: Optional[str] = None
    delisting_related: bool
    outcome: str
    summary: str
    keywords: List[str] = Field(default_factory=list)
    official_url: str


class SourceSummary(BaseModel):
    id: str
    name: str
    authority: str
    official_portal: str
    update_frequency: str
    priority: str
    records_estimate: str
    provision_count: int
    regime_count: int
    case_law_count: int
    freshness_status: Optional[str] = None
    last_updated: Optional[str] = None


class SourceDetail(SourceSummary):
    retrieval_method: str
    coverage_note: str
    last_verified: str
    metadata: Optional[Any] = None
    sample_items: List[ProvisionSummary] = Field(default_factory=list)


class ListSourcesResult(BaseModel):
    sources: List[SourceSummary] = Field(default_factory=list)
    source: Optional[SourceDetail] = Field(
        default=None,
        description="Detail record when source_id was given and found"
    )


class DataSourceInfo(BaseModel):
    id: str
    name: str
    url: str
    authority: str


class AboutResult(BaseModel):
    name: str
    version: str
    category: str
    description: str
    stats: Dict[str, int]
    data_sources: List[DataSourceInfo] = Field(default_factory=list)
    freshness: Dict[str, Optional[str]] = Field(default_factory=dict)
    disclaimer: str
    supported_tools: List[str] = Field(default_factory=list)


class FreshnessEntry(BaseModel):
    source_id: str
    source_name: str
    check_frequency: str
    last_checked: str
    last_updated: str
    declared_status: str
    expected_max_age_days: int
    age_days: Optional[int] = Field(default=None, description="None when the dates are unreadable")
    evaluated_status: FreshnessStatus
    is_within_max_age: bool
    notes: Optional[str] = None


class FreshnessReport(BaseModel):
    as_of: str
    max_age_days: int
    status_filter: Optional[FreshnessStatus] = None
    totals: Dict[str, int]
    entries: List[FreshnessEntry] = Field(default_factory=list)
