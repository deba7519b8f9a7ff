"""
Operation catalogue

The single list of query operations: their public names, descriptions,
argument models and the SanctionsLookupService method behind each. The
HTTP layer, the ``about`` operation and the tests all read it from here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Type

from sanctions_law.schemas import (
    AboutInput,
    CheckCyberSanctionsInput,
    CheckFreshnessInput,
    GetDelistingProcedureInput,
    GetExecutiveOrderInput,
    GetExportControlInput,
    GetProvisionInput,
    GetRegimeInput,
    ListSourcesInput,
    OperationInput,
    SearchCaseLawInput,
    SearchProvisionsInput,
)

logger = logging.getLogger(__name__)


class UnknownOperationError(KeyError):
    """Raised when an operation name is not in the catalogue"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown operation: {self.name}"


@dataclass(frozen=True)
class OperationEntry:
    """One catalogue entry"""
    name: str
    description: str
    input_model: Type[OperationInput]
    method_name: str


OPERATIONS: List[OperationEntry] = [
    OperationEntry(
        name="search-provisions",
        description=(
            "Full-text search across sanctions legal provisions (UN, EU, US, UK). "
            "Results are ranked by BM25 relevance with highlighted snippets."
        ),
        input_model=SearchProvisionsInput,
        method_name="search_provisions",
    ),
    OperationEntry(
        name="get-provision",
        description="Retrieve one provision by source id and item id, optionally with related provisions.",
        input_model=GetProvisionInput,
        method_name="get_provision",
    ),
    OperationEntry(
        name="get-regime",
        description="Look up sanctions regimes by id, partial name or jurisdiction.",
        input_model=GetRegimeInput,
        method_name="get_regime",
    ),
    OperationEntry(
        name="get-executive-order",
        description="Retrieve an executive order by order number or internal id.",
        input_model=GetExecutiveOrderInput,
        method_name="get_executive_order",
    ),
    OperationEntry(
        name="check-cyber-sanctions",
        description="List cyber-related sanctions regimes, executive orders and provisions.",
        input_model=CheckCyberSanctionsInput,
        method_name="check_cyber_sanctions",
    ),
    OperationEntry(
        name="get-delisting-procedure",
        description="Describe how to petition for removal from a regime's list.",
        input_model=GetDelistingProcedureInput,
        method_name="get_delisting_procedure",
    ),
    OperationEntry(
        name="get-export-control",
        description="Look up export-control rules connected to sanctions compliance.",
        input_model=GetExportControlInput,
        method_name="get_export_control",
    ),
    OperationEntry(
        name="search-case-law",
        description="Search court decisions on sanctions measures, newest first.",
        input_model=SearchCaseLawInput,
        method_name="search_case_law",
    ),
    OperationEntry(
        name="list-sources",
        description="List data sources with record counts and declared freshness.",
        input_model=ListSourcesInput,
        method_name="list_sources",
    ),
    OperationEntry(
        name="about",
        description="Service metadata, dataset statistics and disclaimer.",
        input_model=AboutInput,
        method_name="about",
    ),
    OperationEntry(
        name="check-freshness",
        description="Evaluate how current each data source is against its update frequency.",
        input_model=CheckFreshnessInput,
        method_name="check_freshness",
    ),
]

OPERATION_NAMES = tuple(op.name for op in OPERATIONS)

_BY_NAME: Dict[str, OperationEntry] = {op.name: op for op in OPERATIONS}


def get_operation(name: str) -> OperationEntry:
    """
    Look up an operation by name.

    Raises:
        UnknownOperationError: If the name is not in the catalogue
    """
    try:
        return _BY_NAME[name]
    except KeyError:
        raise UnknownOperationError(name) from None


def call_operation(service: Any, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Any:
    """
    Validate ``arguments`` against the operation's input model and run it.

    Args:
        service: SanctionsLookupService bound to an open session
        name: Operation name from OPERATION_NAMES
        arguments: Raw argument mapping (e.g. a decoded JSON body)

    Returns:
        The operation's result (pydantic model, list of models or None)

    Raises:
        UnknownOperationError: Unknown operation name
        pydantic.ValidationError: Wrongly typed arguments
        InputValidationError: Missing or blank required field
    """
    operation = get_operation(name)
    params = operation.input_model.model_validate(dict(arguments or {}))
    logger.debug(f"Calling operation {name}")
    return getattr(service, operation.method_name)(params)


def describe_operations() -> List[Dict[str, Any]]:
    """Catalogue entries with the JSON schema of each operation's arguments."""
    return [
        {
            'name': op.name,
            'description': op.description,
            'input_schema': op.input_model.model_json_schema(),
        }
        for op in OPERATIONS
    ]
