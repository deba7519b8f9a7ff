"""
Sanctions Law Reference Package

This package provides:
- SQLAlchemy ORM models for sources, regimes, provisions and related records
- SQLite schema creation with an FTS5 index over provisions
- Seed loading and validation
- Read-only query operations (SanctionsLookupService) and their catalogue
- FastAPI Dependency Injection for database sessions
- Performance monitoring and query timing
"""

from sanctions_law.models import (
    Base,
    Source,
    SanctionsRegime,
    Provision,
    ExecutiveOrder,
    DelistingProcedure,
    ExportControl,
    SanctionsCaseLaw,
    SourceFreshness,
    FreshnessStatus,
)
from sanctions_law.connection import (
    DatabaseSessionProvider,
    DatabaseSettings,
    # FastAPI dependencies
    get_db,
    get_db_provider,
    # Initialization
    init_db,
    close_db,
)
from sanctions_law.schema import create_schema, SchemaError
from sanctions_law.seed import (
    seed_database,
    load_seed_file,
    resolve_seed,
    validate_seed,
    SeedValidationError,
)
from sanctions_law.catalogue import (
    OPERATIONS,
    OPERATION_NAMES,
    UnknownOperationError,
    call_operation,
    describe_operations,
)
from sanctions_law.lookup_service import SanctionsLookupService, InputValidationError
from sanctions_law.monitoring import (
    query_timer,
    timed_query,
    get_db_metrics,
    get_slow_operations,
    reset_metrics,
    configure_monitoring,
    check_health,
    HealthStatus,
)

__all__ = [
    # Models
    'Base',
    'Source',
    'SanctionsRegime',
    'Provision',
    'ExecutiveOrder',
    'DelistingProcedure',
    'ExportControl',
    'SanctionsCaseLaw',
    'SourceFreshness',
    'FreshnessStatus',
    # Database provider
    'DatabaseSessionProvider',
    'DatabaseSettings',
    # FastAPI dependencies
    'get_db',
    'get_db_provider',
    # Initialization
    'init_db',
    'close_db',
    # Schema and seed
    'create_schema',
    'SchemaError',
    'seed_database',
    'load_seed_file',
    'resolve_seed',
    'validate_seed',
    'SeedValidationError',
    # Operations
    'OPERATIONS',
    'OPERATION_NAMES',
    'UnknownOperationError',
    'call_operation',
    'describe_operations',
    'SanctionsLookupService',
    'InputValidationError',
    # Monitoring
    'query_timer',
    'timed_query',
    'get_db_metrics',
    'get_slow_operations',
    'reset_metrics',
    'configure_monitoring',
    'check_health',
    'HealthStatus',
]
