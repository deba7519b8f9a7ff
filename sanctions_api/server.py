"""
FastAPI Sanctions Law Reference API Server

Exposes the query operations of sanctions_law over HTTP. Every operation is
called the same way: POST a JSON object of arguments to
/api/v1/tools/{name} and receive {"tool": name, "result": ...}.

Usage:
    uvicorn sanctions_api.server:app --port 8000
"""

import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from sanctions_api.models import (
    ErrorResponse,
    HealthResponse,
    ToolCallResponse,
    ToolDescriptor,
    ToolListResponse,
)
from sanctions_api.middleware import (
    setup_cors,
    setup_exception_handlers,
    RequestLoggingMiddleware,
)
from config_manager import get_config, ConfigManager, ConfigurationError
from sanctions_law.catalogue import call_operation, describe_operations
from sanctions_law.connection import DatabaseSettings, close_db, get_db, get_db_provider, init_db
from sanctions_law.lookup_service import SanctionsLookupService
from sanctions_law.monitoring import check_health, configure_monitoring, get_slow_operations
from sanctions_law.seed import count_records

logger = logging.getLogger(__name__)

# Environment variables with defaults
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))
CONFIG_PATH = os.getenv("CONFIG_PATH")

# Global state
_config: Optional[ConfigManager] = None
_startup_time: Optional[datetime] = None


def get_config_instance() -> ConfigManager:
    """Dependency to get the config instance."""
    global _config
    if _config is None:
        _config = get_config(CONFIG_PATH)
    return _config


def get_lookup_service(
    db: Session = Depends(get_db),
    config: ConfigManager = Depends(get_config_instance),
) -> SanctionsLookupService:
    """Dependency building a lookup service around the request's session."""
    return SanctionsLookupService(db, config)


def serialize_result(result: Any) -> Any:
    """Turn an operation result into plain JSON-compatible data."""
    if isinstance(result, list):
        return [serialize_result(item) for item in result]
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result


# Create FastAPI application
app = FastAPI(
    title="Sanctions Law Reference API",
    description=(
        "Read-only lookup of sanctions legal provisions, regimes, executive orders, "
        "delisting procedures, export controls and case law. Not an entity screening service."
    ),
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# Setup middleware
setup_cors(app)
app.add_middleware(RequestLoggingMiddleware)
setup_exception_handlers(app)


@app.on_event("startup")
async def startup():
    """Load configuration and open the reference database."""
    global _startup_time

    logger.info("Starting Sanctions Law Reference API...")
    try:
        config = get_config_instance()
        configure_monitoring(
            slow_query_threshold_ms=config.monitoring.slow_query_threshold_ms,
            warning_threshold_ms=config.monitoring.warning_threshold_ms,
            enable_prometheus=config.monitoring.enable_prometheus,
        )
        provider = init_db(DatabaseSettings(
            path=config.database.path,
            read_only=config.database.read_only,
            echo=config.database.echo,
        ))
        logger.info(f"✓ Database opened: {provider.settings.path}")
    except ConfigurationError as e:
        logger.error(f"✗ Configuration error: {e}")
        raise
    except Exception as e:
        logger.error(f"✗ Startup error: {e}")
        raise

    _startup_time = datetime.now(timezone.utc)
    logger.info("✓ API ready")


@app.on_event("shutdown")
async def shutdown():
    """Release the database engine."""
    logger.info("Shutting down Sanctions Law Reference API...")
    close_db()


@app.get(
    "/api/v1/tools",
    response_model=ToolListResponse,
    summary="List operations",
    description="Catalogue of the query operations with the JSON schema of their arguments.",
)
def list_tools() -> ToolListResponse:
    return ToolListResponse(tools=[ToolDescriptor(**entry) for entry in describe_operations()])


@app.post(
    "/api/v1/tools/{name}",
    response_model=ToolCallResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown operation"},
        422: {"model": ErrorResponse, "description": "Invalid or missing arguments"},
        500: {"model": ErrorResponse, "description": "Storage error"},
    },
    summary="Call an operation",
)
def call_tool(
    name: str,
    arguments: Optional[Dict[str, Any]] = Body(default=None),
    service: SanctionsLookupService = Depends(get_lookup_service),
) -> ToolCallResponse:
    """Run one operation; a lookup that finds nothing returns a null result."""
    result = call_operation(service, name, arguments)
    return ToolCallResponse(tool=name, result=serialize_result(result))


@app.get(
    "/api/v1/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Database reachability, service identity and row counts.",
)
def health_check(
    db: Session = Depends(get_db),
    config: ConfigManager = Depends(get_config_instance),
) -> HealthResponse:
    health = check_health(get_db_provider().session_factory)
    stats = count_records(db) if health.healthy else {}

    uptime = None
    if _startup_time is not None:
        uptime = int((datetime.now(timezone.utc) - _startup_time).total_seconds())

    return HealthResponse(
        status="healthy" if health.healthy else "unhealthy",
        name=config.service.name,
        version=config.service.version,
        database_latency_ms=round(health.latency_ms, 2),
        stats=stats,
        slow_operations=get_slow_operations(),
        uptime_seconds=uptime,
    )


@app.get("/", include_in_schema=False)
async def root():
    """Redirect root to API documentation."""
    return RedirectResponse(url="/api/docs")


if __name__ == "__main__":
    import uvicorn

    config = get_config_instance()
    logging.basicConfig(level=config.logging.level.upper(), format=config.logging.format)
    uvicorn.run(app, host=API_HOST, port=API_PORT)
