"""
Pydantic response schemas for the Sanctions Law Reference HTTP API

Operation arguments and results are defined in sanctions_law.schemas; this
module only describes the envelope the HTTP layer wraps around them.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ToolDescriptor(BaseModel):
    """One entry of the operation catalogue."""
    name: str = Field(..., description="Operation name, e.g. search-provisions")
    description: str = Field(..., description="What the operation does")
    input_schema: Dict[str, Any] = Field(..., description="JSON schema of the arguments")


class ToolListResponse(BaseModel):
    """Response schema for the catalogue endpoint."""
    tools: List[ToolDescriptor] = Field(default_factory=list)


class ToolCallResponse(BaseModel):
    """Response schema for an operation call.

    ``result`` is null when a lookup finds nothing.
    """
    tool: str = Field(..., description="Operation that was called")
    result: Optional[Any] = Field(default=None, description="Operation result")


class HealthResponse(BaseModel):
    """Response schema for health check endpoint."""
    status: str = Field(default="healthy", description="Service status")
    name: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    database_latency_ms: Optional[float] = Field(
        default=None,
        description="Latency of a trivial query against the database"
    )
    stats: Dict[str, int] = Field(default_factory=dict, description="Rows per table")
    slow_operations: Dict[str, int] = Field(
        default_factory=dict,
        description="Slow executions per operation since startup"
    )
    uptime_seconds: Optional[int] = Field(
        default=None,
        description="Server uptime in seconds"
    )


class ErrorDetail(BaseModel):
    """Detailed error information."""
    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    field: Optional[str] = Field(default=None, description="Field that caused error")
    suggestion: Optional[str] = Field(default=None, description="How to fix the error")
    timestamp: str = Field(..., description="Error timestamp (ISO 8601)")


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    error: ErrorDetail
