"""
TreeSpotter Backend - Shared Response Schemas
==============================================

What:  Response shapes shared by every router: creation/acknowledgement
       envelopes, the uniform error body, and the health report.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CreatedResponse(BaseModel):
    """Returned with HTTP 201 by the insert endpoints."""
    message: str = Field(description="Human-readable success message")
    id: int = Field(description="ID of the created entity")


class MessageResponse(BaseModel):
    """Acknowledgement for updates and deletes."""
    message: str = Field(description="Human-readable success message")
    id: Optional[int] = Field(default=None, description="ID of the affected entity")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "meadow with ID '4' was not found",
            "request_id": "1f0c2a9b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
