"""
API-specific data models for the snapshot endpoint.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Model for the health check response."""

    message: Annotated[str, Field(description="Service banner")]
    status: Annotated[str, Field(description="Health status")]
    snapshot_available: Annotated[
        bool, Field(description="Whether a snapshot has been persisted")
    ]


class ErrorResponse(BaseModel):
    """Model for error responses."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    error: Annotated[str, Field(description="Error code")]
    message: Annotated[str, Field(description="Human-readable error message")]
