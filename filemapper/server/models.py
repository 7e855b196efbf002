"""Pydantic response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for response serialization
and automatic OpenAPI documentation.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- File type keys are FileType values ("json", "csv", "fixedwidth", ...)
- Response models never expose internal paths
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class WarningInfo(BaseModel):
    """One recoverable per-field problem reported during conversion."""

    record_index: int = Field(description="Zero-based index of the source record.")
    target_name: str = Field(description="Target field the warning applies to.")
    message: str = Field(description="Human-readable description.")


class JobResponse(BaseModel):
    """Conversion job status response.

    RULES:
    - error is only set when status is 'failed'
    - output_file is only set when status is 'completed'
    """

    id: str = Field(description="Unique job identifier.")
    status: str = Field(description="Current job status.")
    filename: str = Field(description="Uploaded source filename.")
    mapping: str = Field(description="Name of the mapping applied.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")
    records: int = Field(default=0, description="Records written (once completed).")
    warnings: List[WarningInfo] = Field(default_factory=list, description="Per-field warnings.")
    error: Optional[str] = Field(default=None, description="Error message when status is 'failed'.")
    output_file: Optional[str] = Field(
        default=None,
        description="Converted filename, available at /conversions/{id}/file.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "status": "completed",
                "filename": "orders.json",
                "mapping": "orders-to-csv",
                "created_at": 1739959200.0,
                "records": 2,
                "warnings": [],
                "error": None,
                "output_file": "orders.csv",
            }
        ]
    }}


class JobCreatedResponse(BaseModel):
    """Response returned when a conversion job is submitted."""

    id: str = Field(description="Unique job identifier for polling status.")
    status: str = Field(description="Initial job status (always 'pending').")
    filename: str = Field(description="Uploaded source filename.")
    mapping: str = Field(description="Name of the mapping that will be applied.")


class FormatInfo(BaseModel):
    """A supported file format."""

    key: str = Field(description="File type identifier used in mapping documents.")
    extension: str = Field(description="File extension written for this type.")
    hierarchical: bool = Field(description="Whether source paths are nested (JSON, XML).")


class MappingInfo(BaseModel):
    """Summary of a mapping document available to the service."""

    name: str = Field(description="Mapping name.")
    source_type: str = Field(description="Source file type.")
    target_type: str = Field(description="Target file type.")
    fields: int = Field(description="Number of field mappings.")
    expected_file_name: Optional[str] = Field(default=None, description="File name routed to this mapping.")
    file_name_is_prefix: bool = Field(default=False, description="Whether expected_file_name is a prefix.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
