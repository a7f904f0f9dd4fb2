"""
Shared response envelopes for the API.
Error payloads never echo submitted values.
"""
from typing import Literal

from pydantic import BaseModel, Field


class ResponseMetadata(BaseModel):
    """Metadata included in error responses."""
    request_id: str = Field(..., alias="requestId", description="Request ID for tracing")

    class Config:
        populate_by_name = True


class ErrorDetail(BaseModel):
    """Error details for failed requests."""
    code: Literal[
        "UNAUTHORIZED",
        "FORBIDDEN",
        "BAD_REQUEST",
        "DECODE_ERROR",
        "UNKNOWN_CALLBACK",
        "INTERNAL_ERROR"
    ] = Field(
        ...,
        description="Error code"
    )
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(default=False, description="Whether the request can be retried")


class ErrorResponse(BaseModel):
    """Error response."""
    success: Literal[False] = False
    error: ErrorDetail = Field(..., description="Error details")
    metadata: ResponseMetadata = Field(..., description="Response metadata")

    class Config:
        populate_by_name = True
