"""
Health check and metrics endpoints.
Value-safe: no user data in responses.
"""
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Header, HTTPException, status
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.core.logging import get_safe_logger
from app.core.metrics import get_metrics_collector
from app.services.sanitizers.callbacks import list_callbacks

router = APIRouter(tags=["health"])
logger = get_safe_logger(__name__)


# === Response Models ===

class HealthResponse(BaseModel):
    """Basic health check response."""
    ok: bool


class MetricsResponse(BaseModel):
    """Metrics response."""
    uptime_seconds: int = Field(alias="uptimeSeconds")
    total_requests: int = Field(alias="totalRequests")
    success_count: int = Field(alias="successCount")
    error_count: int = Field(alias="errorCount")
    error_codes: Dict[str, int] = Field(alias="errorCodes")
    latency: Dict[str, Any]
    rows_processed: int = Field(alias="rowsProcessed")
    dropped_rows: int = Field(alias="droppedRows")
    dropped_subfields: int = Field(alias="droppedSubfields")
    callbacks: List[str]

    class Config:
        populate_by_name = True


# === Endpoints ===

@router.get(
    "/healthz",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Returns 200 if the service is alive"
)
async def health_check() -> HealthResponse:
    """
    Liveness probe for Kubernetes/Cloud Run.
    Simply returns ok=true if the service is running.
    """
    return HealthResponse(ok=True)


@router.get(
    "/v1/metrics",
    response_model=MetricsResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Sanitizer metrics (Admin)",
    description="Aggregated value-safe counters. Admin token required if ADMIN_API_KEY is set."
)
async def get_metrics(
    x_admin_token: Annotated[Optional[str], Header(alias="X-Admin-Token")] = None,
) -> MetricsResponse:
    settings = get_settings()

    # Optional Admin Protection
    if settings.admin_api_key:
        if not x_admin_token or x_admin_token != settings.admin_api_key:
            logger.warning("Unauthorized access to metrics endpoint")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid admin token"
            )

    snapshot = get_metrics_collector().get_snapshot()
    return MetricsResponse(
        uptimeSeconds=snapshot["uptime_seconds"],
        totalRequests=snapshot["total_requests"],
        successCount=snapshot["success_count"],
        errorCount=snapshot["error_count"],
        errorCodes=snapshot["error_codes"],
        latency=snapshot["latency"],
        rowsProcessed=snapshot["rows_processed"],
        droppedRows=snapshot["dropped_rows"],
        droppedSubfields=snapshot["dropped_subfields"],
        callbacks=list_callbacks(),
    )
