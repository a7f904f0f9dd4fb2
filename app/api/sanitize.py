"""
Repeater sanitize API endpoint.
Cleans a repeater value against its subfield schema before the host stores it.
"""
import time
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Header, status

from app.core.auth import verify_auth_header
from app.core.logging import get_safe_logger
from app.core.metrics import get_metrics_collector
from app.schemas.repeater import SanitizeMetadata, SanitizeRequest, SanitizeResponse
from app.services.exceptions import SanitizerError
from app.services.sanitizers.repeater_sanitizer import get_repeater_sanitizer

router = APIRouter(prefix="/v1/repeater", tags=["repeater"], dependencies=[Depends(verify_auth_header)])
logger = get_safe_logger(__name__)


def get_request_id(
    x_request_id: Annotated[str | None, Header(alias="X-Request-ID")] = None
) -> str:
    """
    Get or generate request ID from header.
    """
    if x_request_id and len(x_request_id) <= 100:
        return x_request_id
    return str(uuid.uuid4())


@router.post(
    "/sanitize",
    response_model=SanitizeResponse,
    status_code=status.HTTP_200_OK,
    summary="Sanitize a repeater value",
    description=(
        "Decodes the value (percent-encoded JSON or structured rows), drops "
        "malformed rows and unknown subfields, and cleans each subfield by type."
    ),
)
async def sanitize_repeater(
    body: SanitizeRequest,
    request_id: Annotated[str, Depends(get_request_id)],
) -> SanitizeResponse:
    """
    Sanitize one repeater value.

    Errors (DecodeError, UnknownCallbackError) are rendered by the
    SanitizerError handler registered in app.main.
    """
    metrics = get_metrics_collector()
    start = time.perf_counter()

    try:
        schema = body.field_schema()
        data, report = get_repeater_sanitizer().sanitize_with_report(body.value, schema)
    except SanitizerError as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        metrics.record_error(e.error_code.value, latency_ms=latency_ms)
        logger.warning(
            "Repeater sanitize rejected",
            error_code=e.error_code.value,
            request_id=request_id,
            latency_ms=latency_ms,
        )
        raise

    latency_ms = int((time.perf_counter() - start) * 1000)
    metrics.record_sanitize(
        latency_ms=latency_ms,
        rows=report.rows,
        dropped_rows=report.dropped_rows,
        dropped_subfields=report.dropped_subfields,
    )
    logger.info(
        "Repeater sanitize completed",
        request_id=request_id,
        latency_ms=latency_ms,
        rows=report.rows,
        dropped_rows=report.dropped_rows,
        dropped_subfields=report.dropped_subfields,
        subfield_count=len(schema),
    )

    return SanitizeResponse(
        data=data,
        metadata=SanitizeMetadata(
            requestId=request_id,
            sanitizeMs=latency_ms,
            rows=report.rows,
            droppedRows=report.dropped_rows,
            droppedSubfields=report.dropped_subfields,
        ),
    )
