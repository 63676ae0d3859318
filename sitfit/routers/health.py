"""Health check endpoints for system monitoring."""

import logging
import time
from typing import List, Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from sitfit.db import check_connection

router = APIRouter(prefix="/health", tags=["System"])

logger = logging.getLogger(__name__)


class ServiceCheck(BaseModel):
    """Model for individual service health check."""

    name: str
    status: Literal["healthy", "unhealthy"]
    duration_ms: float | None = None
    error: str | None = None


class HealthCheckResponse(BaseModel):
    """Response model for health check endpoint."""

    status: Literal["healthy", "unhealthy"]
    timestamp: float
    duration_ms: float
    checks: List[ServiceCheck]


@router.get("", summary="System health check", response_model=HealthCheckResponse)
async def health_check(request: Request) -> HealthCheckResponse:
    """Basic health check endpoint.

    Raises:
        HTTPException: 503 if the database is unreachable
    """
    start_time = time.time()
    checks: List[ServiceCheck] = []

    db_start = time.time()
    db_healthy = await check_connection(request.app.state.mongo_client)
    checks.append(
        ServiceCheck(
            name="database",
            status="healthy" if db_healthy else "unhealthy",
            duration_ms=round((time.time() - db_start) * 1000, 2),
        )
    )
    if not db_healthy:
        logger.error("Database health check failed")

    all_healthy = all(check.status == "healthy" for check in checks)
    response = HealthCheckResponse(
        status="healthy" if all_healthy else "unhealthy",
        timestamp=time.time(),
        duration_ms=round((time.time() - start_time) * 1000, 2),
        checks=checks,
    )

    if not all_healthy:
        raise HTTPException(status_code=503, detail=response.model_dump())

    return response
