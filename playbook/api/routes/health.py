"""
Health check endpoints.

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (can we reach the document store?)

The distinction matters in orchestration systems like Kubernetes
where liveness and readiness have different behaviors.
"""

import logging
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...core.errors import StoreReadError
from ...core.store import player_path
from ..dependencies import DocumentStoreDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()

# Reading a document that never exists exercises the full read path
_PROBE_PATH = player_path("__readiness_probe__")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Liveness check. Fast, and never touches external dependencies."""
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "mock_mode": {"store": settings.store_mock_mode},
        }
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the service can handle traffic. Checks the document store.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(
    response: Response,
    settings: SettingsDep,
    store: DocumentStoreDep,
) -> ReadinessResponse:
    """
    Readiness check - can we serve traffic?

    Fails (503) when configuration is missing or the store can't be
    read. A missing Anthropic key is reported but doesn't fail the
    check: insights degrade to a placeholder without it.
    """
    checks: list[ReadinessCheck] = []
    all_ok = True

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing_fields)}"
        ))
        all_ok = False
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))

    if all_ok:
        try:
            await store.get(_PROBE_PATH)
            checks.append(ReadinessCheck(
                name="store",
                status="ok",
                error="mock mode" if settings.store_mock_mode else None,
            ))
        except StoreReadError as e:
            logger.error("Store health check failed", extra={"error": str(e)})
            checks.append(ReadinessCheck(name="store", status="error", error=str(e)))
            all_ok = False

    checks.append(ReadinessCheck(
        name="anthropic",
        status="ok",
        error=None if settings.anthropic_api_key else "API key not configured, insights disabled",
    ))

    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )
