"""
Health check handlers
"""
from fastapi import APIRouter, Depends

from utp.api.dependencies import get_pipeline
from utp.config import get_settings
from utp.models.responses import HealthResponse
from utp.services.pipeline import TextPipelineService

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", response_model=HealthResponse)
@router.get("/", response_model=HealthResponse, include_in_schema=False)
async def health_check(
    pipeline: TextPipelineService = Depends(get_pipeline)
) -> HealthResponse:
    """
    Basic health check
    The service is up; reports whether recognition is available
    """
    settings = get_settings()

    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        recognition_available=pipeline.is_ready()
    )


@router.get("/ready", response_model=HealthResponse)
async def readiness_check(
    pipeline: TextPipelineService = Depends(get_pipeline)
) -> HealthResponse:
    """Readiness check for Kubernetes"""
    settings = get_settings()
    is_ready = pipeline.is_ready()

    return HealthResponse(
        status="ready" if is_ready else "not_ready",
        version=settings.APP_VERSION,
        recognition_available=is_ready
    )
