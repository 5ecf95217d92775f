"""
Text handlers - detection and merge endpoints
"""
import time

from fastapi import APIRouter, Depends, HTTPException, status

from utp.api.dependencies import get_pipeline
from utp.config import get_settings
from utp.core.exceptions import ImageValidationError, MergeInputError, UTPException
from utp.core.logging import get_logger
from utp.models.domain import DetectionContext
from utp.models.requests import DetectRequest, NormalizeRequest
from utp.models.responses import DetectResponse, NormalizeResponse
from utp.models.results import DetectionError, DetectionSuccess
from utp.services.detectors import is_local_url
from utp.services.pipeline import TextPipelineService
from utp.utils.image_utils import decode_base64_image

logger = get_logger(__name__)
router = APIRouter(prefix="/text", tags=["Text"])


@router.post("/detect", response_model=DetectResponse, status_code=status.HTTP_200_OK)
async def detect_text(
    request: DetectRequest,
    pipeline: TextPipelineService = Depends(get_pipeline)
) -> DetectResponse:
    """
    Detect text from the given accessibility nodes, image and url

    Every applicable source runs concurrently and the results are merged
    into one canonical text.

    Raises:
        HTTPException 400: Image could not be decoded, or a local file url
            was given while local files are disabled
        HTTPException 422: No source produced text
        HTTPException 500: Internal server error
    """
    start_time = time.time()

    if request.url and is_local_url(request.url) and not get_settings().ALLOW_LOCAL_FILES:
        logger.warning("Local file url rejected", url=request.url)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Unsupported url",
                "message": "local file access is disabled",
                "details": {"url": request.url}
            }
        )

    try:
        logger.info("Received detect request")

        image = decode_base64_image(request.image) if request.image else None
        context = DetectionContext(
            accessibility_available=request.accessibility_available or bool(request.accessibility_nodes),
            accessibility_nodes=tuple(request.accessibility_nodes),
            image=image,
            url=request.url,
        )
        config = request.to_config(pipeline.default_config)

        if request.sequential:
            result = await pipeline.process_auto(context, config)
        else:
            result = await pipeline.process(context, config)

    except ImageValidationError as e:
        logger.warning("Image validation failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Image validation failed",
                "message": e.message,
                "details": e.details
            }
        )

    except Exception as e:
        logger.error("Unexpected error", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal server error",
                "message": "An unexpected error occurred"
            }
        )

    if isinstance(result, DetectionSuccess):
        return DetectResponse(
            success=True,
            processing_time_ms=int((time.time() - start_time) * 1000),
            text=result.universal_text,
        )

    details = {}
    if isinstance(result, DetectionError) and isinstance(result.cause, UTPException):
        details = result.cause.details

    logger.warning("No text detected", details=details)
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "error": "No text detected",
            "message": "no text detected from any source",
            "details": details
        }
    )


@router.post("/normalize", response_model=NormalizeResponse)
async def normalize_text(
    request: NormalizeRequest,
    pipeline: TextPipelineService = Depends(get_pipeline)
) -> NormalizeResponse:
    """
    Merge already detected texts with the given strategy

    Raises:
        HTTPException 422: Empty input
    """
    config = pipeline.default_config.model_copy(
        update={
            "merge_strategy": request.strategy,
            "normalization": request.normalization,
        }
    )

    try:
        merged = pipeline.merge(request.results, config)
    except MergeInputError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "Invalid merge input",
                "message": e.message,
                "details": e.details
            }
        )

    return NormalizeResponse(text=merged)
