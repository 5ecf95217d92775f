"""
Pydantic models of API responses
"""
from typing import List

from pydantic import BaseModel, Field

from utp.infrastructure.storage.content_store import SavedContent
from utp.models.domain import UniversalText


class DetectResponse(BaseModel):
    """Detected canonical text"""
    success: bool = Field(..., description="Whether text was detected")
    processing_time_ms: int = Field(..., description="Processing time in milliseconds")
    text: UniversalText = Field(..., description="Canonical text")


class NormalizeResponse(BaseModel):
    """Merged canonical text"""
    text: UniversalText = Field(..., description="Canonical text")


class ContentListResponse(BaseModel):
    """Saved contents"""
    items: List[SavedContent] = Field(default_factory=list, description="Records, newest first")
    total: int = Field(..., description="Number of returned records")


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Application version")
    recognition_available: bool = Field(..., description="Recognition backend availability")
