"""
Pydantic models of incoming API requests
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utp.core.enums import MergeStrategy
from utp.models.config import NormalizationOptions, TextDetectionConfig
from utp.models.domain import AccessibilityNode, UniversalText


class DetectRequest(BaseModel):
    """Text detection request"""
    accessibility_available: bool = Field(
        False,
        description="Host exposes accessibility text (implied by non-empty nodes)"
    )
    accessibility_nodes: List[AccessibilityNode] = Field(
        default_factory=list,
        description="On-screen text nodes"
    )
    image: Optional[str] = Field(None, description="Image in base64")
    url: Optional[str] = Field(None, description="URL or file URI to extract")
    sequential: bool = Field(
        False,
        description="Try sources one by one and stop at the first with text"
    )

    # config overrides
    enable_accessibility: Optional[bool] = None
    enable_ocr: Optional[bool] = None
    enable_web_fetch: Optional[bool] = None
    ocr_languages: Optional[List[str]] = None
    merge_strategy: Optional[MergeStrategy] = None
    source_timeout_ms: Optional[int] = Field(None, gt=0)
    normalization: Optional[NormalizationOptions] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://example.com/article",
                "accessibility_nodes": [
                    {"text": "Hello world", "bounds": {"left": 0, "top": 0, "right": 220, "bottom": 40}}
                ],
                "merge_strategy": "smart",
            }
        }
    )

    @field_validator("image", "url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    def to_config(self, base: TextDetectionConfig) -> TextDetectionConfig:
        """Base config with the overrides given in this request"""
        overrides = {
            name: getattr(self, name)
            for name in (
                "enable_accessibility",
                "enable_ocr",
                "enable_web_fetch",
                "ocr_languages",
                "merge_strategy",
                "source_timeout_ms",
                "normalization",
            )
            if getattr(self, name) is not None
        }
        return base.model_copy(update=overrides)


class NormalizeRequest(BaseModel):
    """Merge request for already detected texts"""
    results: List[UniversalText] = Field(..., description="Texts to merge")
    strategy: MergeStrategy = Field(MergeStrategy.SMART, description="Merge strategy")
    normalization: NormalizationOptions = Field(
        default_factory=NormalizationOptions,
        description="Post-merge clean-up"
    )


class SaveContentRequest(BaseModel):
    """Request to persist a text"""
    text: UniversalText = Field(..., description="Text to save")
    title: Optional[str] = Field(None, description="Title, metadata title if omitted")
    tags: List[str] = Field(default_factory=list, description="Tags")
