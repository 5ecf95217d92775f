from typing import List

from pydantic import BaseModel, ConfigDict, Field

from utp.config import Settings
from utp.core.enums import MergeStrategy, TokenizeMode


class NormalizationOptions(BaseModel):
    """optional clean-up steps applied after merging"""

    model_config = ConfigDict(frozen=True)

    min_confidence: float = Field(
        default=0.0, ge=0.0, le=1.0, description="drop tokens below this confidence"
    )
    remove_duplicates: bool = Field(
        default=False, description="drop tokens repeating text at the same rectangle centre"
    )
    filter_noise: bool = Field(
        default=False, description="drop advertisement and navigation words"
    )
    order_by_reading: bool = Field(
        default=False, description="reorder tokens top-to-bottom, left-to-right"
    )
    tokenize_by: TokenizeMode = Field(
        default=TokenizeMode.WORD, description="token granularity of the output"
    )

    @property
    def is_noop(self) -> bool:
        return (
            self.min_confidence == 0.0
            and not self.remove_duplicates
            and not self.filter_noise
            and not self.order_by_reading
            and self.tokenize_by == TokenizeMode.WORD
        )


class TextDetectionConfig(BaseModel):
    """settings of one detection attempt"""

    model_config = ConfigDict(frozen=True)

    enable_accessibility: bool = Field(default=True, description="read accessibility text")
    enable_ocr: bool = Field(default=True, description="recognize the context image")
    enable_web_fetch: bool = Field(default=True, description="fetch the context url")
    enable_continuous_ocr: bool = Field(
        default=False, description="recognize the context screen frame"
    )
    continuous_ocr_interval_ms: int = Field(
        default=2000, ge=1, description="continuous capture cadence"
    )
    ocr_languages: List[str] = Field(
        default_factory=lambda: ["vi", "en"], description="ocr language hints"
    )
    merge_strategy: MergeStrategy = Field(
        default=MergeStrategy.SMART, description="how several sources are merged"
    )
    source_timeout_ms: int = Field(
        default=10000, gt=0, description="per-source detection deadline"
    )
    similarity_threshold: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="continuous capture emits only below this similarity",
    )
    normalization: NormalizationOptions = Field(
        default_factory=NormalizationOptions, description="post-merge clean-up"
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextDetectionConfig":
        return cls(
            continuous_ocr_interval_ms=settings.CONTINUOUS_OCR_INTERVAL_MS,
            ocr_languages=settings.ocr_languages_list or ["en"],
            source_timeout_ms=settings.SOURCE_TIMEOUT_MS,
            similarity_threshold=settings.CAPTURE_SIMILARITY_THRESHOLD,
        )

    @classmethod
    def continuous(cls, base: "TextDetectionConfig") -> "TextDetectionConfig":
        """config for capture loop cycles - only the screen frame is recognized"""
        return base.model_copy(
            update={
                "enable_accessibility": False,
                "enable_ocr": False,
                "enable_web_fetch": False,
                "enable_continuous_ocr": True,
            }
        )

    @property
    def primary_language(self) -> str:
        return self.ocr_languages[0] if self.ocr_languages else "en"
