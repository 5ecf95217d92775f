"""
Application configuration through Pydantic Settings
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables"""

    # Application Settings
    APP_NAME: str = "universal-text-pipeline"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "auto"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Recognition Backend Settings
    RECOGNITION_BACKEND: str = "http"
    RECOGNITION_URL: str = "http://localhost:8001"
    RECOGNITION_TIMEOUT: float = 30.0

    # Speech Backend Settings
    SPEECH_URL: str = "http://localhost:8002"
    SPEECH_TIMEOUT: float = 30.0

    # PaddleOCR Settings (local recognition backend)
    PADDLEOCR_LANG: str = "en"
    PADDLEOCR_USE_ANGLE_CLS: bool = True
    PADDLEOCR_USE_GPU: bool = False
    PADDLEOCR_WORKERS: int = 2

    # Detection Settings
    OCR_LANGUAGES: str = "vi,en"
    SOURCE_TIMEOUT_MS: int = 10000
    CONTINUOUS_OCR_INTERVAL_MS: int = 2000
    CAPTURE_SIMILARITY_THRESHOLD: float = 0.95
    WEB_FETCH_TIMEOUT: float = 15.0
    MAX_ACCESSIBILITY_TOKENS: int = 600

    # Local documents (file:// URIs and paths) are read from the server disk
    ALLOW_LOCAL_FILES: bool = False
    LOCAL_FILES_ROOT: str = ""

    # Image Settings
    MAX_IMAGE_SIZE_MB: int = 10
    ALLOWED_IMAGE_FORMATS: str = "jpg,jpeg,png,webp"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @property
    def ocr_languages_list(self) -> List[str]:
        """OCR language hints parsed from the comma separated string"""
        return [lang.strip() for lang in self.OCR_LANGUAGES.split(",") if lang.strip()]

    @property
    def allowed_origins_list(self) -> List[str]:
        """CORS origins parsed from the comma separated string"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def allowed_image_formats_list(self) -> List[str]:
        """Image formats parsed from the comma separated string"""
        return [fmt.strip() for fmt in self.ALLOWED_IMAGE_FORMATS.split(",")]


# Singleton instance
_settings: Settings = None


def get_settings() -> Settings:
    """Get the settings (singleton)"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
