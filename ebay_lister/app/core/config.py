import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_FORMATS = ("image/jpeg", "image/png", "image/webp")

AVAILABLE_MODELS = (
    "gemini-1.5-flash",
    "gemini-1.5-pro",
    "gemini-2.0-flash",
    "gemini-2.5-flash",
    "gemini-2.5-pro",
)


class Settings(BaseSettings):
    gemini_api_key: str | None = Field(None, alias="GEMINI_API_KEY")
    gemini_model: str = Field("gemini-1.5-flash", alias="GEMINI_MODEL")
    gemini_endpoint: str = Field(
        "https://generativelanguage.googleapis.com/v1beta/models/", alias="GEMINI_ENDPOINT"
    )
    # None means no client-side timeout
    gemini_timeout_seconds: float | None = Field(None, alias="GEMINI_TIMEOUT_SECONDS")
    max_file_size_bytes: int = Field(20 * 1024 * 1024, alias="LISTING_MAX_FILE_BYTES")
    max_dimension: int | None = Field(1600, alias="LISTING_MAX_DIMENSION")
    image_quality: float = Field(0.85, ge=0.0, le=1.0, alias="LISTING_IMAGE_QUALITY")
    output_format: str = Field("image/jpeg", alias="LISTING_OUTPUT_FORMAT")
    description_max_chars: int = Field(500, alias="LISTING_DESCRIPTION_MAX_CHARS")
    notification_ttl_seconds: float = Field(3.0, alias="LISTING_NOTIFICATION_TTL_SECONDS")
    export_root: Path = Field(Path("exports"), alias="LISTING_EXPORT_ROOT")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
