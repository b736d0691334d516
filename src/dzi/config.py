"""dzi configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
(prefixed with ``DZI_``) and .env files.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DZI_",
        case_sensitive=True,
        extra="ignore",
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Pyramid layout (written into the .dzi descriptor)
    TILE_SIZE: int = 254
    OVERLAP: int = 1
    TILE_FORMAT: str = "jpg"  # "jpg" or "png"

    # Encoding and resampling
    JPEG_QUALITY: int = 90
    RESAMPLE_FILTER: str = "lanczos"  # any PIL.Image.Resampling name

    # Worker pool size for tile encoding
    WORKERS: int = 4


# Singleton instance for import convenience
settings = Settings()
