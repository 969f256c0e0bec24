"""tripstudio configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Working surface
    MAX_SURFACE_WIDTH: int = 800
    MAX_SURFACE_HEIGHT: int = 800

    # Export
    EXPORT_PIXEL_RATIO: float = 2.0  # Density multiplier for exported rasters

    # Filters
    BACKGROUND_THRESHOLD: int = 240  # R, G and B must all exceed this

    # Crop
    CROP_INSET_RATIO: float = 0.1  # Margin on each side when a crop begins
    MIN_CROP_SIZE: float = 5.0
    HANDLE_HIT_RADIUS: float = 15.0

    # Annotations
    MIN_ELEMENT_SIZE: float = 5.0
    DEFAULT_COLOR: str = "#6366f1"
    DEFAULT_THICKNESS: int = 5
    DEFAULT_FONT_FAMILY: str = "Inter, sans-serif"


# Singleton instance for import convenience
settings = Settings()
