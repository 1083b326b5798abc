"""
Travel Diary – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──
    APP_NAME: str = "Travel Diary"
    DEBUG: bool = True

    # ── Database ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./travel_diary.db"

    # ── JWT ──
    SECRET_KEY: str = "change-me-to-a-random-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # ── Media storage ──
    MEDIA_ROOT: str = "./uploads"
    MEDIA_URL_PREFIX: str = "/uploads"
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    MAX_VIDEO_BYTES: int = 50 * 1024 * 1024
    RECONCILE_ON_STARTUP: bool = True
    ORPHAN_GRACE_SECONDS: int = 0

    # ── Image transform ──
    IMAGE_MAX_DIMENSION: int = 800
    IMAGE_QUALITY: int = 80
    TRANSFORM_TIMEOUT_SECONDS: float = 30.0

    # ── Entry content ──
    MAX_IMAGES_PER_ENTRY: int = 10
    TITLE_MAX_LENGTH: int = 255
    BODY_MIN_LENGTH: int = 10
    REJECT_REASON_MAX_LENGTH: int = 255
    VIDEO_URL_MAX_LENGTH: int = 500

    # ── Listing ──
    PAGE_SIZE: int = 10


settings = Settings()
