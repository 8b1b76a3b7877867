"""Configuration management for Fundspace."""

from typing import List, Optional

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for Fundspace."""

    # Application
    app_name: str = "Fundspace"
    version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///data/fundspace.db")
    require_email_confirmation: bool = Field(default=False)
    seed_on_startup: bool = Field(default=False)

    # Client state and object storage
    state_db_path: str = Field(default="data/client_state.db")
    storage_root: str = Field(default="data/buckets")
    public_storage_url: str = Field(default="/storage")
    max_upload_bytes: int = Field(default=2 * 1024 * 1024)
    allowed_image_types: List[str] = Field(
        default=["image/jpeg", "image/png", "image/gif", "image/webp"]
    )

    # Discovery pipeline
    page_size: int = Field(default=12)
    recent_search_limit: int = Field(default=5)

    # News
    rss_article_limit: int = Field(default=6)

    # Sign-up
    min_password_length: int = Field(default=6)
    auth_settle_delay: float = Field(default=1.0)

    # Tokens
    jwt_secret_key: Optional[str] = Field(default=None)
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_minutes: int = Field(default=30)

    # Logging
    log_level: str = Field(default="INFO")
    structured_logging: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FUNDSPACE_",
        case_sensitive=False,
    )

    @field_validator("debug", "require_email_confirmation", "seed_on_startup", "structured_logging", mode="before")
    @classmethod
    def coerce_bool_from_env(cls, v):
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.strip().lower() in {"1", "true", "yes", "on"}
        return bool(v)


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
