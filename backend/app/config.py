"""Application configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings are loaded in this priority order (highest to lowest):
    1. Environment variables
    2. .env file (for local development)
    3. Default values

    For production, set environment variables directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    app_name: str = "FMCSR Reader API"
    debug: bool = False

    # =========================================================================
    # Database
    # =========================================================================
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/fmcsr",
        description="PostgreSQL connection URL",
    )

    # =========================================================================
    # CORS
    # =========================================================================
    cors_origins: list[str] = ["http://localhost:3000"]

    # =========================================================================
    # API Settings
    # =========================================================================
    api_v1_prefix: str = "/api/v1"

    # =========================================================================
    # eCFR Upstream
    # =========================================================================
    # Public versioner API, no key required (https://www.ecfr.gov/developers)
    ecfr_base_url: str = "https://www.ecfr.gov"
    cfr_title: int = 49

    # Parts making up the Federal Motor Carrier Safety Regulations
    fmcsr_parts: list[str] = Field(
        default=[
            "40", "376", "380", "381", "382", "383", "385", "386", "387",
            "390", "391", "392", "393", "395", "396", "397", "398", "399",
        ],
        description="CFR parts synced and served",
    )

    http_timeout: float = 30.0
    fetch_max_attempts: int = 5
    fetch_backoff_seconds: float = Field(
        default=0.8,
        description="Linear backoff unit; attempt n waits n * this many seconds",
    )
    sync_request_delay: float = Field(
        default=0.1,
        description="Pause after each upstream fetch during a part sync",
    )
    image_request_delay: float = Field(
        default=0.2,
        description="Pause after each image download during sync-images",
    )
    image_cache_max_age: int = Field(
        default=604800,
        description="Cache-Control max-age (seconds) for served images",
    )

    # =========================================================================
    # Pipeline Cache
    # =========================================================================
    cache_dir: str = "data"

    # GCS bucket for shared pipeline cache (optional).
    # When set, dated eCFR full-text responses are cached in GCS so they
    # persist across instances and local rebuilds.
    gcs_cache_bucket: str | None = Field(
        default=None,
        description="GCS bucket name for pipeline cache (e.g., 'fmcsr-pipeline-cache')",
    )


settings = Settings()
