"""
Service settings, read from the environment or a .env file.

Upload tuning (batch size, preview rows) and table names live here so a
deployment can point the service at differently named tables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Validated settings. Env var names are the field names, case-insensitive
    (SUPABASE_URL, UPLOAD_BATCH_SIZE, ...).
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # TABLES
    # ===================
    mappings_table: str = Field(
        default="channel_sku_mappings",
        description="Table holding channel SKU mappings"
    )
    products_table: str = Field(
        default="products",
        description="Authoritative product table (master SKUs)"
    )

    # ===================
    # BULK UPLOAD
    # ===================
    upload_batch_size: int = Field(
        default=1000,
        ge=1,
        le=5000,
        description="Records per upsert call during bulk upload"
    )
    preview_row_limit: int = Field(
        default=30,
        ge=1,
        le=500,
        description="Data rows shown in the upload preview"
    )
    mappings_page_size: int = Field(
        default=200,
        ge=1,
        le=1000,
        description="Default page size for mapping lists"
    )
    master_sku_lookup_chunk: int = Field(
        default=500,
        ge=1,
        le=1000,
        description="Master SKUs per products lookup during upload"
    )
    store_max_rows: int = Field(
        default=1000,
        ge=1,
        description="Row cap PostgREST applies to one response (db-max-rows)"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:8080",
        ],
        description="Frontend origins allowed by CORS"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
