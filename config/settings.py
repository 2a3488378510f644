"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
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

    # ===================
    # IMPORT SETTINGS
    # ===================
    import_default_product_type: str = Field(
        default="Material",
        min_length=1,
        description="Product type for new products when neither row, defaults nor vendor supply one"
    )
    import_default_variant_name: str = Field(
        default="Standard",
        min_length=1,
        description="Variant name used when a row has no variant name"
    )
    import_master_sample_name: str = Field(
        default="Master Sample",
        min_length=1,
        description="Variant name of synthetic line board rows"
    )
    import_max_rows: int = Field(
        default=20000,
        ge=1,
        le=200000,
        description="Maximum rows accepted by a single preview/execute request"
    )
    import_apply_function: str = Field(
        default="apply_catalog_import",
        pattern="^[a-z_][a-z0-9_]*$",
        description="Postgres function that applies an import batch in one transaction"
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
