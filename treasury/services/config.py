"""Application configuration from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./treasury.db",
        description="Async SQLAlchemy connection string",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # Locale
    locale: str = Field(default="id_ID", description="Babel locale for money and month names")

    # Dues engine
    default_dues_amount: int = Field(
        default=50000,
        gt=0,
        description="Dues amount used when an organization has no DuesConfig",
    )
    default_currency: str = Field(default="IDR", description="Currency for synthetic DuesConfig")
    bulk_max_concurrency: int = Field(
        default=4,
        ge=1,
        description="Concurrent item writes in a bulk operation (use 1 for SQLite)",
    )
    arrears_window_months: int = Field(
        default=12, ge=1, le=120, description="Trailing months in the arrears series"
    )

    # API
    api_title: str = Field(default="Treasury API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")


# Global settings instance
settings = Settings()
