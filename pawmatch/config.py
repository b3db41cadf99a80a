"""
Configuration management for PawMatch.
Loads settings from environment variables and provides typed configuration access.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    environment: str = Field(default="development", description="Environment: development, staging, production")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Database
    database_url: str = Field(
        default="sqlite:///./pawmatch.db",
        description="SQLAlchemy database URL (postgresql+psycopg2://... in production)"
    )
    db_pool_size: int = Field(default=20, description="Connection pool size (ignored for SQLite)")
    db_echo: bool = Field(default=False, description="Echo SQL statements to the log")
    lock_timeout_ms: int = Field(
        default=5000,
        description="Row lock wait timeout in milliseconds (PostgreSQL only, 0 disables)"
    )

    # Match Settings
    match_message_min_length: int = Field(default=5, description="Minimum match message length")
    match_message_max_length: int = Field(default=120, description="Maximum match message length")

    # Listing Settings
    default_page_size: int = Field(default=5, description="Default number of animals per page")
    max_page_size: int = Field(default=100, description="Maximum number of animals per page")

    # API Settings
    api_host: str = Field(default="0.0.0.0", description="HTTP bind host")
    api_port: int = Field(default=8080, description="HTTP bind port")

    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

