"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Data services settings with defaults for development."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./dataservices.db"
    sql_echo: bool = False  # Log emitted SQL
    pool_pre_ping: bool = True  # Verify connections before using
    pool_recycle: int = 1800  # Recycle connections after 30 minutes

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100
    # Base URL used to build next/previous/first/last page links
    base_url: str = "http://localhost:8000"

    # Registration
    # One of "singleton", "scoped", "transient"
    default_service_lifetime: str = "scoped"

    # Environment
    environment: str = "development"
    debug: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def validate_production_settings(self) -> list[str]:
        """
        Validate settings that must not keep their development defaults in production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        if self.environment == "production":
            if self.debug:
                errors.append("DEBUG must be disabled in production")

            if self.database_url.startswith("sqlite"):
                errors.append("DATABASE_URL must point to a server database in production")

            if self.sql_echo:
                errors.append("SQL_ECHO must be disabled in production")

        if self.default_page_size > self.max_page_size:
            errors.append("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

# Direct access to commonly used settings
DATABASE_URL = settings.database_url
