"""
Devplan Configuration Management

Uses Pydantic Settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # =========================================================================
    # APPLICATION
    # =========================================================================
    APP_NAME: str = "devplan-scheduler"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "info"
    VERSION: str = "0.1.0"

    # =========================================================================
    # SPRINT ALLOCATION
    # =========================================================================
    SPRINT_BUFFER: int = 6
    DEFAULT_WEEKS_PER_SPRINT: int = 2
    # Re-flow tasks that arrive with a sprintKey into that sprint (or a later one)
    # instead of resetting the hint.
    PRESERVE_PRE_ASSIGNED_SPRINTS: bool = False

    # =========================================================================
    # MILESTONES
    # =========================================================================
    MILESTONE_GAP_DAYS: int = 14

    # =========================================================================
    # PLAN DOCUMENT
    # =========================================================================
    DATE_FORMAT: str = "%m/%d/%Y"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
