"""Configuration management for the Governance Phase Gating service."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # Sandboxed environments may not expose .env; rely on the process environment
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    GOVERNANCE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod, test")

    # Service
    SERVICE_NAME: str = Field(default="Governance Phase Gating", description="Service display name")
    API_PREFIX: str = Field(default="/v1", description="Prefix for versioned API routes")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance
    """
    return Settings()
