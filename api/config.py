"""
API configuration settings.
"""

from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Review Catalog API"
    api_version: str = "1.0.0"
    api_description: str = "REST API for personal book catalogs and book reviews"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False

    # Security Settings
    jwt_secret: str = Field(
        default="change-me-in-production",
        validation_alias=AliasChoices("JWT_SECRET", "SECRET_KEY"),
    )
    jwt_algorithm: str = "HS256"
    access_token_ttl_seconds: int = 3600
    bcrypt_rounds: int = 10

    # CORS Settings
    cors_origins: str = "*"  # Comma-separated list of allowed origins
    cors_allow_credentials: bool = True

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }

    def get_cors_origins(self) -> List[str]:
        """Parse the comma-separated origin list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global config instance
config = APIConfig()
