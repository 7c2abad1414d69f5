"""
Configuration management using environment variables.
Handles document store and logging settings with validation and defaults.
"""

from typing import Optional
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class StoreConfig(BaseSettings):
    """
    Configuration class for the document store and logging.
    Uses pydantic BaseSettings for environment variable management.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from .env
    )

    # MongoDB Configuration
    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        validation_alias=AliasChoices("MONGO_URI", "MONGODB_URL"),
    )
    mongodb_database: str = Field(default="book_reviews")
    accounts_collection: str = Field(default="users")
    books_collection: str = Field(default="books")
    reviews_collection: str = Field(default="reviews")
    connect_timeout_ms: int = Field(default=5000)

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    # Development/Testing
    debug: bool = Field(default=False)

    @field_validator('connect_timeout_ms')
    @classmethod
    def validate_timeout(cls, v):
        """Ensure the connect timeout is reasonable."""
        if v < 100 or v > 60000:
            raise ValueError('connect_timeout_ms must be between 100 and 60000')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_collection_names(self) -> dict:
        """Map record kinds to their collection names."""
        return {
            "account": self.accounts_collection,
            "book": self.books_collection,
            "review": self.reviews_collection,
        }


# Global configuration instance
config = StoreConfig()
