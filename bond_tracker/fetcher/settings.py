"""
Fetcher settings using Pydantic for environment-based configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetcherSettings(BaseSettings):
    """HTML fetcher configuration using Pydantic settings."""

    request_timeout: float = Field(
        default=20.0, gt=0, description="Total timeout in seconds for one request"
    )

    max_redirects: int = Field(
        default=5, ge=0, description="Maximum number of redirects to follow"
    )

    retry_attempts: int = Field(
        default=3, ge=1, description="Number of attempts for transient failures"
    )

    retry_backoff: float = Field(
        default=1.0, ge=0, description="Initial delay in seconds between attempts"
    )

    retry_backoff_max: float = Field(
        default=10.0, ge=0, description="Upper bound for the retry delay"
    )

    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; bond-tracker/1.0)",
        description="User-Agent header sent to upstream sites",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Create a global instance
fetcher_settings = FetcherSettings()
