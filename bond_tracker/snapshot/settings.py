"""
Snapshot settings using Pydantic for environment-based configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SnapshotSettings(BaseSettings):
    """Configuration for where the snapshot is persisted."""

    snapshot_path: str = Field(
        default="./data/btp-data.json", description="Path to the snapshot JSON file"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Create a global instance
snapshot_settings = SnapshotSettings()
