"""
Pipeline settings using Pydantic for environment-based configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Scrape pipeline configuration using Pydantic settings."""

    coupon_bond_url: str = Field(
        default="https://www.borsaitaliana.it/borsa/obbligazioni/mot/btp/lista.html?lang=en",
        description="Borsa Italiana MOT listing of BTPs",
    )

    discount_bill_url: str = Field(
        default="https://www.rendimenti.it/bot",
        description="Rendimenti.it listing of BOTs",
    )

    run_timeout: float = Field(
        default=120.0, gt=0, description="Wall-clock budget in seconds for one run"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Create a global instance
pipeline_settings = PipelineSettings()
