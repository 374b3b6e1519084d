"""Application settings and configuration management."""
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Defaults for running a pipeline from the command line."""

    config_file: str = "pipeline.json"
    # Step module roots, searched after the pipeline file's own and the CLI's
    search_paths: list[str] = Field(default_factory=list)
    progress_interval: int = Field(10, gt=0)  # Records between progress log lines

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")


class AWSSettings(BaseSettings):
    """AWS configuration for the S3 loader step.

    Keys are optional; without them boto3 falls back to its default
    credential chain (SSO, profile, instance role, etc.).
    """

    region: str = "eu-west-2"
    access_key_id: str = ""
    secret_access_key: str = ""
    endpoint_url: Optional[str] = None  # S3-compatible endpoint, e.g. a local MinIO

    model_config = SettingsConfigDict(env_prefix="AWS_")

    @property
    def has_explicit_credentials(self) -> bool:
        """Whether both keys are set."""
        return bool(self.access_key_id.strip() and self.secret_access_key.strip())


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "console"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main application settings."""

    environment: Literal["dev", "staging", "prod"] = "dev"

    # Sub-settings
    pipeline: PipelineSettings = PipelineSettings()
    aws: AWSSettings = AWSSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
