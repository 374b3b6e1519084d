"""Configuration package."""

from etl_pipeline.config.logging import configure_logging, ensure_bound_logger, get_logger
from etl_pipeline.config.settings import Settings, settings

__all__ = ["settings", "Settings", "configure_logging", "ensure_bound_logger", "get_logger"]
