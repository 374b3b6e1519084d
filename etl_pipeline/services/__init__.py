"""Business services package."""

from etl_pipeline.services.pipeline import PipelineError, PipelineProcessor

__all__ = [
    "PipelineProcessor",
    "PipelineError",
]
