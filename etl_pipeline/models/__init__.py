"""Pipeline configuration models."""

from etl_pipeline.models.pipeline_config import PipelineConfig, StepSpecifier

__all__ = [
    "PipelineConfig",
    "StepSpecifier",
]
