"""Pluggable ETL pipeline processor.

A pipeline is one source, any number of transformers and one loader, each a
step class resolved at runtime and driven through a shared async lifecycle.
"""

from etl_pipeline.services.pipeline import (
    PipelineProcessor,
    PipelineStep,
    RecordLoader,
    RecordSource,
    RecordTransformer,
)

__version__ = "1.0.0"

__all__ = [
    "PipelineProcessor",
    "PipelineStep",
    "RecordSource",
    "RecordTransformer",
    "RecordLoader",
]
