"""Pipeline infrastructure for ETL orchestration."""

from .base_step import (
    PipelineStep,
    RecordLoader,
    RecordSource,
    RecordTransformer,
    validate_with_model,
)
from .concurrency import join_all
from .errors import (
    InvalidStepConfigurationError,
    PipelineConfigurationError,
    PipelineError,
    PipelineStateError,
    RoleTypeError,
    SpecifierTypeError,
    StepInstantiationError,
    StepLoadError,
    StepResolutionError,
    StepTypeMismatchError,
)
from .pipeline import PipelineProcessor, PipelineState, parse_pipeline_config
from .resolver import ModuleStepResolver, RegistryStepResolver, StepResolver
from .step_loader import StepLoader

__all__ = [
    "PipelineStep",
    "RecordSource",
    "RecordTransformer",
    "RecordLoader",
    "validate_with_model",
    "join_all",
    "PipelineError",
    "PipelineConfigurationError",
    "PipelineStateError",
    "RoleTypeError",
    "SpecifierTypeError",
    "StepResolutionError",
    "StepLoadError",
    "StepTypeMismatchError",
    "InvalidStepConfigurationError",
    "StepInstantiationError",
    "PipelineProcessor",
    "PipelineState",
    "parse_pipeline_config",
    "StepResolver",
    "ModuleStepResolver",
    "RegistryStepResolver",
    "StepLoader",
]
