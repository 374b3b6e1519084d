"""Pydantic models for the pipeline configuration."""

import inspect
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StepSpecifier(BaseModel):
    """Unresolved reference to a pipeline step plus its configuration."""

    module: Any = Field(description="Importable identifier of the step, or the step class itself")
    config: dict[str, Any] = Field(description="Configuration handed to the step")

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("module")
    @classmethod
    def check_module(cls, value: Any) -> Any:
        """Accept a non-empty string or a class."""
        if isinstance(value, str):
            if not value.strip():
                raise ValueError("module must not be empty")
            return value
        if inspect.isclass(value):
            return value
        raise ValueError("module must be a string or a class")

    @property
    def step_name(self) -> str:
        """Readable name of the referenced step."""
        return self.module if isinstance(self.module, str) else self.module.__name__


class PipelineConfig(BaseModel):
    """Complete description of a pipeline: source, transformers and loader."""

    name: str = Field(default="pipeline", description="Pipeline name used in logs")
    source: StepSpecifier
    transformers: tuple[StepSpecifier, ...] = Field(default=())
    loader: StepSpecifier
    search_paths: tuple[str, ...] = Field(
        default=(),
        alias="searchPaths",
        description="Roots searched, in order, for step modules",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)
