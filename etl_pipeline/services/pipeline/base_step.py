"""Base classes for pipeline steps.

A pipeline has three roles: one ``RecordSource``, any number of
``RecordTransformer`` and one ``RecordLoader``. Concrete steps subclass the
role they fill and implement every abstract method; ``abc`` refuses to
instantiate a class that leaves one out.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from etl_pipeline.config import ensure_bound_logger


class PipelineStep(ABC):
    """Abstract base class for pipeline steps.

    Each step goes through the same lifecycle, driven by the runner:
    1. Created through ``get_instance()`` once ``validate_config()`` passed
    2. ``begin()`` is awaited before any role operation
    3. Zero or more role operations
    4. Exactly one of ``end()`` or ``abort()`` closes the step
    """

    def __init__(self, logger: Any, name: Optional[str] = None):
        """Initialize the pipeline step.

        Args:
            logger: Logger handed down by the runner
            name: Optional custom name for the step. Defaults to class name.
        """
        self.name = name or self.__class__.__name__
        self.logger = ensure_bound_logger(logger).bind(step=self.name)

    @abstractmethod
    async def begin(self) -> None:
        """Acquire whatever the step needs before records flow."""
        pass

    @abstractmethod
    async def end(self) -> None:
        """Commit the step's work after every record was processed."""
        pass

    @abstractmethod
    async def abort(self) -> None:
        """Release resources and discard work after a failure."""
        pass

    @classmethod
    @abstractmethod
    def validate_config(cls, config: Mapping[str, Any]) -> list[str]:
        """Validate a configuration for this step type.

        Args:
            config: Step configuration

        Returns:
            List of error messages, empty when the configuration is valid
        """
        raise NotImplementedError(f"{cls.__name__} does not implement validate_config")

    @classmethod
    @abstractmethod
    async def get_instance(cls, logger: Any, config: Mapping[str, Any]) -> "PipelineStep":
        """Create a configured instance of this step type.

        Args:
            logger: Logger handed down by the runner
            config: Step configuration, already validated

        Returns:
            New step instance
        """
        raise NotImplementedError(f"{cls.__name__} does not implement get_instance")

    def get_name(self) -> str:
        """Get the step name.

        Returns:
            Step name
        """
        return self.name


class RecordSource(PipelineStep):
    """A step that produces the records fed into the pipeline."""

    @abstractmethod
    async def get_records(self) -> Sequence[Any]:
        """Fetch every record from this source.

        Returns:
            The complete collection of records
        """
        pass


class RecordTransformer(PipelineStep):
    """A step that converts a record into the next stage's input."""

    @abstractmethod
    async def transform(self, record: Any) -> Any:
        """Transform a record.

        Implementations must return a new value instead of mutating ``record``.

        Args:
            record: Output of the source or of the previous transformer

        Returns:
            The transformed record
        """
        pass


class RecordLoader(PipelineStep):
    """A step that stores records."""

    @abstractmethod
    async def load_record(self, record: Any) -> None:
        """Load a record into the data store.

        Args:
            record: Output of the last transformer
        """
        pass


def validate_with_model(model: type[BaseModel], config: Mapping[str, Any]) -> list[str]:
    """Validate a step configuration against a pydantic model.

    Args:
        model: Pydantic model describing the configuration
        config: Step configuration

    Returns:
        One message per validation error, empty when valid
    """
    try:
        model.model_validate(config)
    except ValidationError as e:
        return [
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
            for error in e.errors()
        ]
    return []
