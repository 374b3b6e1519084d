"""Resolves, validates and instantiates pipeline steps."""

import inspect
from collections.abc import Mapping, Sequence
from typing import Any, Union

from etl_pipeline.config import ensure_bound_logger

from .base_step import PipelineStep
from .errors import (
    InvalidStepConfigurationError,
    RoleTypeError,
    SpecifierTypeError,
    StepInstantiationError,
    StepLoadError,
    StepTypeMismatchError,
)
from .resolver import StepResolver


class StepLoader:
    """Turns a step specifier into a live step instance.

    Loading goes through four checks, each logged before it raises:
    1. Resolve the identifier to a class (skipped when given a class)
    2. Check the class fills the expected role
    3. Validate the step configuration with the class itself
    4. Create the instance with the class factory
    """

    def __init__(self, logger: Any, resolver: StepResolver, search_paths: Sequence[str] = ()):
        """Initialize the step loader.

        Args:
            logger: Logger used for diagnostics and handed to step factories
            resolver: Resolver for string identifiers
            search_paths: Ordered roots passed to the resolver
        """
        self.logger = ensure_bound_logger(logger)
        self.resolver = resolver
        self.search_paths = tuple(search_paths)

    async def load_step(
        self,
        expected_role: type,
        module: Union[str, type],
        config: Mapping[str, Any],
    ) -> PipelineStep:
        """Load a pipeline step and get a configured instance of it.

        Args:
            expected_role: Role class the step must derive from
            module: Identifier of the step, or the step class
            config: Configuration for this step

        Returns:
            The step instance created by the step class

        Raises:
            RoleTypeError: If expected_role is not a step class
            SpecifierTypeError: If module is neither a string nor a class
            StepLoadError: If the identifier could not be resolved
            StepTypeMismatchError: If the class does not fill the expected role
            InvalidStepConfigurationError: If the step rejects its configuration
            StepInstantiationError: If the step factory failed
        """
        if not (inspect.isclass(expected_role) and issubclass(expected_role, PipelineStep)):
            self.logger.error("Invalid expected role for step", expected_role=repr(expected_role))
            raise RoleTypeError(expected_role)

        step_class = self._resolve(module)
        step_name = step_class.__name__

        self._check_role(step_class, expected_role)
        self._validate_config(step_class, config)

        try:
            instance = await step_class.get_instance(self.logger, config)
        except Exception as e:
            self.logger.error(
                "Could not create instance of step",
                step=step_name,
                error=str(e),
                exc_info=True,
            )
            raise StepInstantiationError(step_name) from e

        self.logger.debug("Loaded step", step=step_name, role=expected_role.__name__)
        return instance

    def _resolve(self, module: Union[str, type]) -> type:
        """Resolve a specifier to a class."""
        if isinstance(module, str):
            try:
                return self.resolver.resolve(module, self.search_paths)
            except Exception as e:
                self.logger.error(
                    "Could not load step",
                    module=module,
                    search_paths=list(self.search_paths),
                    error=str(e),
                    exc_info=True,
                )
                raise StepLoadError(module) from e

        if inspect.isclass(module):
            return module

        self.logger.error("Invalid type for step module", module_type=type(module).__name__)
        raise SpecifierTypeError(module)

    def _check_role(self, step_class: type, expected_role: type) -> None:
        """Check the resolved class implements the expected role."""
        if not issubclass(step_class, expected_role):
            self.logger.error(
                "Step does not match expected role",
                step=step_class.__name__,
                expected_role=expected_role.__name__,
            )
            raise StepTypeMismatchError(step_class.__name__, expected_role.__name__)

        if inspect.isabstract(step_class):
            missing = sorted(getattr(step_class, "__abstractmethods__", ()))
            self.logger.error(
                "Step leaves abstract methods unimplemented",
                step=step_class.__name__,
                expected_role=expected_role.__name__,
                missing=missing,
            )
            raise StepTypeMismatchError(
                step_class.__name__,
                expected_role.__name__,
                f"missing {', '.join(missing)}",
            )

    def _validate_config(self, step_class: type, config: Mapping[str, Any]) -> None:
        """Run the step's own configuration validation."""
        step_name = step_class.__name__

        try:
            errors = list(step_class.validate_config(config))
        except Exception as e:
            self.logger.error(
                "Step configuration errors detected",
                step=step_name,
                error=str(e),
                exc_info=True,
            )
            raise InvalidStepConfigurationError(step_name, [str(e)]) from e

        if errors:
            self.logger.error(
                "Step configuration errors detected",
                step=step_name,
                error_count=len(errors),
            )
            for error in errors:
                self.logger.error("Step configuration error", step=step_name, error=str(error))
            raise InvalidStepConfigurationError(step_name, [str(error) for error in errors])
