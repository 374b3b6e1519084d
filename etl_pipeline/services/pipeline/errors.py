"""Exceptions raised while building and running a pipeline."""

from typing import Any, Optional


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    pass


class PipelineConfigurationError(PipelineError, ValueError):
    """Raised when the pipeline configuration structure is malformed."""

    pass


class PipelineStateError(PipelineError):
    """Raised when the runner is asked to do something its state does not allow."""

    pass


class RoleTypeError(PipelineError, TypeError):
    """Raised when the expected role is not a pipeline step class."""

    def __init__(self, expected_role: Any):
        super().__init__(
            "expected_role needs to be a base class for the step that is being loaded"
        )
        self.expected_role = expected_role


class SpecifierTypeError(PipelineError, TypeError):
    """Raised when a step specifier is neither a string nor a class."""

    def __init__(self, specifier: Any):
        super().__init__(f"Invalid type for module parameter: {type(specifier).__name__}")
        self.specifier = specifier


class StepResolutionError(PipelineError, LookupError):
    """Raised by a resolver when an identifier cannot be turned into a class."""

    pass


class StepLoadError(PipelineError):
    """Raised when a step specifier could not be resolved."""

    def __init__(self, specifier: str):
        super().__init__(f"Could not load step, {specifier}.")
        self.specifier = specifier


class StepTypeMismatchError(PipelineError):
    """Raised when a resolved step does not satisfy the expected role."""

    def __init__(self, resolved_name: str, expected_name: str, detail: Optional[str] = None):
        message = f"{resolved_name} does not match expected type of {expected_name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.resolved_name = resolved_name
        self.expected_name = expected_name


class InvalidStepConfigurationError(PipelineError):
    """Raised when a step rejects its configuration."""

    def __init__(self, step_name: str, errors: list[str]):
        super().__init__(f"Invalid configuration for step {step_name}")
        self.step_name = step_name
        self.errors = errors


class StepInstantiationError(PipelineError):
    """Raised when a step factory fails to produce an instance."""

    def __init__(self, step_name: str):
        super().__init__(f"Could not create instance of step, {step_name}.")
        self.step_name = step_name
