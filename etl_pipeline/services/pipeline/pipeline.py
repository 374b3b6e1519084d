"""Pipeline processor orchestrating source, transformer and loader steps."""

import asyncio
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import ValidationError
from structlog import get_logger

from etl_pipeline.config import ensure_bound_logger, settings
from etl_pipeline.models.pipeline_config import PipelineConfig, StepSpecifier

from .base_step import PipelineStep, RecordLoader, RecordSource, RecordTransformer
from .concurrency import join_all
from .errors import PipelineConfigurationError, PipelineStateError
from .resolver import ModuleStepResolver, StepResolver
from .step_loader import StepLoader


class PipelineState(str, Enum):
    """Phases of a pipeline run."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    BEGINNING = "beginning"
    FETCHING = "fetching"
    PROCESSING = "processing"
    ENDING = "ending"
    ABORTING = "aborting"
    COMPLETE = "complete"
    FAILED = "failed"


def parse_pipeline_config(data: Union[PipelineConfig, Mapping[str, Any]]) -> PipelineConfig:
    """Validate a raw pipeline configuration.

    Each part is checked on its own, in a fixed order, so the error names
    the part at fault.

    Args:
        data: Mapping with ``source``, ``transformers``, ``loader`` and
            optionally ``name`` and ``searchPaths``/``search_paths``,
            or an already built PipelineConfig

    Returns:
        Validated, immutable pipeline configuration

    Raises:
        PipelineConfigurationError: If any part is malformed
    """
    if isinstance(data, PipelineConfig):
        return data

    if not isinstance(data, Mapping):
        raise PipelineConfigurationError("The pipeline configuration is not valid")

    search_paths = data.get("searchPaths", data.get("search_paths"))
    if search_paths is None:
        search_paths = ()
    elif not isinstance(search_paths, (list, tuple)) or not all(
        isinstance(path, str) for path in search_paths
    ):
        raise PipelineConfigurationError("searchPaths must be an array")

    source = _parse_step(data.get("source"), "The source configuration is not valid")

    transformers = data.get("transformers", [])
    if not isinstance(transformers, (list, tuple)):
        raise PipelineConfigurationError("The transformers configuration is not valid")
    transformer_specs = tuple(
        _parse_step(transformer, "The transformers configuration is not valid")
        for transformer in transformers
    )

    loader = _parse_step(data.get("loader"), "The loader configuration is not valid")

    name = data.get("name") or "pipeline"
    if not isinstance(name, str):
        raise PipelineConfigurationError("The pipeline name is not valid")

    return PipelineConfig(
        name=name,
        source=source,
        transformers=transformer_specs,
        loader=loader,
        search_paths=tuple(search_paths),
    )


def _parse_step(value: Any, message: str) -> StepSpecifier:
    if isinstance(value, StepSpecifier):
        return value
    if not isinstance(value, Mapping):
        raise PipelineConfigurationError(message)
    try:
        return StepSpecifier.model_validate(dict(value))
    except ValidationError as e:
        raise PipelineConfigurationError(message) from e


class PipelineProcessor:
    """Runs one source, a chain of transformers and one loader.

    The run goes through fixed phases:
    1. Load every step (resolve, validate, instantiate)
    2. begin() on every step
    3. Fetch all records from the source
    4. Push each record through the transformers and into the loader
    5. end() on every step

    A failure after loading aborts every step and re-raises the original
    error. A processor runs once.
    """

    def __init__(
        self,
        config: Union[PipelineConfig, Mapping[str, Any]],
        logger: Optional[Any] = None,
        resolver: Optional[StepResolver] = None,
        progress_interval: Optional[int] = None,
    ):
        """Initialize the pipeline processor.

        Args:
            config: Pipeline configuration (source, transformers, loader, searchPaths)
            logger: Optional leveled logger (info/debug/error); loggers without
                bind are wrapped. Defaults to this module's logger bound to the
                pipeline name
            resolver: Optional step resolver; defaults to importing Python modules
            progress_interval: Log progress every N processed records

        Raises:
            PipelineConfigurationError: If the configuration structure is malformed
        """
        self.config = parse_pipeline_config(config)
        self.name = self.config.name
        if logger is None:
            logger = get_logger(__name__).bind(pipeline=self.name)
        self.logger = ensure_bound_logger(logger)
        self.resolver = resolver or ModuleStepResolver()
        self.progress_interval = progress_interval or settings.pipeline.progress_interval
        self.step_loader = StepLoader(self.logger, self.resolver, self.config.search_paths)

        self.source_step: Optional[RecordSource] = None
        self.transformer_steps: list[RecordTransformer] = []
        self.loader_step: Optional[RecordLoader] = None

        self.records_fetched = 0
        self.records_processed = 0

        self.state = PipelineState.UNLOADED
        self.failed_state: Optional[PipelineState] = None
        self.error: Optional[BaseException] = None
        self.start_time: Optional[datetime] = None
        self.end_time: Optional[datetime] = None

    async def load_pipeline_step(
        self,
        expected_role: type,
        module: Union[str, type],
        step_config: Mapping[str, Any],
    ) -> PipelineStep:
        """Load a pipeline step and get an instance of it, configured by step_config.

        Args:
            expected_role: Role class the step must derive from
            module: Identifier of the step module, or the step class
            step_config: Configuration for this step

        Returns:
            Step instance
        """
        return await self.step_loader.load_step(expected_role, module, step_config)

    async def load_pipeline(self) -> None:
        """Load every step of the pipeline concurrently.

        Slots are only filled once every step loaded, so a failure leaves
        the processor without steps.

        Raises:
            PipelineStateError: If the pipeline was already loaded
        """
        if self.state is not PipelineState.UNLOADED:
            raise PipelineStateError(f"Cannot load pipeline in state {self.state.value}")

        self._enter(PipelineState.LOADING)
        self.logger.info(
            "Loading pipeline steps",
            transformer_count=len(self.config.transformers),
        )

        try:
            loaded = await join_all(
                [
                    self.load_pipeline_step(
                        RecordSource, self.config.source.module, self.config.source.config
                    ),
                    *(
                        self.load_pipeline_step(RecordTransformer, spec.module, spec.config)
                        for spec in self.config.transformers
                    ),
                    self.load_pipeline_step(
                        RecordLoader, self.config.loader.module, self.config.loader.config
                    ),
                ]
            )
        except Exception as e:
            self.logger.error("Could not load pipeline steps", error=str(e))
            self._fail(PipelineState.LOADING, e)
            raise

        source, *transformers, loader = loaded
        self.source_step = source
        self.transformer_steps = transformers
        self.loader_step = loader
        self.state = PipelineState.LOADED

        self.logger.info("Pipeline steps loaded", steps=self.get_step_names())

    def get_steps(self) -> list[PipelineStep]:
        """Get all the steps of the pipeline, source first and loader last."""
        return [self.source_step, *self.transformer_steps, self.loader_step]

    def get_step_names(self) -> list[str]:
        """Get list of all step names in the pipeline.

        Returns:
            List of step names
        """
        return [step.get_name() for step in self.get_steps() if step is not None]

    async def process_record(self, record: Any) -> None:
        """Run a record through the transformers, in order, then into the loader.

        Args:
            record: Record fetched from the source
        """
        current = record
        for transformer_step in self.transformer_steps:
            current = await transformer_step.transform(current)

        await self.loader_step.load_record(current)

        self.records_processed += 1
        if self.records_processed % self.progress_interval == 0:
            self.logger.info("Records processed", records_processed=self.records_processed)

    async def run(self) -> dict[str, Any]:
        """Run the pipeline.

        Returns:
            Results dictionary, see get_results()

        Raises:
            PipelineStateError: If the processor already ran
            Exception: The first error of the failed phase, after every step was aborted
        """
        if self.state not in (PipelineState.UNLOADED, PipelineState.LOADED):
            raise PipelineStateError(f"Cannot run pipeline in state {self.state.value}")

        self.start_time = datetime.now(timezone.utc)
        self.logger.info("Pipeline starting")

        if self.state is PipelineState.UNLOADED:
            await self.load_pipeline()

        steps = self.get_steps()

        self._enter(PipelineState.BEGINNING)
        try:
            await join_all(step.begin() for step in steps)
        except Exception as e:
            self.logger.error("Could not initialize steps", error=str(e), exc_info=True)
            await self._abort_steps(e)
            raise

        self._enter(PipelineState.FETCHING)
        try:
            records = list(await self.source_step.get_records())
            self.records_fetched = len(records)
        except Exception as e:
            self.logger.error("Could not fetch records from source", error=str(e), exc_info=True)
            await self._abort_steps(e)
            raise

        self._enter(PipelineState.PROCESSING)
        self.logger.info("Transforming and loading records", records_fetched=self.records_fetched)
        try:
            await join_all(self.process_record(record) for record in records)
        except Exception as e:
            self.logger.error(
                "Could not process records",
                records_processed=self.records_processed,
                error=str(e),
                exc_info=True,
            )
            await self._abort_steps(e)
            raise

        self._enter(PipelineState.ENDING)
        try:
            await join_all(step.end() for step in steps)
        except Exception as e:
            self.logger.error("Could not end steps", error=str(e), exc_info=True)
            await self._abort_steps(e)
            raise

        self.state = PipelineState.COMPLETE
        self.end_time = datetime.now(timezone.utc)
        self.logger.info(
            "Pipeline complete",
            records_fetched=self.records_fetched,
            records_processed=self.records_processed,
        )
        return self.get_results()

    def _enter(self, state: PipelineState) -> None:
        self.state = state
        self.logger.debug("Entering phase", phase=state.value)

    def _fail(self, state: PipelineState, error: BaseException) -> None:
        self.failed_state = state
        self.error = error
        self.state = PipelineState.FAILED
        self.end_time = datetime.now(timezone.utc)

    async def _abort_steps(self, error: BaseException) -> None:
        """Abort every step after a failure in the current phase.

        Abort errors are logged and never raised, so the caller only sees
        the error that caused the abort.

        Args:
            error: The error that caused the abort
        """
        failed_state = self.state
        self.state = PipelineState.ABORTING
        self.logger.error("Aborting pipeline", phase=failed_state.value)

        steps = self.get_steps()
        results = await asyncio.gather(*(step.abort() for step in steps), return_exceptions=True)
        for step, result in zip(steps, results):
            if isinstance(result, BaseException):
                self.logger.error(
                    "Abort failed",
                    step=step.get_name(),
                    error=str(result),
                )

        self._fail(failed_state, error)

    def get_results(self) -> dict[str, Any]:
        """Get the run results.

        Returns:
            Dictionary containing state, counters and timing
        """
        duration = None
        if self.start_time and self.end_time:
            duration = (self.end_time - self.start_time).total_seconds()

        return {
            "pipeline": self.name,
            "success": self.state is PipelineState.COMPLETE,
            "state": self.state.value,
            "failed_state": self.failed_state.value if self.failed_state else None,
            "error": str(self.error) if self.error else None,
            "steps": self.get_step_names(),
            "records_fetched": self.records_fetched,
            "records_processed": self.records_processed,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": duration,
        }
