"""Tests for the pipeline processor."""

from unittest.mock import AsyncMock, call

import pytest
import pytest_asyncio

from etl_pipeline.services.pipeline import (
    PipelineProcessor,
    PipelineState,
    PipelineStateError,
    RecordLoader,
    RecordSource,
    RecordTransformer,
    StepLoadError,
    StepTypeMismatchError,
)
from etl_pipeline.steps import FieldMapTransformer
from tests.helpers import (
    INCREMENT_LOADER_MODULE,
    INCREMENT_TRANSFORMER_MODULE,
    LOADER_MODULE,
    SOURCE_MODULE,
    TRANSFORMER_MODULE,
)
from tests.steps.loaders.record_loader import TestRecordLoader
from tests.steps.sources.record_source import TestRecordSource
from tests.steps.transformers.record_transformer import TestRecordTransformer

LIFECYCLE = ("begin", "end", "abort")


def spy_on(step, *names):
    """Replace step methods with AsyncMocks wrapping the real ones."""
    for name in names:
        setattr(step, name, AsyncMock(wraps=getattr(step, name)))
    return step


@pytest_asyncio.fixture
async def loaded_processor(module_config, logger):
    """Processor with every step loaded and spied on."""
    processor = PipelineProcessor(module_config, logger=logger)
    await processor.load_pipeline()

    spy_on(processor.source_step, "get_records", *LIFECYCLE)
    for transformer in processor.transformer_steps:
        spy_on(transformer, "transform", *LIFECYCLE)
    spy_on(processor.loader_step, "load_record", *LIFECYCLE)
    return processor


class TestLoadPipeline:
    """Test loading every step of a pipeline."""

    @pytest.mark.asyncio
    async def test_load_pipeline(self, module_config, logger):
        processor = PipelineProcessor(module_config, logger=logger)

        await processor.load_pipeline()

        assert isinstance(processor.source_step, RecordSource)
        assert isinstance(processor.source_step, TestRecordSource)
        assert len(processor.transformer_steps) == 1
        assert isinstance(processor.transformer_steps[0], RecordTransformer)
        assert isinstance(processor.transformer_steps[0], TestRecordTransformer)
        assert isinstance(processor.loader_step, RecordLoader)
        assert isinstance(processor.loader_step, TestRecordLoader)
        assert processor.state is PipelineState.LOADED

    @pytest.mark.asyncio
    async def test_step_names(self, module_config, logger):
        processor = PipelineProcessor(module_config, logger=logger)
        await processor.load_pipeline()

        assert processor.get_step_names() == [
            "TestRecordSource",
            "TestRecordTransformer",
            "TestRecordLoader",
        ]

    @pytest.mark.asyncio
    async def test_no_transformers(self, module_config, logger):
        module_config["transformers"] = []
        processor = PipelineProcessor(module_config, logger=logger)

        await processor.load_pipeline()

        assert processor.transformer_steps == []
        assert processor.get_step_names() == ["TestRecordSource", "TestRecordLoader"]

    @pytest.mark.asyncio
    async def test_wrong_source_type(self, module_config, logger):
        module_config["source"] = {"module": TRANSFORMER_MODULE, "config": {}}
        processor = PipelineProcessor(module_config, logger=logger)

        with pytest.raises(
            StepTypeMismatchError,
            match="TestRecordTransformer does not match expected type of RecordSource",
        ):
            await processor.load_pipeline()

    @pytest.mark.asyncio
    async def test_wrong_transformer_type(self, module_config, logger):
        module_config["transformers"] = [{"module": LOADER_MODULE, "config": {}}]
        processor = PipelineProcessor(module_config, logger=logger)

        with pytest.raises(
            StepTypeMismatchError,
            match="TestRecordLoader does not match expected type of RecordTransformer",
        ):
            await processor.load_pipeline()

    @pytest.mark.asyncio
    async def test_wrong_loader_type(self, module_config, logger):
        module_config["loader"] = {"module": SOURCE_MODULE, "config": {}}
        processor = PipelineProcessor(module_config, logger=logger)

        with pytest.raises(
            StepTypeMismatchError,
            match="TestRecordSource does not match expected type of RecordLoader",
        ):
            await processor.load_pipeline()

    @pytest.mark.asyncio
    async def test_bad_path_leaves_slots_empty(self, module_config, logger):
        """One failing step means no step is assigned."""
        module_config["loader"] = {"module": "badpath", "config": {}}
        processor = PipelineProcessor(module_config, logger=logger)

        with pytest.raises(StepLoadError) as exc_info:
            await processor.load_pipeline()

        assert str(exc_info.value) == "Could not load step, badpath."
        assert processor.source_step is None
        assert processor.transformer_steps == []
        assert processor.loader_step is None
        assert processor.state is PipelineState.FAILED
        assert processor.failed_state is PipelineState.LOADING

    @pytest.mark.asyncio
    async def test_load_twice(self, module_config, logger):
        processor = PipelineProcessor(module_config, logger=logger)
        await processor.load_pipeline()

        with pytest.raises(PipelineStateError):
            await processor.load_pipeline()

    @pytest.mark.asyncio
    async def test_default_logger(self, module_config):
        processor = PipelineProcessor(module_config)

        await processor.load_pipeline()

        assert processor.state is PipelineState.LOADED


class TestIncrementPipeline:
    """Test the value trail through spied increment steps."""

    @pytest.mark.asyncio
    async def test_record_passes_every_step(self, logger):
        processor = PipelineProcessor(
            {
                "source": {"module": SOURCE_MODULE, "config": {}},
                "transformers": [{"module": INCREMENT_TRANSFORMER_MODULE, "config": {}}],
                "loader": {"module": INCREMENT_LOADER_MODULE, "config": {}},
            },
            logger=logger,
        )
        await processor.load_pipeline()
        source = spy_on(processor.source_step, "get_records", *LIFECYCLE)
        transformer = spy_on(processor.transformer_steps[0], "transform", *LIFECYCLE)
        loader = spy_on(processor.loader_step, "load_record", *LIFECYCLE)

        await processor.run()

        for step in (source, transformer, loader):
            assert step.begin.await_count == 1
            assert step.end.await_count == 1
            assert step.abort.await_count == 0
        source.get_records.assert_awaited_once()
        transformer.transform.assert_awaited_once_with({"data": 1})
        loader.load_record.assert_awaited_once_with({"data": 2})
        assert transformer.transformed == [{"data": 2}]
        assert loader.loaded == [{"data": 3}]
        assert processor.records_fetched == 1
        assert processor.records_processed == 1


class TestRunPipeline:
    """Test running a loaded pipeline."""

    @pytest.mark.asyncio
    async def test_successful_run(self, loaded_processor):
        processor = loaded_processor
        source = processor.source_step
        transformer = processor.transformer_steps[0]
        loader = processor.loader_step
        transformer.transform = AsyncMock(return_value={"data": 2})

        results = await processor.run()

        for step in processor.get_steps():
            assert step.begin.await_count == 1
            assert step.end.await_count == 1
            assert step.abort.await_count == 0
        source.get_records.assert_awaited_once()
        transformer.transform.assert_awaited_once_with({"data": 1})
        loader.load_record.assert_awaited_once_with({"data": 2})
        assert loader.loaded == [{"data": 2}]
        assert processor.records_fetched == 1
        assert processor.records_processed == 1
        assert processor.state is PipelineState.COMPLETE
        assert results["success"] is True

    @pytest.mark.asyncio
    async def test_run_loads_pipeline(self, module_config, logger):
        processor = PipelineProcessor(module_config, logger=logger)

        results = await processor.run()

        assert results["success"] is True
        assert processor.loader_step.loaded == [{}]

    @pytest.mark.asyncio
    async def test_transform_error(self, loaded_processor):
        processor = loaded_processor
        transformer = processor.transformer_steps[0]
        transformer.transform = AsyncMock(side_effect=RuntimeError("transform failed"))

        with pytest.raises(RuntimeError, match="transform failed"):
            await processor.run()

        assert processor.loader_step.load_record.await_count == 0
        for step in processor.get_steps():
            assert step.begin.await_count == 1
            assert step.abort.await_count == 1
            assert step.end.await_count == 0
        assert processor.state is PipelineState.FAILED
        assert processor.failed_state is PipelineState.PROCESSING

    @pytest.mark.asyncio
    async def test_end_error(self, loaded_processor):
        """Every step still gets end(), then every step is aborted."""
        processor = loaded_processor
        processor.loader_step.end = AsyncMock(side_effect=RuntimeError("end failed"))

        with pytest.raises(RuntimeError, match="end failed"):
            await processor.run()

        for step in processor.get_steps():
            assert step.end.await_count == 1
            assert step.abort.await_count == 1
        assert processor.failed_state is PipelineState.ENDING

    @pytest.mark.asyncio
    async def test_begin_error(self, loaded_processor):
        processor = loaded_processor
        processor.source_step.begin = AsyncMock(side_effect=RuntimeError("begin failed"))

        with pytest.raises(RuntimeError, match="begin failed"):
            await processor.run()

        processor.source_step.get_records.assert_not_awaited()
        for step in processor.get_steps():
            assert step.abort.await_count == 1
            assert step.end.await_count == 0
        assert processor.failed_state is PipelineState.BEGINNING

    @pytest.mark.asyncio
    async def test_fetch_error(self, loaded_processor):
        processor = loaded_processor
        processor.source_step.get_records = AsyncMock(side_effect=OSError("source offline"))

        with pytest.raises(OSError, match="source offline"):
            await processor.run()

        processor.transformer_steps[0].transform.assert_not_awaited()
        for step in processor.get_steps():
            assert step.abort.await_count == 1
        assert processor.failed_state is PipelineState.FETCHING
        assert processor.records_fetched == 0

    @pytest.mark.asyncio
    async def test_abort_errors_swallowed(self, loaded_processor):
        """The caller sees the original error, not the abort failures."""
        processor = loaded_processor
        processor.transformer_steps[0].transform = AsyncMock(
            side_effect=RuntimeError("transform failed")
        )
        processor.source_step.abort = AsyncMock(side_effect=RuntimeError("abort failed"))
        processor.loader_step.abort = AsyncMock(side_effect=RuntimeError("abort failed"))

        with pytest.raises(RuntimeError, match="transform failed"):
            await processor.run()

        processor.transformer_steps[0].abort.assert_awaited_once()
        processor.loader_step.abort.assert_awaited_once()
        assert str(processor.error) == "transform failed"

    @pytest.mark.asyncio
    async def test_run_twice(self, loaded_processor):
        await loaded_processor.run()

        with pytest.raises(PipelineStateError):
            await loaded_processor.run()

    @pytest.mark.asyncio
    async def test_run_after_failure(self, loaded_processor):
        loaded_processor.source_step.begin = AsyncMock(side_effect=RuntimeError("begin failed"))
        with pytest.raises(RuntimeError):
            await loaded_processor.run()

        with pytest.raises(PipelineStateError):
            await loaded_processor.run()

    @pytest.mark.asyncio
    async def test_load_failure_skips_abort(self, module_config, logger):
        module_config["loader"] = {"module": "badpath", "config": {}}
        processor = PipelineProcessor(module_config, logger=logger)

        with pytest.raises(StepLoadError):
            await processor.run()

        assert processor.get_step_names() == []
        assert processor.get_results()["failed_state"] == "loading"


class TestRecordFlow:
    """Test records moving through transformers and into the loader."""

    @pytest.mark.asyncio
    async def test_identity_pipeline(self, logger):
        records = [{"id": i} for i in range(50)]
        processor = PipelineProcessor(
            {
                "source": {"module": TestRecordSource, "config": {"records": records}},
                "transformers": [{"module": FieldMapTransformer, "config": {"mapping": {}}}],
                "loader": {"module": TestRecordLoader, "config": {}},
            },
            logger=logger,
        )

        await processor.run()

        assert sorted(processor.loader_step.loaded, key=lambda r: r["id"]) == records
        assert processor.records_fetched == 50
        assert processor.records_processed == 50

    @pytest.mark.asyncio
    async def test_transformers_run_in_order(self, logger):
        processor = PipelineProcessor(
            {
                "source": {"module": TestRecordSource, "config": {"records": [{"a": 1}]}},
                "transformers": [
                    {"module": FieldMapTransformer, "config": {"mapping": {"a": "b"}}},
                    {"module": FieldMapTransformer, "config": {"mapping": {"b": "c"}}},
                ],
                "loader": {"module": TestRecordLoader, "config": {}},
            },
            logger=logger,
        )

        await processor.run()

        assert processor.loader_step.loaded == [{"c": 1}]

    @pytest.mark.asyncio
    async def test_no_records(self, logger):
        processor = PipelineProcessor(
            {
                "source": {"module": TestRecordSource, "config": {"records": []}},
                "loader": {"module": TestRecordLoader, "config": {}},
            },
            logger=logger,
        )

        results = await processor.run()

        assert results["success"] is True
        assert results["records_processed"] == 0
        assert processor.loader_step.loaded == []

    @pytest.mark.asyncio
    async def test_progress_logging(self, mock_logger):
        processor = PipelineProcessor(
            {
                "source": {"module": TestRecordSource, "config": {"records": [{}] * 4}},
                "loader": {"module": TestRecordLoader, "config": {}},
            },
            logger=mock_logger,
            progress_interval=2,
        )

        await processor.run()

        progress_calls = [
            c for c in mock_logger.info.call_args_list if c.args == ("Records processed",)
        ]
        assert progress_calls == [
            call("Records processed", records_processed=2),
            call("Records processed", records_processed=4),
        ]


class TestGetResults:
    """Test the results summary."""

    @pytest.mark.asyncio
    async def test_results_after_success(self, module_config, logger):
        module_config["name"] = "test-pipeline"
        processor = PipelineProcessor(module_config, logger=logger)

        results = await processor.run()

        assert results["pipeline"] == "test-pipeline"
        assert results["success"] is True
        assert results["state"] == "complete"
        assert results["failed_state"] is None
        assert results["error"] is None
        assert results["steps"] == ["TestRecordSource", "TestRecordTransformer", "TestRecordLoader"]
        assert results["records_fetched"] == 1
        assert results["records_processed"] == 1
        assert results["start_time"] is not None
        assert results["duration_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_results_after_failure(self, loaded_processor):
        loaded_processor.transformer_steps[0].transform = AsyncMock(
            side_effect=RuntimeError("transform failed")
        )

        with pytest.raises(RuntimeError):
            await loaded_processor.run()
        results = loaded_processor.get_results()

        assert results["success"] is False
        assert results["state"] == "failed"
        assert results["failed_state"] == "processing"
        assert results["error"] == "transform failed"

    def test_results_before_run(self, module_config, logger):
        results = PipelineProcessor(module_config, logger=logger).get_results()

        assert results["state"] == "unloaded"
        assert results["steps"] == []
        assert results["duration_seconds"] is None
