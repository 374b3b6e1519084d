"""Tests for the step base classes."""

import pytest
from pydantic import BaseModel, Field

from etl_pipeline.services.pipeline import PipelineStep, RecordTransformer, validate_with_model
from tests.steps.transformers.record_transformer import TestRecordTransformer


class SampleConfig(BaseModel):
    name: str = Field(min_length=1)
    limit: int = 10


class HalfTransformer(RecordTransformer):
    async def begin(self):
        pass

    async def end(self):
        pass

    async def abort(self):
        pass


class TestPipelineStep:
    """Test the abstract step contract."""

    def test_cannot_instantiate_base(self, logger):
        with pytest.raises(TypeError):
            PipelineStep(logger)

    def test_cannot_instantiate_without_role_operation(self, logger):
        with pytest.raises(TypeError):
            HalfTransformer(logger)

    def test_default_name(self, logger):
        assert TestRecordTransformer(logger).get_name() == "TestRecordTransformer"

    def test_custom_name(self, logger):
        assert TestRecordTransformer(logger, name="cleanup").get_name() == "cleanup"

    def test_logger_bound_to_step(self, mock_logger):
        step = TestRecordTransformer(mock_logger, name="cleanup")

        mock_logger.bind.assert_called_once_with(step="cleanup")
        assert step.logger is mock_logger


class TestValidateWithModel:
    """Test validation of step configurations against pydantic models."""

    def test_valid(self):
        assert validate_with_model(SampleConfig, {"name": "records"}) == []

    def test_errors_name_the_field(self):
        errors = validate_with_model(SampleConfig, {"name": "", "limit": "many"})

        assert len(errors) == 2
        assert errors[0].startswith("name: ")
        assert errors[1].startswith("limit: ")

    def test_missing_field(self):
        assert validate_with_model(SampleConfig, {}) == ["name: Field required"]
