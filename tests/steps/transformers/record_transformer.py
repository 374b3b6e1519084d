"""Transformer returning an empty record."""

from typing import Any

from etl_pipeline.services.pipeline import RecordTransformer


class TestRecordTransformer(RecordTransformer):
    __test__ = False

    async def begin(self) -> None:
        self.logger.debug("TestRecordTransformer:begin")

    async def transform(self, record: Any) -> dict:
        self.logger.debug("TestRecordTransformer:transform")
        return {}

    async def end(self) -> None:
        self.logger.debug("TestRecordTransformer:end")

    async def abort(self) -> None:
        pass

    @classmethod
    def validate_config(cls, config):
        return []

    @classmethod
    async def get_instance(cls, logger, config):
        return cls(logger)
