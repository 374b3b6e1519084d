"""Loader step writing records to a JSON lines file."""

import asyncio
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from etl_pipeline.services.pipeline import RecordLoader, validate_with_model


class JsonLinesFileLoaderConfig(BaseModel):
    """Configuration for JsonLinesFileLoader."""

    path: str = Field(min_length=1, description="Output file, replaced when the pipeline ends")
    encoding: str = "utf-8"


class JsonLinesFileLoader(RecordLoader):
    """Collects records and writes them as JSON lines once the pipeline ends.

    Nothing touches the output file until end(); an aborted run leaves any
    previous file in place.
    """

    def __init__(self, logger: Any, config: JsonLinesFileLoaderConfig):
        super().__init__(logger)
        self.config = config
        self.path = Path(config.path)
        self.records: list[Any] = []

    async def begin(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.records = []

    async def load_record(self, record: Any) -> None:
        self.records.append(record)

    def _write(self, records: list[Any]) -> None:
        tmp_path = self._tmp_path()
        with open(tmp_path, "w", encoding=self.config.encoding) as f:
            for record in records:
                f.write(json.dumps(record, default=str))
                f.write("\n")
        os.replace(tmp_path, self.path)

    async def end(self) -> None:
        await asyncio.to_thread(self._write, list(self.records))

        self.logger.info("Wrote records", path=str(self.path), record_count=len(self.records))

    async def abort(self) -> None:
        self.logger.warning("Discarding buffered records", record_count=len(self.records))
        self.records = []
        self._tmp_path().unlink(missing_ok=True)

    def _tmp_path(self) -> Path:
        return self.path.with_name(f".{self.path.name}.tmp")

    @classmethod
    def validate_config(cls, config: Mapping[str, Any]) -> list[str]:
        return validate_with_model(JsonLinesFileLoaderConfig, config)

    @classmethod
    async def get_instance(cls, logger: Any, config: Mapping[str, Any]) -> "JsonLinesFileLoader":
        return cls(logger, JsonLinesFileLoaderConfig.model_validate(config))
