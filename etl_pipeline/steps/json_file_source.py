"""Source step reading records from a JSON file."""

import asyncio
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from etl_pipeline.services.pipeline import RecordSource, validate_with_model


class JsonFileSourceConfig(BaseModel):
    """Configuration for JsonFileSource."""

    path: str = Field(min_length=1, description="Path of the JSON file")
    records_key: Optional[str] = Field(
        None,
        description="Key holding the record list when the file contains an object",
    )
    encoding: str = "utf-8"


class JsonFileSource(RecordSource):
    """Reads every record from a JSON array on disk."""

    def __init__(self, logger: Any, config: JsonFileSourceConfig):
        super().__init__(logger)
        self.config = config
        self.path = Path(config.path)

    async def begin(self) -> None:
        if not self.path.is_file():
            raise FileNotFoundError(f"Source file not found: {self.path}")
        self.logger.debug("Source file found", path=str(self.path))

    def _read(self) -> Any:
        with open(self.path, encoding=self.config.encoding) as f:
            return json.load(f)

    async def get_records(self) -> list[Any]:
        data = await asyncio.to_thread(self._read)

        if self.config.records_key is not None:
            if not isinstance(data, dict) or self.config.records_key not in data:
                raise ValueError(f"{self.path} has no key {self.config.records_key!r}")
            data = data[self.config.records_key]

        if not isinstance(data, list):
            raise ValueError(f"{self.path} does not contain a list of records")

        self.logger.info("Read records from file", path=str(self.path), record_count=len(data))
        return data

    async def end(self) -> None:
        pass

    async def abort(self) -> None:
        pass

    @classmethod
    def validate_config(cls, config: Mapping[str, Any]) -> list[str]:
        return validate_with_model(JsonFileSourceConfig, config)

    @classmethod
    async def get_instance(cls, logger: Any, config: Mapping[str, Any]) -> "JsonFileSource":
        return cls(logger, JsonFileSourceConfig.model_validate(config))
