"""Transformer step renaming record fields."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from etl_pipeline.services.pipeline import RecordTransformer, validate_with_model


class FieldMapTransformerConfig(BaseModel):
    """Configuration for FieldMapTransformer."""

    mapping: dict[str, str] = Field(description="Source field name to output field name")
    drop_unmapped: bool = Field(False, description="Drop fields that are not in the mapping")


class FieldMapTransformer(RecordTransformer):
    """Renames the fields of dict records."""

    def __init__(self, logger: Any, config: FieldMapTransformerConfig):
        super().__init__(logger)
        self.mapping = dict(config.mapping)
        self.drop_unmapped = config.drop_unmapped

    async def begin(self) -> None:
        self.logger.debug("Field mapping ready", field_count=len(self.mapping))

    async def transform(self, record: Any) -> dict[str, Any]:
        if not isinstance(record, Mapping):
            raise TypeError(f"FieldMapTransformer expects a mapping, got {type(record).__name__}")

        transformed: dict[str, Any] = {}
        for key, value in record.items():
            if key in self.mapping:
                transformed[self.mapping[key]] = value
            elif not self.drop_unmapped:
                transformed[key] = value
        return transformed

    async def end(self) -> None:
        pass

    async def abort(self) -> None:
        pass

    @classmethod
    def validate_config(cls, config: Mapping[str, Any]) -> list[str]:
        return validate_with_model(FieldMapTransformerConfig, config)

    @classmethod
    async def get_instance(cls, logger: Any, config: Mapping[str, Any]) -> "FieldMapTransformer":
        return cls(logger, FieldMapTransformerConfig.model_validate(config))
