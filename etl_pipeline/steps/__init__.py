"""Bundled pipeline steps.

Reference any of them from a pipeline file by dotted path, for example
``etl_pipeline.steps.json_file_source``.
"""

from etl_pipeline.steps.field_map_transformer import FieldMapTransformer
from etl_pipeline.steps.http_json_source import HttpJsonSource, HttpSourceError
from etl_pipeline.steps.json_file_source import JsonFileSource
from etl_pipeline.steps.jsonl_file_loader import JsonLinesFileLoader
from etl_pipeline.steps.s3_json_loader import S3JsonLoader, S3LoadError

__all__ = [
    "JsonFileSource",
    "HttpJsonSource",
    "HttpSourceError",
    "FieldMapTransformer",
    "JsonLinesFileLoader",
    "S3JsonLoader",
    "S3LoadError",
]
