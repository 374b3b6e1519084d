"""Loader step uploading records to S3 as a JSON document."""

import asyncio
import json
from collections.abc import Mapping
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel, Field

from etl_pipeline.aws import get_boto3_client_kwargs
from etl_pipeline.services.pipeline import RecordLoader, validate_with_model


class S3LoadError(Exception):
    """Raised when the S3 upload fails."""

    pass


class S3JsonLoaderConfig(BaseModel):
    """Configuration for S3JsonLoader."""

    bucket: str = Field(min_length=1, description="Target bucket")
    key: str = Field(min_length=1, description="Object key of the uploaded document")
    region: Optional[str] = Field(None, description="Region overriding AWS_REGION")


class S3JsonLoader(RecordLoader):
    """Collects records and uploads them as one JSON array when the pipeline ends.

    Uses AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY if set; otherwise
    boto3 default credential provider (SSO, role, etc.).
    """

    def __init__(self, logger: Any, config: S3JsonLoaderConfig):
        super().__init__(logger)
        self.config = config
        self.s3_client: Any = None
        self.records: list[Any] = []

    async def begin(self) -> None:
        self.s3_client = boto3.client("s3", **get_boto3_client_kwargs(self.config.region))
        self.records = []

    async def load_record(self, record: Any) -> None:
        self.records.append(record)

    async def end(self) -> None:
        """Upload the collected records.

        Raises:
            S3LoadError: If the upload fails
        """
        body = json.dumps(self.records, indent=2, default=str)
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.config.bucket,
                Key=self.config.key,
                Body=body.encode("utf-8"),
                ContentType="application/json",
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            self.logger.error(
                "S3 upload failed",
                bucket=self.config.bucket,
                key=self.config.key,
                error_code=error_code,
                error=str(e),
            )
            raise S3LoadError(
                f"Upload to s3://{self.config.bucket}/{self.config.key} failed: {error_code}"
            ) from e

        self.logger.info(
            "Uploaded records",
            url=f"s3://{self.config.bucket}/{self.config.key}",
            record_count=len(self.records),
        )

    async def abort(self) -> None:
        self.logger.warning("Discarding buffered records", record_count=len(self.records))
        self.records = []

    @classmethod
    def validate_config(cls, config: Mapping[str, Any]) -> list[str]:
        return validate_with_model(S3JsonLoaderConfig, config)

    @classmethod
    async def get_instance(cls, logger: Any, config: Mapping[str, Any]) -> "S3JsonLoader":
        return cls(logger, S3JsonLoaderConfig.model_validate(config))
