"""AWS helpers package."""

from etl_pipeline.aws.client_factory import get_boto3_client_kwargs

__all__ = ["get_boto3_client_kwargs"]
