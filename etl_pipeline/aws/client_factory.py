"""Boto3 client arguments built from AWS settings."""

from typing import Any, Optional

from etl_pipeline.config.settings import AWSSettings, settings


def get_boto3_client_kwargs(
    region: Optional[str] = None,
    aws_settings: Optional[AWSSettings] = None,
) -> dict[str, Any]:
    """Build kwargs for boto3.client().

    Credentials are passed only when both keys are configured, so boto3
    otherwise resolves them through its default chain.

    Args:
        region: Region overriding AWS_REGION
        aws_settings: Settings to read, defaults to the global ones

    Returns:
        Dict with 'region_name', plus 'endpoint_url' and the key pair when set
    """
    aws = aws_settings or settings.aws

    kwargs: dict[str, Any] = {"region_name": region or aws.region}
    if aws.endpoint_url:
        kwargs["endpoint_url"] = aws.endpoint_url
    if aws.has_explicit_credentials:
        kwargs["aws_access_key_id"] = aws.access_key_id.strip()
        kwargs["aws_secret_access_key"] = aws.secret_access_key.strip()
    return kwargs
