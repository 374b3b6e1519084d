"""Source step fetching records from a JSON HTTP endpoint."""

from collections.abc import Mapping
from typing import Any, Literal, Optional

import httpx
from pydantic import BaseModel, Field

from etl_pipeline.services.pipeline import RecordSource, validate_with_model


class HttpSourceError(Exception):
    """Raised when the HTTP endpoint does not return usable records."""

    pass


class HttpJsonSourceConfig(BaseModel):
    """Configuration for HttpJsonSource."""

    url: str = Field(min_length=1, description="Endpoint returning the records")
    method: Literal["GET", "POST"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    body: Optional[dict[str, Any]] = Field(None, description="JSON body for POST requests")
    timeout: float = Field(30.0, gt=0)
    records_key: Optional[str] = Field(
        None,
        description="Key holding the record list when the response is an object",
    )


class HttpJsonSource(RecordSource):
    """Fetches records from a JSON endpoint with a single request."""

    def __init__(self, logger: Any, config: HttpJsonSourceConfig):
        super().__init__(logger)
        self.config = config
        self.client: Optional[httpx.AsyncClient] = None

    def _get_headers(self) -> dict[str, str]:
        """Get headers for the request.

        Returns:
            Default headers updated with the configured ones
        """
        return {
            "Accept": "application/json",
            "User-Agent": "ETLPipeline/1.0",
            **self.config.headers,
        }

    async def begin(self) -> None:
        self.client = httpx.AsyncClient(timeout=self.config.timeout, headers=self._get_headers())

    async def get_records(self) -> list[Any]:
        """Fetch the records.

        Returns:
            List of records from the response

        Raises:
            HttpSourceError: If the request fails or the payload has no record list
        """
        try:
            response = await self.client.request(
                method=self.config.method,
                url=self.config.url,
                params=self.config.params or None,
                json=self.config.body,
            )
        except httpx.RequestError as e:
            self.logger.error("Request to source failed", url=self.config.url, error=str(e))
            raise HttpSourceError(f"Request to {self.config.url} failed: {str(e)}") from e

        if response.status_code >= 400:
            self.logger.error(
                "Source returned an error status",
                url=self.config.url,
                status_code=response.status_code,
            )
            raise HttpSourceError(
                f"{self.config.url} returned status {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise HttpSourceError(f"{self.config.url} did not return JSON") from e

        if self.config.records_key is not None:
            if not isinstance(data, dict) or self.config.records_key not in data:
                raise HttpSourceError(
                    f"Response from {self.config.url} has no key {self.config.records_key!r}"
                )
            data = data[self.config.records_key]

        if not isinstance(data, list):
            raise HttpSourceError(f"Response from {self.config.url} is not a list of records")

        self.logger.info("Fetched records", url=self.config.url, record_count=len(data))
        return data

    async def _close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    async def end(self) -> None:
        await self._close()

    async def abort(self) -> None:
        await self._close()

    @classmethod
    def validate_config(cls, config: Mapping[str, Any]) -> list[str]:
        return validate_with_model(HttpJsonSourceConfig, config)

    @classmethod
    async def get_instance(cls, logger: Any, config: Mapping[str, Any]) -> "HttpJsonSource":
        return cls(logger, HttpJsonSourceConfig.model_validate(config))
