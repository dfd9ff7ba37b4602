"""
HTTP adapter for the external contradiction scoring service.

The service receives ``{comments, posts, targetName}`` and answers with
a report ``{summary, contradictions, timeline, stats}`` plus an optional
``cost``. How it scores is its own business; this adapter only moves the
contract over the wire and validates the answer.
"""

from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ConfigurationError, ScoringError
from ..core.interfaces import ScoringPipeline
from ..domain.models import AnalysisReport, ScoringRequest
from ..foundation.config import ScoringConfig
from ..foundation.logging import LoggerMixin


class RemoteScoringPipeline(ScoringPipeline, LoggerMixin):
    """Scoring pipeline reached over HTTP POST."""

    def __init__(
        self,
        endpoint_url: str,
        api_key: str = "",
        timeout: float = 300.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not endpoint_url:
            raise ConfigurationError("Scoring endpoint URL is not configured", config_key="endpoint_url")
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}
        if api_key:
            self.headers['Authorization'] = f'Bearer {api_key}'
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: ScoringConfig) -> "RemoteScoringPipeline":
        return cls(config.endpoint_url, api_key=config.api_key, timeout=config.timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def analyze(self, request: ScoringRequest) -> AnalysisReport:
        payload = request.model_dump(mode="json", by_alias=True)
        self.trace(
            "Submitting history for scoring",
            target=request.target_name,
            comments=len(request.comments),
            posts=len(request.posts)
        )

        try:
            response = await self.client.post(
                self.endpoint_url, json=payload, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ScoringError(
                f"Scoring service returned HTTP {e.response.status_code}",
                endpoint=self.endpoint_url,
                status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise ScoringError(
                f"Scoring service unreachable: {e}", endpoint=self.endpoint_url
            ) from e

        try:
            report = AnalysisReport.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ScoringError(
                "Scoring service returned a malformed report", endpoint=self.endpoint_url
            ) from e

        self.trace(
            "Scoring complete",
            target=request.target_name,
            contradictions=len(report.contradictions),
            cost=report.cost
        )
        return report

    async def health_check(self) -> bool:
        try:
            response = await self.client.post(
                self.endpoint_url, json={"healthCheck": True}, headers=self.headers, timeout=5.0
            )
        except httpx.HTTPError as e:
            self.logger.warning("Scoring health check failed", error=str(e))
            return False
        return response.status_code < 500

    def describe(self) -> Dict[str, Any]:
        return {"type": self.__class__.__name__, "endpoint": self.endpoint_url}

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
