"""
Provider Node Client

HTTP calls from the coordinator to provider nodes:

- POST {endpoint}/jobs                  assign a job (200 on acceptance)
- GET  {endpoint}/jobs/{jobId}/result   fetch a result (404 until ready)
- GET  {endpoint}/health                liveness (200 when healthy)

Per-call timeouts default to 30s / 10s / 5s. A timeout is treated the
same as any other transport failure. Nothing is retried here.
"""

import asyncio
import logging
from typing import Dict, Optional, Protocol, Sequence

import httpx

from duckmesh.config import TransportConfig
from duckmesh.core.errors import SerializationError, TransportFailureError
from duckmesh.core.models import InferenceResult, Job, JobSpec, Provider
from duckmesh.transport.serialization import decode_result, encode_assignment

logger = logging.getLogger(__name__)


class ProviderTransport(Protocol):
    """What JobLifecycle needs from the provider transport."""

    async def assign_job(self, provider: Provider, job: Job, spec: JobSpec) -> None:
        ...


class ProviderClient:
    """
    httpx-based provider transport.

    The AsyncClient is created lazily and reused across calls; pass one in
    to share a connection pool or to mock the network in tests.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or TransportConfig()
        self._client = client
        self._owns_client = client is None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(headers={"Accept": "application/json"})
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _auth_headers(self) -> Dict[str, str]:
        if self.config.api_key:
            return {"Authorization": f"Bearer {self.config.api_key}"}
        return {}

    async def assign_job(self, provider: Provider, job: Job, spec: JobSpec) -> None:
        """
        Send a job to a provider.

        Raises:
            TransportFailureError: On timeout, connection error or any
                non-200 response
        """
        client = await self.get_client()
        url = f"{provider.endpoint}/jobs"

        try:
            response = await client.post(
                url,
                json=encode_assignment(job, spec),
                headers=self._auth_headers(),
                timeout=self.config.dispatch_timeout_s,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Timed out assigning job {job.id} to {provider.address}")
            raise TransportFailureError(provider.address, "timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to assign job {job.id} to {provider.address}: {e}")
            raise TransportFailureError(provider.address, str(e)) from e

        if response.status_code != 200:
            logger.error(
                f"Provider {provider.address} rejected job {job.id}: "
                f"HTTP {response.status_code}"
            )
            raise TransportFailureError(
                provider.address, f"HTTP {response.status_code}"
            )

        logger.info(f"Job {job.id} accepted by {provider.address}")

    async def get_job_result(
        self,
        provider: Provider,
        job_id: int,
    ) -> Optional[InferenceResult]:
        """
        Fetch a provider's result for a job.

        Returns:
            The result, or None if not ready (404) or the call failed
        """
        client = await self.get_client()
        url = f"{provider.endpoint}/jobs/{job_id}/result"

        try:
            response = await client.get(
                url,
                headers=self._auth_headers(),
                timeout=self.config.result_timeout_s,
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to get result from provider {provider.address}: {e}")
            return None

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            logger.error(
                f"Provider {provider.address} returned HTTP {response.status_code} "
                f"for job {job_id} result"
            )
            return None

        try:
            return decode_result(response.content)
        except SerializationError as e:
            logger.error(f"Bad result payload from {provider.address}: {e}")
            return None

    async def check_health(self, provider: Provider) -> bool:
        """True iff the provider answers its health endpoint with 200."""
        client = await self.get_client()
        try:
            response = await client.get(
                f"{provider.endpoint}/health",
                timeout=self.config.health_timeout_s,
            )
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def check_all_health(self, providers: Sequence[Provider]) -> Dict[str, bool]:
        """Probe providers concurrently; keyed by address."""
        statuses = await asyncio.gather(*(self.check_health(p) for p in providers))
        return {p.address: ok for p, ok in zip(providers, statuses)}
