"""HTTP access to the remote point-cloud processing service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from . import constants

logger = logging.getLogger(__name__)


class PointCloudApiClient:
    """Thin async wrapper over the ``/process``, ``/job`` and ``/download`` endpoints.

    Non-2xx responses raise ``httpx.HTTPStatusError``; connection problems
    surface as other ``httpx.HTTPError`` subclasses.  Callers decide what is
    retried.
    """

    def __init__(self, base_url: str = constants.API_BASE_URL,
                 timeout: float = constants.HTTP_TIMEOUT,
                 client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def start_processing_job(self, address: str, buffer_km: float) -> dict:
        response = await self._client.post(
            self._url("/process"),
            json={"address": address, "buffer_km": buffer_km},
        )
        response.raise_for_status()
        return response.json()

    async def get_job_status(self, job_id: str) -> dict:
        response = await self._client.get(self._url(f"/job/{job_id}"))
        response.raise_for_status()
        return response.json()

    @asynccontextmanager
    async def stream_download(self, job_id: str) -> AsyncIterator[httpx.Response]:
        """Open ``GET /download/{id}`` as a stream; the body is read by the caller."""
        async with self._client.stream("GET", self._url(f"/download/{job_id}")) as response:
            response.raise_for_status()
            yield response
