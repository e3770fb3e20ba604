"""StreamingDownloader: fetch a finished job's point-cloud file with progress."""

import logging
from typing import Callable, Optional

import httpx

from .errors import DownloadError
from .transport import PointCloudApiClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def _content_length(response: httpx.Response) -> int:
    raw = response.headers.get("Content-Length")
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0


def _percent(loaded: int, total: int) -> int:
    """Whole percent, halves rounded up."""
    return min(int(loaded * 100 / total + 0.5), 100)


class StreamingDownloader:
    def __init__(self, api: PointCloudApiClient):
        self.api = api

    async def download(self, job_id: str,
                       on_progress: Optional[ProgressCallback] = None) -> bytes:
        """Read ``/download/{job_id}`` chunk by chunk and return the whole body.

        *on_progress* receives an integer percentage after each chunk, but
        only when the server sent a ``Content-Length``.
        """
        chunks = []
        loaded = 0
        try:
            async with self.api.stream_download(job_id) as response:
                total = _content_length(response)
                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
                    # Content-Length counts encoded bytes, not decoded ones
                    loaded = response.num_bytes_downloaded
                    if on_progress is not None and total > 0:
                        on_progress(_percent(loaded, total))
        except httpx.HTTPStatusError as exc:
            raise DownloadError(f"Failed to download file: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise DownloadError(f"Download of job {job_id} interrupted after "
                                f"{loaded} bytes: {exc}") from exc

        buffer = b"".join(chunks)
        logger.info(f"Downloaded {len(buffer) / 1024 / 1024:.1f} MB for job {job_id}")
        return buffer
