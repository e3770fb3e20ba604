"""JobOrchestrator: submit a processing request and watch it to a terminal state."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

import httpx

from . import constants
from .errors import (IncompleteResultError, JobTimeoutError, RemoteFailureError,
                     SubmitError)
from .models import Job, JobStatus
from .transport import PointCloudApiClient

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Job, Optional[str]], None]


class JobOrchestrator:
    def __init__(self, api: PointCloudApiClient,
                 max_polls: int = constants.MAX_POLLS,
                 poll_interval_processing: float = constants.POLL_INTERVAL_PROCESSING,
                 poll_interval_idle: float = constants.POLL_INTERVAL_IDLE,
                 immediate_retries: int = constants.IMMEDIATE_RETRIES,
                 retry_backoff: float = constants.RETRY_BACKOFF,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        self.api = api
        self.max_polls = max_polls
        self.poll_interval_processing = poll_interval_processing
        self.poll_interval_idle = poll_interval_idle
        self.immediate_retries = immediate_retries
        self.retry_backoff = retry_backoff
        self._sleep = sleep

    async def submit(self, address: str, buffer_km: float) -> Job:
        """Post a processing request.  Failures are not retried."""
        try:
            result = await self.api.start_processing_job(address, buffer_km)
        except httpx.HTTPStatusError as exc:
            raise SubmitError(f"Failed to start job: {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SubmitError(f"Error starting job: {exc}") from exc

        if not isinstance(result, dict) or not result.get("success") or not result.get("job_id"):
            message = result.get("message") if isinstance(result, dict) else None
            raise SubmitError(f"Failed to start job: {message or 'Unknown error'}")

        job = Job(
            id=str(result["job_id"]),
            address=address,
            created_at=datetime.now(timezone.utc),
            metadata={"buffer_km": buffer_km},
        )
        logger.info(f"Submitted job {job.id} for '{address}' (buffer {buffer_km} km)")
        return job

    def _next_interval(self, status: JobStatus) -> float:
        if status is JobStatus.processing:
            return self.poll_interval_processing
        return self.poll_interval_idle

    async def await_completion(self, job: Job,
                               on_update: Optional[UpdateCallback] = None) -> Job:
        """Poll *job* until it completes, fails, or the poll budget runs out.

        Every poll, successful or not, counts toward ``max_polls``.  A poll
        that fails in transit is retried: the first ``immediate_retries``
        consecutive failures without delay, later ones after
        ``retry_backoff`` seconds.  ``on_update(job, error_message)`` fires
        after each attempt.

        Returns the completed job; raises :class:`RemoteFailureError`,
        :class:`IncompleteResultError` or :class:`JobTimeoutError`.
        """
        polls = 0
        consecutive_failures = 0
        delay: Optional[float] = None

        while polls < self.max_polls:
            if delay is not None:
                await self._sleep(delay)
            polls += 1

            try:
                data = await self.api.get_job_status(job.id)
                if not isinstance(data, dict):
                    raise ValueError("job status response is not an object")
            except (httpx.HTTPError, ValueError) as exc:
                consecutive_failures += 1
                message = f"Connection error: {exc}. Retrying..."
                logger.warning(f"Poll {polls}/{self.max_polls} for job {job.id} failed "
                               f"({consecutive_failures} in a row): {exc}")
                if on_update is not None:
                    on_update(job, message)
                if consecutive_failures <= self.immediate_retries:
                    delay = 0.0
                else:
                    delay = self.retry_backoff
                continue

            consecutive_failures = 0
            job.apply_response(data)
            logger.debug(f"Poll {polls}/{self.max_polls}: job {job.id} is {job.status.value}")
            if on_update is not None:
                on_update(job, None)

            if job.status is JobStatus.completed:
                if not job.output_file:
                    raise IncompleteResultError(
                        f"Job {job.id} completed without an output file", job.id)
                logger.info(f"Job {job.id} completed after {polls} polls: {job.output_file}")
                return job

            if job.status is JobStatus.failed:
                logger.info(f"Job {job.id} failed: {job.error_message}")
                raise RemoteFailureError(job.error_message or "Job failed", job.id)

            delay = self._next_interval(job.status)

        logger.warning(f"Stopped watching job {job.id} after {polls} polls")
        raise JobTimeoutError("Polling timeout - job may still be processing", job.id)
