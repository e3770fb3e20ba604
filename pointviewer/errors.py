"""Exception taxonomy for the visualization pipeline.

Every error carries a machine-readable ``kind`` so the viewer can show a
message and still branch on the failure class.
"""

from typing import Optional


class PointViewerError(Exception):
    """Base exception for all pipeline errors."""

    kind = "error"


class SubmitError(PointViewerError):
    """The processing request was rejected or never reached the service."""

    kind = "submit"


class JobError(PointViewerError):
    """A polled job ended without a usable result."""

    kind = "job"

    def __init__(self, message: str, job_id: Optional[str] = None):
        self.job_id = job_id
        super().__init__(message)


class JobTimeoutError(JobError):
    """Polling gave up; the remote job may still be running."""

    kind = "timeout"


class RemoteFailureError(JobError):
    """The service reported the job as failed."""

    kind = "remote_failure"


class IncompleteResultError(JobError):
    """The job reported completion but named no output file."""

    kind = "incomplete_result"


class DownloadError(PointViewerError):
    """The result stream could not be fetched in full."""

    kind = "download"


class DecodeError(PointViewerError):
    """The downloaded buffer could not be turned into points."""

    kind = "decode"


class MissingPositionError(DecodeError):
    kind = "missing_position"


class MalformedBufferError(DecodeError):
    kind = "malformed_buffer"
