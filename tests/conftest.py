"""Pytest configuration and shared fixtures."""

import asyncio
import io
from typing import Callable, Dict, List, Optional

import httpx
import laspy
import numpy as np
import pytest

from pointviewer.transport import PointCloudApiClient

BASE_URL = "http://pointcloud.test"


def make_las_bytes(positions, colors=None, compress=False) -> bytes:
    """Write a LAS 1.2 file (LAZ when *compress*) into memory.

    Point format 2 (with RGB) when *colors* is given, otherwise format 0.
    """
    positions = np.asarray(positions, dtype=np.float64)
    header = laspy.LasHeader(point_format=2 if colors is not None else 0, version="1.2")
    header.offsets = np.floor(positions.min(axis=0))
    header.scales = np.array([0.001, 0.001, 0.001])

    las = laspy.LasData(header)
    las.x = positions[:, 0]
    las.y = positions[:, 1]
    las.z = positions[:, 2]
    if colors is not None:
        colors = np.asarray(colors, dtype=np.uint16)
        las.red = colors[:, 0]
        las.green = colors[:, 1]
        las.blue = colors[:, 2]

    buffer = io.BytesIO()
    las.write(buffer, do_compress=compress)
    return buffer.getvalue()


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays and only yields."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeProcessingService:
    """Scripted ``/process``, ``/job`` and ``/download`` endpoints.

    ``polls[job_id]`` is a list of poll outcomes consumed in order: a dict is
    returned as the job payload, an exception instance is raised in transit.
    The last outcome repeats once the list runs out.
    """

    def __init__(self):
        self.submit_response: dict = {"success": True, "job_id": "job-1"}
        self.submit_status = 200
        self.job_ids: List[str] = []
        self.polls: Dict[str, list] = {}
        self.downloads: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def count(self, method: str, prefix: str) -> int:
        return sum(1 for r in self.requests
                   if r.method == method and r.url.path.startswith(prefix))

    def serve_file(self, job_id: str, data: bytes) -> None:
        self.downloads[job_id] = lambda request: httpx.Response(200, content=data)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/process":
            if self.job_ids:
                job_id = self.job_ids.pop(0)
                return httpx.Response(200, json={"success": True, "job_id": job_id})
            return httpx.Response(self.submit_status, json=self.submit_response)

        if path.startswith("/job/"):
            job_id = path.rsplit("/", 1)[1]
            outcomes = self.polls[job_id]
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
            if isinstance(outcome, Exception):
                raise outcome
            return httpx.Response(200, json=outcome)

        if path.startswith("/download/"):
            job_id = path.rsplit("/", 1)[1]
            return self.downloads[job_id](request)

        return httpx.Response(404)


def job_payload(job_id: str, status: str, output_file: Optional[str] = None,
                error_message: Optional[str] = None, **metadata) -> dict:
    return {
        "job_id": job_id,
        "status": status,
        "address": "1250 Wildwood Road, Boulder, CO",
        "created_at": "2026-10-19T12:00:00Z",
        "completed_at": "2026-10-19T12:03:00Z" if status == "completed" else None,
        "output_file": output_file,
        "error_message": error_message,
        "metadata": metadata,
    }


@pytest.fixture
def service():
    return FakeProcessingService()


@pytest.fixture
def api(service):
    client = httpx.AsyncClient(transport=httpx.MockTransport(service))
    return PointCloudApiClient(base_url=BASE_URL, client=client)


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def boulder_las():
    """Three geographic points near Boulder with 16-bit colors."""
    positions = [
        [-105.2705, 40.0150, 1000.0],
        [-105.2700, 40.0160, 1100.0],
        [-105.2710, 40.0140, 1200.0],
    ]
    colors = [[65535, 0, 0], [0, 65535, 0], [0, 0, 65535]]
    return make_las_bytes(positions, colors)


@pytest.fixture
def utm_las():
    """Four UTM zone 13N points around (452345, 4431200) with 8-bit colors."""
    positions = [
        [452300.0, 4431150.0, 1650.0],
        [452390.0, 4431150.0, 1655.0],
        [452300.0, 4431250.0, 1660.0],
        [452390.0, 4431250.0, 1665.0],
    ]
    colors = [[10, 20, 30], [40, 50, 60], [70, 80, 90], [200, 210, 220]]
    return make_las_bytes(positions, colors)
