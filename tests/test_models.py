"""Tests for job status parsing and the point cloud container."""

import numpy as np
import pytest

from pointviewer.models import Job, JobStatus, PointCloud, PointRecord

from conftest import job_payload


class TestJobStatus:

    @pytest.mark.parametrize("value, expected", [
        ("pending", JobStatus.pending),
        ("queued", JobStatus.queued),
        ("completed", JobStatus.completed),
        ("failed", JobStatus.failed),
        ("rasterizing", JobStatus.processing),
        (None, JobStatus.processing),
    ])
    def test_parse(self, value, expected):
        assert JobStatus.parse(value) is expected


class TestJob:

    def test_apply_response(self):
        job = Job(id="job-1", address="Boulder")
        job.apply_response(job_payload("job-1", "completed", output_file="cloud.las", tiles=4))

        assert job.status is JobStatus.completed
        assert job.output_file == "cloud.las"
        assert job.completed_at.year == 2026
        assert job.metadata == {"tiles": 4}
        assert job.to_dict()["job_id"] == "job-1"

    def test_blank_output_is_missing(self):
        job = Job(id="job-1", address="Boulder")
        job.apply_response({"status": "completed", "output_file": ""})
        assert job.output_file is None
        assert job.address == "Boulder"


class TestPointCloud:

    def test_empty(self):
        cloud = PointCloud.empty()
        assert len(cloud) == 0
        assert cloud.to_records() == []

    def test_iterates_records_in_order(self):
        cloud = PointCloud(np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]),
                           np.array([[255, 0, 0], [0, 0, 255]], dtype=np.uint8))

        records = list(cloud)

        assert records[0] == PointRecord((1.0, 2.0, 3.0), (255, 0, 0))
        assert records[1].color == (0, 0, 255)
        assert cloud.to_records()[1] == {"position": [4.0, 5.0, 6.0], "color": [0, 0, 255]}
