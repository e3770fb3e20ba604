"""Data classes shared by the pipeline stages."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np


class JobStatus(str, Enum):
    pending = "pending"
    queued = "queued"
    processing = "processing"
    completed = "completed"
    failed = "failed"

    @classmethod
    def parse(cls, value: Optional[str]) -> "JobStatus":
        """Map a status string from the service onto the enum.

        Anything unrecognised is read as ``processing``: the service only
        reports unknown states for work that is still moving forward.
        """
        try:
            return cls(value)
        except ValueError:
            return cls.processing


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class Job:
    id: str
    address: str
    status: JobStatus = JobStatus.pending
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    output_file: Optional[str] = None
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def apply_response(self, data: dict) -> None:
        """Update the job from a ``GET /job/{id}`` payload."""
        self.status = JobStatus.parse(data.get("status"))
        self.address = data.get("address") or self.address
        self.created_at = _parse_timestamp(data.get("created_at")) or self.created_at
        self.completed_at = _parse_timestamp(data.get("completed_at"))
        self.output_file = data.get("output_file") or None
        self.error_message = data.get("error_message") or None
        self.metadata = dict(data.get("metadata") or {})

    def to_dict(self) -> dict:
        return {
            "job_id": self.id,
            "status": self.status.value,
            "address": self.address,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "output_file": self.output_file,
            "error_message": self.error_message,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class PointRecord:
    position: Tuple[float, float, float]
    color: Tuple[int, int, int]


class ColorSource(str, Enum):
    """Which color attribute layout a decoded buffer carried."""
    interleaved4 = "interleaved4"
    interleaved3 = "interleaved3"
    separate3 = "separate3"
    fallback_interleaved3 = "fallback_interleaved3"
    absent = "absent"


class PointCloud:
    """Columnar point storage: ``positions`` (N, 3) float64, ``colors`` (N, 3) uint8.

    Iterating yields :class:`PointRecord` objects in input order.
    """

    def __init__(self, positions: np.ndarray, colors: np.ndarray):
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        colors = np.asarray(colors, dtype=np.uint8).reshape(-1, 3)
        if len(positions) != len(colors):
            raise ValueError(f"{len(positions)} positions but {len(colors)} colors")
        self.positions = positions
        self.colors = colors

    @classmethod
    def empty(cls) -> "PointCloud":
        return cls(np.empty((0, 3)), np.empty((0, 3), dtype=np.uint8))

    def __len__(self) -> int:
        return len(self.positions)

    def __iter__(self) -> Iterator[PointRecord]:
        for pos, col in zip(self.positions.tolist(), self.colors.tolist()):
            yield PointRecord(position=tuple(pos), color=tuple(col))

    def with_positions(self, positions: np.ndarray) -> "PointCloud":
        return PointCloud(positions, self.colors)

    def to_records(self) -> List[dict]:
        """Plain-list form consumed by the deck.gl point layer."""
        return [{"position": pos, "color": col}
                for pos, col in zip(self.positions.tolist(), self.colors.tolist())]


@dataclass(frozen=True)
class Bounds:
    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float
    min_z: float
    max_z: float

    @property
    def lon_extent(self) -> float:
        return self.max_lon - self.min_lon

    @property
    def lat_extent(self) -> float:
        return self.max_lat - self.min_lat

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.min_lon + self.max_lon) / 2, (self.min_lat + self.max_lat) / 2)


@dataclass
class ViewState:
    longitude: float
    latitude: float
    zoom: float
    pitch: float
    bearing: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProgressState:
    fraction_complete: float = 0.0
    is_active: bool = False
