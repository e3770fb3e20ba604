"""VisualizationController: one viewer session, from address to framed points.

Only one request is live per controller.  Each ``start`` bumps a generation
counter and cancels the previous task; callbacks and continuations from an
older generation drop their results instead of touching session state.
Observers read state through :meth:`snapshot` or the :meth:`subscribe`
async iterator.
"""

import asyncio
import logging
from dataclasses import dataclass, fields, replace
from typing import AsyncIterator, Optional, Set

from . import constants
from .coordinates import CoordinateNormalizer, NormalizedCloud
from .decoder import PointCloudDecoder
from .download import StreamingDownloader
from .errors import PointViewerError
from .framing import clamp, clamp_view, framed_view
from .geocoder import GeocoderService
from .jobs import JobOrchestrator
from .models import Job, JobStatus, PointCloud, ProgressState, ViewState
from .transport import PointCloudApiClient

logger = logging.getLogger(__name__)

_VIEW_FIELDS = {f.name for f in fields(ViewState)}


@dataclass
class VisualizationState:
    points: PointCloud
    view_state: ViewState
    status: JobStatus
    progress: ProgressState
    point_size: float
    error: Optional[str] = None
    error_kind: Optional[str] = None
    job: Optional[dict] = None

    def to_dict(self, include_points: bool = True) -> dict:
        data = {
            "view_state": self.view_state.to_dict(),
            "status": self.status.value,
            "progress": {
                "fraction_complete": self.progress.fraction_complete,
                "is_active": self.progress.is_active,
            },
            "point_size": self.point_size,
            "point_count": len(self.points),
            "error": self.error,
            "error_kind": self.error_kind,
            "job": self.job,
        }
        if include_points:
            data["points"] = self.points.to_records()
        return data


class VisualizationController:
    def __init__(self, api: Optional[PointCloudApiClient] = None,
                 initial_view: Optional[dict] = None,
                 orchestrator: Optional[JobOrchestrator] = None,
                 downloader: Optional[StreamingDownloader] = None,
                 decoder: Optional[PointCloudDecoder] = None,
                 normalizer: Optional[CoordinateNormalizer] = None,
                 geocoder: Optional[GeocoderService] = None,
                 use_geocoded_zone: bool = constants.USE_GEOCODED_ZONE):
        self.api = api or PointCloudApiClient()
        self.orchestrator = orchestrator or JobOrchestrator(self.api)
        self.downloader = downloader or StreamingDownloader(self.api)
        self.decoder = decoder or PointCloudDecoder()
        self.normalizer = normalizer or CoordinateNormalizer()
        self.use_geocoded_zone = use_geocoded_zone
        self.geocoder = geocoder

        self._initial_view = ViewState(**{**constants.DEFAULT_VIEW_STATE, **(initial_view or {})})
        self._framed_view: Optional[ViewState] = None
        self._view = replace(self._initial_view)
        self._points = PointCloud.empty()
        self._status = JobStatus.pending
        self._progress = ProgressState()
        self._point_size = constants.POINT_SIZE_DEFAULT
        self._error: Optional[str] = None
        self._error_kind: Optional[str] = None
        self._job: Optional[Job] = None

        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._subscribers: Set[asyncio.Queue] = set()

    # ------------------------------------------------------------------
    # State exposure
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def snapshot(self) -> VisualizationState:
        return VisualizationState(
            points=self._points,
            view_state=replace(self._view),
            status=self._status,
            progress=replace(self._progress),
            point_size=self._point_size,
            error=self._error,
            error_kind=self._error_kind,
            job=self._job.to_dict() if self._job else None,
        )

    async def subscribe(self) -> AsyncIterator[VisualizationState]:
        """Yield the current state, then every state published after it."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            yield self.snapshot()
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    def _publish(self) -> None:
        if not self._subscribers:
            return
        state = self.snapshot()
        for queue in self._subscribers:
            queue.put_nowait(state)

    # ------------------------------------------------------------------
    # Request cycle
    # ------------------------------------------------------------------

    def start(self, address: str, buffer_km: float = constants.DEFAULT_BUFFER_KM) -> asyncio.Task:
        """Begin a new request, superseding any request still in flight."""
        self._generation += 1
        generation = self._generation
        if self._task is not None and not self._task.done():
            logger.info(f"Cancelling request generation {generation - 1}")
            self._task.cancel()

        self._status = JobStatus.pending
        self._progress = ProgressState()
        self._error = None
        self._error_kind = None
        self._job = None
        self._publish()

        self._task = asyncio.create_task(self._run(generation, address, buffer_km))
        return self._task

    async def run(self, address: str,
                  buffer_km: float = constants.DEFAULT_BUFFER_KM) -> VisualizationState:
        """Run one request to its end and return the final state."""
        await self.start(address, buffer_km)
        return self.snapshot()

    async def aclose(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self.api.aclose()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _fail(self, kind: str, message: str) -> None:
        self._status = JobStatus.failed
        self._progress = ProgressState()
        self._error = message
        self._error_kind = kind
        self._publish()

    async def _run(self, generation: int, address: str, buffer_km: float) -> None:
        try:
            await self._run_cycle(generation, address, buffer_km)
        except PointViewerError as exc:
            logger.warning(f"Request for '{address}' ended with {exc.kind}: {exc}")
            if self._is_current(generation):
                self._fail(exc.kind, str(exc))
        except asyncio.CancelledError:
            logger.info(f"Request generation {generation} for '{address}' cancelled")
            raise
        except Exception as exc:
            logger.exception("Visualization failed for '%s'", address)
            if self._is_current(generation):
                self._fail("error", f"Visualization failed: {exc}")

    async def _run_cycle(self, generation: int, address: str, buffer_km: float) -> None:
        job = await self.orchestrator.submit(address, buffer_km)
        if not self._is_current(generation):
            return
        self._job = job
        self._status = job.status
        self._publish()

        def _on_update(updated: Job, message: Optional[str]) -> None:
            if not self._is_current(generation):
                return
            self._job = updated
            self._status = updated.status
            self._error = message
            self._error_kind = "transient" if message else None
            self._publish()

        job = await self.orchestrator.await_completion(job, _on_update)
        if not self._is_current(generation):
            return

        self._progress = ProgressState(fraction_complete=0.0, is_active=True)
        self._publish()

        def _on_progress(percent: int) -> None:
            if not self._is_current(generation):
                return
            self._progress = ProgressState(fraction_complete=min(percent, 100) / 100,
                                           is_active=True)
            self._publish()

        buffer = await self.downloader.download(job.id, _on_progress)
        utm_epsg = await self._resolve_zone(address)
        normalized = await asyncio.to_thread(self._decode_and_normalize, buffer, utm_epsg)
        del buffer

        if not self._is_current(generation):
            logger.info(f"Discarding points of superseded job {job.id}")
            return

        self._points = normalized.points
        if len(normalized.points) > 0:
            self._framed_view = framed_view(normalized.center, normalized.bounds)
            self._view = replace(self._framed_view)
        self._progress = ProgressState()
        self._status = JobStatus.completed
        self._error = None
        self._error_kind = None
        self._publish()
        logger.info(f"Rendering {len(self._points)} points for job {job.id} "
                    f"at zoom {self._view.zoom:.0f}")

    def _decode_and_normalize(self, buffer: bytes, utm_epsg: Optional[int]) -> NormalizedCloud:
        cloud = self.decoder.decode(buffer)
        return self.normalizer.normalize(cloud, utm_epsg=utm_epsg)

    async def _resolve_zone(self, address: str) -> Optional[int]:
        if not self.use_geocoded_zone:
            return None
        if self.geocoder is None:
            self.geocoder = GeocoderService()
        try:
            location = await asyncio.to_thread(self.geocoder.locate, address)
        except ValueError as exc:
            logger.warning(f"{exc}; assuming EPSG:{self.normalizer.default_epsg}")
            return None
        logger.info(f"'{address}' geocoded to {location.latitude:.4f}, "
                    f"{location.longitude:.4f} (EPSG:{location.utm_epsg})")
        return location.utm_epsg

    # ------------------------------------------------------------------
    # Camera and point-size controls
    # ------------------------------------------------------------------

    def update_view(self, **changes: float) -> ViewState:
        unknown = set(changes) - _VIEW_FIELDS
        if unknown:
            raise ValueError(f"Unknown view fields: {', '.join(sorted(unknown))}")
        self._view = clamp_view(replace(self._view, **changes))
        self._publish()
        return replace(self._view)

    def apply_preset(self, name: str) -> ViewState:
        try:
            pitch, bearing = constants.CAMERA_PRESETS[name]
        except KeyError:
            raise ValueError(f"Unknown camera preset: {name}") from None
        return self.update_view(pitch=pitch, bearing=bearing)

    def reset_view(self) -> ViewState:
        """Return to the framed view of the current points, or the initial view."""
        self._view = replace(self._framed_view or self._initial_view)
        self._publish()
        return replace(self._view)

    def set_point_size(self, size: float) -> float:
        self._point_size = clamp(size, constants.POINT_SIZE_RANGE)
        self._publish()
        return self._point_size
