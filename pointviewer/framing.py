"""Camera framing and the camera-adjustment limits used by the viewer."""

from dataclasses import dataclass
from typing import Tuple

from . import constants
from .models import Bounds, ViewState

# (minimum extent in degrees, zoom) checked top to bottom
ZOOM_STEPS = (
    (0.1, 10.0),     # city sized
    (0.05, 12.0),
    (0.01, 14.0),    # neighbourhood
    (0.005, 16.0),
    (0.001, 18.0),   # single lot
)
MAX_FRAMING_ZOOM = 20.0


@dataclass(frozen=True)
class Framing:
    zoom: float


def frame_bounds(bounds: Bounds) -> Framing:
    """Pick a zoom level that fits the larger of the lat/lon extents."""
    extent = max(bounds.lat_extent, bounds.lon_extent)
    for threshold, zoom in ZOOM_STEPS:
        if extent > threshold:
            return Framing(zoom=zoom)
    return Framing(zoom=MAX_FRAMING_ZOOM)


def framed_view(center: Tuple[float, float], bounds: Bounds) -> ViewState:
    return ViewState(
        longitude=center[0],
        latitude=center[1],
        zoom=frame_bounds(bounds).zoom,
        pitch=constants.FRAMED_PITCH,
        bearing=constants.FRAMED_BEARING,
    )


def clamp(value: float, limits: Tuple[float, float]) -> float:
    low, high = limits
    return min(max(value, low), high)


def clamp_view(view: ViewState) -> ViewState:
    """Keep zoom, pitch and bearing inside the camera panel's ranges."""
    return ViewState(
        longitude=view.longitude,
        latitude=view.latitude,
        zoom=clamp(view.zoom, constants.CAMERA_LIMITS['zoom']),
        pitch=clamp(view.pitch, constants.CAMERA_LIMITS['pitch']),
        bearing=clamp(view.bearing, constants.CAMERA_LIMITS['bearing']),
    )
