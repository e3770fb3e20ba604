"""CoordinateNormalizer: bring decoded points into longitude/latitude."""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

import numpy as np
from pyproj import Transformer

from . import constants
from .models import Bounds, PointCloud

logger = logging.getLogger(__name__)


@dataclass
class NormalizedCloud:
    points: PointCloud
    center: Tuple[float, float]  # (lon, lat)
    bounds: Bounds


@lru_cache(maxsize=16)
def _to_geographic(source_epsg: int) -> Transformer:
    return Transformer.from_crs(
        f"EPSG:{source_epsg}",
        f"EPSG:{constants.GEOGRAPHIC_EPSG}",
        always_xy=True,
    )


def utm_epsg_for(lon: float, lat: float) -> int:
    """EPSG code of the WGS 84 UTM zone containing (lon, lat)."""
    zone = int(math.floor((lon + 180.0) / 6.0)) + 1
    zone = min(max(zone, 1), 60)
    return (32600 if lat >= 0 else 32700) + zone


def fallback_bounds() -> Bounds:
    lon, lat = constants.FALLBACK_CENTER
    return Bounds(min_lon=lon, max_lon=lon, min_lat=lat, max_lat=lat, min_z=0.0, max_z=0.0)


def compute_bounds(positions: np.ndarray) -> Bounds:
    mins = positions.min(axis=0)
    maxs = positions.max(axis=0)
    return Bounds(
        min_lon=float(mins[0]), max_lon=float(maxs[0]),
        min_lat=float(mins[1]), max_lat=float(maxs[1]),
        min_z=float(mins[2]), max_z=float(maxs[2]),
    )


def is_projected(positions: np.ndarray) -> bool:
    """True when the X/Y midpoint cannot be a longitude/latitude pair."""
    mid_x = (positions[:, 0].min() + positions[:, 0].max()) / 2
    mid_y = (positions[:, 1].min() + positions[:, 1].max()) / 2
    return abs(mid_x) > 180 or abs(mid_y) > 90


class CoordinateNormalizer:
    def __init__(self, default_epsg: int = constants.DEFAULT_UTM_EPSG):
        self.default_epsg = default_epsg

    def normalize(self, cloud: PointCloud,
                  utm_epsg: Optional[int] = None) -> NormalizedCloud:
        """Return *cloud* in EPSG:4326 together with its center and bounds.

        Planar input is assumed to be in *utm_epsg* (or the configured
        default zone) and is reprojected; Z is left alone.  Geographic input
        passes through untouched.  An empty cloud yields the fallback
        location instead of failing.
        """
        if len(cloud) == 0:
            logger.info("No points to normalize; using fallback location")
            return NormalizedCloud(points=cloud, center=constants.FALLBACK_CENTER,
                                   bounds=fallback_bounds())

        positions = cloud.positions
        if is_projected(positions):
            source_epsg = utm_epsg or self.default_epsg
            logger.info(f"Coordinates look projected; reprojecting {len(cloud)} points "
                        f"from EPSG:{source_epsg}")
            lon, lat = _to_geographic(source_epsg).transform(positions[:, 0], positions[:, 1])
            positions = np.column_stack((lon, lat, positions[:, 2]))
            cloud = cloud.with_positions(positions)

        bounds = compute_bounds(positions)
        logger.info(f"Point bounds: lon {bounds.min_lon:.6f}..{bounds.max_lon:.6f}, "
                    f"lat {bounds.min_lat:.6f}..{bounds.max_lat:.6f}, "
                    f"z {bounds.min_z:.1f}..{bounds.max_z:.1f}")
        return NormalizedCloud(points=cloud, center=bounds.center, bounds=bounds)
