"""PointCloudDecoder: turn a downloaded LAS/LAZ buffer into colored points.

The outer file format is parsed by laspy.  The work done here is attribute
reconciliation: point-cloud producers disagree on how color is laid out and
on its bit depth, so the layout is picked once per buffer from a fixed
priority list:

1. ``COLOR_0`` with 4 values per point (RGBA, alpha dropped)
2. ``COLOR_0`` with 3 values per point (RGB)
3. separate ``red`` / ``green`` / ``blue`` arrays (any capitalisation)
4. a red-named array holding interleaved RGB triples
5. nothing usable -> opaque white

Bit depth is a single decision for the whole buffer: if any of the first
1000 sampled values exceeds 255 the array is 16-bit and rescaled to 8-bit.
Files mixing 8- and 16-bit colors are not supported.
"""

import io
import logging
from typing import Dict, Optional, Tuple

import laspy
from laspy.errors import LaspyException
import numpy as np

from . import constants
from .errors import MalformedBufferError, MissingPositionError
from .models import ColorSource, PointCloud

logger = logging.getLogger(__name__)

Attributes = Dict[str, np.ndarray]

_CHANNEL_NAMES = {
    'red': ('red', 'Red'),
    'green': ('green', 'Green'),
    'blue': ('blue', 'Blue'),
}


def _lookup(attributes: Attributes, names) -> Optional[np.ndarray]:
    for name in names:
        values = attributes.get(name)
        if values is not None:
            return np.asarray(values).ravel()
    return None


def select_color_source(attributes: Attributes,
                        num_points: int) -> Tuple[ColorSource, Optional[np.ndarray]]:
    """Pick the color layout for a buffer.

    Returns the layout and the candidate array it was read from, flattened
    in storage order (separate channels are interleaved per point).
    """
    interleaved = _lookup(attributes, ('COLOR_0',))
    if interleaved is not None:
        if len(interleaved) == num_points * 4:
            return ColorSource.interleaved4, interleaved
        if len(interleaved) == num_points * 3:
            return ColorSource.interleaved3, interleaved

    red = _lookup(attributes, _CHANNEL_NAMES['red'])
    green = _lookup(attributes, _CHANNEL_NAMES['green'])
    blue = _lookup(attributes, _CHANNEL_NAMES['blue'])
    if (red is not None and green is not None and blue is not None
            and len(red) == len(green) == len(blue) == num_points):
        return ColorSource.separate3, np.column_stack((red, green, blue)).ravel()

    if red is not None and len(red) == num_points * 3:
        return ColorSource.fallback_interleaved3, red

    return ColorSource.absent, None


def _is_16_bit(values: np.ndarray, sample_size: int) -> bool:
    sample = values[:sample_size]
    if len(sample) == 0:
        return False
    return float(sample.max()) > 255


def _to_rgb(source: ColorSource, values: np.ndarray, num_points: int) -> np.ndarray:
    if source is ColorSource.interleaved4:
        return values.reshape(num_points, 4)[:, :3]
    return values.reshape(num_points, 3)


class PointCloudDecoder:
    """Decode point-cloud files into :class:`PointCloud` objects."""

    def __init__(self, sample_size: int = constants.COLOR_SAMPLE_SIZE):
        self.sample_size = sample_size

    def decode(self, buffer: bytes) -> PointCloud:
        return self.reconcile(self.read_attributes(buffer))

    @staticmethod
    def read_attributes(buffer: bytes) -> Attributes:
        """Parse a LAS/LAZ byte buffer into flat attribute arrays."""
        if not buffer:
            raise MalformedBufferError("Downloaded point-cloud file is empty")

        # lazrs reports corrupt LAZ chunks as RuntimeError
        try:
            las = laspy.read(io.BytesIO(buffer))
        except (LaspyException, ValueError, EOFError, OSError, RuntimeError) as exc:
            raise MalformedBufferError(f"Could not parse point-cloud file: {exc}") from exc

        header = las.header
        logger.info(f"LAS {header.version}, point format {header.point_format.id}, "
                    f"{header.point_count} points")

        positions = np.column_stack((
            np.asarray(las.x, dtype=np.float64),
            np.asarray(las.y, dtype=np.float64),
            np.asarray(las.z, dtype=np.float64),
        ))
        attributes = {'POSITION': positions.ravel()}

        dimension_names = set(las.point_format.dimension_names)
        for channel in ('red', 'green', 'blue'):
            if channel in dimension_names:
                attributes[channel] = np.asarray(las[channel])
        return attributes

    def reconcile(self, attributes: Attributes) -> PointCloud:
        """Build positions and 8-bit colors from loosely shaped attributes."""
        positions = attributes.get('POSITION')
        if positions is None:
            raise MissingPositionError("No position data found in point-cloud file")

        positions = np.asarray(positions, dtype=np.float64).ravel()
        if len(positions) % 3 != 0:
            raise MalformedBufferError(
                f"Position array has {len(positions)} values, not a multiple of 3")
        num_points = len(positions) // 3

        source, values = select_color_source(attributes, num_points)
        if values is None:
            colors = np.empty((num_points, 3), dtype=np.uint8)
            colors[:] = constants.DEFAULT_COLOR
            logger.info(f"No color attribute; {num_points} points default to white")
            return PointCloud(positions.reshape(num_points, 3), colors)

        sixteen_bit = _is_16_bit(values, self.sample_size)
        rgb = _to_rgb(source, values, num_points).astype(np.float64)
        if sixteen_bit:
            rgb = np.round(rgb / 65535 * 255)
        colors = np.clip(rgb, 0, 255).astype(np.uint8)

        logger.info(f"Decoded {num_points} points, colors from {source.value} "
                    f"({'16' if sixteen_bit else '8'}-bit)")
        return PointCloud(positions.reshape(num_points, 3), colors)
