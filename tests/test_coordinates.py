"""Tests for reference-system detection and reprojection."""

import numpy as np
import pytest

from pointviewer import constants
from pointviewer.coordinates import CoordinateNormalizer, is_projected, utm_epsg_for
from pointviewer.models import PointCloud


def _cloud(positions):
    positions = np.asarray(positions, dtype=float)
    colors = np.tile([1, 2, 3], (len(positions), 1))
    return PointCloud(positions, colors)


@pytest.fixture
def normalizer():
    return CoordinateNormalizer()


class TestDetection:

    def test_geographic_midpoint(self):
        assert not is_projected(np.array([[-105.27, 40.01, 0.0], [-105.26, 40.02, 0.0]]))

    def test_utm_midpoint(self):
        assert is_projected(np.array([[452345.0, 4431200.0, 0.0]]))

    def test_uses_midpoint_not_individual_points(self):
        # One x is out of longitude range but the midpoint is not
        positions = np.array([[-179.0, 0.0, 0.0], [181.5, 0.0, 0.0]])
        assert not is_projected(positions)

    def test_latitude_out_of_range(self):
        assert is_projected(np.array([[10.0, 95.0, 0.0], [10.0, 100.0, 0.0]]))


class TestNormalize:

    def test_empty_input_uses_fallback(self, normalizer):
        result = normalizer.normalize(PointCloud.empty())

        assert len(result.points) == 0
        assert result.center == constants.FALLBACK_CENTER
        assert result.bounds.min_lon == result.bounds.max_lon == constants.FALLBACK_CENTER[0]
        assert result.bounds.min_lat == result.bounds.max_lat == constants.FALLBACK_CENTER[1]
        assert result.bounds.min_z == result.bounds.max_z == 0.0

    def test_geographic_input_is_unchanged(self, normalizer):
        positions = [[-105.2705, 40.015, 1000.0], [-105.27, 40.016, 1100.0],
                     [-105.271, 40.014, 1200.0]]
        cloud = _cloud(positions)

        result = normalizer.normalize(cloud)

        assert result.points.positions.tolist() == positions
        assert result.points.colors.tolist() == cloud.colors.tolist()
        assert result.bounds.min_lon == -105.2710
        assert result.bounds.max_lat == 40.016
        assert result.bounds.max_z == 1200.0
        assert result.center == pytest.approx((-105.27050, 40.015))

    def test_utm_input_is_reprojected(self, normalizer):
        cloud = _cloud([[452300.0, 4431150.0, 1650.0], [452390.0, 4431250.0, 1665.0]])
        assert is_projected(cloud.positions)  # midpoint (452345.0, 4431200.0)

        result = normalizer.normalize(cloud)

        lon, lat, z = result.points.positions.T
        assert np.all((lon > -106.0) & (lon < -105.0))
        assert np.all((lat > 39.9) & (lat < 40.2))
        assert z.tolist() == [1650.0, 1665.0]
        assert not is_projected(result.points.positions)
        # bounds come from the reprojected coordinates
        assert -106.0 < result.bounds.min_lon < result.bounds.max_lon < -105.0
        assert result.center == pytest.approx(result.bounds.center)
        assert result.points.colors.tolist() == cloud.colors.tolist()

    def test_explicit_zone(self, normalizer):
        # 500000 E is the central meridian of the zone: 15°E for zone 33N
        cloud = _cloud([[500000.0, 5000000.0, 0.0]])

        result = normalizer.normalize(cloud, utm_epsg=32633)

        assert result.points.positions[0, 0] == pytest.approx(15.0, abs=1e-6)
        assert 45.0 < result.points.positions[0, 1] < 45.3

    def test_default_zone_is_configurable(self):
        cloud = _cloud([[500000.0, 5000000.0, 0.0]])
        result = CoordinateNormalizer(default_epsg=32610).normalize(cloud)
        assert result.points.positions[0, 0] == pytest.approx(-123.0, abs=1e-6)


class TestUtmZone:

    @pytest.mark.parametrize("lon, lat, expected", [
        (-105.27, 40.01, 32613),
        (151.21, -33.87, 32756),
        (-0.12, 51.5, 32630),
        (180.0, 0.0, 32660),
        (-180.0, 10.0, 32601),
    ])
    def test_zone_from_location(self, lon, lat, expected):
        assert utm_epsg_for(lon, lat) == expected
