"""PointViewer package: address to framed, georeferenced point cloud.

Import constants FIRST so the environment and logging are configured
before any other module reads them.
"""

from pointviewer import constants as _constants  # noqa: F401

from pointviewer.controller import VisualizationController, VisualizationState
from pointviewer.models import Bounds, JobStatus, PointCloud, PointRecord, ViewState
