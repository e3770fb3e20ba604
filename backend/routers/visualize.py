import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.models import (PointSizeRequest, ViewUpdateRequest, VisualizationResponse,
                            VisualizeRequest)
from backend.session import get_viewer
from pointviewer import VisualizationController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/visualize", tags=["visualize"])


def _response(viewer: VisualizationController,
              include_points: bool = False) -> VisualizationResponse:
    return VisualizationResponse(**viewer.snapshot().to_dict(include_points=include_points))


@router.post("", response_model=VisualizationResponse)
async def start_visualization(request: VisualizeRequest,
                              viewer: VisualizationController = Depends(get_viewer)):
    """Request a point cloud for an address.

    Any request still polling or downloading is superseded.  The pipeline
    runs in a background task; poll ``/state`` for status, progress and,
    once complete, the points and framed camera.
    """
    logger.info(f"Visualization requested for '{request.address}'")
    viewer.start(request.address, request.buffer_km)
    return _response(viewer)


@router.get("/state", response_model=VisualizationResponse)
async def get_state(include_points: bool = Query(True),
                    viewer: VisualizationController = Depends(get_viewer)):
    return _response(viewer, include_points=include_points)


@router.patch("/view", response_model=VisualizationResponse)
async def update_view(request: ViewUpdateRequest,
                      viewer: VisualizationController = Depends(get_viewer)):
    """Apply camera changes from user interaction; values are clamped."""
    viewer.update_view(**request.model_dump(exclude_none=True))
    return _response(viewer)


@router.post("/view/reset", response_model=VisualizationResponse)
async def reset_view(viewer: VisualizationController = Depends(get_viewer)):
    viewer.reset_view()
    return _response(viewer)


@router.post("/view/preset/{name}", response_model=VisualizationResponse)
async def apply_preset(name: str, viewer: VisualizationController = Depends(get_viewer)):
    try:
        viewer.apply_preset(name)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _response(viewer)


@router.put("/point-size", response_model=VisualizationResponse)
async def set_point_size(request: PointSizeRequest,
                         viewer: VisualizationController = Depends(get_viewer)):
    viewer.set_point_size(request.point_size)
    return _response(viewer)
