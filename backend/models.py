from pydantic import BaseModel, Field
from typing import Optional

from backend import config


class VisualizeRequest(BaseModel):
    address: str = Field(default=config.DEFAULT_ADDRESS, min_length=1)
    buffer_km: float = Field(default=config.DEFAULT_BUFFER_KM, gt=0)


class ViewUpdateRequest(BaseModel):
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    zoom: Optional[float] = None
    pitch: Optional[float] = None
    bearing: Optional[float] = None


class PointSizeRequest(BaseModel):
    point_size: float = Field(gt=0)


class ViewStateModel(BaseModel):
    longitude: float
    latitude: float
    zoom: float
    pitch: float
    bearing: float


class ProgressModel(BaseModel):
    fraction_complete: float
    is_active: bool


class VisualizationResponse(BaseModel):
    status: str
    view_state: ViewStateModel
    progress: ProgressModel
    point_size: float
    point_count: int
    error: Optional[str] = None
    error_kind: Optional[str] = None
    job: Optional[dict] = None
    points: Optional[list] = None  # [{"position": [lon, lat, z], "color": [r, g, b]}]
