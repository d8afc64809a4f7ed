# app/schemas/detection.py
"""
Canonical Detection read model returned by every detection endpoint.
Built by services.detection_normalizer from one storage row; immutable.
Every field has a default so clients never branch on absence.
"""

from pydantic import BaseModel, Field
from typing import Optional


class _Frozen(BaseModel):
    class Config:
        frozen = True
        populate_by_name = True


class ImageInfo(_Frozen):
    width: int = 1920
    height: int = 1080
    id: str = ""


class Location(_Frozen):
    lat: float = 0.0
    lon: float = 0.0


class PlateRegion(_Frozen):
    height: float = 0
    width: float = 0
    x: float = 0
    y: float = 0


class Plate(_Frozen):
    code: str = "US-FL"
    region: PlateRegion = PlateRegion()
    tag: str = ""


class Source(_Frozen):
    id: str = ""
    name: str = "N/A"
    type: str = "alpr_processor"


class CodeName(_Frozen):
    code: str = "unknown"
    name: str = "N/A"


class VehicleColor(_Frozen):
    code: str = "unknown"


class Vehicle(_Frozen):
    bearing: float = 0
    color: VehicleColor = VehicleColor()
    occlusion: float = 0
    make: CodeName = CodeName()
    orientation: CodeName = CodeName()
    type: CodeName = CodeName()


class Detection(_Frozen):
    id: str
    image: ImageInfo = ImageInfo()
    location: Location = Location()
    plate: Plate = Plate()
    source: Source = Source()
    time_of_day: int = Field(0, alias="timeOfDay")
    timestamp: Optional[int] = None
    type: str = "alpr"
    vehicle: Vehicle = Vehicle()
    version: str = "1.0"


class DetectionCount(BaseModel):
    total: int


class AggregateBucket(BaseModel):
    key: str
    label: str
    count: int


class KpiOut(BaseModel):
    total_detections: int = Field(alias="totalDetections")
    active_cameras: int = Field(alias="activeCameras")

    class Config:
        populate_by_name = True
