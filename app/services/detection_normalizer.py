# app/services/detection_normalizer.py
"""
Builds one canonical Detection from a raw storage row
(flat columns + JSON metadata blob).

Rules, first present value wins:
  plate      metadata.plate merged onto defaults, tag falls back to plate_tag
  source     metadata.source, missing id/name filled from camera_id/camera_name
  vehicle    first JSON object among metadata.vehicle | metadata.vehicleData |
             metadata.attributes.vehicle (an empty object still counts)
  timestamp  metadata.timestamp → row.timestamp → metadata.image.timestamp

A broken metadata blob never fails the read: it degrades to {} and every
field takes its default.
"""

import math
from typing import Any, Mapping, Optional

from app.schemas.detection import (
    CodeName, Detection, ImageInfo, Location, Plate, PlateRegion, Source, Vehicle, VehicleColor,
)
from app.services.make_resolver import make_from_value, resolve_vehicle_make
from app.utils.json_parser import ObjectValue, StringValue, classify, get_nested, safe_parse_json
from app.utils.logger import get_logger
from app.utils.timestamps import normalize_timestamp

logger = get_logger(__name__)

ORIENTATION_LABELS = {
    "rear": "Rear",
    "front": "Front",
    "side": "Side",
    "back": "Rear",
    "forward": "Front",
}

VEHICLE_TYPE_LABELS = {
    "sedan": "Sedan",
    "suv": "SUV",
    "truck": "Truck",
    "van": "Van",
    "car": "Car",
    "motorcycle": "Motorcycle",
    "bus": "Bus",
}

UNKNOWN = "unknown"
NOT_AVAILABLE = "N/A"


# ── Coercion helpers ─────────────────────────────────────────────────────────

def _as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _as_int(value: Any, default: int = 0) -> int:
    return int(_as_float(value, default))


def _as_str(value: Any, default: str = "") -> str:
    if value is None or isinstance(value, (dict, list)):
        return default
    text = str(value)
    return text if text else default


def _row_get(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    mapping = getattr(row, "_mapping", None)   # SQLAlchemy Row
    if mapping is not None:
        return mapping.get(key)
    return getattr(row, key, None)


# ── Field builders ───────────────────────────────────────────────────────────

def _labelled(value: Any, labels: dict) -> CodeName:
    """Code/name pair from a bare string or {code, name}; name falls back to the label table."""
    shape = classify(value)
    if isinstance(shape, StringValue):
        return CodeName(code=shape.text, name=labels.get(shape.text, NOT_AVAILABLE))
    if isinstance(shape, ObjectValue):
        code = shape.code or shape.name
        return CodeName(code=code, name=shape.name or labels.get(code, NOT_AVAILABLE))
    return CodeName()


def _color(value: Any) -> VehicleColor:
    shape = classify(value)
    if isinstance(shape, StringValue):
        return VehicleColor(code=shape.text)
    if isinstance(shape, ObjectValue):
        return VehicleColor(code=shape.code or shape.name)
    return VehicleColor()


VEHICLE_LOCATIONS = (("vehicle",), ("vehicleData",), ("attributes", "vehicle"))


def _vehicle(metadata: dict) -> Vehicle:
    # First JSON object wins, even an empty one; query_builder.VEHICLE_OBJECT picks the same.
    data = next(
        (c for c in (get_nested(metadata, *path) for path in VEHICLE_LOCATIONS) if isinstance(c, dict)),
        None,
    )
    if data is None:
        return Vehicle()

    make = make_from_value(data.get("make"))
    # Document-level resolution wins over the inline value. Historical
    # exports were produced this way, keep it.
    document_make = resolve_vehicle_make(metadata)
    if document_make is not None:
        make = document_make

    return Vehicle(
        bearing=_as_float(data.get("bearing")),
        color=_color(data.get("color")),
        occlusion=_as_float(data.get("occlusion")),
        make=CodeName(code=make.code, name=make.name) if make else CodeName(),
        orientation=_labelled(data.get("orientation"), ORIENTATION_LABELS),
        type=_labelled(data.get("type"), VEHICLE_TYPE_LABELS),
    )


def _plate(metadata: dict, plate_tag: Optional[str]) -> Plate:
    raw = metadata.get("plate")
    if not isinstance(raw, dict) or not raw:
        return Plate(tag=_as_str(plate_tag))

    region = raw.get("region") if isinstance(raw.get("region"), dict) else {}
    return Plate(
        code=_as_str(raw.get("code"), "US-FL"),
        region=PlateRegion(
            height=_as_float(region.get("height")),
            width=_as_float(region.get("width")),
            x=_as_float(region.get("x")),
            y=_as_float(region.get("y")),
        ),
        tag=_as_str(raw.get("tag")) or _as_str(plate_tag),
    )


def _source(metadata: dict, camera_id: Any, camera_name: Any) -> Source:
    raw = metadata.get("source")
    raw = raw if isinstance(raw, dict) else {}
    return Source(
        id=_as_str(raw.get("id")) or _as_str(camera_id),
        name=_as_str(raw.get("name")) or _as_str(camera_name, NOT_AVAILABLE),
        type=_as_str(raw.get("type"), "alpr_processor"),
    )


def _image(metadata: dict) -> ImageInfo:
    raw = metadata.get("image")
    if not isinstance(raw, dict):
        return ImageInfo()
    return ImageInfo(
        width=_as_int(raw.get("width"), 1920),
        height=_as_int(raw.get("height"), 1080),
        id=_as_str(raw.get("id")),
    )


def _location(metadata: dict) -> Location:
    raw = metadata.get("location")
    if not isinstance(raw, dict):
        return Location()
    return Location(lat=_as_float(raw.get("lat")), lon=_as_float(raw.get("lon")))


def _timestamp(metadata: dict, row_timestamp: Any) -> Optional[int]:
    for candidate in (
        metadata.get("timestamp"),
        row_timestamp,
        get_nested(metadata, "image", "timestamp"),
    ):
        ts = normalize_timestamp(candidate)
        if ts is not None:
            return ts
    return None


def _parse_metadata(raw: Any, row_id: Any) -> dict:
    metadata = safe_parse_json(raw)
    if metadata is None:
        if raw is not None:
            logger.warning(f"Row {row_id}: metadata is not a JSON object, using defaults")
        return {}
    return metadata


# ── Public ───────────────────────────────────────────────────────────────────

def detection_from_row(row: Any) -> Detection:
    """Normalize one storage row (mapping or SQLAlchemy Row) into a Detection."""
    row_id = _row_get(row, "id")
    metadata = _parse_metadata(_row_get(row, "metadata"), row_id)

    return Detection(
        id=_as_str(row_id) or _as_str(metadata.get("id")),
        image=_image(metadata),
        location=_location(metadata),
        plate=_plate(metadata, _row_get(row, "plate_tag")),
        source=_source(metadata, _row_get(row, "camera_id"), _row_get(row, "camera_name")),
        time_of_day=_as_int(metadata.get("timeOfDay")),
        timestamp=_timestamp(metadata, _row_get(row, "timestamp")),
        type=_as_str(metadata.get("type"), "alpr"),
        vehicle=_vehicle(metadata),
        version=_as_str(metadata.get("version"), "1.0"),
    )
