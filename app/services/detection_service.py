# app/services/detection_service.py
"""
Read paths over the detection table: runs the SQL from query_builder and
normalizes each row into a Detection. Nothing here writes.
"""

import csv
import io
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.orm import Session

from app.schemas.detection import AggregateBucket, Detection
from app.services.cache_service import CacheService
from app.services.detection_normalizer import ORIENTATION_LABELS, VEHICLE_TYPE_LABELS, detection_from_row
from app.services.make_resolver import title_case
from app.services.query_builder import (
    UNKNOWN_MAKE, BuiltQuery, DetectionFilters,
    build_aggregate_query, build_count_query, build_distinct_cameras_query, build_distinct_makes_query,
    build_export_query, build_kpi_query, build_list_query, build_search_query,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)

CAMERAS_CACHE_KEY = "cameras"
CAR_MAKES_CACHE_KEY = "car_makes"

CSV_HEADERS = ["Plate Tag", "Camera", "Timestamp", "Vehicle Type", "Vehicle Color", "Vehicle Make",
               "Latitude", "Longitude"]


def _run(db: Session, query: BuiltQuery):
    return db.execute(text(query.sql), query.params)


def _detections(db: Session, query: BuiltQuery) -> list[Detection]:
    return [detection_from_row(row) for row in _run(db, query)]


def list_detections(db: Session, filters: DetectionFilters) -> list[Detection]:
    return _detections(db, build_list_query(filters))


def count_detections(db: Session, filters: DetectionFilters) -> int:
    return int(_run(db, build_count_query(filters)).scalar() or 0)


def search_detections(db: Session, filters: DetectionFilters) -> list[Detection]:
    return _detections(db, build_search_query(filters))


def export_detections(db: Session, filters: DetectionFilters) -> list[Detection]:
    detections = _detections(db, build_export_query(filters))
    logger.info(f"Export produced {len(detections)} detections")
    return detections


def list_cameras(db: Session, cache: CacheService = None) -> list[str]:
    if cache is not None:
        cached = cache.get(CAMERAS_CACHE_KEY)
        if cached is not None:
            return cached
    cameras = [row.camera_name for row in _run(db, build_distinct_cameras_query())]
    if cache is not None:
        cache.set(CAMERAS_CACHE_KEY, cameras)
    return cameras


def normalize_make_names(raw_makes: Iterable[str]) -> list[str]:
    """Trim, drop empties, 'unknown' → 'N/A', title-case the rest, de-duplicate, sort."""
    makes = set()
    for make in raw_makes:
        if not make or not make.strip():
            continue
        make = make.strip()
        makes.add("N/A" if make.lower() == UNKNOWN_MAKE else title_case(make))
    return sorted(makes)


def list_car_makes(db: Session, cache: CacheService = None) -> list[str]:
    if cache is not None:
        cached = cache.get(CAR_MAKES_CACHE_KEY)
        if cached is not None:
            return cached
    makes = normalize_make_names(row.raw_make for row in _run(db, build_distinct_makes_query()))
    if cache is not None:
        cache.set(CAR_MAKES_CACHE_KEY, makes)
    return makes


def _bucket_label(dimension: str, key: str) -> str:
    if dimension == "vehicle_type":
        return VEHICLE_TYPE_LABELS.get(key, "N/A" if key == UNKNOWN_MAKE else title_case(key))
    if dimension == "vehicle_orientation":
        return ORIENTATION_LABELS.get(key, "N/A" if key == UNKNOWN_MAKE else title_case(key))
    if dimension == "vehicle_color":
        return title_case(key)
    return key


def aggregate_detections(db: Session, dimension: str, filters: DetectionFilters) -> list[AggregateBucket]:
    buckets = [
        AggregateBucket(key=row.bucket, label=_bucket_label(dimension, row.bucket), count=int(row.total))
        for row in _run(db, build_aggregate_query(dimension, filters))
    ]
    return sorted(buckets, key=lambda b: (-b.count, b.key))


def get_kpis(db: Session) -> dict:
    row = _run(db, build_kpi_query()).one()
    return {"total_detections": int(row.total_detections or 0), "active_cameras": int(row.active_cameras or 0)}


def _iso(epoch_ms) -> str:
    if epoch_ms is None:
        return ""
    try:
        return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return str(epoch_ms)


def detections_to_csv(detections: Iterable[Detection]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_HEADERS)
    for det in detections:
        writer.writerow([
            det.plate.tag,
            det.source.name,
            _iso(det.timestamp),
            det.vehicle.type.name,
            det.vehicle.color.code,
            det.vehicle.make.name,
            det.location.lat,
            det.location.lon,
        ])
    return buf.getvalue()
