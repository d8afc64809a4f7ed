# app/routers/detections.py
"""
Detection browsing endpoints. All of them require a valid session.
GET /detections         : paged list
GET /detections/count   : total for the same filters
GET /detections/search  : plate substring search (max 100)
GET /detections/export  : unpaginated export (max 100000), JSON or CSV
GET /cameras, /car-makes: filter option lists (cached)
GET /kpis               : dashboard headline numbers
"""

import re
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.detection import Detection, DetectionCount, KpiOut
from app.services import detection_service
from app.services.cache_service import CacheService, get_cache
from app.services.query_builder import DetectionFilters
from app.services.session_guard import UserContext, require_session
from app.utils.logger import get_logger

router = APIRouter(dependencies=[Depends(require_session)])
logger = get_logger(__name__)

_NUMERIC = re.compile(r"^-?\d+(\.\d+)?$")


def parse_epoch_bound(value: Optional[str]) -> Optional[int]:
    """Epoch-ms bound from a query string. Non-numeric text is ignored, not rejected."""
    if value is None or not _NUMERIC.match(value.strip()):
        return None
    try:
        return int(float(value.strip()))
    except (OverflowError, ValueError):
        return None


def detection_filters(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=1000),
    cameraName: Optional[str] = None,
    carMake: Optional[str] = None,
    startTimestamp: Optional[str] = None,
    endTimestamp: Optional[str] = None,
    plateTag: Optional[str] = None,
) -> DetectionFilters:
    """Shared query-string → DetectionFilters dependency."""
    return DetectionFilters(
        camera_name=cameraName,
        car_make=carMake,
        plate_tag=plateTag,
        start_ms=parse_epoch_bound(startTimestamp),
        end_ms=parse_epoch_bound(endTimestamp),
        page=page,
        page_size=limit,
    )


@router.get("/detections", response_model=list[Detection], summary="Paged detection list")
def list_detections(filters: DetectionFilters = Depends(detection_filters), db: Session = Depends(get_db)):
    return detection_service.list_detections(db, filters)


@router.get("/detections/count", response_model=DetectionCount, summary="Total detections for filters")
def count_detections(filters: DetectionFilters = Depends(detection_filters), db: Session = Depends(get_db)):
    return {"total": detection_service.count_detections(db, filters)}


@router.get("/detections/search", response_model=list[Detection], summary="Search by plate substring")
def search_detections(filters: DetectionFilters = Depends(detection_filters), db: Session = Depends(get_db)):
    """Case-insensitive partial plate match. plateTag is required."""
    return detection_service.search_detections(db, filters)


@router.get("/detections/export", response_model=list[Detection], summary="Export detections")
def export_detections(
    fmt: str = Query("json", alias="format", pattern="^(json|csv)$"),
    filters: DetectionFilters = Depends(detection_filters),
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_session),
):
    """Every detection matching the filters, newest first, capped at 100000 rows."""
    detections = detection_service.export_detections(db, filters)
    logger.info(f"Export by {user.email}: {len(detections)} rows as {fmt}")
    if fmt == "csv":
        return Response(
            content=detection_service.detections_to_csv(detections),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": 'attachment; filename="detection_history.csv"'},
        )
    return detections


@router.get("/cameras", response_model=list[str], summary="Distinct camera names")
def list_cameras(db: Session = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return detection_service.list_cameras(db, cache)


@router.get("/car-makes", response_model=list[str], summary="Distinct normalized car makes")
def list_car_makes(db: Session = Depends(get_db), cache: CacheService = Depends(get_cache)):
    return detection_service.list_car_makes(db, cache)


@router.get("/kpis", response_model=KpiOut, summary="Total detections and active cameras")
def get_kpis(db: Session = Depends(get_db)):
    return detection_service.get_kpis(db)
