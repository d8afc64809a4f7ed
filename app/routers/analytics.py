# app/routers/analytics.py
"""Grouped detection counts for the dashboard charts. Same camera/make/time filters as /detections."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.routers.detections import detection_filters
from app.schemas.detection import AggregateBucket
from app.services import detection_service
from app.services.query_builder import DetectionFilters
from app.services.session_guard import require_session

router = APIRouter(prefix="/analytics", dependencies=[Depends(require_session)])


@router.get("/detections-by-camera", response_model=list[AggregateBucket])
def detections_by_camera(filters: DetectionFilters = Depends(detection_filters), db: Session = Depends(get_db)):
    return detection_service.aggregate_detections(db, "camera", filters)


@router.get("/vehicle-types", response_model=list[AggregateBucket])
def vehicle_types(filters: DetectionFilters = Depends(detection_filters), db: Session = Depends(get_db)):
    return detection_service.aggregate_detections(db, "vehicle_type", filters)


@router.get("/vehicle-colors", response_model=list[AggregateBucket])
def vehicle_colors(filters: DetectionFilters = Depends(detection_filters), db: Session = Depends(get_db)):
    return detection_service.aggregate_detections(db, "vehicle_color", filters)


@router.get("/vehicle-orientations", response_model=list[AggregateBucket])
def vehicle_orientations(filters: DetectionFilters = Depends(detection_filters), db: Session = Depends(get_db)):
    return detection_service.aggregate_detections(db, "vehicle_orientation", filters)
