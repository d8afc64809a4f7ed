# tests/test_detection_service.py
"""Unit tests for the detection read service."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from unittest.mock import MagicMock
from app.services.cache_service import CacheService
from app.services.detection_service import (
    CSV_HEADERS, detections_to_csv, get_kpis, list_cameras, list_car_makes, normalize_make_names,
)


class TestFilterOptions:
    def test_cameras_served_from_cache(self):
        db = MagicMock()
        db.execute.return_value = [MagicMock(camera_name="Deck")]
        cache = CacheService(default_ttl=60)

        assert list_cameras(db, cache) == ["Deck"]
        assert list_cameras(db, cache) == ["Deck"]
        assert db.execute.call_count == 1

    def test_cameras_without_cache(self):
        db = MagicMock()
        db.execute.return_value = []
        assert list_cameras(db) == []

    def test_car_makes_cached_after_normalizing(self):
        db = MagicMock()
        db.execute.return_value = [MagicMock(raw_make="toyota"), MagicMock(raw_make="unknown")]
        cache = CacheService(default_ttl=60)
        assert list_car_makes(db, cache) == ["N/A", "Toyota"]
        assert cache.get("car_makes") == ["N/A", "Toyota"]

    def test_normalize_make_names(self):
        raw = ["  ", "", None, "HONDA", "honda", "Unknown", "land ROVER"]
        assert normalize_make_names(raw) == ["Honda", "Land Rover", "N/A"]


class TestKpisAndCsv:
    def test_kpis(self):
        db = MagicMock()
        db.execute.return_value.one.return_value = MagicMock(total_detections=None, active_cameras=3)
        assert get_kpis(db) == {"total_detections": 0, "active_cameras": 3}

    def test_empty_csv_has_header(self):
        assert detections_to_csv([]).strip() == ",".join(CSV_HEADERS)
