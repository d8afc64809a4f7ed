# tests/test_query_builder.py
"""Unit tests for parameterized detection SQL."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import patch
from app.config import settings
from app.exceptions import ValidationError
from app.services.detection_normalizer import VEHICLE_LOCATIONS
from app.services.make_resolver import MAKE_CANDIDATE_PATHS
from app.services.query_builder import (
    EXPORT_LIMIT, MAX_PAGE_SIZE, SEARCH_LIMIT, DetectionFilters,
    build_aggregate_query, build_count_query, build_distinct_makes_query, build_export_query,
    build_kpi_query, build_list_query, build_search_query, detection_table, make_expression,
    VEHICLE_OBJECT, normalize_make_filter, sanitize_identifier,
)


class TestFilters:
    def test_all_cameras_sentinel_disables_filter(self):
        query = build_count_query(DetectionFilters(camera_name="All Cameras"))
        assert "camera_name =" not in query.sql
        assert "camera_name" not in query.params

    def test_camera_filter_is_bound(self):
        query = build_count_query(DetectionFilters(camera_name="North'; DROP TABLE x;--"))
        assert "camera_name = :camera_name" in query.sql
        assert query.params["camera_name"] == "North'; DROP TABLE x;--"
        assert "DROP TABLE" not in query.sql

    @pytest.mark.parametrize("value", ["N/A", "n/a", "unknown", " Unknown "])
    def test_unknown_make_sentinels(self, value):
        query = build_count_query(DetectionFilters(car_make=value))
        assert query.params["car_make"] == "unknown"

    @pytest.mark.parametrize("value", [None, "", "All Makes"])
    def test_make_filter_off(self, value):
        assert normalize_make_filter(value) is None
        assert "car_make" not in build_count_query(DetectionFilters(car_make=value)).params

    def test_make_filter_uses_make_expression(self):
        query = build_count_query(DetectionFilters(car_make="Toyota"))
        assert "LOWER(:car_make)" in query.sql
        assert query.params["car_make"] == "Toyota"

    def test_time_bounds_as_timestamp_column(self):
        with patch.object(settings, "DB_TIMESTAMP_KIND", "timestamp"):
            query = build_count_query(DetectionFilters(start_ms=1000, end_ms=2000))
        assert "timestamp >= to_timestamp(:start_ms / 1000.0)" in query.sql
        assert "timestamp <= to_timestamp(:end_ms / 1000.0)" in query.sql
        assert query.params["start_ms"] == 1000 and query.params["end_ms"] == 2000

    def test_time_bounds_as_epoch_ms_column(self):
        with patch.object(settings, "DB_TIMESTAMP_KIND", "epoch_ms"):
            query = build_count_query(DetectionFilters(start_ms=1000))
        assert "timestamp >= :start_ms" in query.sql

    def test_no_filters_no_where(self):
        assert " WHERE " not in build_count_query(DetectionFilters()).sql


class TestListSearchExport:
    def test_page_two(self):
        query = build_list_query(DetectionFilters(page=2, page_size=50))
        assert query.params["limit"] == 50
        assert query.params["offset"] == 50
        assert "ORDER BY timestamp DESC, id DESC" in query.sql

    def test_page_size_clamped(self):
        query = build_list_query(DetectionFilters(page=0, page_size=10_000))
        assert query.params["limit"] == MAX_PAGE_SIZE
        assert query.params["offset"] == 0

    def test_list_ignores_plate(self):
        query = build_list_query(DetectionFilters(plate_tag="ABC"))
        assert "plate_pattern" not in query.params

    def test_search_requires_plate(self):
        with pytest.raises(ValidationError) as exc:
            build_search_query(DetectionFilters(plate_tag="  "))
        assert exc.value.field == "plateTag"

    def test_search_escapes_like_wildcards(self):
        query = build_search_query(DetectionFilters(plate_tag="ab_1%"))
        assert query.params["plate_pattern"] == "%ab\\_1\\%%"
        assert query.params["limit"] == SEARCH_LIMIT
        assert "OFFSET" not in query.sql

    def test_export_is_capped_and_plate_optional(self):
        query = build_export_query(DetectionFilters(camera_name="Deck"))
        assert query.params["limit"] == EXPORT_LIMIT
        assert "plate_pattern" not in query.params
        assert "OFFSET" not in query.sql
        with_plate = build_export_query(DetectionFilters(plate_tag="X1"))
        assert with_plate.params["plate_pattern"] == "%X1%"


class TestMakesAndAggregates:
    def test_make_expression_covers_every_path(self):
        expr = make_expression()
        for path in MAKE_CANDIDATE_PATHS:
            assert "'{" + ",".join(path) + "}'" in expr
        assert expr.startswith("COALESCE(")
        assert "'unknown'" in expr

    def test_path_order_matches_resolver(self):
        expr = make_expression()
        positions = [expr.index("'{" + ",".join(path) + "}'") for path in MAKE_CANDIDATE_PATHS]
        assert positions == sorted(positions)

    def test_make_arrays_use_first_truthy_element(self):
        expr = make_expression()
        assert "jsonb_array_elements(" in expr and "WITH ORDINALITY" in expr
        assert "ORDER BY e.n LIMIT 1" in expr
        assert "'null'::jsonb" in expr and "'\"\"'::jsonb" in expr
        assert "WHEN 'number'" in expr

    def test_vehicle_object_requires_json_object(self):
        assert VEHICLE_OBJECT.startswith("COALESCE(")
        assert VEHICLE_OBJECT.count("= 'object'") == len(VEHICLE_LOCATIONS)
        positions = [VEHICLE_OBJECT.index("'{" + ",".join(path) + "}'") for path in VEHICLE_LOCATIONS]
        assert positions == sorted(positions)

    def test_distinct_makes(self):
        assert "AS raw_make" in build_distinct_makes_query().sql

    @pytest.mark.parametrize("dimension", ["camera", "vehicle_type", "vehicle_color", "vehicle_orientation"])
    def test_aggregate_dimensions(self, dimension):
        query = build_aggregate_query(dimension, DetectionFilters(camera_name="Deck"))
        assert "AS bucket" in query.sql and "COUNT(*) AS total" in query.sql
        assert "GROUP BY bucket" in query.sql
        assert query.params == {"camera_name": "Deck"}

    def test_unknown_dimension(self):
        with pytest.raises(ValidationError):
            build_aggregate_query("plate", DetectionFilters())

    def test_kpis(self):
        sql = build_kpi_query().sql
        assert "AS total_detections" in sql and "COUNT(DISTINCT camera_name) AS active_cameras" in sql


class TestIdentifiers:
    def test_sanitize_strips_unsafe_characters(self):
        assert sanitize_identifier("alpr_data; DROP") == "alpr_dataDROP"
        assert sanitize_identifier("public.alpr_data") == "public.alpr_data"

    def test_sanitize_rejects_empty(self):
        with pytest.raises(ValidationError):
            sanitize_identifier("';--")

    def test_detection_table_with_schema(self):
        assert detection_table(table="detections", schema="alpr") == "alpr.detections"
        assert detection_table(table="detections", schema="") == "detections"
