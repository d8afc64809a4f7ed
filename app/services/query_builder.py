# app/services/query_builder.py
"""
Parameterized SQL for every read path over the detection table.

The detection table is owned by the ingestion process and its metadata
column holds several historical JSON shapes, so queries are written as
PostgreSQL text with jsonb operators rather than mapped through the ORM.

Rules:
  - filter values only ever travel as bound parameters (:name)
  - table/schema identifiers cannot be bound, so they are reduced to
    [A-Za-z0-9_.] before being spliced in
  - the make expression is generated from MAKE_CANDIDATE_PATHS, the same
    list VehicleMakeResolver walks in Python
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from app.config import settings
from app.exceptions import ValidationError
from app.services.detection_normalizer import VEHICLE_LOCATIONS
from app.services.make_resolver import MAKE_CANDIDATE_PATHS

ALL_CAMERAS = "All Cameras"
ALL_MAKES = "All Makes"
UNKNOWN_MAKE = "unknown"

SEARCH_LIMIT = 100
EXPORT_LIMIT = 100_000
MAX_PAGE_SIZE = 1000

DETECTION_COLUMNS = "id, timestamp, plate_tag, camera_id, camera_name, metadata, source_file"

_IDENTIFIER_STRIP = re.compile(r"[^A-Za-z0-9_.]")
_PATH_KEY = re.compile(r"^[A-Za-z0-9_]+$")

METADATA = "(metadata::jsonb)"


@dataclass
class DetectionFilters:
    camera_name: Optional[str] = None
    car_make: Optional[str] = None
    plate_tag: Optional[str] = None
    start_ms: Optional[int] = None
    end_ms: Optional[int] = None
    page: int = 1
    page_size: int = 50


@dataclass
class BuiltQuery:
    sql: str
    params: dict = field(default_factory=dict)


# ── Identifiers ──────────────────────────────────────────────────────────────

def sanitize_identifier(identifier: str) -> str:
    """Keep only [A-Za-z0-9_.]. An identifier that sanitizes to nothing is rejected."""
    cleaned = _IDENTIFIER_STRIP.sub("", identifier or "")
    if not cleaned:
        raise ValidationError("identifier", f"Invalid SQL identifier: {identifier!r}")
    return cleaned


def detection_table(table: str = None, schema: str = None) -> str:
    table = sanitize_identifier(table or settings.DB_TABLE)
    schema = schema if schema is not None else settings.DB_SCHEMA
    if schema:
        return f"{sanitize_identifier(schema)}.{table}"
    return table


# ── JSON expressions ─────────────────────────────────────────────────────────

def _path_literal(path) -> str:
    # Paths are module constants, never user input; still refuse anything odd.
    for key in path:
        if not _PATH_KEY.match(str(key)):
            raise ValueError(f"Unsafe JSON path key: {key!r}")
    return "'{" + ",".join(str(k) for k in path) + "}'"


def _text_at(doc: str, path) -> str:
    return f"NULLIF(btrim({doc} #>> {_path_literal(path)}), '')"


def _typeof(doc: str, path) -> str:
    return f"jsonb_typeof({doc} #> {_path_literal(path)})"


def _string_or_object(doc: str, path) -> str:
    """Display value at path: the string (or number) itself, or object name then code."""
    return (
        f"CASE {_typeof(doc, path)} "
        f"WHEN 'string' THEN {_text_at(doc, path)} "
        f"WHEN 'number' THEN {_text_at(doc, path)} "
        f"WHEN 'object' THEN COALESCE({_text_at(doc, (*path, 'name'))}, {_text_at(doc, (*path, 'code'))}) "
        f"END"
    )


# JSON-falsy array elements, skipped the way json_parser.first_non_empty skips them.
_FALSY_ELEMENTS = "('null'::jsonb, 'false'::jsonb, '0'::jsonb, '\"\"'::jsonb)"


def _first_truthy_element(doc: str, path) -> str:
    array = f"{doc} #> {_path_literal(path)}"
    return (
        f"(SELECT e.elem FROM jsonb_array_elements("
        f"CASE WHEN jsonb_typeof({array}) = 'array' THEN {array} ELSE '[]'::jsonb END"
        f") WITH ORDINALITY AS e(elem, n) WHERE e.elem NOT IN {_FALSY_ELEMENTS} ORDER BY e.n LIMIT 1)"
    )


def _make_candidate(doc: str, path) -> str:
    return (
        f"CASE {_typeof(doc, path)} "
        f"WHEN 'array' THEN {_string_or_object(_first_truthy_element(doc, path), ())} "
        f"ELSE {_string_or_object(doc, path)} "
        f"END"
    )


def make_expression(doc: str = METADATA) -> str:
    """SQL mirror of resolve_vehicle_make; evaluates to 'unknown' when nothing matches."""
    candidates = ",\n    ".join(_make_candidate(doc, path) for path in MAKE_CANDIDATE_PATHS)
    return f"COALESCE(\n    {candidates},\n    '{UNKNOWN_MAKE}'\n)"


def _object_at(doc: str, path) -> str:
    value = f"{doc} #> {_path_literal(path)}"
    return f"CASE WHEN jsonb_typeof({value}) = 'object' THEN {value} END"


# First JSON object among the vehicle locations, as detection_normalizer._vehicle picks it.
VEHICLE_OBJECT = f"COALESCE({', '.join(_object_at(METADATA, path) for path in VEHICLE_LOCATIONS)})"


def _vehicle_field_code(field_name: str) -> str:
    """Code of a vehicle sub-field that may be a bare string or {code, name}."""
    doc = VEHICLE_OBJECT
    path = (field_name,)
    return (
        f"COALESCE(CASE {_typeof(doc, path)} "
        f"WHEN 'string' THEN {_text_at(doc, path)} "
        f"WHEN 'object' THEN COALESCE({_text_at(doc, (field_name, 'code'))}, {_text_at(doc, (field_name, 'name'))}) "
        f"END, '{UNKNOWN_MAKE}')"
    )


AGGREGATE_DIMENSIONS = {
    "camera": "COALESCE(camera_name, 'Unknown')",
    "vehicle_type": _vehicle_field_code("type"),
    "vehicle_color": _vehicle_field_code("color"),
    "vehicle_orientation": _vehicle_field_code("orientation"),
}


# ── Filters ──────────────────────────────────────────────────────────────────

def normalize_make_filter(car_make: Optional[str]) -> Optional[str]:
    """None when the filter is off; 'N/A' and 'unknown' map onto the SQL fallback value."""
    if car_make is None or not car_make.strip() or car_make.strip() == ALL_MAKES:
        return None
    lowered = car_make.strip().lower()
    if lowered in ("n/a", UNKNOWN_MAKE):
        return UNKNOWN_MAKE
    return car_make.strip()


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _time_bound(param: str) -> str:
    kind = settings.DB_TIMESTAMP_KIND
    if kind == "epoch_ms":
        return f":{param}"
    if kind == "epoch_s":
        return f"(:{param} / 1000.0)"
    return f"to_timestamp(:{param} / 1000.0)"


def _where(filters: DetectionFilters, include_plate: bool = False) -> tuple[str, dict]:
    conditions, params = [], {}

    camera = filters.camera_name
    if camera and camera.strip() and camera != ALL_CAMERAS:
        conditions.append("camera_name = :camera_name")
        params["camera_name"] = camera

    make = normalize_make_filter(filters.car_make)
    if make is not None:
        conditions.append(f"LOWER({make_expression()}) = LOWER(:car_make)")
        params["car_make"] = make

    if include_plate and filters.plate_tag and filters.plate_tag.strip():
        conditions.append("LOWER(plate_tag) LIKE LOWER(:plate_pattern) ESCAPE '\\'")
        params["plate_pattern"] = _like_pattern(filters.plate_tag.strip())

    if filters.start_ms is not None:
        conditions.append(f"timestamp >= {_time_bound('start_ms')}")
        params["start_ms"] = filters.start_ms
    if filters.end_ms is not None:
        conditions.append(f"timestamp <= {_time_bound('end_ms')}")
        params["end_ms"] = filters.end_ms

    clause = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    return clause, params


def _select_detections(where: str) -> str:
    return f"SELECT {DETECTION_COLUMNS} FROM {detection_table()}{where} ORDER BY timestamp DESC, id DESC"


# ── Builders ─────────────────────────────────────────────────────────────────

def build_list_query(filters: DetectionFilters) -> BuiltQuery:
    page = max(int(filters.page or 1), 1)
    page_size = min(max(int(filters.page_size or 50), 1), MAX_PAGE_SIZE)
    where, params = _where(filters)
    params.update(limit=page_size, offset=(page - 1) * page_size)
    return BuiltQuery(f"{_select_detections(where)} LIMIT :limit OFFSET :offset", params)


def build_count_query(filters: DetectionFilters) -> BuiltQuery:
    where, params = _where(filters)
    return BuiltQuery(f"SELECT COUNT(*) AS total FROM {detection_table()}{where}", params)


def build_search_query(filters: DetectionFilters) -> BuiltQuery:
    if not filters.plate_tag or not filters.plate_tag.strip():
        raise ValidationError("plateTag", "Plate tag is required")
    where, params = _where(filters, include_plate=True)
    params["limit"] = SEARCH_LIMIT
    return BuiltQuery(f"{_select_detections(where)} LIMIT :limit", params)


def build_export_query(filters: DetectionFilters) -> BuiltQuery:
    where, params = _where(filters, include_plate=True)
    params["limit"] = EXPORT_LIMIT
    return BuiltQuery(f"{_select_detections(where)} LIMIT :limit", params)


def build_distinct_cameras_query() -> BuiltQuery:
    return BuiltQuery(
        f"SELECT DISTINCT camera_name FROM {detection_table()} "
        f"WHERE camera_name IS NOT NULL ORDER BY camera_name ASC"
    )


def build_distinct_makes_query() -> BuiltQuery:
    return BuiltQuery(
        f"SELECT DISTINCT {make_expression()} AS raw_make FROM {detection_table()} "
        f"WHERE metadata IS NOT NULL ORDER BY raw_make ASC"
    )


def build_aggregate_query(dimension: str, filters: DetectionFilters) -> BuiltQuery:
    if dimension not in AGGREGATE_DIMENSIONS:
        raise ValidationError("dimension", f"Unknown aggregate dimension: {dimension}")
    where, params = _where(filters)
    expr = AGGREGATE_DIMENSIONS[dimension]
    return BuiltQuery(
        f"SELECT {expr} AS bucket, COUNT(*) AS total FROM {detection_table()}{where} "
        f"GROUP BY bucket ORDER BY total DESC, bucket ASC",
        params,
    )


def build_kpi_query() -> BuiltQuery:
    return BuiltQuery(
        f"SELECT COUNT(*) AS total_detections, COUNT(DISTINCT camera_name) AS active_cameras "
        f"FROM {detection_table()}"
    )
