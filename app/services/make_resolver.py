# app/services/make_resolver.py
"""
Vehicle make resolution.

The make has lived in eight different places of the metadata document over
time. MAKE_CANDIDATE_PATHS is the single ordered list of those places; the
Python resolver below and the SQL make expression in query_builder are both
generated from it so filters and displayed values agree.
"""

from dataclasses import dataclass
from typing import Optional

from app.utils.json_parser import ObjectValue, StringValue, classify, first_non_empty, get_nested

MAKE_CANDIDATE_PATHS: tuple[tuple[str, ...], ...] = (
    ("vehicle", "make"),
    ("make",),
    ("vehicleMake",),
    ("attributes", "make"),
    ("vehicle", "manufacturer"),
    ("vehicle", "brand"),
    ("attributes", "manufacturer"),
    ("attributes", "brand"),
)


@dataclass(frozen=True)
class VehicleMake:
    code: str
    name: str


def title_case(value: str) -> str:
    """'land rover' → 'Land Rover'. Each whitespace token capitalized, rest lowercased."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split())


def make_from_value(value) -> Optional[VehicleMake]:
    """Build a VehicleMake from one raw candidate value, or None if it is empty."""
    shape = classify(first_non_empty(value))
    if isinstance(shape, StringValue):
        return VehicleMake(code=shape.text.lower(), name=title_case(shape.text))
    if isinstance(shape, ObjectValue):
        name = shape.name or shape.code
        return VehicleMake(code=(shape.code or name).lower(), name=title_case(name))
    return None


def resolve_vehicle_make(metadata: dict) -> Optional[VehicleMake]:
    """First non-empty make found along MAKE_CANDIDATE_PATHS, else None."""
    if not isinstance(metadata, dict):
        return None
    for path in MAKE_CANDIDATE_PATHS:
        make = make_from_value(get_nested(metadata, *path))
        if make is not None:
            return make
    return None
