# tests/test_make_resolver.py
"""Unit tests for vehicle make resolution over historical metadata shapes."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.services.make_resolver import VehicleMake, resolve_vehicle_make, title_case
from app.utils.json_parser import (
    ABSENT, ObjectValue, StringValue, classify, first_non_empty, is_json_truthy, safe_parse_json,
)


class TestResolveVehicleMake:
    def test_object_with_name(self):
        assert resolve_vehicle_make({"vehicle": {"make": {"name": "toyota"}}}) == VehicleMake("toyota", "Toyota")

    def test_no_make(self):
        assert resolve_vehicle_make({"vehicle": {"color": "red"}}) is None
        assert resolve_vehicle_make({}) is None

    def test_not_a_document(self):
        assert resolve_vehicle_make(None) is None
        assert resolve_vehicle_make("toyota") is None

    def test_bare_string_multiword(self):
        assert resolve_vehicle_make({"make": "LAND rover"}) == VehicleMake("land rover", "Land Rover")

    def test_object_with_code_only(self):
        assert resolve_vehicle_make({"vehicleMake": {"code": "BMW"}}) == VehicleMake("bmw", "Bmw")

    def test_code_and_name(self):
        make = resolve_vehicle_make({"vehicle": {"make": {"code": "mb", "name": "Mercedes-Benz"}}})
        assert make == VehicleMake("mb", "Mercedes-benz")

    def test_first_path_wins(self):
        doc = {"vehicle": {"make": "ford", "brand": "kia"}, "make": "toyota"}
        assert resolve_vehicle_make(doc).code == "ford"

    def test_empty_candidates_are_skipped(self):
        doc = {"vehicle": {"make": ""}, "make": {}, "vehicleMake": "  ", "attributes": {"make": "Honda"}}
        assert resolve_vehicle_make(doc) == VehicleMake("honda", "Honda")

    def test_array_takes_first_element(self):
        doc = {"attributes": {"manufacturer": [{"name": "Nissan"}, {"name": "Ford"}]}}
        assert resolve_vehicle_make(doc) == VehicleMake("nissan", "Nissan")

    def test_array_skips_empty_elements(self):
        assert resolve_vehicle_make({"make": ["", None, "Toyota"]}) == VehicleMake("toyota", "Toyota")
        assert resolve_vehicle_make({"make": [], "vehicleMake": "kia"}) == VehicleMake("kia", "Kia")

    def test_late_fallback_path(self):
        assert resolve_vehicle_make({"attributes": {"brand": "kia"}}) == VehicleMake("kia", "Kia")


class TestHelpers:
    def test_title_case(self):
        assert title_case("alfa  ROMEO") == "Alfa Romeo"

    def test_classify(self):
        assert classify(None) is ABSENT
        assert classify("") is ABSENT
        assert classify(True) is ABSENT
        assert classify("red") == StringValue("red")
        assert classify({"code": "suv"}) == ObjectValue(code="suv", name=None)
        assert classify({"other": 1}) is ABSENT

    def test_json_truthiness(self):
        for empty in (None, False, 0, 0.0, ""):
            assert is_json_truthy(empty) is False
        for present in ({}, [], "0", " ", 1, True):
            assert is_json_truthy(present) is True
        assert first_non_empty([0, "", {"name": "Audi"}]) == {"name": "Audi"}
        assert first_non_empty("audi") == "audi"

    def test_safe_parse_json(self):
        assert safe_parse_json('{"a": 1}') == {"a": 1}
        assert safe_parse_json(b'{"a": 1}') == {"a": 1}
        assert safe_parse_json("[1, 2]") is None
        assert safe_parse_json("{broken") is None
        assert safe_parse_json(None) is None
